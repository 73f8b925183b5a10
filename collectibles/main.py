"""Main FastAPI application for the collectibles wishlist matcher"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from collectibles.api.endpoints import matcher, jobs, matches, notifications
from collectibles.config import get_settings
from collectibles.database import init_db
from collectibles.exceptions import MatcherError
import logging

settings = get_settings()

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Collectibles Wishlist Matcher API",
    description="Matches collectors' wishlist items against marketplace listings and notifies owners",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers with /api prefix
app.include_router(matcher.router, prefix="/api", tags=["Matcher"])
app.include_router(jobs.router, prefix="/api", tags=["Jobs"])
app.include_router(matches.router, prefix="/api", tags=["Matches"])
app.include_router(notifications.router, prefix="/api", tags=["Notifications"])


@app.exception_handler(MatcherError)
async def matcher_error_handler(request: Request, exc: MatcherError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": problems or "Invalid request"})


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup"""
    logger.info("Initializing database...")
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
