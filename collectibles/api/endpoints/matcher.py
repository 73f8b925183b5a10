"""Wishlist matcher endpoint invoked by the match job processor"""
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
import logging
from collectibles.auth import get_current_user_id
from collectibles.database import get_db
from collectibles.exceptions import MatcherError
from collectibles.schemas import parse_match_request
from collectibles.services.orchestrator import WishlistMatcher

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/wishlist-matcher")
def run_wishlist_matcher(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Match a new listing against wishlists, or a wishlist item against listings.
    Body: {"mode": "match_listing", "marketplaceListingId": ...}
       or {"mode": "match_wishlist", "wishlistItemId": ...}
    """
    request = parse_match_request(payload)

    try:
        result = WishlistMatcher(db).handle(request)
    except MatcherError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Wishlist matcher failed for {request.mode}: {e}", exc_info=True)
        raise MatcherError(str(e))

    logger.info(
        f"Caller {caller_id} ran {request.mode}: {result.matches_created} matches, {result.failures} failures"
    )
    return result.to_response()
