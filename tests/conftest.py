"""
Pytest configuration and fixtures for testing
"""

import os

# Settings are read once and cached, so configure them before any app import
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_SECRET", "test-auth-secret")
os.environ.setdefault("MATCHER_URL", "http://matcher.test/api/wishlist-matcher")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from collectibles import models  # noqa: F401
from collectibles.auth import create_access_token
from collectibles.database import Base, get_db
from collectibles.main import app
from collectibles.models import MarketplaceListing, WishlistItem


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """API client backed by the per-test database"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user_id: str = "collector-1"):
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture
def make_wishlist_item(db):
    def _make(user_id: str = "collector-1", item_name: str = "Jadeite Bowl", **fields):
        item = WishlistItem(user_id=user_id, item_name=item_name, **fields)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    return _make


@pytest.fixture
def make_listing(db):
    def _make(user_id: str = "seller-1", title: str = "Jadeite Bowl", **fields):
        listing = MarketplaceListing(user_id=user_id, title=title, **fields)
        db.add(listing)
        db.commit()
        db.refresh(listing)
        return listing

    return _make
