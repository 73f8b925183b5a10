"""Wishlist match review endpoints"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
from collectibles.auth import get_current_user_id
from collectibles.database import get_db
from collectibles.exceptions import NotFoundError
from collectibles.models import WishlistItem
from collectibles.schemas import MatchResponse, MatchStatusUpdate, MatchCountsResponse, NewMatchesCountResponse
from collectibles.services.match_store import MatchStore

router = APIRouter()


@router.get("/wishlist-items/{wishlist_item_id}/matches", response_model=List[MatchResponse])
def list_wishlist_item_matches(
    wishlist_item_id: str,
    limit: int = Query(default=10, ge=1, le=50),
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Non-dismissed matches for one of the caller's wishlist items, best first"""
    item = db.query(WishlistItem).filter(
        WishlistItem.id == wishlist_item_id,
        WishlistItem.user_id == caller_id,
    ).first()

    if not item:
        raise NotFoundError("Wishlist item not found")

    return MatchStore(db).list_matches_for_item(item.id, limit=limit)


@router.patch("/matches/{match_id}", response_model=MatchResponse)
def update_match_status(
    match_id: str,
    update: MatchStatusUpdate,
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Mark a match viewed, dismissed or interested"""
    store = MatchStore(db)
    match = store.get_match_for_owner(match_id, caller_id)

    if not match:
        raise NotFoundError("Match not found")

    return store.update_match_status(match, update.match_status)


@router.get("/matches/counts", response_model=MatchCountsResponse)
def get_match_counts(
    wishlist_item_id: List[str] = Query(default=[]),
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Visible match counts for the caller's wishlist items"""
    owned_ids = [
        item_id for (item_id,) in db.query(WishlistItem.id).filter(
            WishlistItem.id.in_(wishlist_item_id),
            WishlistItem.user_id == caller_id,
        ).all()
    ] if wishlist_item_id else []

    return MatchCountsResponse(counts=MatchStore(db).count_matches_by_item(owned_ids))


@router.get("/matches/new-count", response_model=NewMatchesCountResponse)
def get_new_matches_count(caller_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Number of the caller's wishlist items with at least one new match"""
    return NewMatchesCountResponse(new_matches_count=MatchStore(db).count_items_with_new_matches(caller_id))
