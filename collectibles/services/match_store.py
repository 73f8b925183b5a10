"""Persistence of wishlist matches and their notifications"""
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from datetime import datetime
import logging
import uuid
from collectibles.exceptions import MatcherError, MatchValidationError, InvalidStatusTransitionError
from collectibles.models import WishlistItem, WishlistMatch, UserNotification
from collectibles.models.status_enums import MatchStatus, NotificationType, MATCH_STATUS_TRANSITIONS
from collectibles.services.matcher import MATCH_THRESHOLD

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class MatchStore:
    """Upserts matches and fans out one notification per match"""

    def __init__(self, db: Session):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        try:
            return _UPSERT_DIALECTS[dialect]
        except KeyError:
            raise MatcherError(f"Match upsert is not supported on {dialect}")

    def upsert_match(self, wishlist_item_id: str, listing_id: str, score: int, details: Dict[str, int]) -> str:
        """
        Insert the match or overwrite score/details on the (item, listing) key.
        A recomputed match always goes back to 'new', even if it was dismissed.
        Returns: match id
        """
        now = datetime.utcnow()
        insert = self._insert()
        stmt = insert(WishlistMatch.__table__).values(
            id=str(uuid.uuid4()),
            wishlist_item_id=wishlist_item_id,
            marketplace_listing_id=listing_id,
            match_score=score,
            match_details=details,
            match_status=MatchStatus.NEW.value,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["wishlist_item_id", "marketplace_listing_id"],
            set_={
                "match_score": stmt.excluded.match_score,
                "match_details": stmt.excluded.match_details,
                "match_status": MatchStatus.NEW.value,
                "updated_at": now,
            },
        )
        self.db.execute(stmt)

        return self.db.query(WishlistMatch.id).filter(
            WishlistMatch.wishlist_item_id == wishlist_item_id,
            WishlistMatch.marketplace_listing_id == listing_id,
        ).scalar()

    def notify_match(self, user_id: str, match_id: str, score: int, item_name: str) -> bool:
        """Create the match notification unless the user already has one. Returns True if created."""
        existing = self.db.query(UserNotification.id).filter(
            UserNotification.user_id == user_id,
            UserNotification.type == NotificationType.WISHLIST_MATCH.value,
            UserNotification.related_id == match_id,
        ).first()

        if existing:
            return False

        self.db.add(UserNotification(
            user_id=user_id,
            type=NotificationType.WISHLIST_MATCH.value,
            title="New Match Found!",
            message=f'We found a {score}% match for "{item_name}"',
            related_id=match_id,
            is_read=False,
        ))
        self.db.flush()
        return True

    def persist_match(self, wishlist_item: WishlistItem, listing_id: str, score: int, details: Dict[str, int]) -> str:
        """Upsert the match and notify the wishlist item's owner once"""
        match_id = self.upsert_match(wishlist_item.id, listing_id, score, details)
        if match_id is None:
            raise MatcherError(f"Match for item {wishlist_item.id} and listing {listing_id} vanished after upsert")

        if self.notify_match(wishlist_item.user_id, match_id, score, wishlist_item.item_name):
            logger.info(f"Notified user {wishlist_item.user_id} of match {match_id} ({score}%)")

        return match_id

    def list_matches_for_item(self, wishlist_item_id: str, limit: int = 10) -> List[WishlistMatch]:
        """Visible matches for one wishlist item, best first"""
        return self.db.query(WishlistMatch).filter(
            WishlistMatch.wishlist_item_id == wishlist_item_id,
            WishlistMatch.match_status != MatchStatus.DISMISSED.value,
            WishlistMatch.match_score >= MATCH_THRESHOLD,
        ).order_by(WishlistMatch.match_score.desc()).limit(limit).all()

    def count_matches_by_item(self, wishlist_item_ids: List[str]) -> Dict[str, int]:
        """Number of visible matches per wishlist item"""
        if not wishlist_item_ids:
            return {}

        rows = self.db.query(WishlistMatch.wishlist_item_id, func.count(WishlistMatch.id)).filter(
            WishlistMatch.wishlist_item_id.in_(wishlist_item_ids),
            WishlistMatch.match_status != MatchStatus.DISMISSED.value,
            WishlistMatch.match_score >= MATCH_THRESHOLD,
        ).group_by(WishlistMatch.wishlist_item_id).all()

        return {item_id: count for item_id, count in rows}

    def count_items_with_new_matches(self, user_id: str) -> int:
        """How many of the user's wishlist items have at least one unseen match"""
        return self.db.query(func.count(func.distinct(WishlistMatch.wishlist_item_id))).join(
            WishlistItem, WishlistItem.id == WishlistMatch.wishlist_item_id
        ).filter(
            WishlistItem.user_id == user_id,
            WishlistMatch.match_status == MatchStatus.NEW.value,
            WishlistMatch.match_score >= MATCH_THRESHOLD,
        ).scalar() or 0

    def update_match_status(self, match: WishlistMatch, new_status: str) -> WishlistMatch:
        """Apply a user-driven status change (view, dismiss, express interest)"""
        try:
            target = MatchStatus(new_status)
            current = MatchStatus(match.match_status)
        except ValueError:
            raise MatchValidationError(f"Unknown match status '{new_status}'")

        if target == current:
            return match

        if target not in MATCH_STATUS_TRANSITIONS[current]:
            raise InvalidStatusTransitionError(
                f"Cannot move match from '{current.value}' to '{target.value}'"
            )

        match.match_status = target.value
        match.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(match)
        return match

    def get_match_for_owner(self, match_id: str, user_id: str) -> Optional[WishlistMatch]:
        return self.db.query(WishlistMatch).join(
            WishlistItem, WishlistItem.id == WishlistMatch.wishlist_item_id
        ).filter(
            WishlistMatch.id == match_id,
            WishlistItem.user_id == user_id,
        ).first()
