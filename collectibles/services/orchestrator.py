"""Runs the wishlist matcher for a new listing or a new/changed wishlist item"""
from sqlalchemy.orm import Session
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple, Union
import logging
from collectibles.exceptions import NotFoundError
from collectibles.models import WishlistItem, MarketplaceListing
from collectibles.models.status_enums import ListingStatus, WishlistItemStatus
from collectibles.schemas.match_schema import MatchListingRequest, MatchWishlistRequest
from collectibles.services.match_store import MatchStore
from collectibles.services.matcher import WishlistMatchScorer

logger = logging.getLogger(__name__)

Scorer = Callable[[WishlistItem, MarketplaceListing], Tuple[int, Dict[str, int]]]


@dataclass
class MatchRunResult:
    matches: List[Dict[str, Any]] = field(default_factory=list)
    failures: int = 0

    @property
    def matches_created(self) -> int:
        return len(self.matches)

    def to_response(self) -> Dict[str, Any]:
        return {"success": True, "matchesCreated": self.matches_created, "matches": self.matches}


class WishlistMatcher:
    """Scores one record against the opposing table and persists qualifying matches"""

    def __init__(self, db: Session, scorer: Scorer = WishlistMatchScorer.calculate_match_score):
        self.db = db
        self.scorer = scorer
        self.store = MatchStore(db)

    def handle(self, request: Union[MatchListingRequest, MatchWishlistRequest]) -> MatchRunResult:
        """Dispatch a validated matcher request"""
        if isinstance(request, MatchListingRequest):
            return self.match_listing(request.marketplace_listing_id)
        if isinstance(request, MatchWishlistRequest):
            return self.match_wishlist(request.wishlist_item_id)
        raise TypeError(f"Unsupported matcher request {type(request).__name__}")

    def match_listing(self, listing_id: str) -> MatchRunResult:
        """Match an active listing against every other user's active wishlist items"""
        listing = self.db.query(MarketplaceListing).filter(
            MarketplaceListing.id == listing_id,
            MarketplaceListing.listing_status == ListingStatus.ACTIVE.value,
        ).first()

        if not listing:
            raise NotFoundError("Listing not found")

        wishlist_items = self.db.query(WishlistItem).filter(
            WishlistItem.status == WishlistItemStatus.ACTIVE.value,
            WishlistItem.user_id != listing.user_id,
        ).all()

        logger.info(f"Matching listing {listing.id} against {len(wishlist_items)} wishlist items")

        result = MatchRunResult()
        for item in wishlist_items:
            self._score_pair(item, listing, result, {"wishlistItemId": item.id})

        return result

    def match_wishlist(self, wishlist_item_id: str) -> MatchRunResult:
        """Match one wishlist item against every other user's active listings"""
        wishlist_item = self.db.query(WishlistItem).filter(WishlistItem.id == wishlist_item_id).first()

        if not wishlist_item:
            raise NotFoundError("Wishlist item not found")

        listings = self.db.query(MarketplaceListing).filter(
            MarketplaceListing.listing_status == ListingStatus.ACTIVE.value,
            MarketplaceListing.user_id != wishlist_item.user_id,
        ).all()

        logger.info(f"Matching wishlist item {wishlist_item.id} against {len(listings)} listings")

        result = MatchRunResult()
        for listing in listings:
            self._score_pair(wishlist_item, listing, result, {"marketplaceListingId": listing.id})

        return result

    def _score_pair(
        self,
        wishlist_item: WishlistItem,
        listing: MarketplaceListing,
        result: MatchRunResult,
        reference: Dict[str, str],
    ) -> None:
        # Capture ids up front; a rollback expires the loaded objects
        item_id, listing_id = wishlist_item.id, listing.id

        try:
            score, details = self.scorer(wishlist_item, listing)
            if not WishlistMatchScorer.is_match(score):
                return
            self.store.persist_match(wishlist_item, listing_id, score, details)
            self.db.commit()
        except Exception:
            self.db.rollback()
            result.failures += 1
            logger.error(f"Failed to score or persist match for item {item_id} and listing {listing_id}", exc_info=True)
            return

        result.matches.append({**reference, "score": score, "details": details})
