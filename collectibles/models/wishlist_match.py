from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint, Index
from datetime import datetime
import uuid
from collectibles.database import Base, JSONDocument
from collectibles.models.status_enums import MatchStatus


class WishlistMatch(Base):
    """Scored pairing of a wishlist item with a marketplace listing"""
    __tablename__ = "wishlist_matches"
    __table_args__ = (
        UniqueConstraint("wishlist_item_id", "marketplace_listing_id", name="uq_wishlist_item_listing"),
        Index("idx_wishlist_match_score", "wishlist_item_id", "match_score"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    wishlist_item_id = Column(String(36), ForeignKey("wishlist_items.id", ondelete="CASCADE"), nullable=False, index=True)
    marketplace_listing_id = Column(
        String(36), ForeignKey("marketplace_listings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    match_score = Column(Integer, nullable=False)
    match_details = Column(JSONDocument)  # Per-field score breakdown
    match_status = Column(String(20), default=MatchStatus.NEW.value, nullable=False)  # new, viewed, dismissed, interested
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return (
            f"<WishlistMatch(id={self.id}, item={self.wishlist_item_id}, "
            f"listing={self.marketplace_listing_id}, score={self.match_score}, status='{self.match_status}')>"
        )
