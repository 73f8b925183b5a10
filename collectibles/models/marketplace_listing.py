from sqlalchemy import Column, String, Text, Numeric, DateTime
from datetime import datetime
import uuid
from collectibles.database import Base
from collectibles.models.status_enums import ListingStatus


class MarketplaceListing(Base):
    __tablename__ = "marketplace_listings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    title = Column(String(300), nullable=False)
    description = Column(Text)
    category = Column(String(100))
    subcategory = Column(String(100))
    listing_type = Column(String(20), default="sale")  # sale, trade, both
    asking_price = Column(Numeric(10, 2))
    listing_status = Column(String(20), default=ListingStatus.ACTIVE.value, index=True)  # active, sold, deleted
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def combined_text(self) -> str:
        """Title and description as one string, used for manufacturer/pattern lookups"""
        return f"{self.title} {self.description or ''}"

    def __repr__(self):
        return f"<MarketplaceListing(id={self.id}, user={self.user_id}, title='{self.title}', status='{self.listing_status}')>"
