from sqlalchemy import Column, String, Text, Numeric, DateTime
from datetime import datetime
import uuid
from collectibles.database import Base
from collectibles.models.status_enums import WishlistItemStatus


class WishlistItem(Base):
    __tablename__ = "wishlist_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    item_name = Column(String(200), nullable=False)
    category = Column(String(100))
    subcategory = Column(String(100))
    manufacturer = Column(String(200))
    pattern = Column(String(200))
    description = Column(Text)
    desired_price_max = Column(Numeric(10, 2))
    status = Column(String(20), default=WishlistItemStatus.ACTIVE.value, index=True)  # active, found, archived
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<WishlistItem(id={self.id}, user={self.user_id}, name='{self.item_name}', status='{self.status}')>"
