from sqlalchemy import Column, String, Text, Boolean, DateTime, Index
from datetime import datetime
import uuid
from collectibles.database import Base


class UserNotification(Base):
    __tablename__ = "user_notifications"
    __table_args__ = (
        Index("idx_notification_lookup", "user_id", "type", "related_id"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    type = Column(String(32), nullable=False)  # new_message, listing_inquiry, listing_sold, wishlist_match
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    related_id = Column(String(36))
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<UserNotification(id={self.id}, user={self.user_id}, type='{self.type}', read={self.is_read})>"
