"""User notification endpoints"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from collectibles.auth import get_current_user_id
from collectibles.database import get_db
from collectibles.exceptions import NotFoundError
from collectibles.models import UserNotification
from collectibles.schemas import NotificationResponse, NotificationListResponse

router = APIRouter()


@router.get("/notifications", response_model=NotificationListResponse)
def list_notifications(
    limit: int = Query(default=50, le=100),
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """The caller's notifications, newest first"""
    notifications = db.query(UserNotification).filter(
        UserNotification.user_id == caller_id
    ).order_by(UserNotification.created_at.desc()).limit(limit).all()

    unread_count = db.query(UserNotification).filter(
        UserNotification.user_id == caller_id,
        UserNotification.is_read == False,  # noqa: E712
    ).count()

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread_count,
    )


@router.post("/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(notification_id: str, caller_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    notification = db.query(UserNotification).filter(
        UserNotification.id == notification_id,
        UserNotification.user_id == caller_id,
    ).first()

    if not notification:
        raise NotFoundError("Notification not found")

    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification
