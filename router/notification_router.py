from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
import logging

from db.database import get_db
from model.usermodels import User, MANAGEMENT_ROLES
from Schema.notification_schema import (
    NotificationCreate, NotificationResponse, NotificationListResponse, NotificationAction,
    UnreadCountResponse, NotificationPreferenceUpdate, NotificationPreferenceResponse, PreferencesEnvelope,
)
from service.notification_service import NotificationService
from utils.token import get_current_user, require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications")


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    type: Optional[str] = None,
    unread_only: bool = False,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notifications = NotificationService(db).get_user_notifications(user.id, limit, offset)

    if type:
        notifications = [n for n in notifications if n.type == type]
    if unread_only:
        notifications = [n for n in notifications if not n.is_read]

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=len(notifications),
    )


@router.post("")
async def create_notification(
    notification: NotificationCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    success = await NotificationService(db).create_notification(
        user_id=user.id,
        type=notification.type,
        data=notification.data,
        priority=notification.priority.value,
        action_url=notification.action_url,
        action_label=notification.action_label,
        expires_at=notification.expires_at,
    )
    if not success:
        raise HTTPException(status_code=500, detail="Failed to create notification")
    return {"success": True}


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return UnreadCountResponse(count=NotificationService(db).get_unread_count(user.id))


@router.post("/mark-all-read")
def mark_all_read(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not NotificationService(db).mark_all_as_read(user.id):
        raise HTTPException(status_code=500, detail="Failed to mark all notifications as read")
    return {"success": True}


@router.get("/preferences", response_model=PreferencesEnvelope)
def get_preferences(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    preferences = NotificationService(db).get_preferences(user.id)
    return PreferencesEnvelope(
        preferences=NotificationPreferenceResponse.model_validate(preferences) if preferences else None
    )


@router.put("/preferences")
def update_preferences(
    preferences: NotificationPreferenceUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    success = NotificationService(db).update_preferences(user.id, preferences.model_dump(exclude_unset=True))
    if not success:
        raise HTTPException(status_code=500, detail="Failed to update preferences")
    return {"success": True}


@router.post("/cleanup")
def cleanup_expired(user: User = Depends(require_role(MANAGEMENT_ROLES)), db: Session = Depends(get_db)):
    """Remove notifications past their expiry"""
    return {"deleted": NotificationService(db).cleanup_expired_notifications()}


@router.patch("/{notification_id}")
def update_notification(
    notification_id: int,
    body: NotificationAction,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = NotificationService(db)
    if not service.get_notification(notification_id, user.id):
        raise HTTPException(status_code=404, detail="Notification not found")

    if body.action == "mark_read":
        if not service.mark_as_read(notification_id):
            raise HTTPException(status_code=500, detail="Failed to mark notification as read")
        return {"success": True}

    raise HTTPException(status_code=400, detail="Invalid action")


@router.delete("/{notification_id}")
def delete_notification(notification_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = NotificationService(db)
    if not service.get_notification(notification_id, user.id):
        raise HTTPException(status_code=404, detail="Notification not found")

    if not service.delete_notification(notification_id):
        raise HTTPException(status_code=500, detail="Failed to delete notification")
    return {"success": True}
