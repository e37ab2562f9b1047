from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging
import re

from model.notification_model import Notification, NotificationTemplate, NotificationPreference
from model.usermodels import User
from utils import mail_config_utils

logger = logging.getLogger(__name__)

TEMPLATE_VARIABLE = re.compile(r"\{\{(\w+)\}\}")

PREFERENCE_FIELDS = (
    "email_enabled",
    "push_enabled",
    "leave_request_submitted",
    "leave_request_approved",
    "leave_request_rejected",
    "approval_required",
    "leave_reminder",
    "system_updates",
)

# template type -> per-type email opt-out; types missing here are always sent
EMAIL_PREFERENCE_BY_TYPE = {
    "leave_request_submitted": "leave_request_submitted",
    "leave_request_approved": "leave_request_approved",
    "leave_request_rejected": "leave_request_rejected",
    "approval_required": "approval_required",
    "leave_reminder": "leave_reminder",
    "system_update": "system_updates",
}


def render_template(template: str, data: Dict[str, Any]) -> str:
    """Replace {{name}} tokens with values from data; unknown or empty values keep the token"""
    def _replace(match):
        value = data.get(match.group(1))
        if value is None:
            return match.group(0)
        text = str(value)
        return text if text else match.group(0)

    return TEMPLATE_VARIABLE.sub(_replace, template or "")


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    async def create_notification(
        self,
        user_id: int,
        type: str,
        data: Optional[Dict[str, Any]] = None,
        priority: str = "normal",
        action_url: Optional[str] = None,
        action_label: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        related_leave_request_id: Optional[int] = None,
    ) -> bool:
        """Render the template for `type` and store a notification for the user"""
        data = data or {}
        try:
            template = self.db.query(NotificationTemplate).filter(
                NotificationTemplate.type == type,
                NotificationTemplate.is_active == True
            ).first()

            if not template:
                logger.error(f"Notification template not found: {type}")
                return False

            notification = Notification(
                user_id=user_id,
                title=render_template(template.title_template, data),
                message=render_template(template.message_template, data),
                type=type,
                priority=priority or "normal",
                action_url=action_url,
                action_label=action_label,
                expires_at=expires_at,
                related_leave_request_id=related_leave_request_id,
                metadata_json=data,
            )
            self.db.add(notification)
            self.db.commit()
            self.db.refresh(notification)
            logger.info(f"Notification {notification.id} ({type}) created for user {user_id}")
        except SQLAlchemyError as e:
            logger.error(f"Error creating notification: {str(e)}")
            self.db.rollback()
            return False

        await self.send_email_notification(user_id, template, data)
        return True

    async def send_email_notification(self, user_id: int, template: NotificationTemplate, data: Dict[str, Any]) -> None:
        """Best effort; a failure here never fails the notification"""
        try:
            preferences = self.get_preferences(user_id)
            if not preferences or not preferences.email_enabled:
                return
            preference_field = EMAIL_PREFERENCE_BY_TYPE.get(template.type)
            if preference_field and getattr(preferences, preference_field) is False:
                return

            user = self.db.query(User).filter(User.id == user_id).first()
            if not user or not user.email:
                return

            subject = render_template(template.email_subject_template or template.title_template, data)
            body = render_template(template.email_body_template or template.message_template, data)

            sent = await mail_config_utils.send_email([user.email], subject, body)
            if not sent:
                logger.info(f"Email notification would be sent to {user.email}: {subject}")
        except Exception as e:
            logger.error(f"Error sending email notification: {str(e)}")

    def get_user_notifications(self, user_id: int, limit: int = 50, offset: int = 0) -> List[Notification]:
        try:
            return (
                self.db.query(Notification)
                .filter(Notification.user_id == user_id)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching notifications: {str(e)}")
            return []

    def get_notification(self, notification_id: int, user_id: int) -> Optional[Notification]:
        return self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()

    def mark_as_read(self, notification_id: int) -> bool:
        """Idempotent: an already read notification keeps its first read_at"""
        try:
            notification = self.db.query(Notification).filter(Notification.id == notification_id).first()
            if not notification:
                return False
            if not notification.is_read:
                notification.is_read = True
                notification.read_at = datetime.utcnow()
                self.db.commit()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error marking notification as read: {str(e)}")
            self.db.rollback()
            return False

    def mark_all_as_read(self, user_id: int) -> bool:
        try:
            self.db.query(Notification).filter(
                Notification.user_id == user_id,
                Notification.is_read == False
            ).update(
                {Notification.is_read: True, Notification.read_at: datetime.utcnow()},
                synchronize_session=False,
            )
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error marking all notifications as read: {str(e)}")
            self.db.rollback()
            return False

    def delete_notification(self, notification_id: int) -> bool:
        try:
            deleted = self.db.query(Notification).filter(Notification.id == notification_id).delete(
                synchronize_session=False
            )
            self.db.commit()
            return deleted > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting notification: {str(e)}")
            self.db.rollback()
            return False

    def get_unread_count(self, user_id: int) -> int:
        try:
            return self.db.query(Notification).filter(
                Notification.user_id == user_id,
                Notification.is_read == False
            ).count()
        except SQLAlchemyError as e:
            logger.error(f"Error getting unread count: {str(e)}")
            return 0

    def get_preferences(self, user_id: int) -> Optional[NotificationPreference]:
        try:
            return self.db.query(NotificationPreference).filter(
                NotificationPreference.user_id == user_id
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching notification preferences: {str(e)}")
            return None

    def update_preferences(self, user_id: int, preferences: Dict[str, Any]) -> bool:
        """Insert or update the user's preference row with the given flags"""
        try:
            row = self.db.query(NotificationPreference).filter(
                NotificationPreference.user_id == user_id
            ).first()
            if not row:
                row = NotificationPreference(user_id=user_id)
                self.db.add(row)

            for field, value in preferences.items():
                if field in PREFERENCE_FIELDS and value is not None:
                    setattr(row, field, bool(value))
            row.updated_at = datetime.utcnow()

            self.db.commit()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error updating notification preferences: {str(e)}")
            self.db.rollback()
            return False

    def cleanup_expired_notifications(self) -> int:
        try:
            deleted = self.db.query(Notification).filter(
                Notification.expires_at.isnot(None),
                Notification.expires_at < datetime.utcnow()
            ).delete(synchronize_session=False)
            self.db.commit()
            logger.info(f"Removed {deleted} expired notifications")
            return deleted
        except SQLAlchemyError as e:
            logger.error(f"Error cleaning up expired notifications: {str(e)}")
            self.db.rollback()
            return 0


# Helpers for the leave workflow
async def create_leave_request_notification(db: Session, employee_id: int, leave_request_id: int, data: Dict[str, Any]) -> bool:
    return await NotificationService(db).create_notification(
        user_id=employee_id,
        type="leave_request_submitted",
        data=data,
        action_url="/dashboard?tab=overview",
        action_label="View Request",
        related_leave_request_id=leave_request_id,
    )


async def create_approval_required_notification(db: Session, approver_id: int, leave_request_id: int, data: Dict[str, Any]) -> bool:
    return await NotificationService(db).create_notification(
        user_id=approver_id,
        type="approval_required",
        data=data,
        priority="high",
        action_url="/dashboard?tab=approvals",
        action_label="Review Request",
        related_leave_request_id=leave_request_id,
    )


async def create_leave_approved_notification(db: Session, employee_id: int, leave_request_id: int, data: Dict[str, Any]) -> bool:
    return await NotificationService(db).create_notification(
        user_id=employee_id,
        type="leave_request_approved",
        data=data,
        priority="high",
        action_url="/dashboard?tab=overview",
        action_label="View Details",
        related_leave_request_id=leave_request_id,
    )


async def create_leave_rejected_notification(db: Session, employee_id: int, leave_request_id: int, data: Dict[str, Any]) -> bool:
    return await NotificationService(db).create_notification(
        user_id=employee_id,
        type="leave_request_rejected",
        data=data,
        priority="high",
        action_url="/dashboard?tab=overview",
        action_label="View Details",
        related_leave_request_id=leave_request_id,
    )
