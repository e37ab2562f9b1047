#!/usr/bin/env python3
"""
Seed notification templates, subscription plans and the demo tenant data
"""

import logging
import os
from datetime import date
from decimal import Decimal
from dotenv import load_dotenv
from sqlalchemy.orm import Session

from db.database import Base, SessionLocal, engine
from model.business_model import BusinessConfig
from model.leave_model import LeaveRequest  # noqa: F401  registers the mapper User relates to
from model.notification_model import NotificationTemplate
from model.subscription_model import SubscriptionPlan
from model.usermodels import User, UserRole
from Schema.notification_schema import NotificationTemplateBase
from service.business_config_service import BUILTIN_BUSINESS_CONFIGS, BusinessConfigService
from utils.token import hash_password

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEMO_PASSWORD = os.getenv("DEMO_PASSWORD", "password")

DEFAULT_TEMPLATES = [
    NotificationTemplateBase(
        type="leave_request_submitted",
        title_template="Leave request submitted",
        message_template="Your {{leave_type}} request from {{start_date}} to {{end_date}} ({{duration}} days) was submitted.",
        email_subject_template="Leave request submitted: {{leave_type}}",
        email_body_template="Hello {{employee_name}},\n\nYour {{leave_type}} request from {{start_date}} to {{end_date}} has been submitted and is awaiting approval.",
    ),
    NotificationTemplateBase(
        type="approval_required",
        title_template="Approval required",
        message_template="{{employee_name}} requested {{leave_type}} from {{start_date}} to {{end_date}} ({{duration}} days).",
        email_subject_template="Approval required: {{employee_name}}",
        email_body_template="{{employee_name}} requested {{leave_type}} from {{start_date}} to {{end_date}}.\n\nReason: {{reason}}",
    ),
    NotificationTemplateBase(
        type="leave_request_approved",
        title_template="Leave request approved",
        message_template="Your {{leave_type}} request from {{start_date}} to {{end_date}} was approved by {{approver_name}}.",
        email_subject_template="Leave request approved",
        email_body_template="Hello {{employee_name}},\n\nYour {{leave_type}} request from {{start_date}} to {{end_date}} was approved by {{approver_name}}.",
    ),
    NotificationTemplateBase(
        type="leave_request_rejected",
        title_template="Leave request rejected",
        message_template="Your {{leave_type}} request from {{start_date}} to {{end_date}} was rejected by {{approver_name}}.",
        email_subject_template="Leave request rejected",
        email_body_template="Hello {{employee_name}},\n\nYour {{leave_type}} request was rejected by {{approver_name}}.\n\nReason: {{rejection_reason}}",
    ),
    NotificationTemplateBase(
        type="leave_reminder",
        title_template="Upcoming leave",
        message_template="Your {{leave_type}} starts on {{start_date}}.",
    ),
    NotificationTemplateBase(
        type="trial_expiring",
        title_template="Your trial is ending",
        message_template="Your free trial ends in {{days_left}} days. Choose a plan to keep your data.",
        email_subject_template="Your CloudLeave trial is ending",
    ),
    NotificationTemplateBase(
        type="system_update",
        title_template="{{title}}",
        message_template="{{message}}",
    ),
]

DEFAULT_PLANS = [
    {"name": "Free", "code": "free", "price_monthly": Decimal("0"), "price_yearly": Decimal("0"),
     "features": ["Up to 5 employees", "Basic leave requests"]},
    {"name": "Starter", "code": "starter", "price_monthly": Decimal("9.99"), "price_yearly": Decimal("99.90"),
     "features": ["Up to 25 employees", "Approval workflow", "Email notifications"]},
    {"name": "Professional", "code": "professional", "price_monthly": Decimal("29.99"), "price_yearly": Decimal("299.90"),
     "features": ["Up to 100 employees", "Approval workflow", "Email notifications", "Reports", "Calendar integration"]},
    {"name": "Enterprise", "code": "enterprise", "price_monthly": Decimal("99.99"), "price_yearly": Decimal("999.90"),
     "features": ["Unlimited employees", "All features", "Priority support"]},
]

DEMO_USERS = [
    {"email": "director@adpa.com", "name": "Executive Director", "role": UserRole.DIRECTOR, "department": "EXECUTIVE",
     "employee_code": "ADPA-004"},
    {"email": "hr@adpa.com", "name": "HR Manager", "role": UserRole.HR, "department": "HR",
     "employee_code": "ADPA-003"},
    {"email": "supervisor@adpa.com", "name": "Jane Supervisor", "role": UserRole.SUPERVISOR, "department": "IT",
     "employee_code": "ADPA-002"},
    {"email": "employee@adpa.com", "name": "John Employee", "role": UserRole.EMPLOYEE, "department": "IT",
     "employee_code": "ADPA-001", "supervisor": "supervisor@adpa.com"},
]


def seed_notification_templates(db: Session) -> int:
    """Insert missing templates; existing ones are left untouched"""
    existing = {t.type for t in db.query(NotificationTemplate.type).all()}
    added = 0
    for template in DEFAULT_TEMPLATES:
        if template.type in existing:
            continue
        db.add(NotificationTemplate(**template.model_dump()))
        added += 1
    db.commit()
    if added:
        logger.info(f"Seeded {added} notification templates")
    return added


def seed_subscription_plans(db: Session) -> int:
    added = 0
    for plan in DEFAULT_PLANS:
        if db.query(SubscriptionPlan).filter(SubscriptionPlan.code == plan["code"]).first():
            continue
        code = plan["code"].upper()
        db.add(SubscriptionPlan(
            **plan,
            stripe_price_id_monthly=os.getenv(f"STRIPE_PRICE_{code}_MONTHLY"),
            stripe_price_id_yearly=os.getenv(f"STRIPE_PRICE_{code}_YEARLY"),
        ))
        added += 1
    db.commit()
    logger.info(f"Seeded {added} subscription plans")
    return added


def seed_business_configs(db: Session) -> int:
    added = 0
    service = BusinessConfigService(db)
    for business_id in BUILTIN_BUSINESS_CONFIGS:
        if db.query(BusinessConfig).filter(BusinessConfig.id == business_id).first():
            continue
        service.update_config(business_id, {})
        added += 1
    return added


def seed_demo_users(db: Session) -> int:
    added = 0
    for entry in DEMO_USERS:
        if db.query(User).filter(User.email == entry["email"]).first():
            continue
        supervisor = None
        if entry.get("supervisor"):
            supervisor = db.query(User).filter(User.email == entry["supervisor"]).first()
        db.add(User(
            email=entry["email"],
            name=entry["name"],
            password=hash_password(DEMO_PASSWORD),
            role=entry["role"].value,
            department=entry["department"],
            employee_code=entry["employee_code"],
            hire_date=date(2023, 1, 1),
            business_id="adpa",
            supervisor_id=supervisor.id if supervisor else None,
        ))
        # flush so the supervisor exists for the users after it
        db.flush()
        added += 1
    db.commit()
    logger.info(f"Seeded {added} demo users")
    return added


def main():
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        seed_notification_templates(session)
        seed_subscription_plans(session)
        seed_business_configs(session)
        seed_demo_users(session)
        logger.info("Seeding completed")
    except Exception as e:
        session.rollback()
        logger.error(f"Seeding failed: {str(e)}")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
