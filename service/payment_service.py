from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
import logging

from model.subscription_model import Subscription, Invoice, PaymentMethod, SubscriptionPlan
from model.usermodels import User
from service import stripe_service

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "BRL": "R$", "GBP": "£"}


def from_timestamp(value: Optional[int]) -> Optional[datetime]:
    """Stripe sends unix seconds; stored as naive UTC"""
    if not value:
        return None
    return datetime.utcfromtimestamp(value)


def format_currency(amount: int, currency: str = "USD") -> str:
    """Format an amount in minor units, e.g. 1234 -> $12.34"""
    value = (Decimal(amount or 0) / Decimal(100)).quantize(Decimal("0.01"))
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{symbol}{value:,}"
    return f"{value:,} {currency.upper()}"


def _period(stripe_subscription) -> tuple:
    """Billing period of the subscription, read from its first item on newer API versions"""
    start = stripe_subscription.get("current_period_start")
    end = stripe_subscription.get("current_period_end")
    if start is None or end is None:
        items = (stripe_subscription.get("items") or {}).get("data") or []
        if items:
            start = start or items[0].get("current_period_start")
            end = end or items[0].get("current_period_end")
    return from_timestamp(start), from_timestamp(end)


def invoice_subscription_id(stripe_invoice) -> Optional[str]:
    subscription_id = stripe_invoice.get("subscription")
    if subscription_id:
        return subscription_id if isinstance(subscription_id, str) else subscription_id.get("id")
    parent = stripe_invoice.get("parent") or {}
    details = parent.get("subscription_details") or {}
    return details.get("subscription")


def find_plan_by_price(db: Session, price_id: str) -> Optional[SubscriptionPlan]:
    return db.query(SubscriptionPlan).filter(
        or_(
            SubscriptionPlan.stripe_price_id_monthly == price_id,
            SubscriptionPlan.stripe_price_id_yearly == price_id
        )
    ).first()


def get_payment_info(db: Session, user_id: int) -> Dict[str, Any]:
    payment_methods = (
        db.query(PaymentMethod)
        .filter(PaymentMethod.user_id == user_id)
        .order_by(PaymentMethod.created_at.desc())
        .all()
    )
    default_method = next((pm for pm in payment_methods if pm.is_default), None)
    if default_method is None and payment_methods:
        default_method = payment_methods[0]

    subscription = db.query(Subscription).filter(
        Subscription.user_id == user_id,
        Subscription.status.in_(["active", "trialing"])
    ).order_by(Subscription.created_at.desc()).first()

    invoices = (
        db.query(Invoice)
        .filter(Invoice.user_id == user_id)
        .order_by(Invoice.created_at.desc())
        .limit(10)
        .all()
    )

    upcoming_invoice = None
    if subscription and subscription.stripe_customer_id:
        try:
            preview = stripe_service.get_upcoming_invoice(subscription.stripe_customer_id)
            upcoming_invoice = {
                "amount_due": preview.get("amount_due"),
                "amount_due_formatted": format_currency(preview.get("amount_due") or 0, preview.get("currency") or "usd"),
                "currency": preview.get("currency"),
                "next_payment_attempt": preview.get("next_payment_attempt"),
            }
        except Exception as e:
            logger.info(f"No upcoming invoice found: {str(e)}")

    return {
        "has_payment_method": default_method is not None,
        "default_payment_method": default_method,
        "subscription": subscription,
        "upcoming_invoice": upcoming_invoice,
        "invoices": invoices,
    }


def ensure_stripe_customer(db: Session, user: User) -> str:
    """Existing customer id from our records, else from Stripe by email, else a new customer"""
    subscription = db.query(Subscription).filter(
        Subscription.user_id == user.id,
        Subscription.stripe_customer_id.isnot(None)
    ).first()
    if subscription:
        return subscription.stripe_customer_id

    customer = stripe_service.get_customer_by_email(user.email)
    if not customer:
        customer = stripe_service.create_customer(user.email, user.name)
        logger.info(f"Created Stripe customer {customer['id']} for user {user.id}")
    return customer["id"]


def create_subscription_record(db: Session, user_id: int, stripe_subscription, plan_code: str) -> Subscription:
    """Upsert keyed by the Stripe subscription id; mirrors status and plan onto the user"""
    period_start, period_end = _period(stripe_subscription)
    values = {
        "user_id": user_id,
        "stripe_customer_id": stripe_subscription.get("customer"),
        "plan_code": plan_code,
        "status": stripe_subscription.get("status"),
        "current_period_start": period_start,
        "current_period_end": period_end,
        "cancel_at_period_end": bool(stripe_subscription.get("cancel_at_period_end")),
        "trial_start": from_timestamp(stripe_subscription.get("trial_start")),
        "trial_end": from_timestamp(stripe_subscription.get("trial_end")),
    }

    try:
        record = db.query(Subscription).filter(
            Subscription.stripe_subscription_id == stripe_subscription["id"]
        ).first()
        if record:
            for field, value in values.items():
                setattr(record, field, value)
            logger.info(f"Subscription {stripe_subscription['id']} already recorded, updated in place")
        else:
            record = Subscription(stripe_subscription_id=stripe_subscription["id"], **values)
            db.add(record)

        user = db.query(User).filter(User.id == user_id).first()
        if user:
            user.subscription_status = values["status"]
            user.subscription_plan = plan_code

        db.commit()
        db.refresh(record)
        return record
    except Exception as e:
        logger.error(f"Error creating subscription record: {str(e)}")
        db.rollback()
        raise


def update_subscription_record(db: Session, stripe_subscription) -> Optional[Subscription]:
    try:
        record = db.query(Subscription).filter(
            Subscription.stripe_subscription_id == stripe_subscription["id"]
        ).first()
        if not record:
            logger.warning(f"Subscription {stripe_subscription['id']} not found for update")
            return None

        record.status = stripe_subscription.get("status")
        record.current_period_start, record.current_period_end = _period(stripe_subscription)
        record.cancel_at_period_end = bool(stripe_subscription.get("cancel_at_period_end"))
        record.canceled_at = from_timestamp(stripe_subscription.get("canceled_at"))
        record.updated_at = datetime.utcnow()

        if record.user:
            record.user.subscription_status = record.status

        db.commit()
        return record
    except Exception as e:
        logger.error(f"Error updating subscription record: {str(e)}")
        db.rollback()
        raise


def cancel_subscription_record(db: Session, stripe_subscription_id: str) -> Optional[Subscription]:
    try:
        record = db.query(Subscription).filter(
            Subscription.stripe_subscription_id == stripe_subscription_id
        ).first()
        if not record:
            logger.warning(f"Subscription {stripe_subscription_id} not found for cancellation")
            return None

        now = datetime.utcnow()
        record.status = "canceled"
        record.canceled_at = now
        record.updated_at = now

        if record.user:
            record.user.subscription_status = "canceled"
            record.user.subscription_plan = "free"

        db.commit()
        return record
    except Exception as e:
        logger.error(f"Error canceling subscription record: {str(e)}")
        db.rollback()
        raise


def mark_subscription_past_due(db: Session, stripe_subscription_id: str) -> None:
    try:
        db.query(Subscription).filter(
            Subscription.stripe_subscription_id == stripe_subscription_id
        ).update({Subscription.status: "past_due"}, synchronize_session=False)
        db.commit()
    except Exception as e:
        logger.error(f"Error marking subscription past due: {str(e)}")
        db.rollback()
        raise


def create_invoice_record(db: Session, stripe_invoice) -> Optional[Invoice]:
    """Upsert keyed by the Stripe invoice id"""
    subscription_id = invoice_subscription_id(stripe_invoice)
    subscription = None
    if subscription_id:
        subscription = db.query(Subscription).filter(
            Subscription.stripe_subscription_id == subscription_id
        ).first()

    if not subscription:
        logger.error(f"Subscription not found for invoice: {stripe_invoice.get('id')}")
        return None

    transitions = stripe_invoice.get("status_transitions") or {}
    values = {
        "user_id": subscription.user_id,
        "subscription_id": subscription.id,
        "amount_paid": stripe_invoice.get("amount_paid") or 0,
        "amount_due": stripe_invoice.get("amount_due") or 0,
        "currency": stripe_invoice.get("currency") or "usd",
        "status": stripe_invoice.get("status"),
        "invoice_pdf": stripe_invoice.get("invoice_pdf"),
        "hosted_invoice_url": stripe_invoice.get("hosted_invoice_url"),
        "invoice_number": stripe_invoice.get("number"),
        "period_start": from_timestamp(stripe_invoice.get("period_start")),
        "period_end": from_timestamp(stripe_invoice.get("period_end")),
        "due_date": from_timestamp(stripe_invoice.get("due_date")),
        "paid_at": from_timestamp(transitions.get("paid_at")),
    }

    try:
        record = db.query(Invoice).filter(Invoice.stripe_invoice_id == stripe_invoice["id"]).first()
        if record:
            for field, value in values.items():
                setattr(record, field, value)
        else:
            record = Invoice(stripe_invoice_id=stripe_invoice["id"], **values)
            db.add(record)
        db.commit()
        db.refresh(record)
        return record
    except Exception as e:
        logger.error(f"Error creating invoice record: {str(e)}")
        db.rollback()
        raise
