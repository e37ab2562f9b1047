from fastapi import APIRouter, Depends, HTTPException, Request, Header
from sqlalchemy.orm import Session
from typing import Optional
import logging
import os
from dotenv import load_dotenv
import stripe

from db.database import get_db
from model.subscription_model import Subscription
from model.usermodels import User
from Schema.subscription_schema import (
    CheckoutSessionCreate, CheckoutSessionResponse, PortalSessionResponse,
    SubscriptionCancel, SubscriptionPriceChange,
)
from service import payment_service, stripe_service
from utils.token import get_current_user

load_dotenv()

logger = logging.getLogger(__name__)

APP_URL = os.getenv("NEXT_PUBLIC_APP_URL") or os.getenv("APP_URL", "http://localhost:3000")
TRIAL_PERIOD_DAYS = 14

router = APIRouter(prefix="/api/stripe")


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(
    body: CheckoutSessionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not body.price_id or not body.plan_code:
        raise HTTPException(status_code=400, detail="Missing required parameters")

    try:
        customer_id = payment_service.ensure_stripe_customer(db, user)

        # a trial is offered only to users who never had one
        trial_period_days = 0 if user.trial_end_date else TRIAL_PERIOD_DAYS

        session = stripe_service.create_checkout_session(
            customer_id=customer_id,
            price_id=body.price_id,
            success_url=f"{APP_URL}/subscription/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{APP_URL}/subscription/plans",
            trial_period_days=trial_period_days,
        )
        logger.info(f"Checkout session {session['id']} created for user {user.id} ({body.plan_code})")
        return CheckoutSessionResponse(session_id=session["id"], url=session.get("url"))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating checkout session: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/create-portal-session", response_model=PortalSessionResponse)
def create_portal_session(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    subscription = db.query(Subscription).filter(
        Subscription.user_id == user.id,
        Subscription.stripe_customer_id.isnot(None)
    ).order_by(Subscription.created_at.desc()).first()

    if not subscription:
        raise HTTPException(status_code=404, detail="No active subscription found")

    try:
        session = stripe_service.create_billing_portal_session(
            subscription.stripe_customer_id,
            f"{APP_URL}/subscription/billing",
        )
        return PortalSessionResponse(url=session["url"])
    except Exception as e:
        logger.error(f"Error creating portal session: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")


def current_subscription(db: Session, user: User) -> Subscription:
    subscription = db.query(Subscription).filter(
        Subscription.user_id == user.id,
        Subscription.status.in_(["active", "trialing", "past_due"])
    ).order_by(Subscription.created_at.desc()).first()
    if not subscription:
        raise HTTPException(status_code=404, detail="No active subscription found")
    return subscription


@router.post("/cancel-subscription")
def cancel_subscription(
    body: SubscriptionCancel,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    subscription = current_subscription(db, user)
    try:
        stripe_subscription = stripe_service.cancel_subscription(
            subscription.stripe_subscription_id, body.cancel_at_period_end
        )
    except Exception as e:
        logger.error(f"Error canceling subscription {subscription.stripe_subscription_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")

    if body.cancel_at_period_end:
        payment_service.update_subscription_record(db, stripe_subscription)
    else:
        payment_service.cancel_subscription_record(db, subscription.stripe_subscription_id)
    return {"success": True, "cancel_at_period_end": body.cancel_at_period_end}


@router.post("/change-plan")
def change_plan(
    body: SubscriptionPriceChange,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    plan = payment_service.find_plan_by_price(db, body.price_id)
    if not plan:
        raise HTTPException(status_code=400, detail="Unknown price")

    subscription = current_subscription(db, user)
    try:
        stripe_subscription = stripe_service.update_subscription_price(
            subscription.stripe_subscription_id, body.price_id
        )
    except Exception as e:
        logger.error(f"Error changing plan for {subscription.stripe_subscription_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")

    payment_service.create_subscription_record(db, user.id, stripe_subscription, plan.code)
    return {"success": True, "plan": plan.code}


def handle_checkout_completed(db: Session, session) -> None:
    if session.get("mode") != "subscription":
        return

    subscription = stripe_service.retrieve_subscription(session["subscription"])
    price_id = subscription["items"]["data"][0]["price"]["id"]

    plan = payment_service.find_plan_by_price(db, price_id)
    if not plan:
        logger.warning(f"No plan matches price {price_id}; checkout {session.get('id')} ignored")
        return

    customer = stripe_service.retrieve_customer(session["customer"])
    user = db.query(User).filter(User.email == (customer.get("email") or "").lower()).first()
    if not user:
        logger.warning(f"No user found for Stripe customer {session['customer']}")
        return

    payment_service.create_subscription_record(db, user.id, subscription, plan.code)
    logger.info(f"Subscription {subscription['id']} recorded for user {user.id} on plan {plan.code}")


@router.post("/webhooks")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db)
):
    payload = await request.body()

    if not stripe_signature:
        raise HTTPException(status_code=400, detail="Invalid signature")
    try:
        event = stripe_service.construct_event(payload, stripe_signature)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.error(f"Webhook signature verification failed: {str(e)}")
        raise HTTPException(status_code=400, detail="Invalid signature")

    event_type = event["type"]
    obj = event["data"]["object"]

    try:
        if event_type == "checkout.session.completed":
            handle_checkout_completed(db, obj)

        elif event_type == "customer.subscription.updated":
            payment_service.update_subscription_record(db, obj)

        elif event_type == "customer.subscription.deleted":
            payment_service.cancel_subscription_record(db, obj["id"])

        elif event_type == "invoice.payment_succeeded":
            payment_service.create_invoice_record(db, obj)

        elif event_type == "invoice.payment_failed":
            subscription_id = payment_service.invoice_subscription_id(obj)
            if subscription_id:
                payment_service.mark_subscription_past_due(db, subscription_id)
            payment_service.create_invoice_record(db, obj)

        else:
            logger.info(f"Unhandled event type: {event_type}")

        return {"received": True}
    except Exception as e:
        logger.exception(f"Error processing webhook {event_type}: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Webhook processing failed")
