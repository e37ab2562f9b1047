"""
Thin wrappers around the Stripe SDK. Everything that talks to Stripe goes
through this module so the routers and tests have one seam to patch.

SDK objects are not dicts, so every wrapper returns `to_dict()` of the
result and callers only ever see plain nested dicts and lists.
"""
from typing import Optional
import logging
import os
from dotenv import load_dotenv
import stripe

load_dotenv()

logger = logging.getLogger(__name__)

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")

if STRIPE_SECRET_KEY:
    stripe.api_key = STRIPE_SECRET_KEY
else:
    logger.warning("STRIPE_SECRET_KEY is not set - billing endpoints will fail")


def _plain(obj):
    return obj.to_dict() if obj is not None else None


def get_customer_by_email(email: str):
    customers = stripe.Customer.list(email=email, limit=1)
    return _plain(customers.data[0]) if customers.data else None


def create_customer(email: str, name: str):
    return _plain(stripe.Customer.create(
        email=email,
        name=name,
        metadata={"source": "cloudleave"},
    ))


def retrieve_customer(customer_id: str):
    return _plain(stripe.Customer.retrieve(customer_id))


def retrieve_subscription(subscription_id: str):
    return _plain(stripe.Subscription.retrieve(subscription_id))


def create_checkout_session(customer_id: str, price_id: str, success_url: str, cancel_url: str,
                            trial_period_days: Optional[int] = None):
    session_params = {
        "customer": customer_id,
        "payment_method_types": ["card"],
        "line_items": [{"price": price_id, "quantity": 1}],
        "mode": "subscription",
        "success_url": success_url,
        "cancel_url": cancel_url,
        "allow_promotion_codes": True,
        "billing_address_collection": "required",
        "metadata": {"source": "cloudleave"},
    }

    if trial_period_days and trial_period_days > 0:
        session_params["subscription_data"] = {"trial_period_days": trial_period_days}

    return _plain(stripe.checkout.Session.create(**session_params))


def create_billing_portal_session(customer_id: str, return_url: str):
    return _plain(stripe.billing_portal.Session.create(customer=customer_id, return_url=return_url))


def cancel_subscription(subscription_id: str, cancel_at_period_end: bool = True):
    if cancel_at_period_end:
        return _plain(stripe.Subscription.modify(subscription_id, cancel_at_period_end=True))
    return _plain(stripe.Subscription.cancel(subscription_id))


def update_subscription_price(subscription_id: str, new_price_id: str):
    subscription = retrieve_subscription(subscription_id)
    return _plain(stripe.Subscription.modify(
        subscription_id,
        items=[{"id": subscription["items"]["data"][0]["id"], "price": new_price_id}],
        proration_behavior="create_prorations",
    ))


def get_upcoming_invoice(customer_id: str, subscription_id: Optional[str] = None):
    params = {"customer": customer_id}
    if subscription_id:
        params["subscription"] = subscription_id
    return _plain(stripe.Invoice.create_preview(**params))


def construct_event(payload: bytes, signature: Optional[str]):
    """Verify the Stripe-Signature header and parse the event"""
    return _plain(stripe.Webhook.construct_event(payload, signature, STRIPE_WEBHOOK_SECRET))
