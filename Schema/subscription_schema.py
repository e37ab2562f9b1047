from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class CheckoutSessionCreate(BaseModel):
    price_id: Optional[str] = None
    plan_code: Optional[str] = None
    billing_cycle: Optional[str] = "monthly"

class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: Optional[str] = None

class PortalSessionResponse(BaseModel):
    url: str

class SubscriptionInfoResponse(BaseModel):
    status: str
    plan: str
    trial_days_left: Optional[int] = None
    trial_end_date: Optional[datetime] = None
    is_trial_active: bool
    features: List[str] = []

class SubscriptionPlanResponse(BaseModel):
    id: int
    name: str
    code: str
    price_monthly: Decimal
    price_yearly: Decimal
    features: List[str] = []
    stripe_price_id_monthly: Optional[str] = None
    stripe_price_id_yearly: Optional[str] = None

    class Config:
        from_attributes = True

class SubscriptionResponse(BaseModel):
    id: int
    stripe_subscription_id: str
    stripe_customer_id: Optional[str] = None
    plan_code: str
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None

    class Config:
        from_attributes = True

class InvoiceResponse(BaseModel):
    id: int
    stripe_invoice_id: str
    amount_paid: int
    amount_due: int
    currency: str
    status: Optional[str] = None
    invoice_pdf: Optional[str] = None
    hosted_invoice_url: Optional[str] = None
    invoice_number: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class PaymentMethodResponse(BaseModel):
    id: int
    stripe_payment_method_id: str
    type: str
    brand: Optional[str] = None
    last4: Optional[str] = None
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None
    is_default: bool = False

    class Config:
        from_attributes = True

class PaymentInfoResponse(BaseModel):
    has_payment_method: bool
    default_payment_method: Optional[PaymentMethodResponse] = None
    subscription: Optional[SubscriptionResponse] = None
    upcoming_invoice: Optional[Dict[str, Any]] = None
    invoices: List[InvoiceResponse] = []

class SubscriptionCancel(BaseModel):
    cancel_at_period_end: bool = True

class SubscriptionPriceChange(BaseModel):
    price_id: str

class PlanChange(BaseModel):
    user_id: int
    plan: str
