from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
import logging

from db.database import get_db
from model.usermodels import User, MANAGEMENT_ROLES
from Schema.subscription_schema import (
    SubscriptionInfoResponse, SubscriptionPlanResponse, PaymentInfoResponse,
    PaymentMethodResponse, SubscriptionResponse, InvoiceResponse, PlanChange,
)
from service import payment_service
from service.subscription_service import SubscriptionService
from utils.token import get_current_user, require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscription")


@router.get("", response_model=SubscriptionInfoResponse)
def get_subscription(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return SubscriptionService(db).get_subscription_info(user.id)


@router.get("/plans", response_model=List[SubscriptionPlanResponse])
def list_plans(db: Session = Depends(get_db)):
    return SubscriptionService(db).active_plans()


@router.post("/trial", response_model=SubscriptionInfoResponse)
def start_trial(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Start the free trial; only once per user"""
    if user.trial_end_date:
        raise HTTPException(status_code=409, detail="Trial already used")

    service = SubscriptionService(db)
    if not service.start_free_trial(user.id):
        raise HTTPException(status_code=500, detail="Failed to start trial")
    return service.get_subscription_info(user.id)


@router.post("/plan")
def change_plan(
    body: PlanChange,
    user: User = Depends(require_role(MANAGEMENT_ROLES)),
    db: Session = Depends(get_db)
):
    """Manual plan override for a member of the caller's business"""
    target = db.query(User).filter(User.id == body.user_id, User.business_id == user.business_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    if not SubscriptionService(db).upgrade_plan(target.id, body.plan):
        raise HTTPException(status_code=400, detail=f"Invalid plan '{body.plan}'")

    logger.info(f"Plan for user {target.id} set to {body.plan} by {user.id}")
    return {"success": True, "user_id": target.id, "plan": body.plan}


@router.get("/payment-info", response_model=PaymentInfoResponse)
def get_payment_info(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        info = payment_service.get_payment_info(db, user.id)
    except Exception as e:
        logger.error(f"Error fetching payment info: {str(e)}")
        return PaymentInfoResponse(has_payment_method=False)

    return PaymentInfoResponse(
        has_payment_method=info["has_payment_method"],
        default_payment_method=(
            PaymentMethodResponse.model_validate(info["default_payment_method"])
            if info["default_payment_method"] else None
        ),
        subscription=SubscriptionResponse.model_validate(info["subscription"]) if info["subscription"] else None,
        upcoming_invoice=info["upcoming_invoice"],
        invoices=[InvoiceResponse.model_validate(invoice) for invoice in info["invoices"]],
    )
