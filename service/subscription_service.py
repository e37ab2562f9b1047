from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session
import logging
import math

from model.subscription_model import SubscriptionPlan
from model.usermodels import User
from Schema.subscription_schema import SubscriptionInfoResponse
from service.business_config_service import BusinessConfigService

logger = logging.getLogger(__name__)

SUBSCRIPTION_STATUSES = ("trial", "active", "expired", "canceled")
SUBSCRIPTION_PLANS = ("free", "starter", "professional", "enterprise")
TRIAL_PLAN = "professional"


class SubscriptionService:
    def __init__(self, db: Session):
        self.db = db

    def get_subscription_info(self, user_id: int, now: Optional[datetime] = None) -> SubscriptionInfoResponse:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            logger.error(f"Error fetching subscription data: user {user_id} not found")
            return SubscriptionInfoResponse(status="trial", plan="free", is_trial_active=False)

        plan = self.db.query(SubscriptionPlan).filter(SubscriptionPlan.code == user.subscription_plan).first()
        features = list(plan.features or []) if plan else []

        trial_days_left = None
        is_trial_active = False
        if user.trial_end_date:
            now = now or datetime.utcnow()
            remaining = (user.trial_end_date - now).total_seconds() / 86400
            trial_days_left = math.ceil(remaining)
            is_trial_active = trial_days_left > 0 and user.subscription_status == "trial"

            if trial_days_left <= 0 and user.subscription_status == "trial":
                user.subscription_status = "expired"
                self.db.commit()
                logger.info(f"Trial expired for user {user_id}")

        return SubscriptionInfoResponse(
            status=user.subscription_status,
            plan=user.subscription_plan,
            trial_days_left=trial_days_left,
            trial_end_date=user.trial_end_date,
            is_trial_active=is_trial_active,
            features=features,
        )

    def start_free_trial(self, user_id: int, business_id: Optional[str] = None) -> bool:
        try:
            user = self.db.query(User).filter(User.id == user_id).first()
            if not user:
                logger.error(f"Error starting free trial: user {user_id} not found")
                return False

            trial_days = BusinessConfigService(self.db).trial_days(business_id or user.business_id)
            start = datetime.utcnow()
            user.trial_start_date = start
            user.trial_end_date = start + timedelta(days=trial_days)
            user.subscription_status = "trial"
            user.subscription_plan = TRIAL_PLAN

            self.db.commit()
            logger.info(f"Started {trial_days} day trial for user {user_id}")
            return True
        except Exception as e:
            logger.error(f"Error in start_free_trial: {str(e)}")
            self.db.rollback()
            return False

    def upgrade_plan(self, user_id: int, plan: str) -> bool:
        if plan not in SUBSCRIPTION_PLANS:
            return False
        try:
            updated = self.db.query(User).filter(User.id == user_id).update(
                {User.subscription_plan: plan, User.subscription_status: "active"},
                synchronize_session=False,
            )
            self.db.commit()
            return updated > 0
        except Exception as e:
            logger.error(f"Error upgrading plan: {str(e)}")
            self.db.rollback()
            return False

    def active_plans(self):
        return (
            self.db.query(SubscriptionPlan)
            .filter(SubscriptionPlan.is_active == True)
            .order_by(SubscriptionPlan.price_monthly)
            .all()
        )
