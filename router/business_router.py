from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from db.database import get_db
from model.usermodels import User, MANAGEMENT_ROLES
from Schema.business_schema import BusinessConfigResponse, BusinessConfigUpdate, LeaveTypeListResponse
from service.business_config_service import BusinessConfigService
from utils.token import get_current_user, require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/business")


@router.get("/config", response_model=BusinessConfigResponse)
def get_business_config(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return BusinessConfigService(db).get_config(user.business_id)


@router.put("/config", response_model=BusinessConfigResponse)
def update_business_config(
    updates: BusinessConfigUpdate,
    user: User = Depends(require_role(MANAGEMENT_ROLES)),
    db: Session = Depends(get_db)
):
    try:
        return BusinessConfigService(db).update_config(user.business_id, updates.model_dump(exclude_unset=True))
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating business config: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/leave-types", response_model=LeaveTypeListResponse)
def get_leave_types(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return LeaveTypeListResponse(
        business_id=user.business_id,
        leave_types=BusinessConfigService(db).active_leave_types(user.business_id),
    )
