from fastapi import APIRouter, Depends, HTTPException, Request, Response, Body, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
import logging

from db.database import get_db
from model.usermodels import User, UserRole
from Schema.user_schema import SignInRequest, SignUpRequest, TokenResponse, UserResponse
from service.business_config_service import DEFAULT_BUSINESS_ID
from service.subscription_service import SubscriptionService
from utils import token as token_utils
from utils.token import get_current_user, security

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


def issue_tokens(user: User, response: Response) -> TokenResponse:
    payload = token_utils.token_payload_for(user)
    access_token = token_utils.create_access_token(payload)
    refresh_token = token_utils.create_refresh_token(payload)

    token_utils.store_refresh_token(user.id, refresh_token)
    response.set_cookie(key="refresh_token", value=refresh_token, httponly=True)

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/signin", response_model=TokenResponse)
def signin(credentials: SignInRequest, response: Response, db: Session = Depends(get_db)):
    user = token_utils.validate_user_credentials(credentials.email, credentials.password, db)

    try:
        user.last_login = datetime.utcnow()
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating last login for {user.email}: {str(e)}")

    logger.info(f"User {user.email} signed in")
    return issue_tokens(user, response)


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def signup(body: SignUpRequest, response: Response, db: Session = Depends(get_db)):
    email = body.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="User already exists")

    try:
        user = User(
            email=email,
            name=body.name,
            password=token_utils.hash_password(body.password),
            role=UserRole.EMPLOYEE.value,
            department=body.department,
            business_id=body.business_id or DEFAULT_BUSINESS_ID,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating user: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")

    SubscriptionService(db).start_free_trial(user.id)
    db.refresh(user)

    logger.info(f"User {user.email} signed up for business {user.business_id}")
    return issue_tokens(user, response)


@router.post("/refresh-token")
def refresh_access_token(
    request: Request,
    refresh_token: Optional[str] = Body(None, embed=True),
    db: Session = Depends(get_db)
):
    refresh_token = refresh_token or request.cookies.get("refresh_token")
    if not refresh_token:
        raise HTTPException(status_code=401, detail="Refresh token missing")

    payload = token_utils.verify_refresh_token(refresh_token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user_id = payload.get("user_id")
    if not token_utils.is_refresh_token_valid(user_id, refresh_token):
        raise HTTPException(status_code=401, detail="Refresh token revoked")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not authenticated")

    access_token = token_utils.create_access_token(token_utils.token_payload_for(user))
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/signout")
def signout(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
):
    if credentials and credentials.credentials:
        payload = token_utils.verify_access_token(credentials.credentials)
        if payload:
            token_utils.blacklist_access_token(credentials.credentials)
            token_utils.delete_refresh_token(payload["user_id"])

    refresh_token = request.cookies.get("refresh_token")
    if refresh_token:
        payload = token_utils.verify_refresh_token(refresh_token)
        if payload:
            token_utils.delete_refresh_token(payload["user_id"])

    response.delete_cookie("refresh_token")
    return {"message": "Logged out successfully"}


@router.get("/session", response_model=UserResponse)
def get_session(user: User = Depends(get_current_user)):
    return user
