from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from sqlalchemy.orm import Session
import bcrypt
import logging
import os
from dotenv import load_dotenv
from db.database import get_db
from model.usermodels import User
from redis_client import RedisClient
load_dotenv()

logger = logging.getLogger(__name__)

redis_client = RedisClient()
security = HTTPBearer(auto_error=False)

# JWT Configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_REFRESH_SECRET_KEY = os.getenv("JWT_REFRESH_SECRET_KEY", "change-me-too")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

ACCESS_TOKEN_EXPIRY_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRY_MINUTES", "60"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError:
        return False

def create_access_token(data: dict):
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRY_MINUTES)
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

def create_refresh_token(data: dict):
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(to_encode, JWT_REFRESH_SECRET_KEY, algorithm=JWT_ALGORITHM)

def token_payload_for(user: User) -> dict:
    return {
        "sub": user.email,
        "user_id": user.id,
        "role": user.role,
        "business_id": user.business_id,
    }

def verify_access_token(token: str):
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        if payload.get("type") != "access":
            return None
        return payload
    except JWTError:
        return None

def verify_refresh_token(token: str):
    try:
        payload = jwt.decode(token, JWT_REFRESH_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        if payload.get("type") != "refresh":
            return None
        return payload
    except JWTError:
        return None

def store_refresh_token(user_id: int, refresh_token: str):
    """Store refresh token in Redis with expiry"""
    return redis_client.setex(
        f"refresh_token:{user_id}",
        int(timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS).total_seconds()),
        refresh_token,
    )

def get_refresh_token(user_id: int):
    """Get refresh token from Redis"""
    return redis_client.get(f"refresh_token:{user_id}")

def delete_refresh_token(user_id: int):
    """Delete refresh token from Redis"""
    return redis_client.delete(f"refresh_token:{user_id}")

def is_refresh_token_valid(user_id: int, refresh_token: str) -> bool:
    stored_token = get_refresh_token(user_id)
    return stored_token is not None and stored_token == refresh_token

def blacklist_access_token(token: str):
    redis_client.setex(
        f"blacklisted_token:{token}",
        int(timedelta(minutes=ACCESS_TOKEN_EXPIRY_MINUTES).total_seconds()),
        "true",
    )

def is_token_blacklisted(token: str) -> bool:
    return redis_client.exists(f"blacklisted_token:{token}")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the signed-in user from the bearer token"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authenticated")

    token = credentials.credentials
    payload = verify_access_token(token)
    if not payload or is_token_blacklisted(token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate token")

    user = db.query(User).filter(User.id == payload.get("user_id")).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authenticated")
    return user

def require_role(allowed_roles: list[str]):
    def _require_role(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user
    return _require_role


def validate_user_credentials(email: str, password: str, db: Session) -> User:
    user = db.query(User).filter(User.email == email.lower()).first()

    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not verify_password(password, user.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return user
