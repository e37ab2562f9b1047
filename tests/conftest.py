import os
import sys

# Settings read at import time by the application modules. Tests run against an
# in-memory database, with mail and Stripe left unconfigured.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MAIL_USERNAME"] = ""
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("JWT_REFRESH_SECRET_KEY", "test-refresh-secret")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("REDIS_HOST", "127.0.0.1")
os.environ.setdefault("REDIS_PORT", "1")

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
from fastapi.testclient import TestClient

import main
from db.database import Base, SessionLocal, engine
from model.usermodels import User, UserRole
from seed_data import seed_notification_templates, seed_subscription_plans
from utils.token import create_access_token, hash_password, token_payload_for


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_notification_templates(session)
        seed_subscription_plans(session)
    finally:
        session.close()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture
def make_user(db):
    def _make_user(email, role=UserRole.EMPLOYEE, department="IT", business_id="adpa", supervisor=None, **extra):
        user = User(
            email=email,
            name=extra.pop("name", email.split("@")[0].title()),
            password=hash_password("password"),
            role=role.value,
            department=department,
            business_id=business_id,
            supervisor_id=supervisor.id if supervisor else None,
            **extra,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def supervisor(make_user):
    return make_user("supervisor@adpa.com", UserRole.SUPERVISOR, name="Jane Supervisor")


@pytest.fixture
def employee(make_user, supervisor):
    return make_user("employee@adpa.com", name="John Employee", supervisor=supervisor)


@pytest.fixture
def hr(make_user):
    return make_user("hr@adpa.com", UserRole.HR, department="HR", name="HR Manager")


@pytest.fixture
def director(make_user):
    return make_user("director@adpa.com", UserRole.DIRECTOR, department="EXECUTIVE", name="Executive Director")


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(token_payload_for(user))}"}
    return _auth_headers
