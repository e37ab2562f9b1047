from model.usermodels import User
from utils import token as token_utils


def test_signin_returns_tokens(client, db, employee):
    response = client.post("/auth/signin", json={"email": "EMPLOYEE@adpa.com", "password": "password"})

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "employee@adpa.com"
    assert body["user"]["role"] == "EMPLOYEE"
    payload = token_utils.verify_access_token(body["access_token"])
    assert payload["user_id"] == employee.id
    assert payload["business_id"] == "adpa"
    assert token_utils.verify_refresh_token(body["refresh_token"])["user_id"] == employee.id

    db.expire_all()
    assert db.get(User, employee.id).last_login is not None


def test_signin_wrong_password(client, employee):
    response = client.post("/auth/signin", json={"email": "employee@adpa.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_signin_inactive_user(client, make_user):
    make_user("gone@adpa.com", is_active=False)

    response = client.post("/auth/signin", json={"email": "gone@adpa.com", "password": "password"})

    assert response.status_code == 401


def test_signup_creates_employee_on_trial(client, db):
    response = client.post(
        "/auth/signup",
        json={"email": "New.Hire@adpa.com", "name": " New Hire ", "password": "secret1", "department": "Sales"},
    )

    assert response.status_code == 201
    user = response.json()["user"]
    assert user["email"] == "new.hire@adpa.com"
    assert user["name"] == "New Hire"
    assert user["role"] == "EMPLOYEE"
    assert user["subscription_status"] == "trial"
    assert user["subscription_plan"] == "professional"
    assert (user["leave_balance"], user["sick_leave_balance"]) == (21, 10)

    stored = db.query(User).filter(User.email == "new.hire@adpa.com").one()
    assert stored.password != "secret1"
    assert token_utils.verify_password("secret1", stored.password)
    assert stored.trial_end_date is not None


def test_signup_duplicate_email(client, employee):
    response = client.post(
        "/auth/signup",
        json={"email": "employee@adpa.com", "name": "Copy", "password": "secret1"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "User already exists"}


def test_signup_short_password(client):
    response = client.post("/auth/signup", json={"email": "a@adpa.com", "name": "A", "password": "123"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


def test_session_returns_current_user(client, supervisor, auth_headers):
    response = client.get("/auth/session", headers=auth_headers(supervisor))

    assert response.status_code == 200
    assert response.json()["name"] == "Jane Supervisor"


def test_session_includes_leave_balances(client, make_user, auth_headers):
    user = make_user("balances@adpa.com", leave_balance=12, sick_leave_balance=3)

    body = client.get("/auth/session", headers=auth_headers(user)).json()

    assert body["leave_balance"] == 12
    assert body["sick_leave_balance"] == 3


def test_invalid_token_is_rejected(client):
    response = client.get("/auth/session", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json() == {"error": "Could not validate token"}


def test_refresh_token_is_not_an_access_token(client, employee):
    refresh = token_utils.create_refresh_token(token_utils.token_payload_for(employee))

    response = client.get("/auth/session", headers={"Authorization": f"Bearer {refresh}"})

    assert response.status_code == 401


def test_refresh_issues_new_access_token(client, employee, monkeypatch):
    refresh = token_utils.create_refresh_token(token_utils.token_payload_for(employee))
    monkeypatch.setattr(token_utils, "get_refresh_token", lambda user_id: refresh if user_id == employee.id else None)

    response = client.post("/auth/refresh-token", json={"refresh_token": refresh})

    assert response.status_code == 200
    assert token_utils.verify_access_token(response.json()["access_token"])["user_id"] == employee.id


def test_refresh_rejects_revoked_token(client, employee, monkeypatch):
    refresh = token_utils.create_refresh_token(token_utils.token_payload_for(employee))
    monkeypatch.setattr(token_utils, "get_refresh_token", lambda user_id: None)

    response = client.post("/auth/refresh-token", json={"refresh_token": refresh})

    assert response.status_code == 401
    assert response.json() == {"error": "Refresh token revoked"}


def test_signout_blacklists_access_token(client, employee, auth_headers, monkeypatch):
    blacklisted = set()
    monkeypatch.setattr(token_utils, "blacklist_access_token", blacklisted.add)
    monkeypatch.setattr(token_utils, "is_token_blacklisted", lambda token: token in blacklisted)
    headers = auth_headers(employee)

    response = client.post("/auth/signout", headers=headers)

    assert response.json() == {"message": "Logged out successfully"}
    assert client.get("/auth/session", headers=headers).status_code == 401
