from datetime import datetime, timedelta

import pytest
import stripe

from model.subscription_model import Subscription, SubscriptionPlan
from model.usermodels import User
from service.payment_service import format_currency
from service.subscription_service import SubscriptionService


def test_format_currency():
    assert format_currency(1234, "usd") == "$12.34"
    assert format_currency(123456, "EUR") == "€1,234.56"
    assert format_currency(500, "chf") == "5.00 CHF"


def test_trial_days_left_rounds_up(db, employee):
    now = datetime(2026, 10, 19, 12, 0)
    employee.trial_start_date = now - timedelta(days=4)
    employee.trial_end_date = now + timedelta(days=9, hours=3)
    employee.subscription_status = "trial"
    db.commit()

    info = SubscriptionService(db).get_subscription_info(employee.id, now=now)

    assert info.trial_days_left == 10
    assert info.is_trial_active is True
    assert info.status == "trial"


def test_elapsed_trial_expires_user(db, employee):
    now = datetime(2026, 10, 19, 12, 0)
    employee.trial_end_date = now - timedelta(hours=1)
    employee.subscription_status = "trial"
    db.commit()

    info = SubscriptionService(db).get_subscription_info(employee.id, now=now)

    assert info.is_trial_active is False
    assert info.status == "expired"
    db.expire_all()
    assert db.get(User, employee.id).subscription_status == "expired"


def test_start_trial_once(client, db, employee, auth_headers):
    headers = auth_headers(employee)

    response = client.post("/api/subscription/trial", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "trial"
    assert body["plan"] == "professional"
    assert body["trial_days_left"] == 14
    assert body["is_trial_active"] is True
    assert "Reports" in body["features"]

    again = client.post("/api/subscription/trial", headers=headers)
    assert again.status_code == 409
    assert again.json() == {"error": "Trial already used"}


def test_trial_length_follows_business_config(client, db, make_user, director, auth_headers):
    client.put("/api/business/config", json={"trial_days": 30}, headers=auth_headers(director))
    newcomer = make_user("newcomer@adpa.com")

    body = client.post("/api/subscription/trial", headers=auth_headers(newcomer)).json()

    assert body["trial_days_left"] == 30


def test_plans_are_listed_by_price(client):
    plans = client.get("/api/subscription/plans").json()

    assert [plan["code"] for plan in plans] == ["free", "starter", "professional", "enterprise"]


def test_manual_plan_override(client, db, employee, hr, auth_headers):
    response = client.post("/api/subscription/plan", json={"user_id": employee.id, "plan": "enterprise"}, headers=auth_headers(hr))

    assert response.status_code == 200
    db.expire_all()
    user = db.get(User, employee.id)
    assert user.subscription_plan == "enterprise"
    assert user.subscription_status == "active"

    bad = client.post("/api/subscription/plan", json={"user_id": employee.id, "plan": "platinum"}, headers=auth_headers(hr))
    assert bad.status_code == 400
    assert client.post("/api/subscription/plan", json={"user_id": employee.id, "plan": "free"}, headers=auth_headers(employee)).status_code == 403


def test_manual_plan_override_requires_user_id(client, hr, auth_headers):
    response = client.post("/api/subscription/plan", json={"plan": "starter"}, headers=auth_headers(hr))

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


@pytest.fixture
def stripe_calls(monkeypatch):
    """Stand-ins for the SDK calls; they answer SDK objects like the real client does"""
    calls = {}

    def fake_list_customers(**params):
        calls["lookup"] = params["email"]
        return stripe.ListObject.construct_from({"object": "list", "data": []}, "sk_test_123")

    def fake_create_customer(**params):
        calls["customer"] = (params["email"], params["name"])
        return stripe.Customer.construct_from({"id": "cus_new", "object": "customer"}, "sk_test_123")

    def fake_create_checkout_session(**params):
        calls["checkout"] = params
        return stripe.checkout.Session.construct_from(
            {"id": "cs_test_1", "object": "checkout.session", "url": "https://checkout.stripe.test/cs_test_1"},
            "sk_test_123",
        )

    def fake_create_billing_portal_session(**params):
        calls["portal"] = (params["customer"], params["return_url"])
        return stripe.billing_portal.Session.construct_from(
            {"id": "bps_1", "object": "billing_portal.session", "url": "https://billing.stripe.test/session"},
            "sk_test_123",
        )

    monkeypatch.setattr(stripe.Customer, "list", fake_list_customers)
    monkeypatch.setattr(stripe.Customer, "create", fake_create_customer)
    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create_checkout_session)
    monkeypatch.setattr(stripe.billing_portal.Session, "create", fake_create_billing_portal_session)
    return calls


def test_checkout_session_offers_trial_to_new_users(client, employee, auth_headers, stripe_calls):
    response = client.post(
        "/api/stripe/create-checkout-session",
        json={"price_id": "price_pro_monthly", "plan_code": "professional"},
        headers=auth_headers(employee),
    )

    assert response.status_code == 200
    assert response.json() == {"session_id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}
    assert stripe_calls["lookup"] == "employee@adpa.com"
    assert stripe_calls["customer"] == ("employee@adpa.com", "John Employee")
    checkout = stripe_calls["checkout"]
    assert checkout["customer"] == "cus_new"
    assert checkout["mode"] == "subscription"
    assert checkout["line_items"] == [{"price": "price_pro_monthly", "quantity": 1}]
    assert checkout["subscription_data"] == {"trial_period_days": 14}
    assert checkout["success_url"].endswith("/subscription/success?session_id={CHECKOUT_SESSION_ID}")
    assert checkout["cancel_url"].endswith("/subscription/plans")


def test_checkout_session_without_trial_after_one_was_used(client, db, employee, auth_headers, stripe_calls):
    employee.trial_end_date = datetime.utcnow() - timedelta(days=1)
    db.commit()

    client.post(
        "/api/stripe/create-checkout-session",
        json={"price_id": "price_pro_monthly", "plan_code": "professional"},
        headers=auth_headers(employee),
    )

    assert "subscription_data" not in stripe_calls["checkout"]


def test_checkout_session_requires_price(client, employee, auth_headers, stripe_calls):
    response = client.post("/api/stripe/create-checkout-session", json={"plan_code": "starter"}, headers=auth_headers(employee))

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required parameters"}


def test_portal_session_requires_customer(client, db, employee, auth_headers, stripe_calls):
    headers = auth_headers(employee)
    assert client.post("/api/stripe/create-portal-session", headers=headers).status_code == 404

    db.add(Subscription(
        user_id=employee.id, stripe_subscription_id="sub_1", stripe_customer_id="cus_1",
        plan_code="starter", status="active",
    ))
    db.commit()

    response = client.post("/api/stripe/create-portal-session", headers=headers)
    assert response.json() == {"url": "https://billing.stripe.test/session"}
    assert stripe_calls["portal"][0] == "cus_1"
    assert stripe_calls["portal"][1].endswith("/subscription/billing")


def test_cancel_subscription_immediately(client, db, employee, auth_headers, monkeypatch):
    db.add(Subscription(
        user_id=employee.id, stripe_subscription_id="sub_1", stripe_customer_id="cus_1",
        plan_code="starter", status="active",
    ))
    employee.subscription_status = "active"
    employee.subscription_plan = "starter"
    db.commit()
    monkeypatch.setattr(
        stripe.Subscription, "cancel",
        lambda subscription_id, **params: stripe.Subscription.construct_from(
            {"id": subscription_id, "object": "subscription", "status": "canceled"}, "sk_test_123"
        ),
    )

    response = client.post("/api/stripe/cancel-subscription", json={"cancel_at_period_end": False}, headers=auth_headers(employee))

    assert response.status_code == 200
    db.expire_all()
    assert db.query(Subscription).one().status == "canceled"
    user = db.get(User, employee.id)
    assert (user.subscription_status, user.subscription_plan) == ("canceled", "free")


def test_change_plan_swaps_price(client, db, employee, auth_headers, monkeypatch):
    plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.code == "enterprise").one()
    plan.stripe_price_id_yearly = "price_ent_yearly"
    db.add(Subscription(
        user_id=employee.id, stripe_subscription_id="sub_1", stripe_customer_id="cus_1",
        plan_code="starter", status="active",
    ))
    db.commit()
    modified = {}

    def fake_modify(subscription_id, **params):
        modified.update(params)
        return stripe.Subscription.construct_from({
            "id": subscription_id, "object": "subscription", "customer": "cus_1", "status": "active",
            "items": {"object": "list", "data": [{"id": "si_1", "price": {"id": params["items"][0]["price"]}}]},
        }, "sk_test_123")

    monkeypatch.setattr(
        stripe.Subscription, "retrieve",
        lambda subscription_id, **params: stripe.Subscription.construct_from(
            {"id": subscription_id, "object": "subscription", "items": {"object": "list", "data": [{"id": "si_1"}]}},
            "sk_test_123",
        ),
    )
    monkeypatch.setattr(stripe.Subscription, "modify", fake_modify)

    response = client.post("/api/stripe/change-plan", json={"price_id": "price_ent_yearly"}, headers=auth_headers(employee))

    assert response.json() == {"success": True, "plan": "enterprise"}
    assert modified["items"] == [{"id": "si_1", "price": "price_ent_yearly"}]
    assert modified["proration_behavior"] == "create_prorations"
    db.expire_all()
    assert db.query(Subscription).one().plan_code == "enterprise"
    assert db.get(User, employee.id).subscription_plan == "enterprise"

    unknown = client.post("/api/stripe/change-plan", json={"price_id": "price_nope"}, headers=auth_headers(employee))
    assert unknown.status_code == 400


def test_payment_info_without_subscription(client, employee, auth_headers):
    body = client.get("/api/subscription/payment-info", headers=auth_headers(employee)).json()

    assert body["has_payment_method"] is False
    assert body["subscription"] is None
    assert body["upcoming_invoice"] is None
    assert body["invoices"] == []


def test_payment_info_includes_upcoming_invoice(client, db, employee, auth_headers, monkeypatch):
    db.add(Subscription(
        user_id=employee.id, stripe_subscription_id="sub_1", stripe_customer_id="cus_1",
        plan_code="professional", status="active",
    ))
    db.commit()
    monkeypatch.setattr(
        stripe.Invoice, "create_preview",
        lambda **params: stripe.Invoice.construct_from(
            {"object": "invoice", "amount_due": 2999, "currency": "usd", "next_payment_attempt": 1790000000}, "sk_test_123"
        ),
    )

    body = client.get("/api/subscription/payment-info", headers=auth_headers(employee)).json()

    assert body["subscription"]["stripe_subscription_id"] == "sub_1"
    assert body["upcoming_invoice"]["amount_due_formatted"] == "$29.99"
