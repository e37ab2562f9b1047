from datetime import date, datetime

import pytest

from model.leave_model import LeaveRequest
from model.notification_model import Notification
from service.leave_service import LeaveService


@pytest.fixture
def pending_request(client, employee, auth_headers):
    response = client.post(
        "/api/leave/requests",
        json={"leave_type": "SICK", "start_date": "2026-04-06", "end_date": "2026-04-07", "reason": "Flu"},
        headers=auth_headers(employee),
    )
    return response.json()["request"]["id"]


def decide(client, headers, request_id, action, comments=None):
    return client.post(
        "/api/leave/approvals",
        json={"request_id": request_id, "action": action, "comments": comments},
        headers=headers,
    )


def test_pending_queue_for_approvers(client, supervisor, pending_request, auth_headers):
    response = client.get("/api/leave/approvals", headers=auth_headers(supervisor))

    assert response.status_code == 200
    assert [r["id"] for r in response.json()["requests"]] == [pending_request]


def test_employees_cannot_approve(client, employee, pending_request, auth_headers):
    assert client.get("/api/leave/approvals", headers=auth_headers(employee)).status_code == 403

    response = decide(client, auth_headers(employee), pending_request, "APPROVED")
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}


def test_approve_request(client, db, employee, supervisor, pending_request, auth_headers):
    response = decide(client, auth_headers(supervisor), pending_request, "approved", "Get well soon")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Request approved successfully"}

    leave = db.query(LeaveRequest).filter(LeaveRequest.id == pending_request).first()
    assert leave.status == "APPROVED"
    assert leave.approved_by == "Jane Supervisor"
    assert leave.approver_id == supervisor.id
    assert leave.approved_at is not None
    assert leave.comments == "Get well soon"
    assert leave.rejection_reason is None

    decided = db.query(Notification).filter(
        Notification.user_id == employee.id,
        Notification.type == "leave_request_approved"
    ).all()
    assert len(decided) == 1
    assert decided[0].priority == "high"
    assert decided[0].action_label == "View Details"
    assert "Jane Supervisor" in decided[0].message


def test_reject_request_records_reason(client, db, employee, hr, pending_request, auth_headers):
    response = decide(client, auth_headers(hr), pending_request, "REJECTED", "Team at capacity")

    assert response.status_code == 200
    assert response.json()["message"] == "Request rejected successfully"

    leave = db.query(LeaveRequest).filter(LeaveRequest.id == pending_request).first()
    assert leave.status == "REJECTED"
    assert leave.rejection_reason == "Team at capacity"

    rejected = db.query(Notification).filter(
        Notification.user_id == employee.id,
        Notification.type == "leave_request_rejected"
    ).one()
    assert rejected.metadata_json["rejection_reason"] == "Team at capacity"


def test_second_decision_conflicts(client, db, employee, supervisor, hr, pending_request, auth_headers):
    assert decide(client, auth_headers(supervisor), pending_request, "APPROVED").status_code == 200

    response = decide(client, auth_headers(hr), pending_request, "REJECTED", "Too late")

    assert response.status_code == 409
    assert response.json() == {"error": "Request is already approved"}

    leave = db.query(LeaveRequest).filter(LeaveRequest.id == pending_request).first()
    assert leave.status == "APPROVED"
    assert leave.approved_by == "Jane Supervisor"
    assert db.query(Notification).filter(
        Notification.user_id == employee.id,
        Notification.type.in_(["leave_request_approved", "leave_request_rejected"])
    ).count() == 1


def test_invalid_action(client, supervisor, pending_request, auth_headers):
    response = decide(client, auth_headers(supervisor), pending_request, "MAYBE")

    assert response.status_code == 400


def test_unknown_request(client, supervisor, auth_headers):
    response = decide(client, auth_headers(supervisor), 4242, "APPROVED")

    assert response.status_code == 404
    assert response.json() == {"error": "Request not found"}


def test_calendar_lists_approved_leave_overlapping_month(client, db, employee, supervisor, auth_headers):
    for start, end, status in (
        (date(2026, 4, 28), date(2026, 5, 4), "APPROVED"),
        (date(2026, 5, 11), date(2026, 5, 12), "PENDING"),
        (date(2026, 6, 1), date(2026, 6, 2), "APPROVED"),
    ):
        db.add(LeaveRequest(
            employee_id=employee.id, business_id="adpa", leave_type="ANNUAL",
            start_date=start, end_date=end, duration=(end - start).days + 1,
            reason="Trip", status=status, submitted_at=datetime(2026, 4, 1),
        ))
    db.commit()

    response = client.get("/api/leave/calendar?year=2026&month=5", headers=auth_headers(supervisor))

    assert response.status_code == 200
    body = response.json()
    assert body["year"] == 2026
    assert body["month"] == 5
    assert [leave["start_date"] for leave in body["leaves"]] == ["2026-04-28"]
    assert body["leaves"][0]["employee_name"] == "John Employee"

    whole_year = client.get("/api/leave/calendar?year=2026", headers=auth_headers(supervisor)).json()
    assert len(whole_year["leaves"]) == 2


def test_calendar_rejects_invalid_month(client, employee, auth_headers):
    response = client.get("/api/leave/calendar?year=2026&month=13", headers=auth_headers(employee))

    assert response.status_code == 400
    assert response.json() == {"error": "Month must be 1-12"}


def test_calendar_rejects_out_of_range_year(client, employee, auth_headers):
    response = client.get("/api/leave/calendar?year=10000", headers=auth_headers(employee))

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


def test_report_aggregates(db, make_user, employee, supervisor):
    sales = make_user("sales@adpa.com", department="Sales")
    rows = [
        (employee, "ANNUAL", "APPROVED", datetime(2026, 10, 2), datetime(2026, 10, 4), 3),
        (employee, "SICK", "REJECTED", datetime(2026, 10, 5), datetime(2026, 10, 6), 1),
        (sales, "ANNUAL", "PENDING", datetime(2026, 10, 9), None, 5),
        (sales, "ANNUAL", "APPROVED", datetime(2026, 9, 20), datetime(2026, 9, 21), 2),
    ]
    for user, leave_type, status, submitted, approved, duration in rows:
        db.add(LeaveRequest(
            employee_id=user.id, business_id="adpa", leave_type=leave_type,
            start_date=date(2026, 11, 2), end_date=date(2026, 11, 1 + duration), duration=duration,
            reason="Report fixture", status=status, submitted_at=submitted, approved_at=approved,
        ))
    db.commit()

    service = LeaveService(db)
    report = service.build_report("adpa", "current-month", today=date(2026, 10, 19))

    assert report.summary.total_requests == 3
    assert report.summary.approved_requests == 1
    assert report.summary.rejected_requests == 1
    assert report.summary.pending_requests == 1
    assert report.summary.average_processing_time == 1.5
    assert [(t.type, t.count) for t in report.leave_types] == [("ANNUAL", 2), ("SICK", 1)]
    assert [(m.month, m.requests) for m in report.monthly_trends] == [("2026-10", 3)]
    by_department = {d.department: d for d in report.department_stats}
    assert by_department["IT"].total_requests == 2
    assert by_department["Sales"].pending == 1

    everything = service.build_report("adpa", "all", department="Sales", today=date(2026, 10, 19))
    assert everything.summary.total_requests == 2
    assert [(m.month, m.requests) for m in everything.monthly_trends] == [("2026-09", 1), ("2026-10", 1)]


def test_reports_restricted_to_management(client, employee, supervisor, hr, auth_headers):
    assert client.get("/api/leave/reports", headers=auth_headers(supervisor)).status_code == 403

    response = client.get("/api/leave/reports?period=all", headers=auth_headers(hr))
    assert response.status_code == 200
    assert response.json()["summary"]["total_requests"] == 0


def test_reports_reject_unknown_period(client, director, auth_headers):
    response = client.get("/api/leave/reports?period=decade", headers=auth_headers(director))

    assert response.status_code == 400
