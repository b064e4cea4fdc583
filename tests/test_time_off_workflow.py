import pytest
from trackmytime.client.state import ClientRequest
from trackmytime.core.auth import create_access_token
from trackmytime.models.time_off_approval import TimeOffApproval
from trackmytime.models.time_off_request import TimeOffRequest
from trackmytime.schemas.time_off import RequestView


def _submit_request(client, auth_headers, user_id="user_kayley", **overrides):
    payload = {"type": "PTO", "startDate": "2025-12-22", "endDate": "2025-12-24", "hours": 24, "note": "Holidays"}
    payload.update(overrides)
    return client.post("/api/requests", headers=auth_headers(user_id), json=payload)


def _set_status(client, headers, request_id, status):
    return client.patch(f"/api/requests/{request_id}", headers=headers, json={"status": status})


def test_submit_request(client, auth_headers, db_session):
    """Test submitting a request creates the employee row on the fly."""
    response = _submit_request(client, auth_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["ok"] is True
    assert body["request"]["status"] == "Pending"
    assert body["request"]["startDate"] == "2025-12-22"
    assert body["request"]["employee"]["name"] == "Kayley Manfredi"
    assert db_session.query(TimeOffRequest).count() == 1


def test_submit_requires_sign_in(client):
    response = client.post("/api/requests", json={"type": "PTO", "startDate": "2025-12-22"})
    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_FAILED"


@pytest.mark.parametrize("overrides,message", [
    ({"endDate": "2025-12-01"}, "End date cannot be before the start date."),
    ({"hours": 0}, "Hours must be greater than zero."),
    ({"startDate": "tomorrow"}, "Start date must be a valid date."),
    ({"hours": "inf"}, "Hours must be a number."),
    ({"hours": "1e400"}, "Hours must be a number."),
    ({"hours": 7.5}, "Hours must be a whole number."),
])
def test_submit_validation(client, auth_headers, overrides, message):
    response = _submit_request(client, auth_headers, **overrides)
    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": message, "code": "VALIDATION_ERROR"}


def test_submit_missing_type_is_bad_request(client, auth_headers):
    response = client.post("/api/requests", headers=auth_headers("user_kayley"), json={"startDate": "2025-12-22"})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_list_round_trip(client, auth_headers):
    """Test a submitted request shows up first in the list."""
    created = _submit_request(client, auth_headers).json()["request"]
    response = client.get("/api/requests")
    assert response.status_code == 200
    requests = response.json()["requests"]
    assert requests[0]["id"] == created["id"]
    assert requests[0]["hours"] == 24
    assert requests[0]["note"] == "Holidays"


def test_manager_approval(client, auth_headers, pending_request, db_session):
    """Test manager approval writes one audit row and the list reflects it."""
    response = _set_status(client, auth_headers("user_manager"), "req-kayley", "Approved")
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["changed"] is True
    assert body["request"]["status"] == "Approved"

    listed = client.get("/api/requests").json()["requests"]
    assert listed[0]["status"] == "Approved"

    approvals = client.get("/api/requests/req-kayley/approvals").json()["approvals"]
    assert len(approvals) == 1
    assert approvals[0]["actionedByName"] == "Morgan Reyes"
    assert approvals[0]["action"] == "approved"


def test_reapprove_is_unchanged(client, auth_headers, pending_request, db_session):
    headers = auth_headers("user_manager")
    _set_status(client, headers, "req-kayley", "Approved")
    response = _set_status(client, headers, "req-kayley", "Approved")
    assert response.status_code == 200
    assert response.json()["changed"] is False
    assert db_session.query(TimeOffApproval).count() == 1


def test_deny_after_approve_conflicts(client, auth_headers, pending_request):
    headers = auth_headers("user_manager")
    _set_status(client, headers, "req-kayley", "Approved")
    response = _set_status(client, headers, "req-kayley", "Denied")
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_TRANSITION"


def test_employee_cannot_approve(client, auth_headers, pending_request, db_session):
    response = _set_status(client, auth_headers("user_employee"), "req-kayley", "Approved")
    assert response.status_code == 403
    assert response.json() == {
        "ok": False,
        "error": "You do not have permission to modify this request.",
        "code": "PERMISSION_DENIED",
    }
    assert db_session.query(TimeOffApproval).count() == 0


def test_status_change_requires_sign_in(client, pending_request):
    response = client.patch("/api/requests/req-kayley", json={"status": "Approved"})
    assert response.status_code == 401


def test_expired_token_is_rejected(client, pending_request):
    token = create_access_token("user_manager", expires_minutes=-1)
    response = _set_status(client, {"Authorization": f"Bearer {token}"}, "req-kayley", "Approved")
    assert response.status_code == 401


@pytest.mark.parametrize("body", [{"status": "approved"}, {"status": "Cancelled"}, {}, None])
def test_bad_status_is_rejected(client, auth_headers, body):
    # Checked before the request is looked up, so an unknown id still yields 400
    response = client.patch("/api/requests/missing", headers=auth_headers("user_manager"), json=body)
    assert response.status_code == 400
    assert response.json()["error"] == "Status must be Approved or Denied."


def test_unknown_request_is_not_found(client, auth_headers):
    response = _set_status(client, auth_headers("user_manager"), "missing", "Denied")
    assert response.status_code == 404
    assert response.json()["error"] == "Request not found."


def test_get_request_and_missing_approvals(client, pending_request):
    response = client.get("/api/requests/req-kayley")
    assert response.status_code == 200
    assert response.json()["request"]["endDate"] == "2025-11-12"
    assert client.get("/api/requests/missing/approvals").status_code == 404


def test_list_etag_revalidation(client, auth_headers, pending_request):
    """Test the list is served as 304 until a write invalidates it."""
    first = client.get("/api/requests")
    etag = first.headers["etag"]

    cached = client.get("/api/requests", headers={"If-None-Match": etag})
    assert cached.status_code == 304

    _set_status(client, auth_headers("user_manager"), "req-kayley", "Denied")
    fresh = client.get("/api/requests", headers={"If-None-Match": etag})
    assert fresh.status_code == 200
    assert fresh.headers["etag"] != etag
    assert fresh.json()["requests"][0]["status"] == "Denied"


def test_calendar_view(client, pending_request):
    """Test each covered day holds the request."""
    response = client.get("/api/calendar", params={"year": 2025, "month": 11})
    assert response.status_code == 200
    days = response.json()["days"]
    assert sorted(days) == ["2025-11-11", "2025-11-12"]
    assert days["2025-11-11"][0]["id"] == "req-kayley"

    assert client.get("/api/calendar", params={"year": 2025, "month": 10}).json()["days"] == {}
    assert client.get("/api/calendar", params={"month": 13}).status_code == 400


class TestImpersonation:
    def test_admin_can_act_as_manager(self, client, auth_headers, pending_request, db_session):
        headers = auth_headers("user_admin", **{"X-Act-As": "user_manager"})
        response = _set_status(client, headers, "req-kayley", "Approved")
        assert response.status_code == 200

        approval = db_session.query(TimeOffApproval).one()
        assert approval.actioned_by_external_user_id == "user_manager"
        assert approval.comment == "impersonated by user_admin"

    def test_non_admin_cannot_impersonate(self, client, auth_headers, pending_request):
        headers = auth_headers("user_manager", **{"X-Act-As": "user_admin"})
        response = _set_status(client, headers, "req-kayley", "Approved")
        assert response.status_code == 403
        assert response.json()["error"] == "Only administrators may act on behalf of another user."

    def test_acting_as_self_is_plain_request(self, client, auth_headers, pending_request, db_session):
        headers = auth_headers("user_manager", **{"X-Act-As": "user_manager"})
        assert _set_status(client, headers, "req-kayley", "Approved").status_code == 200
        assert db_session.query(TimeOffApproval).one().comment is None


def test_created_request_lists_as_pending_with_label(client, auth_headers):
    _submit_request(client, auth_headers, startDate="2025-11-11", endDate="2025-11-12", hours=8)
    view = RequestView.model_validate(client.get("/api/requests").json()["requests"][0])

    entry = ClientRequest.from_view(view)
    assert entry.status == "Pending"
    assert entry.dates_label == "Nov 11 – Nov 12"
    assert entry.hours == 8
    assert entry.type == "PTO"


def test_deny_missing_leaves_list_unchanged(client, auth_headers, pending_request, db_session):
    before = client.get("/api/requests").json()
    assert _set_status(client, auth_headers("user_manager"), "missing", "Denied").status_code == 404
    assert client.get("/api/requests").json() == before
    assert db_session.query(TimeOffApproval).count() == 0


def test_user_sync_invalidates_list_etag(client, auth_headers, identity_provider, pending_request):
    """Test a renamed employee is not served from a stale cached list."""
    etag = client.get("/api/requests").headers["etag"]

    identity_provider.add({
        "id": "user_kayley",
        "first_name": "Kayley",
        "last_name": "Renamed",
        "primary_email": "kayley@example.com",
        "public_metadata": {"role": "Employee"},
    })
    assert client.post("/api/users/sync", headers=auth_headers("user_kayley")).json()["status"] == "success"

    response = client.get("/api/requests", headers={"If-None-Match": etag})
    assert response.status_code == 200
    assert response.json()["requests"][0]["employee"]["name"] == "Kayley Renamed"


def test_failed_sync_keeps_list_etag(client, auth_headers, pending_request):
    etag = client.get("/api/requests").headers["etag"]
    client.post("/api/users/sync", headers=auth_headers("user_ghost"))
    assert client.get("/api/requests", headers={"If-None-Match": etag}).status_code == 304


def test_cancelled_request_conflicts(client, auth_headers, pending_request, db_session):
    pending_request.status = "cancelled"
    db_session.commit()

    assert client.get("/api/requests/req-kayley").json()["request"]["status"] == "Denied"
    response = _set_status(client, auth_headers("user_manager"), "req-kayley", "Denied")
    assert response.status_code == 409
    assert response.json() == {"ok": False, "error": "Request is already cancelled.", "code": "INVALID_TRANSITION"}
