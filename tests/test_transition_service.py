from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from trackmytime.core.auth import AuthContext
from trackmytime.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from trackmytime.models.time_off_approval import TimeOffApproval
from trackmytime.models.time_off_request import TimeOffRequest
from trackmytime.services.transition_service import StatusTransitionService
from trackmytime.services.view_cache import ViewCache


@pytest.fixture
def cache():
    return ViewCache()


@pytest.fixture
def service(db_session, identity_provider, cache):
    return StatusTransitionService(db_session, identity_provider, cache)


MANAGER = AuthContext(user_id="user_manager")
EMPLOYEE = AuthContext(user_id="user_employee")


def _approvals(db_session):
    return db_session.query(TimeOffApproval).all()


def test_unauthenticated_caller_is_rejected(service, pending_request, db_session):
    with pytest.raises(AuthenticationError):
        service.transition_request(None, "req-kayley", "Approved")
    assert db_session.get(TimeOffRequest, "req-kayley").status == "pending"


@pytest.mark.parametrize("target", ["approved", "Cancelled", "Pending", "", None, 1])
def test_invalid_status_is_rejected_before_lookup(service, db_session, target):
    service.repository.get_request = MagicMock()
    with pytest.raises(ValidationError):
        service.transition_request(MANAGER, "req-kayley", target)
    service.repository.get_request.assert_not_called()


@pytest.mark.parametrize("target", ["Approved", "Denied"])
def test_non_manager_is_forbidden(service, pending_request, db_session, target):
    with pytest.raises(AuthorizationError):
        service.transition_request(EMPLOYEE, "req-kayley", target)
    assert db_session.get(TimeOffRequest, "req-kayley").status == "pending"
    assert _approvals(db_session) == []


def test_non_manager_is_forbidden_even_for_unknown_request(service):
    with pytest.raises(AuthorizationError):
        service.transition_request(EMPLOYEE, "does-not-exist", "Approved")


def test_unknown_request_is_not_found(service, db_session):
    with pytest.raises(NotFoundError):
        service.transition_request(MANAGER, "does-not-exist", "Approved")
    assert _approvals(db_session) == []


def test_manager_approves_pending_request(service, pending_request, db_session, cache):
    result = service.transition_request(MANAGER, "req-kayley", "Approved")

    assert result.changed is True
    assert result.request.status == "Approved"
    assert result.request.employee.name == "Kayley Manfredi"

    approvals = _approvals(db_session)
    assert len(approvals) == 1
    assert approvals[0].action == "approved"
    assert approvals[0].actioned_by_external_user_id == "user_manager"
    assert approvals[0].actioned_by_name == "Morgan Reyes"
    assert approvals[0].comment is None
    assert cache.version("/") == 1
    assert cache.version("/time-off") == 1


def test_manager_denies_pending_request(service, pending_request, db_session):
    result = service.transition_request(MANAGER, "req-kayley", "Denied")
    assert result.request.status == "Denied"
    assert db_session.get(TimeOffRequest, "req-kayley").status == "denied"


def test_reapplying_same_status_is_a_no_op(service, pending_request, db_session, cache):
    service.transition_request(MANAGER, "req-kayley", "Approved")
    result = service.transition_request(MANAGER, "req-kayley", "Approved")

    assert result.changed is False
    assert result.request.status == "Approved"
    assert len(_approvals(db_session)) == 1
    assert cache.version("/time-off") == 1


def test_resolved_request_cannot_flip(service, pending_request, db_session):
    service.transition_request(MANAGER, "req-kayley", "Approved")
    with pytest.raises(InvalidTransitionError) as exc_info:
        service.transition_request(MANAGER, "req-kayley", "Denied")
    assert exc_info.value.message == "Request is already approved."
    assert db_session.get(TimeOffRequest, "req-kayley").status == "approved"
    assert len(_approvals(db_session)) == 1


@pytest.mark.parametrize("target", ["Approved", "Denied"])
def test_cancelled_request_cannot_be_resolved(service, pending_request, db_session, target):
    pending_request.status = "cancelled"
    db_session.commit()

    with pytest.raises(InvalidTransitionError) as exc_info:
        service.transition_request(MANAGER, "req-kayley", target)

    assert exc_info.value.message == "Request is already cancelled."
    assert db_session.get(TimeOffRequest, "req-kayley").status == "cancelled"
    assert _approvals(db_session) == []


def test_employee_row_role_grants_permission(service, pending_request, director):
    # The identity profile carries no role; the employee row says Director
    result = service.transition_request(AuthContext(user_id="user_director"), "req-kayley", "Denied")
    assert result.changed is True


def test_impersonated_action_is_recorded(service, pending_request, db_session):
    auth = AuthContext(user_id="user_manager", impersonator_id="user_admin")
    service.transition_request(auth, "req-kayley", "Approved")

    approval = _approvals(db_session)[0]
    assert approval.actioned_by_external_user_id == "user_manager"
    assert approval.comment == "impersonated by user_admin"


def test_store_failure_rolls_back_and_raises_persistence_error(service, pending_request, db_session, cache):
    service.repository.record_approval = MagicMock(side_effect=OperationalError("INSERT", {}, Exception("disk I/O error")))

    with pytest.raises(PersistenceError) as exc_info:
        service.transition_request(MANAGER, "req-kayley", "Approved")

    assert "disk" not in exc_info.value.message
    assert db_session.get(TimeOffRequest, "req-kayley").status == "pending"
    assert _approvals(db_session) == []
    assert cache.version("/time-off") == 0
