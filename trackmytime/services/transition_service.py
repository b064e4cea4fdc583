"""
Approve / deny workflow for time-off requests.

    pending --Approved--> approved
    pending --Denied----> denied

Approved, denied and cancelled are terminal here. Re-applying the status
a request already has is accepted as a no-op (nothing written, no audit
row); any other change to a resolved request is rejected.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trackmytime.core.auth import AuthContext
from trackmytime.core.exceptions import (
    AppException,
    AuthenticationError,
    InvalidTransitionError,
    PersistenceError,
    ValidationError,
)
from trackmytime.models.time_off_request import RequestStatus
from trackmytime.schemas.time_off import RequestView
from trackmytime.services.access_policy import ApprovalPolicy
from trackmytime.services.base import BaseService
from trackmytime.services.identity import IdentityProvider
from trackmytime.services.request_repository import TimeOffRequestRepository, to_request_view
from trackmytime.services.view_cache import ViewCache, view_cache as default_view_cache

# Wire values are case-sensitive
TARGET_STATUSES = {
    "Approved": RequestStatus.APPROVED,
    "Denied": RequestStatus.DENIED,
}


@dataclass
class TransitionResult:
    request: RequestView
    changed: bool


def parse_target_status(target_status) -> RequestStatus:
    if not isinstance(target_status, str) or target_status not in TARGET_STATUSES:
        raise ValidationError("Status must be Approved or Denied.", details={"field": "status"})
    return TARGET_STATUSES[target_status]


class StatusTransitionService(BaseService):
    def __init__(
        self,
        db: Session,
        identity_provider: IdentityProvider,
        view_cache: Optional[ViewCache] = None,
    ):
        super().__init__(db)
        self.policy = ApprovalPolicy(db, identity_provider)
        self.repository = TimeOffRequestRepository(db)
        self.view_cache = view_cache or default_view_cache

    def transition_request(
        self,
        auth: Optional[AuthContext],
        request_id: str,
        target_status,
    ) -> TransitionResult:
        if auth is None:
            raise AuthenticationError()
        new_status = parse_target_status(target_status)
        caller = self.policy.require_manager(auth)

        try:
            request, _ = self.repository.get_request(request_id)
            current = request.status or RequestStatus.PENDING.value

            if current == new_status.value:
                self.log_info(
                    f"Request {request_id} already {new_status.value}; nothing to do",
                    user_id=auth.user_id,
                )
                return TransitionResult(request=self._view(request_id), changed=False)

            if current != RequestStatus.PENDING.value:
                raise InvalidTransitionError(
                    f"Request is already {current}.",
                    details={"current": current, "requested": new_status.value},
                )

            self.repository.update_status(request_id, new_status)
            comment = None
            if auth.is_impersonated:
                comment = f"impersonated by {auth.impersonator_id}"
            self.repository.record_approval(
                request_id=request_id,
                acting_user_id=auth.user_id,
                acting_user_name=caller.display_name,
                action=new_status,
                comment=comment,
            )
            self.db.commit()
        except AppException:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            self._logger.error(f"Failed to transition request {request_id}: {exc}", exc_info=True)
            raise PersistenceError() from exc

        self.log_info(
            f"Request {request_id} {new_status.value} by {caller.display_name}",
            user_id=auth.user_id,
            impersonator_id=auth.impersonator_id,
        )
        self.view_cache.invalidate()
        return TransitionResult(request=self._view(request_id), changed=True)

    def _view(self, request_id: str) -> RequestView:
        request, employee = self.repository.get_request(request_id)
        return to_request_view(request, employee)
