import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trackmytime.core.auth import AuthContext
from trackmytime.core.exceptions import AppException, AuthenticationError, PersistenceError
from trackmytime.schemas.time_off import ApprovalResponse, RequestView, TimeOffRequestCreate
from trackmytime.services.base import BaseService
from trackmytime.services.calendar import build_day_index, filter_index_to_month
from trackmytime.services.employee_service import EmployeeService
from trackmytime.services.identity import IdentityProvider
from trackmytime.services.request_repository import TimeOffRequestRepository, to_request_view
from trackmytime.services.view_cache import ViewCache, view_cache as default_view_cache

logger = logging.getLogger(__name__)


class TimeOffService(BaseService):
    """Read models and self-service submission for the dashboard."""

    def __init__(
        self,
        db: Session,
        identity_provider: IdentityProvider,
        view_cache: Optional[ViewCache] = None,
    ):
        super().__init__(db)
        self.repository = TimeOffRequestRepository(db)
        self.employees = EmployeeService(db, identity_provider, view_cache)
        self.view_cache = view_cache or default_view_cache

    def list_views(self) -> List[RequestView]:
        return [to_request_view(request, employee) for request, employee in self.repository.list_requests()]

    def get_view(self, request_id: str) -> RequestView:
        request, employee = self.repository.get_request(request_id)
        return to_request_view(request, employee)

    def list_approvals(self, request_id: str) -> List[ApprovalResponse]:
        # 404 for unknown ids rather than an empty trail
        self.repository.get_request(request_id)
        return [ApprovalResponse.model_validate(a) for a in self.repository.list_approvals(request_id)]

    def submit(self, auth: Optional[AuthContext], payload: TimeOffRequestCreate) -> RequestView:
        if auth is None:
            raise AuthenticationError("You must be signed in to submit a request.")

        try:
            employee = self.employees.get_or_create_employee(auth.user_id)
            request = self.repository.create_request(
                employee_id=employee.id,
                external_user_id=auth.user_id,
                type=payload.type,
                start_date=payload.start_date,
                end_date=payload.end_date,
                hours=payload.hours,
                note=payload.note,
            )
            self.db.commit()
        except AppException:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Failed to create time-off request: {exc}", exc_info=True)
            raise PersistenceError() from exc

        self.log_info(f"Request {request.id} submitted", user_id=auth.user_id)
        self.view_cache.invalidate()
        return to_request_view(request, employee)

    def calendar(self, year: Optional[int] = None, month: Optional[int] = None) -> Dict[str, List[RequestView]]:
        index = build_day_index(self.list_views())
        if year is None:
            return index
        return filter_index_to_month(index, year, month)
