"""
Persistence for time-off requests and their approval history.

Methods flush but never commit: the calling service owns the transaction
so a status change and its audit row land together.
"""
import math
from datetime import date, datetime, timezone
from numbers import Number
from typing import Any, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from trackmytime.core.exceptions import NotFoundError, ValidationError
from trackmytime.core.formatting import parse_iso_date
from trackmytime.models.employee import Employee
from trackmytime.models.time_off_approval import TimeOffApproval
from trackmytime.models.time_off_request import RequestStatus, TimeOffRequest, status_label
from trackmytime.schemas.time_off import EmployeeSummary, RequestView
from trackmytime.services.base import BaseService

RequestRow = Tuple[TimeOffRequest, Optional[Employee]]

UNKNOWN_EMPLOYEE_NAME = "Unknown employee"
DEFAULT_EMPLOYEE_ROLE = "Team Member"


def _parse_date(value: Union[date, str, None], field: str, label: str) -> date:
    if isinstance(value, str) and not value.strip():
        raise ValidationError(f"{label} is required.", details={"field": field})
    if value is None:
        raise ValidationError(f"{label} is required.", details={"field": field})
    parsed = parse_iso_date(value)
    if parsed is None:
        raise ValidationError(f"{label} must be a valid date.", details={"field": field})
    return parsed


def _validate_hours(hours: Any) -> Optional[int]:
    if hours is None or (isinstance(hours, str) and not hours.strip()):
        return None
    if isinstance(hours, bool):
        raise ValidationError("Hours must be a number.", details={"field": "hours"})
    if isinstance(hours, str):
        try:
            hours = float(hours)
        except ValueError:
            raise ValidationError("Hours must be a number.", details={"field": "hours"})
    if not isinstance(hours, Number):
        raise ValidationError("Hours must be a number.", details={"field": "hours"})
    # "inf", "nan" and overflowing literals such as 1e400 parse as non-finite floats
    if isinstance(hours, float) and not math.isfinite(hours):
        raise ValidationError("Hours must be a number.", details={"field": "hours"})
    if hours <= 0:
        raise ValidationError("Hours must be greater than zero.", details={"field": "hours"})
    if int(hours) != hours:
        raise ValidationError("Hours must be a whole number.", details={"field": "hours"})
    return int(hours)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    # SQLite hands timestamps back without tzinfo; they were written in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def to_request_view(request: TimeOffRequest, employee: Optional[Employee]) -> RequestView:
    return RequestView(
        id=request.id,
        status=status_label(request.status),
        type=request.type,
        start_date=request.start_date,
        end_date=request.end_date,
        hours=request.hours,
        note=request.note,
        submitted_at=_isoformat(request.submitted_at),
        employee=EmployeeSummary(
            id=employee.id if employee is not None else request.employee_id,
            external_id=request.external_user_id,
            name=employee.full_name if employee is not None and employee.full_name else UNKNOWN_EMPLOYEE_NAME,
            role=employee.role if employee is not None and employee.role else DEFAULT_EMPLOYEE_ROLE,
        ),
    )


class TimeOffRequestRepository(BaseService):

    def _rows(self):
        return (
            self.db.query(TimeOffRequest, Employee)
            .outerjoin(Employee, TimeOffRequest.employee_id == Employee.id)
        )

    def list_requests(self) -> List[RequestRow]:
        return self._rows().order_by(TimeOffRequest.submitted_at.desc()).all()

    def get_request(self, request_id: str) -> RequestRow:
        row = self._rows().filter(TimeOffRequest.id == request_id).first()
        if row is None:
            raise NotFoundError()
        return row

    def create_request(
        self,
        employee_id: Optional[str],
        external_user_id: str,
        type: str,
        start_date: Union[date, str],
        end_date: Union[date, str, None] = None,
        hours: Any = None,
        note: Optional[str] = None,
    ) -> TimeOffRequest:
        leave_type = (type or "").strip()
        if not leave_type:
            raise ValidationError("Request type is required.", details={"field": "type"})

        start = _parse_date(start_date, "startDate", "Start date")
        if end_date is None or (isinstance(end_date, str) and not end_date.strip()):
            end = start
        else:
            end = _parse_date(end_date, "endDate", "End date")
        if end < start:
            raise ValidationError("End date cannot be before the start date.", details={"field": "endDate"})

        hours_value = _validate_hours(hours)
        trimmed_note = note.strip() if isinstance(note, str) else None

        now = datetime.now(timezone.utc)
        request = TimeOffRequest(
            employee_id=employee_id,
            external_user_id=external_user_id,
            status=RequestStatus.PENDING.value,
            type=leave_type,
            start_date=start,
            end_date=end,
            hours=hours_value,
            note=trimmed_note or None,
            submitted_at=now,
            last_updated_at=now,
        )
        self.db.add(request)
        self.db.flush()
        return request

    def update_status(self, request_id: str, new_status: RequestStatus) -> TimeOffRequest:
        request = self.db.get(TimeOffRequest, request_id)
        if request is None:
            raise NotFoundError()
        request.status = RequestStatus(new_status).value
        request.last_updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return request

    def record_approval(
        self,
        request_id: str,
        acting_user_id: str,
        acting_user_name: str,
        action: RequestStatus,
        comment: Optional[str] = None,
    ) -> TimeOffApproval:
        """Always inserts; repeated identical actions each get their own row."""
        approval = TimeOffApproval(
            request_id=request_id,
            actioned_by_external_user_id=acting_user_id,
            actioned_by_name=acting_user_name,
            action=RequestStatus(action).value,
            comment=comment,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(approval)
        self.db.flush()
        return approval

    def list_approvals(self, request_id: str) -> List[TimeOffApproval]:
        return (
            self.db.query(TimeOffApproval)
            .filter(TimeOffApproval.request_id == request_id)
            .order_by(TimeOffApproval.created_at.asc())
            .all()
        )
