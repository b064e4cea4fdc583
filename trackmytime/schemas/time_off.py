from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EmployeeSummary(CamelModel):
    id: Optional[str] = None
    external_id: str
    name: str
    role: str


class RequestView(CamelModel):
    """Denormalized request as the dashboard renders it."""
    id: str
    status: str
    type: str
    start_date: date
    end_date: date
    hours: Optional[int] = None
    note: Optional[str] = None
    submitted_at: Optional[str] = None
    employee: EmployeeSummary


class RequestListResponse(BaseModel):
    requests: List[RequestView]


class RequestEnvelope(BaseModel):
    ok: bool = True
    request: Optional[RequestView] = None
    changed: Optional[bool] = None


class TimeOffRequestCreate(CamelModel):
    # Dates stay strings here so the repository can report which one is malformed
    type: str
    start_date: str
    end_date: Optional[str] = None
    hours: Optional[Any] = None
    note: Optional[str] = None


class ApprovalResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    request_id: str
    actioned_by_external_user_id: str
    actioned_by_name: str
    action: str
    comment: Optional[str] = None
    created_at: datetime


class ApprovalListResponse(BaseModel):
    approvals: List[ApprovalResponse]


class CalendarResponse(BaseModel):
    days: Dict[str, List[RequestView]] = Field(default_factory=dict)
