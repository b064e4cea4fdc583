"""
In-process state behind the dashboard's two request views.

`RequestListState` backs the overview list and activity feed;
`CalendarState` backs the availability calendar. Both are derived copies:
the API is the source of truth, and the views exchange approved requests
through a shared `SnapshotStore`.
"""
import logging
import math
import uuid
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel

from trackmytime.client.api import UPDATE_FAILED, ClientError, TimeOffApiClient
from trackmytime.client.snapshots import RequestSnapshot, SnapshotStore, default_store, now_utc
from trackmytime.core.formatting import (
    format_date_range,
    format_iso_date_range_label,
    format_short_date,
    parse_iso_date,
)
from trackmytime.core.roles import is_manager
from trackmytime.schemas.time_off import RequestView
from trackmytime.services.calendar import build_day_index, build_month_matrix, summarize_by_status

logger = logging.getLogger(__name__)

PENDING, APPROVED, DENIED = "Pending", "Approved", "Denied"
MAX_ACTIVITY_ENTRIES = 8

MESSAGES = {
    "auth_required": "Sign in as a manager to take action on requests.",
    "submit_auth_required": "You must be signed in to submit a request.",
    "missing_permission": "You do not have permission to modify requests.",
    "request_update_error": "This request could not be updated.",
    "start_date_required": "Select a start date for your request.",
    "end_date_invalid": "End date cannot be before the start date.",
    "hours_invalid": "Hours must be greater than zero.",
    "hours_whole": "Hours must be a whole number.",
    "submitted": "Time off request submitted for review.",
}


class SignedInUser(BaseModel):
    user_id: str
    display_name: str
    role: Optional[str] = None

    @property
    def can_review(self) -> bool:
        return is_manager(self.role)


class ClientRequest(BaseModel):
    id: str
    employee: str
    role: str
    type: str
    status: str
    start_date: date
    end_date: date
    hours: Optional[int] = None
    notes: Optional[str] = None
    submitted: Optional[str] = None
    dates: Optional[str] = None

    @property
    def dates_label(self) -> str:
        return self.dates or format_date_range(self.start_date, self.end_date)

    def to_snapshot(self) -> RequestSnapshot:
        return RequestSnapshot(
            id=self.id,
            employee=self.employee,
            role=self.role,
            type=self.type,
            status=self.status,
            start_date_iso=self.start_date.isoformat(),
            end_date_iso=self.end_date.isoformat(),
            hours=self.hours,
            notes=self.notes,
            submitted=self.submitted,
            dates_label=self.dates_label,
            updated_at=now_utc(),
        )

    @classmethod
    def from_snapshot(cls, snapshot: RequestSnapshot) -> Optional["ClientRequest"]:
        start = parse_iso_date(snapshot.start_date_iso)
        end = parse_iso_date(snapshot.end_date_iso)
        if start is None or end is None:
            return None
        return cls(
            id=snapshot.id,
            employee=snapshot.employee,
            role=snapshot.role,
            type=snapshot.type,
            status=snapshot.status,
            start_date=start,
            end_date=end,
            hours=snapshot.hours,
            notes=snapshot.notes,
            submitted=snapshot.submitted,
            dates=snapshot.dates_label,
        )

    @classmethod
    def from_view(cls, view: RequestView) -> "ClientRequest":
        submitted = None
        if view.submitted_at:
            try:
                submitted = format_short_date(datetime.fromisoformat(view.submitted_at).date())
            except ValueError:
                submitted = None
        return cls(
            id=view.id,
            employee=view.employee.name,
            role=view.employee.role,
            type=view.type,
            status=view.status,
            start_date=view.start_date,
            end_date=view.end_date,
            hours=view.hours,
            notes=view.note,
            submitted=submitted,
            dates=format_date_range(view.start_date, view.end_date),
        )


class Activity(BaseModel):
    id: str
    type: str
    detail: str
    meta: str


def _generate_id() -> str:
    return uuid.uuid4().hex[:12]


def _seed(id, employee, role, type, status, start, end, hours=None, submitted=None) -> ClientRequest:
    start_date, end_date = date.fromisoformat(start), date.fromisoformat(end)
    return ClientRequest(
        id=id, employee=employee, role=role, type=type, status=status,
        start_date=start_date, end_date=end_date, hours=hours, submitted=submitted,
        dates=format_date_range(start_date, end_date),
    )


INITIAL_LIST_REQUESTS = [
    _seed("req-kayley", "Kayley Manfredi", "Employee", "PTO", PENDING, "2025-11-11", "2025-11-12", 8, "Oct 23"),
]

INITIAL_ACTIVITY = [
    Activity(id="act-approved", type="Approved", detail="Chris Manfredi approved 8 hrs WFH", meta="2h ago"),
]

INITIAL_CALENDAR_REQUESTS = [
    _seed("kayley-pto", "Kayley Manfredi", "Product Manager", "PTO", APPROVED, "2025-01-11", "2025-01-12"),
    _seed("jordan-wfh", "Jordan Lee", "Engineering Manager", "WFH", APPROVED, "2025-03-04", "2025-03-08"),
    _seed("priya-sick", "Priya Patel", "QA Analyst", "Sick", APPROVED, "2025-05-20", "2025-05-22"),
    _seed("nina-pto", "Nina Chen", "Customer Success Lead", "PTO", PENDING, "2025-07-01", "2025-07-05"),
    _seed("omar-wfh", "Omar Hassan", "People Operations", "WFH", DENIED, "2025-09-09", "2025-09-10"),
    _seed("alex-fall-pto", "Alex Wilson", "Product Designer", "PTO", APPROVED, "2025-10-07", "2025-10-10"),
    _seed("nina-autumn-pto", "Nina Chen", "Customer Success Lead", "PTO", PENDING, "2025-10-21", "2025-10-24"),
    _seed("omar-nov-pto", "Omar Hassan", "People Operations", "PTO", APPROVED, "2025-11-05", "2025-11-07"),
    _seed("priya-holiday-pto", "Priya Patel", "QA Analyst", "PTO", PENDING, "2025-11-18", "2025-11-21"),
    _seed("sofia-pto", "Sofia Martinez", "Senior Account Executive", "PTO", APPROVED, "2025-11-24", "2025-11-29"),
]


def success_message(employee: str, status: str, actor: str) -> str:
    return f"{employee} marked as {status.lower()} by {actor}."


class RequestListState:
    def __init__(
        self,
        user: Optional[SignedInUser] = None,
        api: Optional[TimeOffApiClient] = None,
        store: Optional[SnapshotStore] = None,
        initial: Iterable[ClientRequest] = INITIAL_LIST_REQUESTS,
        today: Optional[Callable[[], date]] = None,
    ):
        self.user = user
        self.api = api
        self.store = store or default_store()
        self.requests: List[ClientRequest] = [r.model_copy() for r in initial]
        self.activity: List[Activity] = [a.model_copy() for a in INITIAL_ACTIVITY]
        self.feedback: Optional[str] = None
        self._today = today or date.today
        self._etag: Optional[str] = None

    @property
    def pending_count(self) -> int:
        return sum(1 for r in self.requests if r.status == PENDING)

    def get(self, request_id: str) -> Optional[ClientRequest]:
        return next((r for r in self.requests if r.id == request_id), None)

    def add_activity(self, type: str, detail: str, meta: str = "Just now"):
        entry = Activity(id=_generate_id(), type=type, detail=detail, meta=meta)
        self.activity = [entry] + self.activity[:MAX_ACTIVITY_ENTRIES - 1]

    def refresh(self) -> bool:
        """Replace local entries with the server's list. False when already current."""
        if self.api is None:
            return False
        result = self.api.fetch_requests(self._etag)
        if result is None:
            return False
        self._etag, views = result
        self.requests = [ClientRequest.from_view(v) for v in views]
        return True

    def submit(self, start_date: str, end_date: str = "", type: str = "PTO", hours="8", note: str = "") -> str:
        if self.user is None:
            return MESSAGES["submit_auth_required"]

        start = parse_iso_date(start_date)
        if start is None:
            return MESSAGES["start_date_required"]
        end = parse_iso_date(end_date) if end_date else start
        if end is None or end < start:
            return MESSAGES["end_date_invalid"]
        try:
            hours_value = float(hours)
        except (TypeError, ValueError):
            return MESSAGES["hours_invalid"]
        if not math.isfinite(hours_value) or hours_value <= 0:
            return MESSAGES["hours_invalid"]
        if not hours_value.is_integer():
            return MESSAGES["hours_whole"]

        trimmed_note = note.strip() or None
        if self.api is not None:
            try:
                view = self.api.submit_request(type, start, end, int(hours_value), trimmed_note)
            except ClientError as exc:
                return exc.message
            entry = ClientRequest.from_view(view)
        else:
            entry = ClientRequest(
                id=_generate_id(),
                employee=self.user.display_name,
                role=self.user.role or "Team Member",
                type=type,
                status=PENDING,
                start_date=start,
                end_date=end,
                hours=int(hours_value),
                notes=trimmed_note,
                submitted=format_short_date(self._today()),
                dates=format_date_range(start, end),
            )

        self.requests.insert(0, entry)
        self.add_activity(
            "Request submitted",
            f"{self.user.display_name} submitted {type} time off ({entry.dates_label})",
        )
        return MESSAGES["submitted"]

    def apply_manager_action(self, request_id: str, status: str) -> str:
        """Approve/deny through the API; local state changes only once the server agrees."""
        if self.user is None:
            self.feedback = MESSAGES["auth_required"]
            return self.feedback
        if not self.user.can_review:
            self.feedback = MESSAGES["missing_permission"]
            return self.feedback
        if self.api is None:
            self.feedback = UPDATE_FAILED
            return self.feedback

        try:
            confirmed = self.api.update_status(request_id, status)
        except ClientError as exc:
            self.feedback = exc.message
            return self.feedback

        updated = self._apply_status(request_id, confirmed.status)
        if updated is None:
            self.feedback = MESSAGES["request_update_error"]
            return self.feedback

        self.persist_snapshots(changed=updated)
        self.feedback = success_message(updated.employee, confirmed.status, self.user.display_name)
        return self.feedback

    def _apply_status(self, request_id: str, status: str) -> Optional[ClientRequest]:
        for index, request in enumerate(self.requests):
            if request.id != request_id:
                continue
            if request.status == status:
                return request
            updated = request.model_copy(update={"status": status})
            self.requests[index] = updated
            self.add_activity(status, f"{updated.employee} {status.lower()} {updated.type} ({updated.dates_label})")
            return updated
        return None

    def persist_snapshots(self, changed: Optional[ClientRequest] = None) -> int:
        snapshots = [r.to_snapshot() for r in self.requests if r.status == APPROVED]
        # A denial still has to reach the calendar, which may hold an older approved copy
        if changed is not None and changed.status != APPROVED:
            snapshots.append(changed.to_snapshot())
        return self.store.merge(snapshots)


class CalendarState:
    def __init__(
        self,
        user: Optional[SignedInUser] = None,
        api: Optional[TimeOffApiClient] = None,
        store: Optional[SnapshotStore] = None,
        initial: Iterable[ClientRequest] = INITIAL_CALENDAR_REQUESTS,
    ):
        self.user = user
        self.api = api
        self.store = store or default_store()
        self._seed = {r.id: r.model_copy() for r in initial}
        self._dynamic: Dict[str, ClientRequest] = {}
        self.feedback: Optional[str] = None
        self._unsubscribe = self.store.subscribe(self._on_store_change)
        self.reload()

    def _on_store_change(self, version: int):
        logger.debug(f"Snapshot store moved to version {version}; reloading calendar")
        self.reload()

    def reload(self):
        dynamic = {}
        for snapshot in self.store.read():
            request = ClientRequest.from_snapshot(snapshot)
            if request is not None:
                dynamic[request.id] = request
        self._dynamic = dynamic

    def close(self):
        self._unsubscribe()

    @property
    def requests(self) -> List[ClientRequest]:
        combined = dict(self._seed)
        combined.update(self._dynamic)
        return list(combined.values())

    def get(self, request_id: str) -> Optional[ClientRequest]:
        return self._dynamic.get(request_id) or self._seed.get(request_id)

    def years(self) -> List[int]:
        return sorted({y for r in self.requests for y in (r.start_date.year, r.end_date.year)})

    def requests_for_year(self, year: int) -> List[ClientRequest]:
        return [r for r in self.requests if year in (r.start_date.year, r.end_date.year)]

    def day_index(self) -> Dict[str, List[ClientRequest]]:
        return build_day_index(self.requests)

    def summary_by_status(self, year: int) -> Dict[str, int]:
        return summarize_by_status(self.requests_for_year(year))

    def month_matrix(self, year: int, month: int):
        return build_month_matrix(year, month)

    def change_status(self, request_id: str, status: str) -> str:
        if self.user is None:
            self.feedback = MESSAGES["auth_required"]
            return self.feedback
        if not self.user.can_review:
            self.feedback = MESSAGES["missing_permission"]
            return self.feedback

        target = self.get(request_id)
        if target is None:
            self.feedback = MESSAGES["request_update_error"]
            return self.feedback
        if target.status == status:
            self.feedback = f"Request is already marked as {status.lower()}."
            return self.feedback

        if self.api is not None:
            try:
                self.api.update_status(request_id, status)
            except ClientError as exc:
                self.feedback = exc.message
                return self.feedback

        updated = target.model_copy(update={
            "status": status,
            "dates": target.dates or format_iso_date_range_label(target.start_date, target.end_date),
        })
        self._dynamic[updated.id] = updated
        self.store.upsert(updated.to_snapshot())
        self.feedback = success_message(updated.employee, status, self.user.display_name)
        return self.feedback
