"""
Client-local cache of request snapshots shared by the dashboard views.

The list view and the calendar view each render their own copy of
request state. They meet here: a JSON document stored under one key,
with a version counter bumped on every write and subscribers notified in
process. Another process writing the same file is picked up by
`refresh()`. Concurrent updates to one request resolve per id in favour
of the snapshot with the newer `updated_at`.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ValidationError

from trackmytime.core.config import settings

logger = logging.getLogger(__name__)

APPROVED_REQUESTS_STORAGE_KEY = "trackmytime-approved-requests"

Listener = Callable[[int], None]


class RequestSnapshot(BaseModel):
    id: str
    employee: str
    role: str
    type: str
    status: str
    start_date_iso: str
    end_date_iso: str
    hours: Optional[int] = None
    notes: Optional[str] = None
    submitted: Optional[str] = None
    dates_label: Optional[str] = None
    updated_at: Optional[datetime] = None


def _is_newer(incoming: RequestSnapshot, existing: RequestSnapshot) -> bool:
    if incoming.updated_at is None or existing.updated_at is None:
        return True
    return incoming.updated_at >= existing.updated_at


class SnapshotStore:
    def __init__(self, path: Union[str, Path, None] = None, key: str = APPROVED_REQUESTS_STORAGE_KEY):
        self.path = Path(path) if path else None
        self.key = key
        self._version = 0
        self._memory: List[RequestSnapshot] = []
        self._listeners: List[Listener] = []
        if self.path is not None:
            self._version = self._load_document()[0]

    @property
    def version(self) -> int:
        return self._version

    def _load_document(self):
        """(version, snapshots) from disk. Bad content reads as empty."""
        if self.path is None:
            return self._version, list(self._memory)
        if not self.path.exists():
            return 0, []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error(f"Failed to read cached snapshots from {self.path}: {exc}")
            return 0, []

        if not isinstance(raw, dict) or not isinstance(raw.get("snapshots"), list):
            logger.warning(f"Ignoring malformed snapshot cache at {self.path}")
            return 0, []

        snapshots = []
        for item in raw["snapshots"]:
            try:
                snapshots.append(RequestSnapshot.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed request snapshot", extra={"snapshot": item})
        version = raw.get("version") if isinstance(raw.get("version"), int) else 0
        return version, snapshots

    def read(self) -> List[RequestSnapshot]:
        return self._load_document()[1]

    def write(self, snapshots: Iterable[RequestSnapshot]) -> int:
        snapshots = list(snapshots)
        disk_version = self._load_document()[0] if self.path is not None else self._version
        self._version = max(self._version, disk_version) + 1

        if self.path is None:
            self._memory = snapshots
        else:
            document = {
                "key": self.key,
                "version": self._version,
                "snapshots": [s.model_dump(mode="json") for s in snapshots],
            }
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(json.dumps(document), encoding="utf-8")
            except OSError as exc:
                logger.error(f"Failed to cache request snapshots: {exc}")
                return self._version

        self._notify()
        return self._version

    def merge(self, incoming: Iterable[RequestSnapshot]) -> int:
        """Upsert by id; the newer updated_at wins, ties go to the incoming copy."""
        current: Dict[str, RequestSnapshot] = {s.id: s for s in self.read()}
        for snapshot in incoming:
            existing = current.get(snapshot.id)
            if existing is None or _is_newer(snapshot, existing):
                current[snapshot.id] = snapshot
        return self.write(current.values())

    def upsert(self, snapshot: RequestSnapshot) -> int:
        return self.merge([snapshot])

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def refresh(self) -> bool:
        """Pick up writes made by another process. True when the version moved."""
        if self.path is None:
            return False
        disk_version = self._load_document()[0]
        if disk_version == self._version:
            return False
        self._version = disk_version
        self._notify()
        return True

    def _notify(self):
        for listener in list(self._listeners):
            listener(self._version)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


_shared_stores: Dict[str, SnapshotStore] = {}


def default_store() -> SnapshotStore:
    """
    The store at SNAPSHOT_STORE_PATH.

    One instance per path per process, so views created without an explicit
    store see each other's writes through subscriptions.
    """
    path = settings.snapshot_store_path
    store = _shared_stores.get(path)
    if store is None:
        store = _shared_stores[path] = SnapshotStore(path)
    return store
