from trackmytime.client.api import ClientError, TimeOffApiClient
from trackmytime.client.snapshots import APPROVED_REQUESTS_STORAGE_KEY, RequestSnapshot, SnapshotStore, default_store
from trackmytime.client.state import CalendarState, ClientRequest, RequestListState, SignedInUser

__all__ = [
    "APPROVED_REQUESTS_STORAGE_KEY",
    "CalendarState",
    "ClientError",
    "ClientRequest",
    "RequestListState",
    "RequestSnapshot",
    "SignedInUser",
    "SnapshotStore",
    "TimeOffApiClient",
    "default_store",
]
