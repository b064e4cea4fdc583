# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import employee, time_off_request, time_off_approval

# Explicit class exports for cleaner imports
from .employee import Employee
from .time_off_request import RequestStatus, TimeOffRequest
from .time_off_approval import TimeOffApproval

__all__ = [
    "Employee",
    "RequestStatus",
    "TimeOffRequest",
    "TimeOffApproval",
]
