from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from trackmytime.database import get_db
from trackmytime.routers.auth_deps import get_identity_provider
from trackmytime.schemas.time_off import CalendarResponse
from trackmytime.services.identity import IdentityProvider
from trackmytime.services.time_off_service import TimeOffService

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("", response_model=CalendarResponse)
def request_calendar(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    """Day -> requests index; narrowed to a year, or a month of it, when given."""
    service = TimeOffService(db, identity_provider)
    return CalendarResponse(days=service.calendar(year, month))
