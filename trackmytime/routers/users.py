from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trackmytime.core.auth import AuthContext
from trackmytime.database import get_db
from trackmytime.routers.auth_deps import get_identity_provider, get_optional_auth_context
from trackmytime.schemas.employee import EmployeeListResponse, EmployeeResponse, SyncResponse
from trackmytime.services.employee_service import EmployeeService
from trackmytime.services.identity import IdentityProvider
from trackmytime.services.view_cache import ViewCache, get_view_cache

router = APIRouter(tags=["users"])


@router.post("/users/sync", response_model=SyncResponse, response_model_exclude_none=True)
def sync_user(
    db: Session = Depends(get_db),
    auth: Optional[AuthContext] = Depends(get_optional_auth_context),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    view_cache: ViewCache = Depends(get_view_cache),
):
    result = EmployeeService(db, identity_provider, view_cache).sync_current_user(auth)
    if result["status"] == "success":
        return SyncResponse(status="success", employee=EmployeeResponse.model_validate(result["employee"]))
    return SyncResponse(status="error", message=result["message"])


@router.get("/employees", response_model=EmployeeListResponse)
def list_employees(
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    employees = EmployeeService(db, identity_provider).list_employees()
    return EmployeeListResponse(employees=[EmployeeResponse.model_validate(e) for e in employees])
