from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, Response, status
from sqlalchemy.orm import Session

from trackmytime.core.auth import AuthContext
from trackmytime.database import get_db
from trackmytime.routers.auth_deps import get_auth_context, get_identity_provider, get_optional_auth_context
from trackmytime.schemas.time_off import (
    ApprovalListResponse,
    RequestEnvelope,
    RequestListResponse,
    TimeOffRequestCreate,
)
from trackmytime.services.identity import IdentityProvider
from trackmytime.services.time_off_service import TimeOffService
from trackmytime.services.transition_service import StatusTransitionService
from trackmytime.services.view_cache import ViewCache, get_view_cache

router = APIRouter(prefix="/requests", tags=["time-off"])

LIST_VIEW_PATH = "/time-off"


@router.get("", response_model=RequestListResponse)
def list_requests(
    request: Request,
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    view_cache: ViewCache = Depends(get_view_cache),
):
    etag = view_cache.etag(LIST_VIEW_PATH)
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers={"ETag": etag})

    service = TimeOffService(db, identity_provider, view_cache)
    payload = RequestListResponse(requests=service.list_views())
    response = Response(
        content=payload.model_dump_json(by_alias=True),
        media_type="application/json",
        headers={"ETag": etag},
    )
    return response


@router.post("", response_model=RequestEnvelope, status_code=status.HTTP_201_CREATED)
def submit_request(
    payload: TimeOffRequestCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    view_cache: ViewCache = Depends(get_view_cache),
):
    service = TimeOffService(db, identity_provider, view_cache)
    return RequestEnvelope(request=service.submit(auth, payload))


@router.get("/{request_id}", response_model=RequestEnvelope)
def get_request(
    request_id: str,
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    service = TimeOffService(db, identity_provider)
    return RequestEnvelope(request=service.get_view(request_id))


@router.get("/{request_id}/approvals", response_model=ApprovalListResponse)
def list_request_approvals(
    request_id: str,
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    service = TimeOffService(db, identity_provider)
    return ApprovalListResponse(approvals=service.list_approvals(request_id))


@router.patch("/{request_id}", response_model=RequestEnvelope)
def update_request_status(
    request_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    db: Session = Depends(get_db),
    auth: Optional[AuthContext] = Depends(get_optional_auth_context),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    view_cache: ViewCache = Depends(get_view_cache),
):
    """Approve or deny a request. Body: {"status": "Approved" | "Denied"}."""
    target_status = (body or {}).get("status")
    service = StatusTransitionService(db, identity_provider, view_cache)
    result = service.transition_request(auth, request_id, target_status)
    return RequestEnvelope(request=result.request, changed=result.changed)
