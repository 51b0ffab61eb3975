"""Site request REST API.

All routes are mounted under `/api`. Submission is open; everything else is an
administrator action and requires the `X-Admin-Token` header.
"""

from __future__ import annotations

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from multisite_signup_approval.approval.bootstrap import Components
from multisite_signup_approval.approval.config import ApprovalSettings
from multisite_signup_approval.approval.workflow.engine import RequestWorkflowEngine
from multisite_signup_approval.approval.workflow.errors import (
    DomainExists,
    NetworkUnavailable,
    NotFound,
    NotPending,
    ProvisionFailed,
    ValidationError,
    WorkflowError,
)
from multisite_signup_approval.server.models import ApiSiteRequest, SubmitRequestBody

router = APIRouter()


def _settings(request: Request) -> ApprovalSettings:
    settings = getattr(request.app.state, "settings", None)
    if not isinstance(settings, ApprovalSettings):
        raise HTTPException(status_code=500, detail="Server settings not configured")
    return settings


def _engine(request: Request) -> RequestWorkflowEngine:
    components = getattr(request.app.state, "components", None)
    if not isinstance(components, Components):
        raise HTTPException(status_code=500, detail="Workflow engine not configured")
    return components.engine


def require_admin(
    request: Request,
    x_admin_token: str = Header(default=""),
    x_actor: str = Header(default="admin"),
) -> str:
    """Check the administrator token and return the acting admin's name."""

    expected = _settings(request).admin_token
    if not expected:
        raise HTTPException(
            status_code=503,
            detail="APPROVAL_ADMIN_TOKEN is required for administrator endpoints",
        )
    if not hmac.compare_digest(x_admin_token.encode(), expected.encode()):
        raise HTTPException(status_code=403, detail="Administrator token required")
    return x_actor.strip() or "admin"


def _workflow_http_error(e: WorkflowError) -> HTTPException:
    status = 400
    if isinstance(e, NotFound):
        status = 404
    elif isinstance(e, (NotPending, DomainExists)):
        status = 409
    elif isinstance(e, ProvisionFailed):
        status = 502
    elif isinstance(e, NetworkUnavailable):
        status = 503
    return HTTPException(
        status_code=status,
        detail={"code": e.code, "message": e.message, "request_id": e.request_id},
    )


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/requests", response_model=ApiSiteRequest, status_code=201)
def submit_request(body: SubmitRequestBody, request: Request) -> ApiSiteRequest:
    engine = _engine(request)
    try:
        request_id = engine.submit_request(body.user_id, body.site_name)
    except ValidationError as e:
        raise HTTPException(
            status_code=422, detail={"code": e.code, "message": e.message}
        ) from e
    except WorkflowError as e:
        raise _workflow_http_error(e) from e
    return ApiSiteRequest.from_record(engine.get_request(request_id))


@router.get("/requests/pending", response_model=list[ApiSiteRequest])
def list_pending(
    request: Request,
    limit: int = Query(default=200, ge=1, le=1000),
    _actor: str = Depends(require_admin),
) -> list[ApiSiteRequest]:
    return [ApiSiteRequest.from_record(r) for r in _engine(request).list_pending(limit=limit)]


@router.get("/requests/{request_id}", response_model=ApiSiteRequest)
def get_request(
    request_id: str, request: Request, _actor: str = Depends(require_admin)
) -> ApiSiteRequest:
    try:
        record = _engine(request).get_request(request_id)
    except WorkflowError as e:
        raise _workflow_http_error(e) from e
    return ApiSiteRequest.from_record(record)


@router.post("/requests/{request_id}/approve", response_model=ApiSiteRequest)
def approve_request(
    request_id: str, request: Request, actor: str = Depends(require_admin)
) -> ApiSiteRequest:
    engine = _engine(request)
    try:
        engine.approve(request_id, actor)
    except WorkflowError as e:
        raise _workflow_http_error(e) from e
    return ApiSiteRequest.from_record(engine.get_request(request_id))


@router.post("/requests/{request_id}/reject", response_model=ApiSiteRequest)
def reject_request(
    request_id: str, request: Request, actor: str = Depends(require_admin)
) -> ApiSiteRequest:
    engine = _engine(request)
    try:
        engine.reject(request_id, actor)
    except WorkflowError as e:
        raise _workflow_http_error(e) from e
    return ApiSiteRequest.from_record(engine.get_request(request_id))
