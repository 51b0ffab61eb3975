"""Pydantic models for the REST server."""

from __future__ import annotations

from pydantic import BaseModel, Field

from multisite_signup_approval.approval.store import SiteRequestRecord
from multisite_signup_approval.approval.workflow.state_machine import RequestStatus


class SubmitRequestBody(BaseModel):
    user_id: int = Field(gt=0)
    site_name: str = Field(default="", max_length=200)


class ApiSiteRequest(BaseModel):
    request_id: str
    requester_id: int
    requested_name: str
    domain: str
    status: RequestStatus
    created_at: str
    updated_at: str

    decided_at: str | None = None
    decided_by: str | None = None
    site_id: int | None = None
    site_url: str | None = None

    @classmethod
    def from_record(cls, record: SiteRequestRecord) -> ApiSiteRequest:
        return cls.model_validate(record.model_dump(exclude={"claim_token", "claimed_at"}))


class ApiError(BaseModel):
    code: str
    message: str
