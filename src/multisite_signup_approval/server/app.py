"""FastAPI app factory.

Endpoints are intentionally thin wrappers over the workflow engine.

Run with:
    uvicorn multisite_signup_approval.server.app:create_app --factory
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from multisite_signup_approval import __version__
from multisite_signup_approval.approval.bootstrap import Components, build_components
from multisite_signup_approval.approval.config import ApprovalSettings
from multisite_signup_approval.approval.logging import configure_logging
from multisite_signup_approval.approval.state_files import CorruptStateError
from multisite_signup_approval.server.router import router

logger = logging.getLogger(__name__)


def create_app(
    settings: ApprovalSettings | None = None, *, components: Components | None = None
) -> FastAPI:
    settings = settings or ApprovalSettings()
    # Leave logging alone if the host process (uvicorn, pytest) already set it up.
    if not logging.getLogger().handlers:
        configure_logging(settings.log_level)

    app = FastAPI(
        title="Multisite Signup Approval",
        version=__version__,
        description="REST API over the site request approval workflow.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = settings
    app.state.components = components or build_components(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    @app.exception_handler(CorruptStateError)
    async def corrupt_state_handler(request: Request, exc: CorruptStateError) -> JSONResponse:
        logger.error(
            "State file is corrupt; refusing request",
            extra={"path": str(exc.path), "reason": exc.reason, "url": str(request.url)},
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": {
                    "code": "state_corrupt",
                    "message": "Request state is unreadable. Please check server logs.",
                }
            },
        )

    if not settings.admin_token:
        logger.warning("APPROVAL_ADMIN_TOKEN is not set; administrator endpoints are disabled")
    return app
