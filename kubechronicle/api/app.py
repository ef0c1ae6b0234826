"""FastAPI application factory for the kubechronicle webhook.

Usage::

    from kubechronicle.api.app import create_app

    app = create_app(handler=handler)

The factory is used by both the production bootstrap (``kubechronicle.app``)
and tests.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kubechronicle.admission.handler import AdmissionDecision, AdmissionHandler, Outcome
from kubechronicle.api.routes import router

_log = structlog.get_logger(component="api.app")

_ADMISSION_PATH = "/validate"


def create_app(handler: AdmissionHandler) -> FastAPI:
    """Create and configure the webhook application.

    Args:
        handler: Admission handler deciding every ``/validate`` request.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from kubechronicle import __version__

    app = FastAPI(
        title="kubechronicle",
        summary="Kubernetes change-tracking admission webhook",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Route handlers read dependencies from app.state.
    app.state.handler = handler

    app.include_router(router)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; the admission path still allows."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        if request.url.path == _ADMISSION_PATH:
            decision = AdmissionDecision(
                uid="",
                allowed=True,
                outcome=Outcome.FAILED_OPEN,
                message=f"kubechronicle error (allowed): {exc}",
            )
            return JSONResponse(status_code=200, content=decision.to_review())
        return JSONResponse(status_code=500, content={"error": "INTERNAL_ERROR", "detail": "An unexpected error occurred."})

    return app
