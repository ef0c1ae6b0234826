"""HTTP routes: the admission endpoint, liveness and Prometheus metrics."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from kubechronicle.admission.handler import AdmissionHandler

router = APIRouter()


@router.post("/validate")
async def validate(request: Request) -> JSONResponse:
    """Decide one AdmissionReview.

    The raw body goes straight to the handler so that a malformed envelope
    still produces an allowed AdmissionReview rather than a 422.
    """
    handler: AdmissionHandler = request.app.state.handler
    body = await request.body()
    decision = handler.review(body)
    return JSONResponse(content=decision.to_review())


@router.get("/health")
async def health() -> PlainTextResponse:
    return PlainTextResponse("OK")


@router.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
