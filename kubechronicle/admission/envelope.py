"""AdmissionReview (admission.k8s.io/v1) request and response shapes.

Only the fields kubechronicle reads are modelled; everything else in the
envelope is ignored. ``object`` and ``oldObject`` are kept as raw decoded
JSON so the request decoder can report a malformed object against the
request UID instead of failing the whole envelope.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

ADMISSION_API_VERSION = "admission.k8s.io/v1"
ADMISSION_KIND = "AdmissionReview"


class EnvelopeError(Exception):
    """Raised when the request body is not a usable v1 AdmissionReview.

    ``uid`` is filled in when the request UID could still be recovered from
    the body, so the fail-open response can be correlated by the API server.
    """

    def __init__(self, message: str, uid: str = "") -> None:
        super().__init__(message)
        self.uid = uid


class _EnvelopeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class GroupVersionKind(_EnvelopeModel):
    group: str = ""
    version: str = ""
    kind: str = ""


class UserInfo(_EnvelopeModel):
    username: str = ""
    uid: str = ""
    groups: list[str] = Field(default_factory=list)
    extra: dict[str, list[str]] = Field(default_factory=dict)


class AdmissionRequest(_EnvelopeModel):
    uid: str
    kind: GroupVersionKind = Field(default_factory=GroupVersionKind)
    name: str = ""
    namespace: str = ""
    operation: str = ""
    user_info: UserInfo = Field(default_factory=UserInfo, alias="userInfo")
    obj: Any = Field(default=None, alias="object")
    old_obj: Any = Field(default=None, alias="oldObject")
    dry_run: bool = Field(default=False, alias="dryRun")


class AdmissionReview(_EnvelopeModel):
    api_version: str = Field(default="", alias="apiVersion")
    kind: str = ""
    request: AdmissionRequest | None = None


class Status(_EnvelopeModel):
    message: str = ""
    reason: str | None = None
    code: int | None = None


class AdmissionResponse(_EnvelopeModel):
    uid: str = ""
    allowed: bool
    status: Status | None = None


class AdmissionReviewResponse(_EnvelopeModel):
    api_version: str = Field(default=ADMISSION_API_VERSION, alias="apiVersion")
    kind: str = ADMISSION_KIND
    response: AdmissionResponse

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def decode_review(body: bytes) -> AdmissionRequest:
    """Parse *body* and return its request.

    Raises:
        EnvelopeError: malformed JSON, wrong apiVersion or no request.
    """
    try:
        raw = json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise EnvelopeError(f"failed to unmarshal AdmissionReview: {exc}") from exc

    uid = _recover_uid(raw)
    try:
        review = AdmissionReview.model_validate(raw)
    except ValidationError as exc:
        raise EnvelopeError(f"invalid AdmissionReview: {exc.error_count()} validation error(s)", uid) from exc

    if review.api_version != ADMISSION_API_VERSION:
        raise EnvelopeError(
            f"unsupported API version: {review.api_version}, expected {ADMISSION_API_VERSION}",
            uid,
        )
    if review.request is None:
        raise EnvelopeError("AdmissionReview has no request", uid)
    return review.request


def _recover_uid(raw: Any) -> str:
    if not isinstance(raw, dict):
        return ""
    request = raw.get("request")
    if not isinstance(request, dict):
        return ""
    uid = request.get("uid")
    return uid if isinstance(uid, str) else ""
