"""Synchronous admission decision pipeline.

Each request walks RECEIVED -> DECODED -> BLOCK_CHECKED -> IGNORE_CHECKED
and ends in one of four outcomes:

    DENIED      -- a block rule matched; the event is recorded with
                   ``allowed=False`` and the request is rejected.
    SKIPPED     -- an ignore rule matched; allowed, nothing recorded.
    RECORDED    -- allowed and queued for persistence/notification.
    FAILED_OPEN -- decoding or an internal error; allowed with a
                   diagnostic message, nothing recorded.

A block-rule match is the only path that denies. The only interaction with
the rest of the system is a non-blocking offer to the event queue, so the
decision never waits on storage or notification I/O.
"""

from __future__ import annotations

import dataclasses
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

import structlog

from kubechronicle.admission.decoder import DecodeError, decode_request
from kubechronicle.admission.envelope import (
    AdmissionRequest,
    AdmissionResponse,
    AdmissionReviewResponse,
    EnvelopeError,
    Status,
    decode_review,
)
from kubechronicle.models.events import ChangeEvent, generate_event_id, timestamp_from_ns
from kubechronicle.observability.logging import bind_request_context, clear_request_context
from kubechronicle.observability.metrics import admission_duration_seconds, admission_requests_total
from kubechronicle.policy.evaluator import should_block, should_ignore
from kubechronicle.policy.reloader import RuleStore

_log = structlog.get_logger(component="admission.handler")

_LATENCY_TARGET_SECONDS = 0.1
_FAIL_OPEN_PREFIX = "kubechronicle error (allowed): "


class Stage(StrEnum):
    RECEIVED = "received"
    DECODED = "decoded"
    BLOCK_CHECKED = "block_checked"
    IGNORE_CHECKED = "ignore_checked"


class Outcome(StrEnum):
    DENIED = "denied"
    SKIPPED = "skipped"
    RECORDED = "recorded"
    FAILED_OPEN = "failed_open"


class EventSink(Protocol):
    """Anything that accepts events without blocking (the event processor)."""

    def offer(self, event: ChangeEvent) -> bool: ...


@dataclass(frozen=True)
class AdmissionDecision:
    """What the webhook answers for one request."""

    uid: str
    allowed: bool
    outcome: Outcome
    message: str = ""
    event: ChangeEvent | None = None
    enqueued: bool = False

    def to_review(self) -> dict[str, Any]:
        """Render the AdmissionReview response body."""
        status: Status | None = None
        if not self.allowed:
            status = Status(message=self.message, reason="Forbidden", code=403)
        elif self.message:
            status = Status(message=self.message)
        response = AdmissionResponse(uid=self.uid, allowed=self.allowed, status=status)
        return AdmissionReviewResponse(response=response).to_wire()


class AdmissionHandler:
    """Decides admission requests against the current rule snapshot.

    Args:
        rules: Store holding the live ignore/block rule sets.
        sink:  Non-blocking consumer of recorded events. ``None`` disables
               recording entirely.
        clock: Source of nanosecond timestamps.
    """

    def __init__(
        self,
        rules: RuleStore,
        sink: EventSink | None = None,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self._rules = rules
        self._sink = sink
        self._clock = clock

    def review(self, body: bytes) -> AdmissionDecision:
        """Decide a raw AdmissionReview body. Never raises."""
        started = time.perf_counter()
        try:
            request = decode_review(body)
        except EnvelopeError as exc:
            _log.error("admission_review_decode_failed", error=str(exc))
            decision = _fail_open(exc.uid, str(exc))
        else:
            bind_request_context(request.uid)
            try:
                decision = self.decide(request)
            finally:
                clear_request_context()

        elapsed = time.perf_counter() - started
        admission_requests_total.labels(outcome=decision.outcome.value).inc()
        admission_duration_seconds.observe(elapsed)
        if elapsed > _LATENCY_TARGET_SECONDS:
            _log.warning("admission_decision_slow", elapsed_ms=round(elapsed * 1000, 2), target_ms=100)
        return decision

    def decide(self, request: AdmissionRequest) -> AdmissionDecision:
        """Run the decision pipeline for an already-decoded request."""
        stage = Stage.RECEIVED
        try:
            try:
                candidate = decode_request(request)
            except DecodeError as exc:
                _log.error("admission_request_decode_failed", error=str(exc))
                return _fail_open(request.uid, str(exc))
            stage = Stage.DECODED

            # One snapshot per decision; a concurrent reload may land either side.
            snapshot = self._rules.snapshot()

            verdict = should_block(candidate, snapshot.block)
            stage = Stage.BLOCK_CHECKED
            if verdict.blocked:
                event = self._stamp(candidate, allowed=False, block_pattern=verdict.pattern)
                _log.warning(
                    "admission_blocked",
                    event_id=event.event_id,
                    operation=event.operation.value,
                    resource_kind=event.resource_kind,
                    namespace=event.namespace,
                    name=event.name,
                    username=event.actor.username,
                    source_tool=event.source_tool.value,
                    pattern=verdict.pattern,
                )
                return AdmissionDecision(
                    uid=request.uid,
                    allowed=False,
                    outcome=Outcome.DENIED,
                    message=verdict.message,
                    event=event,
                    enqueued=self._enqueue(event),
                )

            ignored = should_ignore(candidate, snapshot.ignore)
            stage = Stage.IGNORE_CHECKED
            if ignored:
                _log.info(
                    "admission_ignored",
                    operation=candidate.operation.value,
                    resource_kind=candidate.resource_kind,
                    namespace=candidate.namespace,
                    name=candidate.name,
                )
                return AdmissionDecision(uid=request.uid, allowed=True, outcome=Outcome.SKIPPED)

            event = self._stamp(candidate, allowed=True)
            _log.info(
                "admission_recorded",
                event_id=event.event_id,
                operation=event.operation.value,
                resource_kind=event.resource_kind,
                namespace=event.namespace,
                name=event.name,
                username=event.actor.username,
                source_tool=event.source_tool.value,
                patches=len(event.diff),
            )
            return AdmissionDecision(
                uid=request.uid,
                allowed=True,
                outcome=Outcome.RECORDED,
                event=event,
                enqueued=self._enqueue(event),
            )
        except Exception as exc:  # noqa: BLE001
            _log.exception("admission_pipeline_error", stage=stage.value, error=str(exc))
            return _fail_open(request.uid, f"internal error after {stage.value}: {exc}")

    def _stamp(self, candidate: ChangeEvent, allowed: bool, block_pattern: str = "") -> ChangeEvent:
        timestamp_ns = self._clock()
        return dataclasses.replace(
            candidate,
            event_id=generate_event_id(
                candidate.operation.value, candidate.resource_kind, candidate.name, timestamp_ns
            ),
            timestamp=timestamp_from_ns(timestamp_ns),
            allowed=allowed,
            block_pattern=block_pattern,
        )

    def _enqueue(self, event: ChangeEvent) -> bool:
        if self._sink is None:
            _log.debug("change_event_not_recorded", event_id=event.event_id, reason="no sink")
            return False
        return self._sink.offer(event)


def _fail_open(uid: str, detail: str) -> AdmissionDecision:
    return AdmissionDecision(
        uid=uid,
        allowed=True,
        outcome=Outcome.FAILED_OPEN,
        message=_FAIL_OPEN_PREFIX + detail,
    )
