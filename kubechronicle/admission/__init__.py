"""Admission webhook core.

Submodules:
    envelope   -- AdmissionReview v1 request/response models.
    decoder    -- AdmissionRequest -> candidate ChangeEvent.
    handler    -- Synchronous decide-then-respond pipeline.
    processor  -- Bounded queue and single consumer feeding store/notifications.
"""

from kubechronicle.admission.handler import AdmissionDecision, AdmissionHandler, Outcome
from kubechronicle.admission.processor import EventProcessor

__all__ = ["AdmissionDecision", "AdmissionHandler", "EventProcessor", "Outcome"]
