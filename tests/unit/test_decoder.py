"""Tests for AdmissionReview decoding and candidate event construction."""

from __future__ import annotations

import json

import pytest

from kubechronicle.admission.decoder import DecodeError, decode_request, detect_source_tool
from kubechronicle.admission.envelope import EnvelopeError, decode_review
from kubechronicle.models.events import Operation, PatchOp, PatchOperation, SourceTool

from tests.factories import deployment, make_review, review_body


def _request(**kwargs):
    return decode_review(review_body(**kwargs))


class TestDecodeReview:
    def test_valid_envelope(self) -> None:
        request = _request(uid="abc-123")
        assert request.uid == "abc-123"
        assert request.kind.kind == "Deployment"
        assert request.user_info.username == "alice@example.com"

    def test_malformed_json(self) -> None:
        with pytest.raises(EnvelopeError) as info:
            decode_review(b"{not json")
        assert info.value.uid == ""

    def test_wrong_api_version_keeps_uid(self) -> None:
        with pytest.raises(EnvelopeError, match="unsupported API version") as info:
            decode_review(review_body(api_version="admission.k8s.io/v1beta1", uid="u-9"))
        assert info.value.uid == "u-9"

    def test_missing_request(self) -> None:
        body = json.dumps({"apiVersion": "admission.k8s.io/v1", "kind": "AdmissionReview"}).encode()
        with pytest.raises(EnvelopeError, match="no request"):
            decode_review(body)

    def test_missing_uid_is_invalid(self) -> None:
        review = make_review()
        del review["request"]["uid"]
        with pytest.raises(EnvelopeError, match="invalid"):
            decode_review(json.dumps(review).encode())

    def test_non_object_body(self) -> None:
        with pytest.raises(EnvelopeError):
            decode_review(b"[1, 2]")


class TestDecodeRequest:
    def test_update_carries_filtered_diff(self) -> None:
        request = _request(
            operation="UPDATE",
            obj=deployment(replicas=3, resource_version="2"),
            old_obj=deployment(replicas=1, resource_version="1"),
        )
        event = decode_request(request)
        assert event.operation is Operation.UPDATE
        assert event.diff == (PatchOperation(PatchOp.REPLACE, "/spec/replicas", 3),)
        assert event.object_snapshot is None
        assert event.event_id == ""
        assert event.timestamp is None

    def test_create_has_no_payload(self) -> None:
        event = decode_request(_request(operation="CREATE", obj=deployment()))
        assert event.diff == ()
        assert event.object_snapshot is None

    def test_delete_snapshot_is_filtered(self) -> None:
        event = decode_request(_request(operation="DELETE", old_obj=deployment()))
        snapshot = event.object_snapshot
        assert snapshot is not None
        assert "status" not in snapshot
        assert "managedFields" not in snapshot["metadata"]
        assert snapshot["spec"]["replicas"] == 1

    def test_delete_name_falls_back_to_old_object(self) -> None:
        event = decode_request(_request(operation="DELETE", name="", old_obj=deployment()))
        assert event.name == "my-app"

    def test_lowercase_operation_accepted(self) -> None:
        assert decode_request(_request(operation="create")).operation is Operation.CREATE

    def test_connect_is_unsupported(self) -> None:
        with pytest.raises(DecodeError, match="unsupported operation"):
            decode_request(_request(operation="CONNECT"))

    def test_exec_is_not_an_admission_operation(self) -> None:
        with pytest.raises(DecodeError, match="unsupported operation"):
            decode_request(_request(operation="EXEC"))

    def test_non_object_payload_rejected(self) -> None:
        with pytest.raises(DecodeError, match="expected an object"):
            decode_request(_request(operation="CREATE", obj=["not", "a", "map"]))

    def test_update_without_old_object_has_no_diff(self) -> None:
        event = decode_request(_request(operation="UPDATE", obj=deployment()))
        assert event.diff == ()

    def test_actor_fields(self) -> None:
        request = _request(
            username="system:serviceaccount:ci:deployer",
            groups=["system:serviceaccounts", "system:serviceaccounts:ci"],
            extra={"authentication.kubernetes.io/remote-addr": ["10.0.0.7"]},
        )
        actor = decode_request(request).actor
        assert actor.username == "system:serviceaccount:ci:deployer"
        assert actor.service_account == "system:serviceaccount:ci:deployer"
        assert actor.groups == ("system:serviceaccounts", "system:serviceaccounts:ci")
        assert actor.source_ip == "10.0.0.7"

    def test_human_actor_has_no_service_account(self) -> None:
        actor = decode_request(_request()).actor
        assert actor.service_account == ""
        assert actor.source_ip == ""


class TestDetectSourceTool:
    def test_helm_label_wins(self) -> None:
        obj = {"metadata": {"labels": {"app.kubernetes.io/managed-by": "Helm"}}}
        assert detect_source_tool("system:serviceaccount:kube-system:tiller", obj) is SourceTool.HELM

    def test_controllers(self) -> None:
        assert detect_source_tool("system:kube-controller-manager", None) is SourceTool.CONTROLLER
        assert detect_source_tool("system:kube-scheduler", {}) is SourceTool.CONTROLLER
        assert detect_source_tool("system:serviceaccount:argo:app", None) is SourceTool.CONTROLLER

    def test_human_user_is_kubectl(self) -> None:
        assert detect_source_tool("alice@example.com", deployment()) is SourceTool.KUBECTL

    def test_other_system_users_unknown(self) -> None:
        assert detect_source_tool("system:node:worker-1", None) is SourceTool.UNKNOWN
        assert detect_source_tool("", None) is SourceTool.UNKNOWN
