"""Tests for runtime types: container naming, request models, signals."""

import pytest
from pydantic import ValidationError

from taskhost.execution.runtimes._types import (
    CapabilityReport,
    CreateRequest,
    HookKind,
    IndexRequest,
    PostStart,
    PreStop,
    RestoreCause,
    RestoreRequest,
    TaskStatus,
    TerminateCause,
    hook_path,
    index_container_name,
    run_container_name,
)


class TestContainerNaming:
    def test_index_name(self):
        assert index_container_name("abc123") == "task-index-abc123"

    def test_run_name(self):
        assert run_container_name("run_9") == "task-run-run_9"

    def test_naming_is_deterministic(self):
        assert run_container_name("run_1") == run_container_name("run_1")
        assert index_container_name("xyz") == index_container_name("xyz")

    @pytest.mark.parametrize(
        "left,right",
        [("run_1", "run_2"), ("a", "b"), ("run_1", "run_10"), ("x", "X")],
    )
    def test_distinct_run_ids_give_distinct_names(self, left, right):
        assert run_container_name(left) != run_container_name(right)

    def test_index_and_run_namespaces_do_not_collide(self):
        ids = ["abc", "run_9", "task-run-x", "index-1", ""]
        index_names = {index_container_name(i) for i in ids}
        run_names = {run_container_name(i) for i in ids}
        assert index_names.isdisjoint(run_names)


class TestRequests:
    def test_index_request_by_field_name(self):
        req = IndexRequest(
            image_ref="myimg:1",
            short_code="abc123",
            api_key="tr_secret",
            api_url="https://api.example.com",
            env_id="env_1",
        )
        assert req.container_name == "task-index-abc123"

    def test_index_request_from_coordinator_payload(self):
        req = IndexRequest.model_validate({
            "imageRef": "myimg:1",
            "shortCode": "abc123",
            "apiKey": "tr_secret",
            "apiUrl": "https://api.example.com",
            "envId": "env_1",
        })
        assert req.image_ref == "myimg:1"
        assert req.short_code == "abc123"

    def test_redacted_masks_api_key(self):
        req = IndexRequest(
            image_ref="myimg:1",
            short_code="abc123",
            api_key="tr_secret",
            api_url="https://api.example.com",
            env_id="env_1",
        )
        redacted = req.redacted()
        assert redacted["api_key"] == "***"
        assert "tr_secret" not in str(redacted)

    def test_create_request_container_name(self):
        req = CreateRequest(image="myimg:1", env_id="env_1", run_id="run_9")
        assert req.container_name == "task-run-run_9"

    def test_restore_request_from_payload(self):
        req = RestoreRequest.model_validate({"runId": "run_9", "checkpointRef": "cp_1"})
        assert req.run_id == "run_9"
        assert req.checkpoint_ref == "cp_1"
        assert req.container_name == "task-run-run_9"

    def test_empty_identifier_rejected(self):
        with pytest.raises(ValidationError):
            CreateRequest(image="myimg:1", env_id="env_1", run_id="")

    def test_missing_field_rejected(self):
        with pytest.raises(ValidationError):
            RestoreRequest.model_validate({"runId": "run_9"})

    def test_requests_are_immutable(self):
        req = CreateRequest(image="myimg:1", env_id="env_1", run_id="run_9")
        with pytest.raises(ValidationError):
            req.run_id = "other"


class TestSignals:
    def test_post_start_defaults(self):
        signal = PostStart()
        assert signal.kind == HookKind.POST_START
        assert signal.cause == RestoreCause.RESTORE

    def test_pre_stop_defaults(self):
        signal = PreStop()
        assert signal.kind == HookKind.PRE_STOP
        assert signal.cause == TerminateCause.TERMINATE

    def test_hook_paths_are_bit_exact(self):
        assert hook_path(PostStart()) == "/postStart?cause=restore"
        assert hook_path(PreStop()) == "/preStop?cause=terminate"


class TestResults:
    def test_capability_report_to_dict(self):
        report = CapabilityReport(can_checkpoint=False, will_simulate=True)
        assert report.to_dict() == {"can_checkpoint": False, "will_simulate": True}

    def test_task_status_placeholder(self):
        status = TaskStatus(run_id="run_9", container_name="task-run-run_9")
        assert status.state == "unknown"
        assert status.to_dict()["container_name"] == "task-run-run_9"
