"""Tests for the task host error hierarchy."""

from taskhost.core.errors import (
    ConfigError,
    ErrorCategory,
    LaunchInfraError,
    LifecycleHookError,
    PortDiscoveryError,
    RuntimeCommandError,
    TaskHostError,
    UnknownOperationError,
)
from taskhost.execution.runtimes.runner import CommandResult


class TestTaskHostError:
    def test_defaults(self):
        err = TaskHostError("boom")
        assert err.message == "boom"
        assert str(err) == "boom"
        assert err.category == ErrorCategory.INTERNAL
        assert err.retryable is False
        assert err.cause is None

    def test_with_context_known_and_extra_keys(self):
        err = TaskHostError("boom").with_context(run_id="run_9", attempt_window="short")
        assert err.context.run_id == "run_9"
        assert err.context.metadata == {"attempt_window": "short"}

    def test_cause_is_chained(self):
        cause = OSError("no such file")
        err = TaskHostError("wrapped", cause=cause)
        assert err.__cause__ is cause

    def test_to_dict(self):
        err = PortDiscoveryError("no port", cause=ValueError("x")).with_context(
            container_name="task-run-run_9",
        )
        data = err.to_dict()
        assert data["error_type"] == "PortDiscoveryError"
        assert data["category"] == "HOOK"
        assert data["context"] == {"container_name": "task-run-run_9"}
        assert data["cause"] == "x"

    def test_repr(self):
        assert repr(ConfigError("bad")) == "ConfigError('bad', category=CONFIG)"


class TestSubclasses:
    def test_launch_error_is_infrastructure(self):
        err = LaunchInfraError("Command not found: docker", argv=["docker", "ps"])
        assert err.category == ErrorCategory.INFRASTRUCTURE
        assert err.retryable is True
        assert err.argv == ["docker", "ps"]

    def test_runtime_command_error_carries_result(self):
        result = CommandResult(argv=("docker", "unpause", "task-run-run_9"), exit_code=1, stderr="not paused")
        err = RuntimeCommandError("docker unpause command failed", result=result)
        assert err.exit_code == 1
        assert err.context.command == "docker unpause task-run-run_9"
        assert err.context.metadata["exit_code"] == 1
        assert err.category == ErrorCategory.RUNTIME

    def test_runtime_command_error_without_result(self):
        assert RuntimeCommandError("failed").exit_code is None

    def test_hook_error_to_dict(self):
        err = LifecycleHookError("postStart command failed after 7 attempts", kind="postStart", attempts=7)
        data = err.to_dict()
        assert data["kind"] == "postStart"
        assert data["attempts"] == 7
        assert data["category"] == "HOOK"

    def test_unknown_operation(self):
        err = UnknownOperationError("reboot")
        assert err.operation == "reboot"
        assert str(err) == "Unknown task operation: reboot"
        assert err.category == ErrorCategory.VALIDATION
