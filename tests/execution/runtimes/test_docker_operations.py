"""Tests for DockerTaskOperations (index/create/restore/delete/get)."""

import pytest
from structlog.testing import capture_logs

from taskhost.core.errors import ErrorCategory, LaunchInfraError, LifecycleHookError, RuntimeCommandError
from taskhost.execution.runtimes import Reply
from taskhost.execution.runtimes._types import (
    CreateRequest,
    DeleteRequest,
    GetRequest,
    IndexRequest,
    RestoreRequest,
    TaskStatus,
)

RUN = "task-run-run_9"
PROBE = [("criu", "--version"), ("docker", "checkpoint")]


def _index_request(**overrides):
    data = {
        "image_ref": "myimg:1",
        "short_code": "abc123",
        "api_key": "tr_secret",
        "api_url": "https://api.example.com",
        "env_id": "env_1",
    }
    data.update(overrides)
    return IndexRequest(**data)


class TestCapabilities:
    @pytest.mark.asyncio
    async def test_every_operation_probes_first(self, make_ops, port_logs):
        ops = make_ops()
        await ops.get(GetRequest(run_id="run_9"))
        assert port_logs.calls[:2] == PROBE

    @pytest.mark.asyncio
    async def test_probe_runs_once_across_operations(self, make_ops, port_logs):
        ops = make_ops()
        await ops.create(CreateRequest(image="myimg:1", env_id="env_1", run_id="run_9"))
        await ops.restore(RestoreRequest(run_id="run_9", checkpoint_ref="cp_1"))
        await ops.delete(DeleteRequest(run_id="run_9"))
        await ops.get(GetRequest(run_id="run_9"))

        assert port_logs.count(["criu"]) == 1
        assert port_logs.count(["docker", "checkpoint"]) == 1

    @pytest.mark.asyncio
    async def test_capabilities_reflect_force_flag(self, make_ops):
        assert (await make_ops(force_simulate=True).capabilities()).will_simulate is True
        assert (await make_ops(force_simulate=False).capabilities()).will_simulate is False


class TestIndex:
    @pytest.mark.asyncio
    async def test_runs_index_container(self, make_ops, runner):
        ops = make_ops()
        await ops.index(_index_request())

        (call,) = runner.matching(["docker", "run"])
        assert "--rm" in call
        assert "--env=INDEX_TASKS=true" in call
        assert "--name=task-index-abc123" in call
        assert call[-1] == "myimg:1"

    @pytest.mark.asyncio
    async def test_non_zero_exit_does_not_raise(self, make_ops, runner):
        runner.script(["docker", "run"], Reply(exit_code=125))
        await make_ops().index(_index_request())

    @pytest.mark.asyncio
    async def test_launch_failure_propagates(self, make_ops, runner):
        runner.script(["docker", "run"], Reply(raises=LaunchInfraError("Command not found: docker")))
        with pytest.raises(LaunchInfraError):
            await make_ops().index(_index_request())


class TestCreate:
    @pytest.mark.asyncio
    async def test_launch_command(self, make_ops, runner):
        await make_ops().create(CreateRequest(image="myimg:1", env_id="env_1", run_id="run_9"))

        (call,) = runner.matching(["docker", "run"])
        assert call == (
            "docker",
            "run",
            "--network=host",
            "--detach",
            "--env=TRIGGER_ENV_ID=env_1",
            "--env=TRIGGER_RUN_ID=run_9",
            "--env=OTEL_EXPORTER_OTLP_ENDPOINT=http://otel:4318",
            f"--env=POD_NAME={RUN}",
            "--env=COORDINATOR_HOST=10.0.0.5",
            "--env=COORDINATOR_PORT=8020",
            f"--name={RUN}",
            "myimg:1",
        )

    @pytest.mark.asyncio
    async def test_non_zero_exit_logs_diagnostics(self, make_ops, runner):
        runner.script(["docker", "run"], Reply(exit_code=125, stderr="Conflict. The container name is in use"))

        with capture_logs() as logs:
            await make_ops().create(CreateRequest(image="myimg:1", env_id="env_1", run_id="run_9"))

        (failure,) = [e for e in logs if e["event"] == "Create failed:"]
        assert failure["log_level"] == "error"
        assert failure["exit_code"] == 125
        assert "Conflict" in failure["stderr"]
        assert failure["escaped_command"].startswith("docker run --network=host --detach")

    @pytest.mark.asyncio
    async def test_launch_failure_propagates(self, make_ops, runner):
        runner.script(["docker", "run"], Reply(raises=LaunchInfraError("Command not found: docker")))
        with pytest.raises(LaunchInfraError):
            await make_ops().create(CreateRequest(image="myimg:1", env_id="env_1", run_id="run_9"))


class TestRestoreSimulated:
    @pytest.mark.asyncio
    async def test_unpause_then_post_start(self, make_ops, port_logs):
        await make_ops(force_simulate=True).restore(RestoreRequest(run_id="run_9", checkpoint_ref="cp_1"))

        unpause = port_logs.index_of(["docker", "unpause", RUN])
        logs = port_logs.index_of(["docker", "logs", RUN])
        hook = port_logs.index_of(["docker", "exec", RUN])

        assert 0 <= unpause < logs < hook
        assert port_logs.count(["docker", "start"]) == 0
        assert port_logs.matching(["docker", "exec"])[0][-1] == "127.0.0.1:4000/postStart?cause=restore"

    @pytest.mark.asyncio
    async def test_logs_simulation(self, make_ops, port_logs):
        with capture_logs() as logs:
            await make_ops(force_simulate=True).restore(RestoreRequest(run_id="run_9", checkpoint_ref="cp_1"))
        assert any(e["event"] == "Simulating restore" for e in logs)

    @pytest.mark.asyncio
    async def test_unpause_failure_sends_no_hook(self, make_ops, port_logs):
        port_logs.script(["docker", "unpause"], Reply(exit_code=1, stderr="Container is not paused"))

        with pytest.raises(RuntimeCommandError) as exc_info:
            await make_ops(force_simulate=True).restore(RestoreRequest(run_id="run_9", checkpoint_ref="cp_1"))

        err = exc_info.value
        assert err.category == ErrorCategory.RUNTIME
        assert err.exit_code == 1
        assert err.context.run_id == "run_9"
        assert err.context.container_name == RUN
        assert "docker unpause command failed" in str(err)
        assert port_logs.count(["docker", "exec"]) == 0


class TestRestoreFromCheckpoint:
    @pytest.mark.asyncio
    async def test_start_from_checkpoint_then_post_start(self, make_ops, port_logs):
        await make_ops(force_simulate=False).restore(RestoreRequest(run_id="run_9", checkpoint_ref="cp_1"))

        start = port_logs.index_of(["docker", "start", "--checkpoint=cp_1", RUN])
        hook = port_logs.index_of(["docker", "exec", RUN])

        assert 0 <= start < hook
        assert port_logs.count(["docker", "unpause"]) == 0

    @pytest.mark.asyncio
    async def test_start_failure_sends_no_hook(self, make_ops, port_logs):
        port_logs.script(["docker", "start"], Reply(exit_code=1, stderr="checkpoint not found"))

        with pytest.raises(RuntimeCommandError, match="docker start command failed"):
            await make_ops(force_simulate=False).restore(RestoreRequest(run_id="run_9", checkpoint_ref="cp_1"))

        assert port_logs.count(["docker", "exec"]) == 0

    @pytest.mark.asyncio
    async def test_missing_criu_falls_back_to_unpause(self, make_ops, port_logs):
        port_logs.script(["criu"], Reply(raises=LaunchInfraError("Command not found: criu")))

        await make_ops(force_simulate=False).restore(RestoreRequest(run_id="run_9", checkpoint_ref="cp_1"))

        assert port_logs.count(["docker", "unpause", RUN]) == 1
        assert port_logs.count(["docker", "start"]) == 0


class TestRestoreHookFailure:
    @pytest.mark.asyncio
    async def test_post_start_exhaustion_raises(self, make_ops, port_logs, sleeps):
        port_logs.script(["docker", "exec"], Reply(exit_code=1))

        with pytest.raises(LifecycleHookError) as exc_info:
            await make_ops().restore(RestoreRequest(run_id="run_9", checkpoint_ref="cp_1"))

        assert exc_info.value.attempts == 7
        assert len(sleeps) == 6
        # The container stays resumed
        assert port_logs.count(["docker", "unpause"]) == 1

    @pytest.mark.asyncio
    async def test_no_port_in_logs(self, make_ops, runner):
        runner.script(["docker", "logs"], Reply(stdout="booting\n"))

        with pytest.raises(LifecycleHookError):
            await make_ops().restore(RestoreRequest(run_id="run_9", checkpoint_ref="cp_1"))

        assert runner.count(["docker", "exec"]) == 0


class TestDelete:
    @pytest.mark.asyncio
    async def test_sends_one_pre_stop(self, make_ops, port_logs):
        with capture_logs() as logs:
            await make_ops().delete(DeleteRequest(run_id="run_9"))

        calls = port_logs.matching(["docker", "exec", RUN])
        assert len(calls) == 1
        assert calls[0][-1] == "127.0.0.1:4000/preStop?cause=terminate"
        assert any(e["event"] == "noop: delete" for e in logs)

    @pytest.mark.asyncio
    async def test_container_is_not_removed(self, make_ops, port_logs):
        await make_ops().delete(DeleteRequest(run_id="run_9"))
        assert port_logs.count(["docker", "rm"]) == 0
        assert port_logs.count(["docker", "stop"]) == 0
        assert port_logs.count(["docker", "kill"]) == 0

    @pytest.mark.asyncio
    async def test_pre_stop_failure_is_not_retried(self, make_ops, port_logs, sleeps):
        port_logs.script(["docker", "exec"], Reply(exit_code=1))

        with pytest.raises(LifecycleHookError) as exc_info:
            await make_ops().delete(DeleteRequest(run_id="run_9"))

        assert exc_info.value.kind == "preStop"
        assert port_logs.count(["docker", "exec"]) == 1
        assert sleeps == []


class TestGet:
    @pytest.mark.asyncio
    async def test_returns_placeholder(self, make_ops, runner):
        with capture_logs() as logs:
            status = await make_ops().get(GetRequest(run_id="run_9"))

        assert status == TaskStatus(run_id="run_9", container_name=RUN, state="unknown")
        assert runner.calls == PROBE
        assert any(e["event"] == "noop: get" for e in logs)
