"""Tests for the deploy task pipeline."""

from __future__ import annotations

import pytest

from deploy_notifier.core.pipeline import Pipeline


@pytest.fixture
def pipeline():
    return Pipeline()


@pytest.mark.asyncio
async def test_hooks_run_around_task_body(pipeline):
    calls: list[str] = []

    async def async_before() -> None:
        calls.append("before-async")

    pipeline.before("deploy", lambda: calls.append("before"), async_before)
    pipeline.after("deploy", lambda: calls.append("after"))
    pipeline.task("deploy", lambda: calls.append("body"))

    await pipeline.invoke("deploy")

    assert calls == ["before", "before-async", "body", "after"]


@pytest.mark.asyncio
async def test_task_decorator_registers_body(pipeline):
    calls: list[str] = []

    @pipeline.task("deploy:update_code")
    async def update_code() -> None:
        calls.append("update")

    assert pipeline.has_task("deploy:update_code")
    await pipeline.invoke("deploy:update_code")
    assert calls == ["update"]


@pytest.mark.asyncio
async def test_marker_task_without_body_still_runs_hooks(pipeline):
    calls: list[str] = []
    pipeline.before("deploy", lambda: calls.append("before"))
    pipeline.after("deploy", lambda: calls.append("after"))

    await pipeline.invoke("deploy")

    assert calls == ["before", "after"]


@pytest.mark.asyncio
async def test_nested_tasks_run_their_own_hooks(pipeline):
    calls: list[str] = []
    pipeline.task("deploy", lambda: pipeline.invoke("deploy:update_code"))
    pipeline.before("deploy:update_code", lambda: calls.append("before-update"))
    pipeline.task("deploy:update_code", lambda: calls.append("update"))
    pipeline.after("deploy", lambda: calls.append("after-deploy"))

    await pipeline.invoke("deploy")

    assert calls == ["before-update", "update", "after-deploy"]


@pytest.mark.asyncio
async def test_failure_runs_rollbacks_newest_first(pipeline):
    calls: list[str] = []

    def register() -> None:
        pipeline.on_rollback(lambda: calls.append("first"))
        pipeline.on_rollback(lambda: calls.append("second"))

    def explode() -> None:
        raise RuntimeError("boom")

    pipeline.before("deploy", register)
    pipeline.task("deploy", explode)
    pipeline.after("deploy", lambda: calls.append("after"))

    with pytest.raises(RuntimeError, match="boom"):
        await pipeline.invoke("deploy")

    assert calls == ["second", "first"]


@pytest.mark.asyncio
async def test_rollback_runs_once_for_nested_failure(pipeline):
    calls: list[str] = []

    def explode() -> None:
        raise RuntimeError("nested")

    pipeline.before("deploy", lambda: pipeline.on_rollback(lambda: calls.append("rollback")))
    pipeline.task("deploy", lambda: pipeline.invoke("deploy:update_code"))
    pipeline.task("deploy:update_code", explode)

    with pytest.raises(RuntimeError):
        await pipeline.invoke("deploy")

    assert calls == ["rollback"]


@pytest.mark.asyncio
async def test_failing_rollback_is_logged_and_original_error_kept(pipeline, caplog):
    calls: list[str] = []

    def bad_rollback() -> None:
        raise ValueError("rollback broke")

    def register() -> None:
        pipeline.on_rollback(lambda: calls.append("good"))
        pipeline.on_rollback(bad_rollback)

    def explode() -> None:
        raise RuntimeError("deploy broke")

    pipeline.before("deploy", register)
    pipeline.task("deploy", explode)

    with pytest.raises(RuntimeError, match="deploy broke"):
        await pipeline.invoke("deploy")

    assert calls == ["good"]
    assert "Rollback step failed" in caplog.text


@pytest.mark.asyncio
async def test_successful_run_discards_rollbacks(pipeline):
    calls: list[str] = []
    pipeline.before("deploy", lambda: pipeline.on_rollback(lambda: calls.append("rollback")))

    def explode() -> None:
        raise RuntimeError("later")

    await pipeline.invoke("deploy")
    pipeline.task("other", explode)
    with pytest.raises(RuntimeError):
        await pipeline.invoke("other")

    assert calls == []


def test_on_rollback_outside_run_is_rejected(pipeline):
    with pytest.raises(RuntimeError):
        pipeline.on_rollback(lambda: None)
