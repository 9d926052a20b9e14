import pytest

from clevert.services.runner import Runner
from clevert.services.runner_registry import RunnerRegistry
from tests.common.stub_actions import StubExecutor, make_entries, wait_until


async def _finished_runner() -> Runner:
    runner = Runner([], StubExecutor(), parallel=1)
    runner.start()
    await runner.wait()
    return runner


def test_handles_are_fresh_and_increasing():
    registry = RunnerRegistry()
    handles = [registry.register(Runner([], StubExecutor())) for _ in range(5)]
    assert handles == sorted(handles)
    assert len(set(handles)) == 5
    assert len(registry) == 5


def test_lookup_unknown_handle_returns_none():
    registry = RunnerRegistry()
    assert registry.get(12345) is None


def test_lookup_returns_registered_runner():
    registry = RunnerRegistry()
    runner = Runner([], StubExecutor(), title="batch")
    handle = registry.register(runner)
    assert registry.get(handle) is runner
    assert registry.items() == [(handle, runner)]


@pytest.mark.asyncio
async def test_evict_terminal_keeps_running_and_recent_runners():
    registry = RunnerRegistry()
    old = await _finished_runner()
    recent = await _finished_runner()

    executor = StubExecutor(lambda index, entry: {"hold": True})
    running = Runner(make_entries(1), executor, parallel=1)
    running.start()
    await wait_until(lambda: len(executor.calls) == 1)

    old_handle = registry.register(old)
    recent_handle = registry.register(recent)
    running_handle = registry.register(running)
    old.ended_at -= 600

    evicted = registry.evict_terminal(retention_seconds=300)

    assert evicted == 1
    assert registry.get(old_handle) is None
    assert registry.get(recent_handle) is recent
    assert registry.get(running_handle) is running

    executor.controllers[0].release()
    await running.wait()


@pytest.mark.asyncio
async def test_handles_are_not_reused_after_eviction():
    registry = RunnerRegistry()
    runner = await _finished_runner()
    first = registry.register(runner)
    registry.evict_terminal(retention_seconds=0)
    second = registry.register(await _finished_runner())
    assert second > first


@pytest.mark.asyncio
async def test_cleanup_respects_disabled_retention(override_config):
    override_config("RUNNER", "RETENTION_MINUTES", 0)
    registry = RunnerRegistry()
    runner = await _finished_runner()
    runner.ended_at -= 10 ** 6
    handle = registry.register(runner)

    await registry.cleanup_expired_runners()
    assert registry.get(handle) is runner


@pytest.mark.asyncio
async def test_cleanup_evicts_expired_runners(override_config):
    override_config("RUNNER", "RETENTION_MINUTES", 1)
    registry = RunnerRegistry()
    runner = await _finished_runner()
    runner.ended_at -= 120
    handle = registry.register(runner)

    await registry.cleanup_expired_runners()
    assert registry.get(handle) is None


def test_scheduler_disabled_when_interval_not_positive(override_config):
    override_config("RUNNER", "CLEANUP_INTERVAL_MINUTES", 0)
    registry = RunnerRegistry()
    registry.start()
    assert registry.scheduler is None
    registry.shutdown()


@pytest.mark.asyncio
async def test_scheduler_starts_and_shuts_down(override_config):
    override_config("RUNNER", "CLEANUP_INTERVAL_MINUTES", 5)
    override_config("RUNNER", "RETENTION_MINUTES", 5)
    registry = RunnerRegistry()
    registry.start()
    try:
        assert registry.scheduler is not None
        assert len(registry.scheduler.get_jobs()) == 1
    finally:
        registry.shutdown()
    assert registry.scheduler is None
