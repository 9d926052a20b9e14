import asyncio
from collections import Counter

import pytest

from clevert.errors import RunnerFailedError
from clevert.models import Entry, RunnerStatus
from clevert.services.runner import Runner
from tests.common.stub_actions import StubExecutor, make_entries, wait_until


@pytest.mark.asyncio
async def test_two_entries_sequential_progress_after_completion():
    entries = [Entry.single("/in/a.wav", "/out/a.mp3"), Entry.single("/in/b.wav", "/out/b.mp3")]
    executor = StubExecutor()
    runner = Runner(entries, executor, {"bitrate": 128}, parallel=1)

    assert runner.status == RunnerStatus.PENDING
    runner.start()
    assert runner.status == RunnerStatus.RUNNING
    await runner.wait()

    progress = runner.progress()
    assert (progress.finished, progress.running, progress.amount) == (2, 0.0, 2)
    assert runner.status == RunnerStatus.COMPLETED
    assert executor.calls == entries
    assert executor.profiles[0] == {"bitrate": 128}


@pytest.mark.asyncio
async def test_empty_worklist_completes_without_invoking_executor():
    executor = StubExecutor()
    runner = Runner([], executor, parallel=3)
    runner.start()
    await runner.wait()

    progress = runner.progress()
    assert progress.finished == progress.amount == 0
    assert executor.calls == []
    assert runner.status == RunnerStatus.COMPLETED


@pytest.mark.asyncio
async def test_spawns_exactly_parallel_workers():
    runner = Runner(make_entries(2), StubExecutor(), parallel=4)
    runner.start()
    assert len(runner._workers) == 4
    await runner.wait()


@pytest.mark.asyncio
async def test_parallel_defaults_to_configured_value(override_config):
    override_config("RUNNER", "PARALLEL", 3)
    runner = Runner([], StubExecutor())
    assert runner.parallel == 3


@pytest.mark.asyncio
async def test_every_entry_dispatched_exactly_once_with_uneven_speeds():
    entries = make_entries(11)
    delays = [0.004, 0.0, 0.002, 0.0, 0.001, 0.003, 0.0, 0.0, 0.002, 0.001, 0.0]
    executor = StubExecutor(lambda index, entry: {"delay": delays[index]})
    runner = Runner(entries, executor, parallel=3)
    runner.start()
    await runner.wait()

    dispatched = Counter(entry.input.main[0] for entry in executor.calls)
    assert len(executor.calls) == len(entries)
    assert set(dispatched) == {entry.input.main[0] for entry in entries}
    assert max(dispatched.values()) == 1
    assert all(c.wait_calls == 1 for c in executor.controllers)


@pytest.mark.asyncio
async def test_dispatch_order_is_fifo_with_single_worker():
    entries = make_entries(5)
    executor = StubExecutor()
    runner = Runner(entries, executor, parallel=1)
    runner.start()
    await runner.wait()
    assert executor.calls == entries


@pytest.mark.asyncio
async def test_finished_is_monotonic_and_bounded():
    entries = make_entries(9)
    executor = StubExecutor(lambda index, entry: {"delay": 0.001 * (index % 3)})
    runner = Runner(entries, executor, parallel=2)
    runner.start()

    observed = []
    while not runner.is_terminal:
        observed.append(runner.progress().finished)
        await asyncio.sleep(0)
    observed.append(runner.progress().finished)

    assert observed == sorted(observed)
    assert max(observed) <= runner.amount
    assert observed[-1] == runner.amount


@pytest.mark.asyncio
async def test_failed_entry_does_not_block_siblings():
    entries = make_entries(3)
    executor = StubExecutor(lambda index, entry: {"fail": index == 1})
    runner = Runner(entries, executor, parallel=2)
    runner.start()

    with pytest.raises(RunnerFailedError) as excinfo:
        await runner.wait()

    assert runner.progress().finished == 3
    assert runner.status == RunnerStatus.COMPLETED
    assert len(executor.calls) == 3
    assert [f.entry for f in excinfo.value.failures] == [entries[1]]
    assert excinfo.value.failures[0].cancelled is False


@pytest.mark.asyncio
async def test_completion_waits_for_all_workers_after_a_failure():
    entries = make_entries(3)
    executor = StubExecutor(lambda index, entry: {"fail": index == 0, "hold": index == 1})
    runner = Runner(entries, executor, parallel=2)
    runner.start()

    waiter = asyncio.create_task(runner.wait())
    await wait_until(lambda: len(executor.calls) == 3)
    await asyncio.sleep(0.01)
    assert not waiter.done()

    executor.controllers[1].release()
    with pytest.raises(RunnerFailedError):
        await waiter
    assert runner.progress().finished == 3


@pytest.mark.asyncio
async def test_executor_exception_is_a_per_entry_failure():
    entries = make_entries(2)
    calls = []

    def executor(profile, entry):
        calls.append(entry)
        if entry is entries[0]:
            raise ValueError("bad profile")
        return StubExecutor()(profile, entry)

    runner = Runner(entries, executor, parallel=1)
    runner.start()
    with pytest.raises(RunnerFailedError) as excinfo:
        await runner.wait()

    assert calls == entries
    assert runner.progress().finished == 2
    assert isinstance(excinfo.value.failures[0].error, ValueError)


@pytest.mark.asyncio
async def test_running_sums_live_controller_progress_unclamped():
    entries = make_entries(2)
    values = [0.25, 1.5]
    executor = StubExecutor(lambda index, entry: {"hold": True, "progress_value": values[index]})
    runner = Runner(entries, executor, parallel=2)
    runner.start()
    await wait_until(lambda: len(executor.calls) == 2)
    await asyncio.sleep(0)

    progress = runner.progress()
    assert progress.running == pytest.approx(1.75)
    assert progress.finished == 0

    for controller in executor.controllers:
        controller.release()
    await runner.wait()
    assert runner.progress().running == 0.0


@pytest.mark.asyncio
async def test_stop_is_idempotent_and_marks_runner_stopped():
    entries = make_entries(2)
    executor = StubExecutor(lambda index, entry: {"hold": True})
    runner = Runner(entries, executor, parallel=2)
    runner.start()
    await wait_until(lambda: len(executor.calls) == 2)
    await asyncio.sleep(0)

    runner.stop()
    runner.stop()

    with pytest.raises(RunnerFailedError) as excinfo:
        await runner.wait()
    assert [c.stop_calls for c in executor.controllers] == [1, 1]
    assert runner.status == RunnerStatus.STOPPED
    assert all(f.cancelled for f in excinfo.value.failures)
    assert runner.progress().finished == 2


@pytest.mark.asyncio
async def test_stop_does_not_prevent_next_entry_pickup():
    entries = make_entries(2)
    executor = StubExecutor(lambda index, entry: {"hold": index == 0})
    runner = Runner(entries, executor, parallel=1)
    runner.start()
    await wait_until(lambda: len(executor.calls) == 1)
    await asyncio.sleep(0)

    runner.stop()
    with pytest.raises(RunnerFailedError) as excinfo:
        await runner.wait()

    assert executor.calls == entries
    assert executor.controllers[1].stop_calls == 0
    assert len(excinfo.value.failures) == 1
    assert runner.status == RunnerStatus.STOPPED


@pytest.mark.asyncio
async def test_stop_after_completion_is_noop():
    executor = StubExecutor()
    runner = Runner(make_entries(1), executor, parallel=1)
    runner.start()
    await runner.wait()

    runner.stop()
    assert runner.status == RunnerStatus.COMPLETED
    assert executor.controllers[0].stop_calls == 0


@pytest.mark.asyncio
async def test_wait_before_start_raises():
    runner = Runner([], StubExecutor())
    with pytest.raises(RuntimeError):
        await runner.wait()


@pytest.mark.asyncio
async def test_timing_tracks_begin_and_end():
    runner = Runner(make_entries(2), StubExecutor(), parallel=1)
    assert runner.timing().begin is None

    runner.start()
    await runner.wait()

    timing = runner.timing()
    assert timing.begin == runner.began_at
    assert timing.expected_end == runner.ended_at
    assert timing.expected_end >= timing.begin


@pytest.mark.asyncio
async def test_timing_extrapolates_while_running():
    entries = make_entries(2)
    executor = StubExecutor(lambda index, entry: {"hold": index == 1})
    runner = Runner(entries, executor, parallel=1)
    runner.start()
    await wait_until(lambda: runner.progress().finished == 1)

    timing = runner.timing()
    assert timing.expected_end is not None
    assert timing.expected_end >= timing.begin

    executor.controllers[1].release()
    await runner.wait()
