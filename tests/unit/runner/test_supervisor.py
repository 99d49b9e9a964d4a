"""
Unit tests for SupervisedRunner.

These spawn real POSIX shell scripts as the "platform binary" and check
the worker event sequence, single-flight replacement and output forwarding.
"""

import io
import sys
import threading
import time

import pytest

from gobin.platform_utils import HostIdentifier
from gobin.runner.locator import BinaryLocator
from gobin.runner.messages import WorkerEvent, WorkerEventType
from gobin.runner.supervisor import SupervisedRunner

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell scripts")

WAIT = 15.0


@pytest.fixture
def base_dir(tmp_path):
    (tmp_path / "linux-amd64").mkdir()
    return tmp_path


def write_script(base_dir, name, body):
    path = base_dir / "linux-amd64" / name
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(0o755)
    return path


class Recorder:
    """Collects (generation, type) pairs from on_event."""

    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def __call__(self, event: WorkerEvent):
        with self._lock:
            self.events.append((event.generation, event.type))

    def snapshot(self):
        with self._lock:
            return list(self.events)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def err():
    return io.StringIO()


@pytest.fixture
def runner(recorder, out, err):
    runner = SupervisedRunner(
        locator=BinaryLocator(host=HostIdentifier("linux", "amd64")),
        terminate_timeout=1.0,
        color=False,
        stdout=out,
        stderr=err,
        on_event=recorder,
    )
    yield runner
    runner.terminate()


def wait_until(predicate, timeout=WAIT):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


def test_run_completes_with_exit_code(runner, base_dir, recorder, out):
    write_script(base_dir, "agent", "echo hello\nexit 3\n")

    generation = runner.run_in_worker("agent", base_dir, log_label="[agent]")
    final = runner.wait(timeout=WAIT)

    assert generation == 1
    assert final is not None
    assert final.type == WorkerEventType.COMPLETED
    assert final.exit_code == 3
    assert recorder.snapshot() == [
        (1, WorkerEventType.STARTED),
        (1, WorkerEventType.OUTPUT),
        (1, WorkerEventType.COMPLETED),
    ]
    assert out.getvalue() == "[agent]\nhello\n"
    assert runner.initialized is True
    assert runner.is_running is False


def test_heap_flag_passed_to_child(runner, base_dir, out):
    write_script(base_dir, "agent", 'echo "$*"\n')

    runner.run_in_worker("agent", base_dir, ["a", "b"], heap_multiplier=2)
    runner.wait(timeout=WAIT)

    assert out.getvalue() == "a b --max-old-space-size=2048\n"


def test_new_run_supersedes_running_worker(runner, base_dir, recorder):
    write_script(base_dir, "agent", 'if [ "$1" = "long" ]; then sleep 30; fi\necho "done $1"\n')

    first = runner.run_in_worker("agent", base_dir, ["long"], log_label="[agent]")
    assert wait_until(lambda: runner.initialized)
    old_worker = runner.worker

    second = runner.run_in_worker("agent", base_dir, ["short"], log_label="[agent]")
    final = runner.wait(timeout=WAIT)

    assert (first, second) == (1, 2)
    assert not old_worker.is_alive()
    assert final.type == WorkerEventType.COMPLETED
    assert final.generation == 2

    events = recorder.snapshot()
    terminated = events.index((1, WorkerEventType.TERMINATED))
    started = events.index((2, WorkerEventType.STARTED))
    assert terminated < started
    assert (1, WorkerEventType.COMPLETED) not in events


def test_terminate_kills_child(runner, base_dir):
    write_script(base_dir, "agent", "sleep 30\n")

    runner.run_in_worker("agent", base_dir)
    assert wait_until(lambda: runner.initialized)

    final = runner.terminate()

    assert final is not None
    assert final.type == WorkerEventType.TERMINATED
    assert runner.worker is None
    assert runner.initialized is False


def test_terminate_without_worker_returns_none(runner):
    assert runner.terminate() is None
    assert runner.wait(timeout=0.1) is None


def test_missing_binary_fails(runner, base_dir):
    runner.run_in_worker("absent", base_dir)
    final = runner.wait(timeout=WAIT)

    assert final.type == WorkerEventType.FAILED
    assert "Failed to spawn" in final.message
    assert runner.initialized is False


def test_timing_marker_reported(runner, base_dir, out, err):
    write_script(base_dir, "agent", "printf '12.5ms+~+~+bad input' >&2\n")

    runner.run_in_worker("agent", base_dir, log_label="[agent]")
    runner.wait(timeout=WAIT)

    assert "[agent] ran in 12.50ms\n" in out.getvalue()
    assert err.getvalue() == "bad input\n"


def test_stale_generation_events_dropped(runner, recorder, out):
    runner._generation = 2

    runner._handle_event(None, WorkerEvent(WorkerEventType.OUTPUT, generation=1, message="old", stream="stdout"))
    runner._handle_event(None, WorkerEvent(WorkerEventType.COMPLETED, generation=1, exit_code=0))

    assert recorder.snapshot() == []
    assert out.getvalue() == ""
    assert runner.wait(timeout=0.1) is None


def test_completes_when_descendant_keeps_output_open(runner, base_dir, out):
    write_script(base_dir, "agent", "echo hi\nsleep 5 &\nexit 0\n")

    runner.run_in_worker("agent", base_dir)
    final = runner.wait(timeout=WAIT)

    assert final is not None
    assert final.type == WorkerEventType.COMPLETED
    assert final.exit_code == 0
    assert "hi\n" in out.getvalue()


def test_legacy_timing_display(runner, base_dir, out):
    write_script(base_dir, "agent", "printf '123.456ms+~+~+' >&2\n")

    runner.run_in_worker("agent", base_dir, log_label="[agent]", legacy_timing=True)
    runner.wait(timeout=WAIT)

    assert "[agent] ran in 123.4ms\n" in out.getvalue()
