"""Unit tests for runner/worker messages."""

from gobin.runner.messages import RunRequest, WorkerEvent, WorkerEventType


def test_terminal_event_types():
    assert {t for t in WorkerEventType if t.is_terminal} == {
        WorkerEventType.COMPLETED,
        WorkerEventType.FAILED,
        WorkerEventType.TERMINATED,
    }


def test_worker_event_defaults():
    event = WorkerEvent(WorkerEventType.OUTPUT, generation=3, message="hello", stream="stdout")

    assert event.exit_code is None
    assert event.timestamp > 0


def test_run_request_defaults():
    request = RunRequest(cmd="agent", cwd="/srv/bin")

    assert request.args == []
    assert request.heap_multiplier == 4096
    assert not request.legacy_timing
    assert not request.terminate


def test_terminate_request():
    request = RunRequest.terminate_request()
    assert request.terminate is True
    assert request.cmd == ""
