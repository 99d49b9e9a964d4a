"""
Background worker hosting one supervised binary run.

A BinaryWorker is a thread with two queues:

    inbox   Runner -> Worker   RunRequest (spawn, or terminate)
    events  Worker -> Runner   WorkerEvent

Each worker serves exactly one run. After its terminal event
(COMPLETED, FAILED or TERMINATED) the thread exits.
"""

import _thread
import codecs
import logging
import queue
import subprocess
import threading
import time
from pathlib import Path
from typing import IO, List, Optional

from .locator import BinaryLocator
from .messages import RunRequest, WorkerEvent, WorkerEventType
from .process_utils import kill_process_tree
from .sync_runner import build_argv
from .timing import duration_display, parse_timing_payload

POLL_INTERVAL = 0.05  # Seconds between inbox checks while a child runs
READER_JOIN_TIMEOUT = 2.0


class BinaryWorker(threading.Thread):
    """Runs a platform binary off the caller's thread and reports via events."""

    def __init__(
        self,
        generation: int,
        locator: Optional[BinaryLocator] = None,
        terminate_timeout: float = 3.0,
    ):
        """Initialize the worker.

        Args:
            generation: Generation number stamped on every event
            locator: Binary locator (default: BinaryLocator())
            terminate_timeout: Grace period before the child tree is force-killed
        """
        super().__init__(name=f"gobin-worker-{generation}", daemon=True)
        self.generation = generation
        self.locator = locator or BinaryLocator()
        self.terminate_timeout = terminate_timeout
        self.inbox: "queue.Queue[RunRequest]" = queue.Queue()
        self.events: "queue.Queue[WorkerEvent]" = queue.Queue()
        self.exit_code: Optional[int] = None
        self._process: Optional[subprocess.Popen] = None
        self._terminal_sent = False

    def post(self, request: RunRequest) -> None:
        """Send a request to the worker."""
        self.inbox.put(request)

    def _emit(self, event_type: WorkerEventType, message: str = "", stream: Optional[str] = None, exit_code: Optional[int] = None) -> None:
        if event_type.is_terminal:
            if self._terminal_sent:
                return
            self._terminal_sent = True
        self.events.put(
            WorkerEvent(
                type=event_type,
                generation=self.generation,
                message=message,
                stream=stream,
                exit_code=exit_code,
            )
        )

    def run(self) -> None:
        try:
            request = self.inbox.get()
            if request.terminate:
                # Nothing spawned yet
                self._emit(WorkerEventType.TERMINATED)
                return
            self._run_request(request)
        except KeyboardInterrupt:
            _thread.interrupt_main()
            self._kill_child()
        except Exception as e:
            logging.error(f"Worker {self.generation} error: {e}", exc_info=True)
            self._kill_child()
            self._emit(WorkerEventType.FAILED, message=str(e))
        finally:
            self._emit(WorkerEventType.FAILED, message="Worker stopped without a result")
            logging.info(f"Worker {self.generation} exited with code {self.exit_code}")

    def _run_request(self, request: RunRequest) -> None:
        binary_path = self.locator.binary_path(Path(request.cwd), request.cmd)
        argv = build_argv(binary_path, request.args, request.heap_multiplier)

        try:
            if request.inherit_stdio:
                self._process = subprocess.Popen(argv, cwd=request.cwd)
            else:
                self._process = subprocess.Popen(
                    argv,
                    cwd=request.cwd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    stdin=subprocess.DEVNULL,
                )
        except OSError as e:
            logging.error(f"Worker {self.generation} failed to spawn {binary_path}: {e}")
            self._emit(WorkerEventType.FAILED, message=f"Failed to spawn {binary_path}: {e}")
            return

        logging.info(f"Worker {self.generation} spawned {binary_path} (pid {self._process.pid})")
        self._emit(WorkerEventType.STARTED, message=request.log_label)

        readers: List[threading.Thread] = []
        if not request.inherit_stdio:
            readers = [
                threading.Thread(target=self._read_stdout, args=(self._process.stdout,), daemon=True),
                threading.Thread(target=self._read_stderr, args=(self._process.stderr, request.log_label, request.legacy_timing), daemon=True),
            ]
            for reader in readers:
                reader.start()

        terminated = self._wait_for_child()

        deadline = time.monotonic() + READER_JOIN_TIMEOUT
        for reader in readers:
            reader.join(timeout=max(deadline - time.monotonic(), 0))
            # A leftover descendant can keep the pipe open; the reader closes it at EOF
            if reader.is_alive():
                logging.debug(f"Worker {self.generation} output still held open after child exit")

        self.exit_code = self._process.returncode
        if terminated:
            self._emit(WorkerEventType.TERMINATED, exit_code=self.exit_code)
        else:
            self._emit(WorkerEventType.COMPLETED, exit_code=self.exit_code)

    def _wait_for_child(self) -> bool:
        """Wait for the child to exit, honouring terminate requests.

        Returns:
            True if the child was killed on request
        """
        assert self._process is not None
        while True:
            try:
                request = self.inbox.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                request = None

            if request is not None and request.terminate:
                self._kill_child()
                self._process.wait()
                return True

            if self._process.poll() is not None:
                return False

    def _kill_child(self) -> None:
        if self._process is None or self._process.poll() is not None:
            return
        logging.info(f"Worker {self.generation} terminating pid {self._process.pid}")
        kill_process_tree(self._process.pid, timeout=self.terminate_timeout)

    def _read_stdout(self, pipe: IO[bytes]) -> None:
        try:
            for raw in iter(pipe.readline, b""):
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                self._emit(WorkerEventType.OUTPUT, message=line, stream="stdout")
        except (OSError, ValueError) as e:
            logging.debug(f"Worker {self.generation} stdout reader stopped: {e}")
        finally:
            pipe.close()

    def _read_stderr(self, pipe: IO[bytes], log_label: str, legacy_timing: bool = False) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            for raw in iter(lambda: pipe.read1(65536), b""):  # type: ignore[attr-defined]
                chunk = decoder.decode(raw)
                if chunk:
                    self._report_stderr(chunk, log_label, legacy_timing)
            tail = decoder.decode(b"", final=True)
            if tail:
                self._report_stderr(tail, log_label, legacy_timing)
        except (OSError, ValueError) as e:
            logging.debug(f"Worker {self.generation} stderr reader stopped: {e}")
        finally:
            pipe.close()

    def _report_stderr(self, chunk: str, log_label: str, legacy_timing: bool = False) -> None:
        if not log_label:
            self._emit(WorkerEventType.OUTPUT, message=chunk.rstrip("\r\n"), stream="stderr")
            return

        result = parse_timing_payload(chunk)
        if result.record is not None:
            self._emit(WorkerEventType.OUTPUT, message=f"{log_label} ran in {duration_display(chunk, result.record, legacy_timing)}", stream="stdout")
        for line in result.error_lines:
            self._emit(WorkerEventType.OUTPUT, message=line, stream="stderr")
