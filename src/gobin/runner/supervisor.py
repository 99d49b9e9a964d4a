"""
Supervised (background) execution of the host's prebuilt binary.

A SupervisedRunner owns at most one live BinaryWorker. Starting a new run
supersedes the previous one: the old worker's child process tree is
killed and the old worker fully stopped before the new worker exists.

Architecture:
    caller -> run_in_worker() -> RunRequest -> BinaryWorker -> child process
                  ^                                |
                  +------ pump thread <- WorkerEvent

Events from a superseded generation are dropped.
"""

import _thread
import logging
import sys
import threading
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from ..cli_utils import Colors
from ..config import DEFAULT_HEAP_MULTIPLIER, DEFAULT_TERMINATE_TIMEOUT
from .locator import BinaryLocator
from .messages import RunRequest, WorkerEvent, WorkerEventType
from .worker import BinaryWorker

EventCallback = Callable[[WorkerEvent], None]


class SupervisedRunner:
    """Single-flight supervisor for background binary runs.

    Example usage:
        runner = SupervisedRunner()
        runner.run_in_worker("agent", Path("bin"), ["--serve"], log_label="[agent]")
        ...
        runner.run_in_worker("agent", Path("bin"), ["--serve"])  # kills the first run
        final = runner.wait(timeout=30)
    """

    def __init__(
        self,
        locator: Optional[BinaryLocator] = None,
        terminate_timeout: float = DEFAULT_TERMINATE_TIMEOUT,
        color: bool = True,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        on_event: Optional[EventCallback] = None,
    ):
        """Initialize the runner.

        Args:
            locator: Binary locator shared by every worker (default: BinaryLocator())
            terminate_timeout: Grace period before a superseded child is force-killed
            color: Colorize forwarded output
            stdout: Stream for forwarded stdout (default: sys.stdout)
            stderr: Stream for forwarded stderr (default: sys.stderr)
            on_event: Called for every event of the current generation, in order
        """
        self.locator = locator or BinaryLocator()
        self.terminate_timeout = terminate_timeout
        self.color = color
        self._stdout = stdout
        self._stderr = stderr
        self.on_event = on_event

        self.initialized = False
        self._generation = 0
        self._worker: Optional[BinaryWorker] = None
        self._pump: Optional[threading.Thread] = None
        self._final_event: Optional[WorkerEvent] = None
        self._done = threading.Event()

        # _run_lock serializes run/replace/terminate; _state_lock guards the fields
        # above and is never held while joining threads.
        self._run_lock = threading.Lock()
        self._state_lock = threading.Lock()

    @property
    def stdout(self) -> TextIO:
        return self._stdout or sys.stdout

    @property
    def stderr(self) -> TextIO:
        return self._stderr or sys.stderr

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def worker(self) -> Optional[BinaryWorker]:
        return self._worker

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._done.is_set()

    def run_in_worker(
        self,
        cmd: str,
        cwd: Path,
        args: Optional[List[str]] = None,
        log_label: str = "",
        heap_multiplier: int = DEFAULT_HEAP_MULTIPLIER,
        inherit_stdio: bool = False,
        legacy_timing: bool = False,
    ) -> Optional[int]:
        """Run ``cmd`` in a fresh worker, superseding any run in flight.

        Returns once the spawn request is dispatched.

        Args:
            cmd: Binary name (".exe" is appended on Windows)
            cwd: Base directory holding the platform subdirectories; also the child's cwd
            args: Arguments for the binary
            log_label: Label for the STARTED notification and timing lines
            heap_multiplier: Multiplied by 1024 for the --max-old-space-size flag
            inherit_stdio: Let the child write straight to this process's streams
            legacy_timing: Display timing markers with the legacy fixed-offset splice

        Returns:
            Generation number of the new worker, None if it could not be started
        """
        try:
            with self._run_lock:
                self.replace()

                with self._state_lock:
                    self._generation += 1
                    worker = BinaryWorker(
                        self._generation,
                        locator=self.locator,
                        terminate_timeout=self.terminate_timeout,
                    )
                    pump = threading.Thread(
                        target=self._pump_events,
                        args=(worker,),
                        name=f"gobin-pump-{self._generation}",
                        daemon=True,
                    )
                    self._worker = worker
                    self._pump = pump
                    self._final_event = None
                    self._done = threading.Event()

                worker.start()
                pump.start()
                worker.post(
                    RunRequest(
                        cmd=cmd,
                        cwd=str(cwd),
                        args=list(args or []),
                        log_label=log_label,
                        heap_multiplier=heap_multiplier,
                        inherit_stdio=inherit_stdio,
                        legacy_timing=legacy_timing,
                    )
                )
                logging.debug(f"Dispatched {cmd} to worker {worker.generation}")
                return worker.generation
        except KeyboardInterrupt:
            raise
        except Exception as e:
            logging.error(f"Failed to start worker for {cmd}: {e}", exc_info=True)
            return None

    def replace(self) -> None:
        """Stop and discard the current worker, if any, and reset ``initialized``."""
        if self._worker is not None:
            self.terminate()
        with self._state_lock:
            self.initialized = False

    def terminate(self) -> Optional[WorkerEvent]:
        """Kill the current worker's child and wait for the worker to stop.

        Returns:
            The worker's terminal event, None if there was no worker
        """
        with self._state_lock:
            worker = self._worker
            pump = self._pump

        if worker is None:
            return None

        worker.post(RunRequest.terminate_request())
        join_timeout = self.terminate_timeout + 5.0
        worker.join(timeout=join_timeout)
        if pump is not None:
            pump.join(timeout=join_timeout)

        if worker.is_alive():
            logging.warning(f"Worker {worker.generation} did not stop within {join_timeout}s")

        with self._state_lock:
            final_event = self._final_event
            if self._worker is worker:
                self._worker = None
                self._pump = None
            self.initialized = False
        return final_event

    def wait(self, timeout: Optional[float] = None) -> Optional[WorkerEvent]:
        """Wait for the current run's terminal event.

        Returns:
            The terminal event, None on timeout or if nothing was started
        """
        with self._state_lock:
            done = self._done
            started = self._generation > 0
        if not started or not done.wait(timeout):
            return None
        return self._final_event

    def _pump_events(self, worker: BinaryWorker) -> None:
        while True:
            event = worker.events.get()
            try:
                self._handle_event(worker, event)
            except KeyboardInterrupt:
                _thread.interrupt_main()
            except Exception as e:
                logging.error(f"Error handling worker event {event.type.value}: {e}", exc_info=True)
            if event.type.is_terminal:
                return

    def _handle_event(self, worker: BinaryWorker, event: WorkerEvent) -> None:
        if event.generation != self._generation:
            logging.debug(f"Dropping {event.type.value} event from superseded worker {event.generation}")
            return

        if event.type == WorkerEventType.STARTED:
            with self._state_lock:
                self.initialized = True
            if event.message:
                self._write(Colors.blue(event.message, self.color), self.stdout)
        elif event.type == WorkerEventType.OUTPUT:
            if event.stream == "stderr":
                self._write(Colors.red(event.message, self.color), self.stderr)
            else:
                self._write(event.message, self.stdout)
        elif event.type == WorkerEventType.COMPLETED:
            logging.info(f"Worker {event.generation} completed with exit code {event.exit_code}")
        elif event.type == WorkerEventType.TERMINATED:
            logging.info(f"Worker {event.generation} terminated (exit code {event.exit_code})")
        elif event.type == WorkerEventType.FAILED:
            logging.error(f"Worker {event.generation} failed: {event.message}")

        if self.on_event is not None:
            self.on_event(event)

        if event.type.is_terminal:
            with self._state_lock:
                self._final_event = event
                if self._worker is worker:
                    self._worker = None
                    self._pump = None
            self._done.set()

    @staticmethod
    def _write(text: str, stream: TextIO) -> None:
        stream.write(f"{text}\n")
        stream.flush()
