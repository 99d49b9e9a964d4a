"""
Typed message protocol between the supervised runner and its worker.

Runner → Worker: RunRequest (spawn, or terminate when ``terminate`` is set)
Worker → Runner: WorkerEvent

Event sequence for one worker generation:
    STARTED            once, after the child was spawned
    OUTPUT*            captured stdout lines / stderr report lines
    COMPLETED | FAILED | TERMINATED   exactly once, last
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..config import DEFAULT_HEAP_MULTIPLIER


class WorkerEventType(Enum):
    """Worker event enumeration."""

    STARTED = "started"
    OUTPUT = "output"
    COMPLETED = "completed"
    FAILED = "failed"
    TERMINATED = "terminated"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkerEventType.COMPLETED, WorkerEventType.FAILED, WorkerEventType.TERMINATED)


@dataclass
class RunRequest:
    """Runner → Worker: run (or stop) a platform binary.

    Attributes:
        cmd: Binary name
        cwd: Base directory of the platform subdirectories; the child's cwd
        args: Arguments for the binary
        log_label: Label for output and the STARTED notification
        heap_multiplier: Multiplied by 1024 for --max-old-space-size
        inherit_stdio: Child writes straight to this process's streams
        legacy_timing: Display timing markers with the legacy fixed-offset splice
        terminate: Kill the tracked child instead of spawning
    """

    cmd: str
    cwd: str
    args: list[str] = field(default_factory=list)
    log_label: str = ""
    heap_multiplier: int = DEFAULT_HEAP_MULTIPLIER
    inherit_stdio: bool = False
    legacy_timing: bool = False
    terminate: bool = False

    @classmethod
    def terminate_request(cls) -> "RunRequest":
        return cls(cmd="", cwd="", terminate=True)


@dataclass
class WorkerEvent:
    """Worker → Runner: lifecycle or output notification.

    Attributes:
        type: Event type
        generation: Generation of the worker that sent the event
        message: Label (STARTED), output line (OUTPUT) or error text (FAILED)
        stream: "stdout" or "stderr" for OUTPUT events
        exit_code: Child exit code (COMPLETED, TERMINATED)
        timestamp: Unix timestamp when the event was created
    """

    type: WorkerEventType
    generation: int
    message: str = ""
    stream: Optional[str] = None
    exit_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)
