"""
Runners for prebuilt platform binaries.

- BinaryLocator resolves <base>/<goos>-<goarch>/<cmd>[.exe] for this host
- run_platform_bin runs the binary synchronously and returns its output
- SupervisedRunner runs it in a background worker with single-flight semantics
- timing parses the "<timestamp>+~+~+<message>" stderr marker
"""

from .locator import BinaryLocator, binary_filename
from .messages import RunRequest, WorkerEvent, WorkerEventType
from .supervisor import SupervisedRunner
from .sync_runner import heap_size_flag, run_platform_bin
from .timing import (
    TIMING_DELIMITER,
    TimingParseResult,
    TimingRecord,
    duration_display,
    legacy_splice_display,
    log_timing_payload,
    parse_timing_payload,
)
from .worker import BinaryWorker

__all__ = [
    "BinaryLocator",
    "BinaryWorker",
    "RunRequest",
    "SupervisedRunner",
    "TIMING_DELIMITER",
    "TimingParseResult",
    "TimingRecord",
    "WorkerEvent",
    "WorkerEventType",
    "binary_filename",
    "duration_display",
    "heap_size_flag",
    "legacy_splice_display",
    "log_timing_payload",
    "parse_timing_payload",
    "run_platform_bin",
]
