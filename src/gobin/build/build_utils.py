"""Build utilities for gobin.

This module provides the filesystem and reporting helpers used by the
build orchestrator: idempotent output-directory wiping, per-target locks
and elapsed-time reporting.
"""

import os
import shutil
import stat
import sys
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional, TextIO

# Lock management
_locks_lock = threading.Lock()  # Master lock for the lock dictionary
# Per-output-directory locks. Entries live for the whole process; one per target directory ever built
_target_locks: dict[str, threading.Lock] = {}


def get_target_lock(bin_dir: Path) -> threading.Lock:
    """Get or create a lock for a specific target output directory.

    Args:
        bin_dir: Target output directory

    Returns:
        Threading lock for this directory
    """
    key = str(Path(bin_dir).resolve())
    with _locks_lock:
        if key not in _target_locks:
            _target_locks[key] = threading.Lock()
        return _target_locks[key]


def remove_readonly(func: Callable[[str], None], path: str, excinfo: Any) -> None:
    """
    Error handler for shutil.rmtree on Windows.

    Read-only files cannot be deleted on Windows, so the read-only
    attribute is cleared and the failed operation retried.

    Args:
        func: The function that raised the exception
        path: The path to the file/directory
        excinfo: Exception information (unused)
    """
    os.chmod(path, stat.S_IWRITE)
    func(path)


def safe_rmtree(path: Path, max_retries: int = 3) -> None:
    """
    Remove a directory tree, retrying files that are briefly locked.

    Args:
        path: Path to directory to remove
        max_retries: Maximum number of retry attempts for locked files

    Raises:
        OSError: If directory cannot be removed after all retries
    """
    if not path.exists():
        return

    for attempt in range(max_retries):
        try:
            shutil.rmtree(path, onerror=remove_readonly)
            return
        except OSError as e:
            if attempt < max_retries - 1:
                time.sleep(0.5)
            else:
                raise OSError(
                    f"Failed to remove directory {path} after {max_retries} attempts: {e}"
                ) from e


def clean_dir(path: Path) -> None:
    """
    Delete everything inside a directory, keeping the directory itself.

    Creates the directory when it does not exist, so calling this twice in
    a row is a no-op the second time.

    Args:
        path: Directory to empty
    """
    path.mkdir(parents=True, exist_ok=True)

    for entry in path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            safe_rmtree(entry)
        else:
            try:
                entry.unlink()
            except PermissionError:
                os.chmod(entry, stat.S_IWRITE)
                entry.unlink()


def format_elapsed(seconds: float) -> str:
    """Format a duration the way build summaries print it."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(seconds, 60)
    return f"{int(minutes)}m {secs:.1f}s"


def print_elapsed(start: float, label: str, stream: Optional[TextIO] = None) -> float:
    """
    Print the time elapsed since ``start`` (a ``time.perf_counter()`` value).

    Args:
        start: Start time from time.perf_counter()
        label: Message printed before the elapsed time
        stream: Output stream (default: sys.stdout)

    Returns:
        Elapsed seconds
    """
    elapsed = time.perf_counter() - start
    print(f"{label} in {format_elapsed(elapsed)}", file=stream or sys.stdout)
    return elapsed
