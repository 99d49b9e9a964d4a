"""Unit tests for build utilities."""

import io
import time

from gobin.build import build_utils
from gobin.build.build_utils import (
    clean_dir,
    format_elapsed,
    get_target_lock,
    print_elapsed,
    safe_rmtree,
)


class TestCleanDir:
    """Tests for clean_dir."""

    def test_removes_files_and_subdirectories(self, tmp_path):
        target = tmp_path / "linux-amd64"
        (target / "nested" / "deeper").mkdir(parents=True)
        (target / "nested" / "deeper" / "file.txt").write_text("x")
        (target / "agent").write_text("old binary")

        clean_dir(target)

        assert target.is_dir()
        assert list(target.iterdir()) == []

    def test_creates_missing_directory(self, tmp_path):
        target = tmp_path / "a" / "b"
        clean_dir(target)
        assert target.is_dir()

    def test_idempotent(self, tmp_path):
        target = tmp_path / "t"
        clean_dir(target)
        clean_dir(target)
        assert target.is_dir()
        assert list(target.iterdir()) == []

    def test_removes_read_only_file(self, tmp_path):
        target = tmp_path / "t"
        target.mkdir()
        ro = target / "ro.bin"
        ro.write_text("x")
        ro.chmod(0o444)

        clean_dir(target)

        assert not ro.exists()


def test_safe_rmtree_missing_path_is_noop(tmp_path):
    safe_rmtree(tmp_path / "missing")


def test_safe_rmtree_removes_tree(tmp_path):
    tree = tmp_path / "tree"
    (tree / "x").mkdir(parents=True)
    safe_rmtree(tree)
    assert not tree.exists()


def test_get_target_lock_same_dir_same_lock(tmp_path):
    assert get_target_lock(tmp_path / "linux-amd64") is get_target_lock(tmp_path / "linux-amd64")
    assert get_target_lock(tmp_path / "linux-amd64") is not get_target_lock(tmp_path / "linux-arm64")


def test_format_elapsed():
    assert format_elapsed(0.25) == "250ms"
    assert format_elapsed(1.5) == "1.50s"
    assert format_elapsed(75) == "1m 15.0s"


def test_print_elapsed_writes_label():
    stream = io.StringIO()
    elapsed = print_elapsed(time.perf_counter(), "[gobin] Build agent complete", stream)

    assert elapsed >= 0
    assert stream.getvalue().startswith("[gobin] Build agent complete in ")


def test_get_target_lock_one_entry_per_directory(tmp_path):
    get_target_lock(tmp_path / "darwin-arm64")
    size = len(build_utils._target_locks)
    get_target_lock(tmp_path / "darwin-arm64")
    get_target_lock(tmp_path / "x" / ".." / "darwin-arm64")

    assert len(build_utils._target_locks) == size
