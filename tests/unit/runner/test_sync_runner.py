"""Unit tests for the synchronous binary runner."""

import io
import sys
from unittest.mock import patch

import pytest

from gobin.platform_utils import HostIdentifier, PlatformError
from gobin.runner.locator import BinaryLocator
from gobin.runner.sync_runner import build_argv, heap_size_flag, run_platform_bin

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell scripts")


@pytest.fixture
def locator():
    return BinaryLocator(host=HostIdentifier("linux", "amd64"))


@pytest.fixture
def make_binary(tmp_path):
    """Write an executable shell script at <tmp_path>/linux-amd64/<name>."""

    def _make(name, body):
        bin_dir = tmp_path / "linux-amd64"
        bin_dir.mkdir(exist_ok=True)
        path = bin_dir / name
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(0o755)
        return path

    return _make


def test_heap_size_flag():
    assert heap_size_flag(4096) == "--max-old-space-size=4194304"
    assert heap_size_flag(1) == "--max-old-space-size=1024"


def test_build_argv_appends_heap_flag_last(tmp_path):
    argv = build_argv(tmp_path / "agent", ["--serve", "x"], 2)
    assert argv == [str(tmp_path / "agent"), "--serve", "x", "--max-old-space-size=2048"]


@posix_only
def test_run_echoes_labelled_stdout(tmp_path, locator, make_binary):
    make_binary("agent", 'echo "args: $*"\n')
    out, err = io.StringIO(), io.StringIO()

    child_out, child_err = run_platform_bin(
        "agent", tmp_path, ["one"], log_label="[agent]", heap_multiplier=4,
        locator=locator, color=False, stdout=out, stderr=err,
    )

    assert child_out == "args: one --max-old-space-size=4096\n"
    assert child_err == ""
    assert out.getvalue().startswith("[agent] args: one --max-old-space-size=4096")


@posix_only
def test_run_parses_timing_from_stderr(tmp_path, locator, make_binary):
    make_binary("agent", "printf '123.456ms+~+~+boom' >&2\n")
    out, err = io.StringIO(), io.StringIO()

    _, child_err = run_platform_bin(
        "agent", tmp_path, [], log_label="[agent]", locator=locator, color=False, stdout=out, stderr=err,
    )

    assert child_err == "123.456ms+~+~+boom"
    assert out.getvalue() == "[agent] ran in 123.45ms\n"
    assert err.getvalue() == "boom\n"


@posix_only
def test_run_without_label_does_not_parse_stderr(tmp_path, locator, make_binary):
    make_binary("agent", "printf '5ms+~+~+' >&2\n")
    out, err = io.StringIO(), io.StringIO()

    _, child_err = run_platform_bin("agent", tmp_path, [], locator=locator, color=False, stdout=out, stderr=err)

    assert child_err == "5ms+~+~+"
    assert out.getvalue() == ""
    assert err.getvalue() == ""


@posix_only
def test_run_runs_in_base_directory(tmp_path, locator, make_binary):
    make_binary("agent", "pwd\n")

    child_out, _ = run_platform_bin("agent", tmp_path, [], locator=locator, stdout=io.StringIO())

    assert child_out.strip() == str(tmp_path.resolve())


def test_missing_binary_returns_empty(tmp_path, locator):
    with patch("gobin.runner.sync_runner.subprocess.run") as mock_run:
        assert run_platform_bin("agent", tmp_path, [], locator=locator) == ("", "")
    mock_run.assert_not_called()


def test_unsupported_host_returns_empty(tmp_path):
    class UnsupportedLocator(BinaryLocator):
        def binary_path(self, base_dir, cmd):
            raise PlatformError("Unsupported platform: sunos5 x86_64")

    assert run_platform_bin("agent", tmp_path, [], locator=UnsupportedLocator()) == ("", "")


def test_spawn_error_returns_empty(tmp_path, locator):
    (tmp_path / "linux-amd64").mkdir()
    (tmp_path / "linux-amd64" / "agent").write_text("")

    with patch("gobin.runner.sync_runner.subprocess.run", side_effect=PermissionError("denied")):
        assert run_platform_bin("agent", tmp_path, [], locator=locator) == ("", "")


def test_keyboard_interrupt_propagates(tmp_path, locator):
    (tmp_path / "linux-amd64").mkdir()
    (tmp_path / "linux-amd64" / "agent").write_text("")

    with patch("gobin.runner.sync_runner.subprocess.run", side_effect=KeyboardInterrupt):
        with pytest.raises(KeyboardInterrupt):
            run_platform_bin("agent", tmp_path, [], locator=locator)


@posix_only
def test_run_legacy_timing_display(tmp_path, locator, make_binary):
    make_binary("agent", "printf '123.456ms+~+~+' >&2\n")
    out, err = io.StringIO(), io.StringIO()

    run_platform_bin(
        "agent", tmp_path, [], log_label="[agent]", locator=locator,
        color=False, stdout=out, stderr=err, legacy_timing=True,
    )

    assert out.getvalue() == "[agent] ran in 123.4ms\n"
