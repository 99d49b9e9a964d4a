"""
End-to-end build and run against a real Go toolchain.

Run with: pytest --full
"""

import io
import shutil

import pytest

from gobin.build import BuildOrchestrator
from gobin.runner import run_platform_bin

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("go") is None, reason="go not on PATH"),
]

MAIN_GO = """package main

import (
\t"fmt"
\t"os"
\t"strings"
)

func main() {
\tfmt.Println("args:", strings.Join(os.Args[1:], " "))
\tfmt.Fprint(os.Stderr, "1.5ms+~+~+")
}
"""


@pytest.fixture
def go_project(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "go.mod").write_text("module example.com/agent\n\ngo 1.18\n")
    (src / "main.go").write_text(MAIN_GO)
    return src


def test_dev_build_then_run(go_project, tmp_path):
    dest = tmp_path / "bin"
    result = BuildOrchestrator().build_all(go_project, dest, "agent", dev=True)

    assert len(result.artifacts) == 1
    assert result.artifacts[0].is_file()

    out, err = io.StringIO(), io.StringIO()
    child_out, _ = run_platform_bin("agent", dest, ["hello"], log_label="[agent]", heap_multiplier=1, color=False, stdout=out, stderr=err)

    assert child_out.strip() == "args: hello --max-old-space-size=1024"
    assert "[agent] ran in 1.50ms" in out.getvalue()
