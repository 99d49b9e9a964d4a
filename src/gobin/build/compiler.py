"""Go compiler invocation.

This module wraps ``go build`` for a single (GOOS, GOARCH) target.

Design:
    - Wraps subprocess.run with GOOS/GOARCH environment overrides
    - Runs with the Go module directory as working directory
    - Checks captured output against a buffer limit (1024 x heap multiplier bytes)
      after the compiler exits; output is not capped while it is being read
    - Raises CompilerError on spawn failure or non-zero exit
"""

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from ..platform_utils import TargetSpec


class CompilerError(Exception):
    """Raised when the Go compiler fails."""

    def __init__(self, message: str, stdout: str = "", stderr: str = "", returncode: Optional[int] = None):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode


@dataclass
class CompileResult:
    """Result of a successful compiler invocation."""

    binary_path: Path
    stdout: str
    stderr: str
    returncode: int


class GoCompiler:
    """Invokes ``go build`` for one target at a time.

    Example usage:
        compiler = GoCompiler()
        result = compiler.build(
            target=TargetSpec("linux", "amd64"),
            input_dir=Path("cmd/agent"),
            output_path=Path("bin/linux-amd64/agent"),
        )
    """

    def __init__(self, go_executable: str = "go", extra_env: Optional[Mapping[str, str]] = None):
        """Initialize the compiler wrapper.

        Args:
            go_executable: Name or path of the go command
            extra_env: Additional environment variables for every build
        """
        self.go_executable = go_executable
        self.extra_env = dict(extra_env or {})

    def build_command(self, output_path: Path) -> List[str]:
        """Return the argv for building into ``output_path``."""
        # Relative to the caller's cwd, not the module directory
        return [self.go_executable, "build", "-o", str(Path(output_path).absolute())]

    def build_env(self, target: TargetSpec) -> dict[str, str]:
        """Return the environment for building ``target``."""
        env = os.environ.copy()
        env.update(self.extra_env)
        env["GOOS"] = target.goos
        env["GOARCH"] = target.goarch
        return env

    def build(
        self,
        target: TargetSpec,
        input_dir: Path,
        output_path: Path,
        heap_multiplier: Optional[int] = None,
    ) -> CompileResult:
        """Compile the package in ``input_dir`` for ``target``.

        Args:
            target: Build target
            input_dir: Directory of main.go, used as working directory
            output_path: Path of the binary to produce
            heap_multiplier: Output buffer limit is 1024 x this many bytes (None for unlimited)

        Returns:
            CompileResult with the captured compiler output

        Raises:
            CompilerError: If the compiler cannot be spawned, exits non-zero,
                or writes more output than the buffer limit allows
        """
        cmd = self.build_command(output_path)

        try:
            result = subprocess.run(
                cmd,
                cwd=str(input_dir),
                env=self.build_env(target),
                capture_output=True,
                text=True,
            )
        except KeyboardInterrupt:
            raise
        except OSError as e:
            raise CompilerError(f"Failed to run {self.go_executable} for {target}: {e}") from e

        stdout = result.stdout or ""
        stderr = result.stderr or ""

        # Post-hoc check: subprocess.run has already buffered everything
        if heap_multiplier is not None:
            max_buffer = 1024 * heap_multiplier
            for name, text in (("stdout", stdout), ("stderr", stderr)):
                if len(text.encode("utf-8", errors="replace")) > max_buffer:
                    raise CompilerError(
                        f"Compiler {name} exceeded buffer of {max_buffer} bytes for {target}",
                        stdout=stdout,
                        stderr=stderr,
                        returncode=result.returncode,
                    )

        if result.returncode != 0:
            raise CompilerError(
                f"go build failed for {target} (exit {result.returncode})\n{stderr}".rstrip(),
                stdout=stdout,
                stderr=stderr,
                returncode=result.returncode,
            )

        return CompileResult(
            binary_path=output_path,
            stdout=stdout,
            stderr=stderr,
            returncode=result.returncode,
        )
