"""
Build orchestration for gobin.

This module drives ``go build`` across the cross-compilation matrix:
- Target selection (host target in dev mode, full matrix otherwise)
- Output directory preparation (create + wipe per target)
- Compiler invocation with GOOS/GOARCH overrides
- Forwarding of compiler output and elapsed-time reporting

Artifact layout:
    <dest_dir>/
    ├── darwin-amd64/<name>
    ├── linux-arm64/<name>
    └── windows-amd64/<name>.exe
"""

import logging
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from tqdm import tqdm

from ..config import DEFAULT_HEAP_MULTIPLIER
from ..platform_utils import HostIdentifier, PlatformDetector, TargetSpec, valid_targets
from .build_utils import clean_dir, get_target_lock, print_elapsed
from .compiler import CompilerError, GoCompiler

LOG_PREFIX = "[gobin]"


class BuildOrchestratorError(Exception):
    """Exception raised for build orchestration errors."""
    pass


@dataclass
class BuildJob:
    """One compiler invocation for one target.

    Attributes:
        target: Build target
        input_dir: Directory of main.go
        output_dir: Target directory (<dest_dir>/<goos>-<goarch>)
        bin_name: Binary name without platform suffix
        heap_multiplier: Output buffer hint (x 1024 bytes)
    """

    target: TargetSpec
    input_dir: Path
    output_dir: Path
    bin_name: str
    heap_multiplier: int = DEFAULT_HEAP_MULTIPLIER

    @property
    def binary_path(self) -> Path:
        return self.output_dir / self.target.executable_name(self.bin_name)


@dataclass
class BuildResult:
    """Result of a single target build."""

    job: BuildJob
    binary_path: Path
    stdout: str
    stderr: str
    build_time: float


@dataclass
class MatrixBuildResult:
    """Result of a complete build pass."""

    bin_name: str
    results: List[BuildResult] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def targets(self) -> List[TargetSpec]:
        return [r.job.target for r in self.results]

    @property
    def artifacts(self) -> List[Path]:
        return [r.binary_path for r in self.results]


class BuildOrchestrator:
    """
    Cross-compiles a Go program for every supported target.

    Example usage:
        orchestrator = BuildOrchestrator()
        result = orchestrator.build_all(
            input_dir=Path("go/agent"),
            dest_dir=Path("bin"),
            bin_name="agent",
            dev=False,
        )
        for artifact in result.artifacts:
            print(artifact)
    """

    def __init__(
        self,
        compiler: Optional[GoCompiler] = None,
        host: Optional[HostIdentifier] = None,
        show_progress: bool = False,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
    ):
        """
        Initialize build orchestrator.

        Args:
            compiler: Compiler wrapper (default: GoCompiler())
            host: Host identifier used in dev mode (default: detected lazily)
            show_progress: Show a progress bar for full-matrix builds
            stdout: Stream for forwarded compiler stdout and summaries (default: sys.stdout)
            stderr: Stream for forwarded compiler stderr (default: sys.stderr)
        """
        self.compiler = compiler or GoCompiler()
        self._host = host
        self.show_progress = show_progress
        self._stdout = stdout
        self._stderr = stderr

    @property
    def stdout(self) -> TextIO:
        return self._stdout or sys.stdout

    @property
    def stderr(self) -> TextIO:
        return self._stderr or sys.stderr

    @property
    def host(self) -> HostIdentifier:
        """Host identifier, detected on first use.

        Raises:
            PlatformError: If the current host is not in the platform mapping
        """
        if self._host is None:
            self._host = PlatformDetector.detect_host()
        return self._host

    def plan(
        self,
        input_dir: Path,
        dest_dir: Path,
        bin_name: str,
        dev: bool = False,
        heap_multiplier: int = DEFAULT_HEAP_MULTIPLIER,
    ) -> List[BuildJob]:
        """
        Create the build jobs for a build pass without running them.

        Args:
            input_dir: Directory of main.go
            dest_dir: Root directory for built binaries
            bin_name: Binary name
            dev: Only build the current host's target
            heap_multiplier: Output buffer hint passed to each job

        Returns:
            Jobs in matrix order (OS-major, architecture-minor)
        """
        targets = [self.host.as_target()] if dev else valid_targets()
        return [
            BuildJob(
                target=target,
                input_dir=Path(input_dir),
                output_dir=Path(dest_dir) / target.target,
                bin_name=bin_name,
                heap_multiplier=heap_multiplier,
            )
            for target in targets
        ]

    def build_all(
        self,
        input_dir: Path,
        dest_dir: Path,
        bin_name: str,
        dev: bool = False,
        heap_multiplier: int = DEFAULT_HEAP_MULTIPLIER,
    ) -> MatrixBuildResult:
        """
        Build every target of the pass, sequentially.

        Args:
            input_dir: Directory of main.go
            dest_dir: Root directory for built binaries
            bin_name: Binary name
            dev: Only build the current host's target
            heap_multiplier: Output buffer hint passed to each job

        Returns:
            MatrixBuildResult with one BuildResult per target

        Raises:
            BuildOrchestratorError: If inputs are invalid or a build fails.
                Artifacts of targets built before the failure stay on disk.
            PlatformError: In dev mode, if the host is unsupported
        """
        start = time.perf_counter()
        input_dir = Path(input_dir)
        dest_dir = Path(dest_dir)

        if not bin_name or "/" in bin_name or "\\" in bin_name:
            raise BuildOrchestratorError(f"Invalid binary name: {bin_name!r}")
        if not input_dir.is_dir():
            raise BuildOrchestratorError(f"Input directory not found: {input_dir}")
        if heap_multiplier <= 0:
            raise BuildOrchestratorError(f"Heap multiplier must be positive, got {heap_multiplier}")

        jobs = self.plan(input_dir, dest_dir, bin_name, dev=dev, heap_multiplier=heap_multiplier)
        logging.info(f"Building {bin_name} for {len(jobs)} target(s): {', '.join(j.target.target for j in jobs)}")

        matrix_result = MatrixBuildResult(bin_name=bin_name)
        progress = tqdm(
            jobs,
            desc=f"Building {bin_name}",
            unit="target",
            disable=dev or not self.show_progress,
        )
        write = self._writer(progress)

        try:
            for job in progress:
                progress.set_postfix_str(job.target.target)
                matrix_result.results.append(self.run_job(job, write))
        finally:
            progress.close()

        matrix_result.elapsed = print_elapsed(start, f"{LOG_PREFIX} Build {bin_name} complete", self.stdout)
        return matrix_result

    def run_job(self, job: BuildJob, write: Optional[Callable[[str, TextIO], None]] = None) -> BuildResult:
        """
        Prepare the output directory for one job and compile it.

        Args:
            job: Build job to run
            write: Output writer (default: write straight to the stream)

        Returns:
            BuildResult for the job

        Raises:
            BuildOrchestratorError: If the directory cannot be prepared or compilation fails
        """
        write = write or _plain_write
        start = time.perf_counter()

        with get_target_lock(job.output_dir):
            try:
                clean_dir(job.output_dir)
            except OSError as e:
                raise BuildOrchestratorError(f"Failed to prepare {job.output_dir}: {e}") from e

            logging.debug(f"go build {job.target} -> {job.binary_path}")

            try:
                compile_result = self.compiler.build(
                    target=job.target,
                    input_dir=job.input_dir,
                    output_path=job.binary_path,
                    heap_multiplier=job.heap_multiplier,
                )
            except CompilerError as e:
                self._forward(write, e.stdout, e.stderr)
                logging.error(f"Build failed for {job.target}: {e}")
                raise BuildOrchestratorError(f"Build failed for {job.target}: {e}") from e

        self._forward(write, compile_result.stdout, compile_result.stderr)

        return BuildResult(
            job=job,
            binary_path=compile_result.binary_path,
            stdout=compile_result.stdout,
            stderr=compile_result.stderr,
            build_time=time.perf_counter() - start,
        )

    def _forward(self, write: Callable[[str, TextIO], None], stdout: str, stderr: str) -> None:
        if stdout:
            write(stdout, self.stdout)
        if stderr:
            write(stderr, self.stderr)

    def _writer(self, progress: tqdm) -> Callable[[str, TextIO], None]:
        if progress.disable:
            return _plain_write

        def write(text: str, stream: TextIO) -> None:
            tqdm.write(text, file=stream, end="")

        return write


def _plain_write(text: str, stream: TextIO) -> None:
    stream.write(text)
    stream.flush()


def build_binary(
    input_dir: Path,
    dest_dir: Path,
    bin_name: str,
    dev: bool = False,
    heap_multiplier: int = DEFAULT_HEAP_MULTIPLIER,
    go_executable: str = "go",
    show_progress: bool = False,
) -> MatrixBuildResult:
    """Build ``bin_name`` for the host (dev) or the whole matrix.

    Convenience wrapper around BuildOrchestrator.build_all().
    """
    orchestrator = BuildOrchestrator(
        compiler=GoCompiler(go_executable=go_executable),
        show_progress=show_progress,
    )
    return orchestrator.build_all(input_dir, dest_dir, bin_name, dev=dev, heap_multiplier=heap_multiplier)
