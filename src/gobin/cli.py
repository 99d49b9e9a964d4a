"""
Command-line interface for gobin.

This module provides the `gobin` CLI tool for cross-compiling Go binaries
and running the one built for the current host.
"""

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from gobin import __version__
from gobin.build import BuildOrchestrator, BuildOrchestratorError, GoCompiler
from gobin.cli_utils import ErrorFormatter, PathValidator
from gobin.config import ConfigError, GobinConfig
from gobin.log_utils import setup_logging
from gobin.platform_utils import PlatformDetector, PlatformError, valid_targets
from gobin.runner import BinaryLocator, SupervisedRunner, WorkerEventType, run_platform_bin


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    input_dir: Path
    dest_dir: Path
    name: str
    dev: bool = False
    heap_multiplier: Optional[int] = None
    go: Optional[str] = None
    progress: bool = False
    verbose: bool = False


@dataclass
class RunArgs:
    """Arguments for the run command."""

    cmd: str
    args: List[str] = field(default_factory=list)
    cwd: Path = field(default_factory=Path.cwd)
    label: str = ""
    heap_multiplier: Optional[int] = None
    background: bool = False
    inherit: bool = False
    timeout: Optional[float] = None
    legacy_timing: bool = False
    verbose: bool = False


def build_command(args: BuildArgs, config: GobinConfig) -> None:
    """Cross-compile a Go program.

    Examples:
        gobin build ./go ./bin -n agent            # Build the whole matrix
        gobin build ./go ./bin -n agent --dev      # Build the host target only
        gobin build ./go ./bin -n agent --progress # Show a progress bar
    """
    try:
        orchestrator = BuildOrchestrator(
            compiler=GoCompiler(go_executable=args.go or config.go_executable),
            show_progress=args.progress,
        )
        result = orchestrator.build_all(
            input_dir=args.input_dir,
            dest_dir=args.dest_dir,
            bin_name=args.name,
            dev=args.dev,
            heap_multiplier=args.heap_multiplier or config.heap_multiplier,
        )

        if args.verbose:
            for artifact in result.artifacts:
                print(f"  {artifact}")
        sys.exit(0)

    except (BuildOrchestratorError, PlatformError) as e:
        ErrorFormatter.print_error("Build failed!", str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def run_command(args: RunArgs, config: GobinConfig) -> None:
    """Run the prebuilt binary for this host.

    Examples:
        gobin run --cwd ./bin --label "[agent]" agent --serve
        gobin run --cwd ./bin --background agent        # Supervised run

    Options go before the binary name; everything after it is passed through.
    """
    heap_multiplier = args.heap_multiplier or config.heap_multiplier

    try:
        if not args.background:
            run_platform_bin(
                args.cmd,
                args.cwd,
                args.args,
                log_label=args.label,
                heap_multiplier=heap_multiplier,
                color=config.color,
                legacy_timing=args.legacy_timing,
            )
            sys.exit(0)

        runner = SupervisedRunner(
            locator=BinaryLocator(),
            terminate_timeout=config.terminate_timeout,
            color=config.color,
        )
        generation = runner.run_in_worker(
            args.cmd,
            args.cwd,
            args.args,
            log_label=args.label,
            heap_multiplier=heap_multiplier,
            inherit_stdio=args.inherit,
            legacy_timing=args.legacy_timing,
        )
        if generation is None:
            ErrorFormatter.print_error("Failed to start worker", args.cmd)
            sys.exit(1)

        try:
            final = runner.wait(timeout=args.timeout)
        except KeyboardInterrupt:
            runner.terminate()
            raise

        if final is None:
            runner.terminate()
            ErrorFormatter.print_error("Timed out", f"{args.cmd} did not finish within {args.timeout}s")
            sys.exit(1)
        if final.type == WorkerEventType.FAILED:
            ErrorFormatter.print_error("Run failed!", final.message)
            sys.exit(1)
        sys.exit(final.exit_code or 0)

    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def targets_command(host: bool, info: bool = False) -> None:
    """List the build matrix, the current host's target, or host details."""
    if info:
        for key, value in PlatformDetector.get_platform_info().items():
            print(f"{key}: {value}")
        return

    if host:
        try:
            print(PlatformDetector.detect_host().target)
        except PlatformError as e:
            ErrorFormatter.print_error("Unsupported host", str(e))
            sys.exit(1)
        return

    for target in valid_targets():
        print(target.target)


def main(argv: Optional[List[str]] = None) -> None:
    """gobin - Cross-compile Go binaries and run the one for this host."""
    parser = argparse.ArgumentParser(
        prog="gobin",
        description="gobin - Cross-compile Go binaries and run the one for this host",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"gobin {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Cross-compile a Go program for every target",
    )
    build_parser.add_argument("input_dir", type=Path, help="Directory of main.go")
    build_parser.add_argument("dest_dir", type=Path, help="Directory for built binaries")
    build_parser.add_argument(
        "-n",
        "--name",
        required=True,
        help="Binary name",
    )
    build_parser.add_argument(
        "--dev",
        action="store_true",
        help="Only build the current host's target",
    )
    build_parser.add_argument(
        "--heap-multiplier",
        type=int,
        default=None,
        help="Output buffer hint, multiplied by 1024 bytes (default: GOBIN_HEAP_MULTIPLIER or 4096)",
    )
    build_parser.add_argument(
        "--go",
        default=None,
        help="Go executable (default: GOBIN_GO or 'go')",
    )
    build_parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar across the build matrix",
    )
    build_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run the prebuilt binary for this host",
    )
    run_parser.add_argument("cmd", help="Binary name")
    run_parser.add_argument("args", nargs=argparse.REMAINDER, help="Arguments for the binary")
    run_parser.add_argument(
        "--cwd",
        type=Path,
        default=Path.cwd(),
        help="Directory holding the <os>-<arch> subdirectories (default: current directory)",
    )
    run_parser.add_argument(
        "-l",
        "--label",
        default="",
        help="Log label, e.g. '[agent]' (enables timing output)",
    )
    run_parser.add_argument(
        "--heap-multiplier",
        type=int,
        default=None,
        help="Multiplied by 1024 for --max-old-space-size (default: GOBIN_HEAP_MULTIPLIER or 4096)",
    )
    run_parser.add_argument(
        "-b",
        "--background",
        action="store_true",
        help="Run under a supervised background worker",
    )
    run_parser.add_argument(
        "--inherit",
        action="store_true",
        help="With --background, let the binary write straight to the terminal",
    )
    run_parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        default=None,
        help="With --background, seconds to wait before killing the binary",
    )
    run_parser.add_argument(
        "--legacy-timing",
        action="store_true",
        help="Display timing markers with the legacy fixed-offset splice",
    )
    run_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )

    # Targets command
    targets_parser = subparsers.add_parser(
        "targets",
        help="List the build matrix",
    )
    targets_parser.add_argument(
        "--host",
        action="store_true",
        help="Print the current host's target only",
    )
    targets_parser.add_argument(
        "--info",
        action="store_true",
        help="Print host platform details and the mapped Go target",
    )

    parsed_args = parser.parse_args(argv)

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    try:
        config = GobinConfig.from_env()
    except ConfigError as e:
        ErrorFormatter.print_error("Invalid configuration", str(e))
        sys.exit(1)

    setup_logging(verbose=getattr(parsed_args, "verbose", False), log_file=config.log_file)

    if parsed_args.command == "build":
        PathValidator.validate_dir(parsed_args.input_dir, "Input directory")
        build_args = BuildArgs(
            input_dir=parsed_args.input_dir,
            dest_dir=parsed_args.dest_dir,
            name=parsed_args.name,
            dev=parsed_args.dev,
            heap_multiplier=parsed_args.heap_multiplier,
            go=parsed_args.go,
            progress=parsed_args.progress,
            verbose=parsed_args.verbose,
        )
        build_command(build_args, config)
    elif parsed_args.command == "run":
        PathValidator.validate_dir(parsed_args.cwd, "Working directory")
        extra = list(parsed_args.args)
        if extra and extra[0] == "--":
            extra = extra[1:]
        run_args = RunArgs(
            cmd=parsed_args.cmd,
            args=extra,
            cwd=parsed_args.cwd,
            label=parsed_args.label,
            heap_multiplier=parsed_args.heap_multiplier,
            background=parsed_args.background,
            inherit=parsed_args.inherit,
            timeout=parsed_args.timeout,
            legacy_timing=parsed_args.legacy_timing,
            verbose=parsed_args.verbose,
        )
        run_command(run_args, config)
    elif parsed_args.command == "targets":
        targets_command(parsed_args.host, parsed_args.info)


if __name__ == "__main__":
    main()
