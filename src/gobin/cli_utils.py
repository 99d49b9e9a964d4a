"""CLI utility functions for gobin.

This module provides common utilities used across CLI commands and the
runners including:
- ANSI color helpers for labelled output
- Error handling and formatting
- Path validation
"""

import sys
import traceback
from pathlib import Path


class Colors:
    """ANSI color codes for labelled output."""

    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    BLUE = "\033[1;34m"
    RESET = "\033[0m"

    @staticmethod
    def colorize(text: str, code: str, enabled: bool = True) -> str:
        """Wrap ``text`` in ``code`` when colors are enabled."""
        if not enabled or not text:
            return text
        return f"{code}{text}{Colors.RESET}"

    @staticmethod
    def blue(text: str, enabled: bool = True) -> str:
        return Colors.colorize(text, Colors.BLUE, enabled)

    @staticmethod
    def green(text: str, enabled: bool = True) -> str:
        return Colors.colorize(text, Colors.GREEN, enabled)

    @staticmethod
    def red(text: str, enabled: bool = True) -> str:
        return Colors.colorize(text, Colors.RED, enabled)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Build failed")
            message: Error message details
        """
        print(file=sys.stderr)
        print(f"{Colors.RED}✗ {title}{Colors.RESET}", file=sys.stderr)
        if message:
            print(file=sys.stderr)
            print(message, file=sys.stderr)
        print(file=sys.stderr)

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{Colors.GREEN}✓ {message}{Colors.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print(file=sys.stderr)
        print(f"{Colors.YELLOW}✗ {message}{Colors.RESET}", file=sys.stderr)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            print("Traceback:", file=sys.stderr)
            print(traceback.format_exc(), file=sys.stderr)

        sys.exit(1)


class PathValidator:
    """Validates directories passed on the command line."""

    @staticmethod
    def validate_dir(path: Path, what: str = "Path") -> None:
        """Validate that ``path`` exists and is a directory.

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not path.exists():
            print(f"{Colors.RED}✗ Error: {what} does not exist: {path}{Colors.RESET}", file=sys.stderr)
            sys.exit(2)
        if not path.is_dir():
            print(f"{Colors.RED}✗ Error: {what} is not a directory: {path}{Colors.RESET}", file=sys.stderr)
            sys.exit(2)
