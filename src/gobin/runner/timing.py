"""Timing marker parsing for child process stderr.

Child binaries report their run time by writing a payload of the form::

    <timestamp>+~+~+<message>

to standard error, where ``<timestamp>`` is a Go-style duration such as
``123.456ms`` or ``42µs`` and ``<message>`` an optional diagnostic. The
timestamp is parsed into a (magnitude, unit) pair and displayed truncated
to two decimal places.
"""

import re
import sys
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import List, Optional, TextIO

from ..cli_utils import Colors

TIMING_DELIMITER = "+~+~+"
DEFAULT_UNIT = "ms"

# Units are purely alphabetic; both the micro sign (U+00B5) and Greek mu (U+03BC) occur
_UNIT_CHAR = r"[a-zA-Zµμ]"
_TIMESTAMP_RE = re.compile(rf"^\s*(?P<number>\d+(?:\.\d*)?|\.\d+)\s*(?P<unit>{_UNIT_CHAR}*)\s*$")
_TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class TimingRecord:
    """Duration reported by a child process."""

    magnitude: Decimal
    unit: str

    def display(self) -> str:
        """Format as ``<magnitude truncated to 2 places><unit>``."""
        return f"{self.magnitude.quantize(_TWO_PLACES, rounding=ROUND_DOWN)}{self.unit}"

    def __str__(self) -> str:
        return self.display()


@dataclass
class TimingParseResult:
    """Outcome of parsing one stderr payload.

    Attributes:
        record: Parsed duration, None when the payload carries no valid timestamp
        message: Diagnostic message after the delimiter (None if empty)
        error_lines: Lines to report as errors, in order
    """

    record: Optional[TimingRecord] = None
    message: Optional[str] = None
    error_lines: List[str] = field(default_factory=list)


def parse_timestamp(text: str) -> Optional[TimingRecord]:
    """Parse ``"<digits>[.<digits>]<unit>"``; returns None when malformed."""
    match = _TIMESTAMP_RE.match(text)
    if match is None:
        return None

    try:
        magnitude = Decimal(match.group("number"))
        # Quantizing numbers wider than the decimal context raises here rather than later
        magnitude.quantize(_TWO_PLACES, rounding=ROUND_DOWN)
    except InvalidOperation:
        return None

    return TimingRecord(magnitude=magnitude, unit=match.group("unit") or DEFAULT_UNIT)


def parse_timing_payload(payload: str) -> TimingParseResult:
    """Split a stderr payload on the timing delimiter and parse it.

    - Exactly two parts with a valid timestamp: ``record`` is set.
    - Any other shape (or a malformed timestamp): a non-empty first segment becomes an error line.
    - A non-empty second segment is always an error line too.
    """
    result = TimingParseResult()
    parts = payload.split(TIMING_DELIMITER)
    head = parts[0]

    if len(parts) == 2 and head.strip():
        result.record = parse_timestamp(head)

    if result.record is None and head.strip():
        result.error_lines.append(head.rstrip("\r\n"))

    if len(parts) > 1:
        message = parts[1].rstrip("\r\n")
        if message.strip():
            result.message = message
            result.error_lines.append(message)

    return result


def legacy_splice_display(timestamp: str) -> str:
    """Reproduce the fixed-offset splice older tooling printed.

    Takes the numeric run up to the first unit character, keeps it up to one
    digit past the decimal point, appends everything from five characters past
    the decimal point, then the joined unit characters (``ms`` if none).
    Out-of-range offsets yield empty slices instead of garbage.
    """
    point = timestamp.find(".")
    numbers = re.split(_UNIT_CHAR, timestamp)[0]
    unit = "".join(re.findall(_UNIT_CHAR, timestamp)) or DEFAULT_UNIT
    head_end = max(point + 2, 0)
    tail_start = max(point + 6, 0)
    return numbers[:head_end] + numbers[tail_start:len(timestamp)] + unit


def duration_display(payload: str, record: TimingRecord, legacy: bool = False) -> str:
    """Format the duration of a parsed payload, optionally with the legacy splice."""
    if legacy:
        return legacy_splice_display(payload.split(TIMING_DELIMITER)[0].strip())
    return record.display()


def log_timing_payload(
    payload: str,
    label: str,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
    color: bool = True,
    legacy: bool = False,
) -> TimingParseResult:
    """Parse a stderr payload and write the duration and error lines.

    Args:
        payload: Raw stderr text from the child
        label: Log label (e.g., "[compiler]")
        out: Stream for the duration line (default: sys.stdout)
        err: Stream for error lines (default: sys.stderr)
        color: Colorize output
        legacy: Display the duration with ``legacy_splice_display``

    Returns:
        The parse result
    """
    out = out or sys.stdout
    err = err or sys.stderr
    result = parse_timing_payload(payload)

    if result.record is not None:
        duration = duration_display(payload, result.record, legacy)
        print(
            f"{Colors.blue(label + ' ran', color)} {Colors.green('in', color)} {Colors.blue(duration, color)}",
            file=out,
        )

    for line in result.error_lines:
        print(Colors.red(line, color), file=err)

    return result
