"""Readers for the kernel enclave resources and process metadata."""

import logging
import time
from collections.abc import Callable, Iterator
from pathlib import Path

import psutil

from sgxtop.errors import AggregateFormatError, ClockError, ResourceUnavailableError
from sgxtop.models import AggregateSnapshot, EnclaveSample

logger = logging.getLogger("sgxtop.sources")
capture_logger = logging.getLogger("sgxtop.capture")

AGGREGATE_FIELDS = 8
ENCLAVE_FIELDS = 5


def read_clock(clock: Callable[[], int] = time.monotonic_ns) -> int:
    """Read the monotonic clock in nanoseconds."""
    try:
        return clock()
    except OSError as exc:
        raise ClockError(f"monotonic clock failed: {exc}") from exc


def _read_text(path: str | Path) -> str:
    try:
        return Path(path).read_text(encoding="ascii")
    except OSError as exc:
        raise ResourceUnavailableError(str(path), exc.strerror or str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise AggregateFormatError(f"{path}: not ASCII text: {exc.reason}") from exc


def _parse_unsigned(token: str) -> int:
    """Parse a plain decimal counter; signs, underscores and non-ASCII digits are rejected."""
    if not (token.isascii() and token.isdigit()):
        raise ValueError(f"not an unsigned decimal: {token!r}")
    return int(token)


def _parse_signed(token: str) -> int:
    digits = token[1:] if token.startswith("-") else token
    _parse_unsigned(digits)
    return int(token)


def read_aggregate(
    path: str | Path,
    clock: Callable[[], int] = time.monotonic_ns,
) -> AggregateSnapshot:
    """
    Read the aggregate counters resource.

    The resource holds eight whitespace-separated unsigned integers: enclaves
    created, enclaves released, pages added, page-ins, page-outs, total
    enclave pages, VA pages and free pages. Anything after the eighth field
    is ignored.

    Raises:
        ResourceUnavailableError: The resource can't be opened.
        AggregateFormatError: Fewer than eight valid counters were found.
        ClockError: The capture timestamp couldn't be taken.
    """
    tokens = _read_text(path).split()[:AGGREGATE_FIELDS]
    if len(tokens) < AGGREGATE_FIELDS:
        raise AggregateFormatError(
            f"{path}: expected {AGGREGATE_FIELDS} counters, found {len(tokens)}"
        )
    try:
        counters = [_parse_unsigned(token) for token in tokens]
    except ValueError as exc:
        raise AggregateFormatError(f"{path}: {exc}") from exc

    return AggregateSnapshot(*counters, timestamp_ns=read_clock(clock))


def parse_enclave_line(line: str) -> EnclaveSample | None:
    """Parse one listing line, returning None if it is malformed."""
    fields = line.split()
    if len(fields) != ENCLAVE_FIELDS:
        return None
    try:
        pid = _parse_signed(fields[0])
        enclave_id, size, committed, resident = (_parse_unsigned(f) for f in fields[1:])
    except ValueError:
        return None
    return EnclaveSample(pid=pid, id=enclave_id, size=size, committed=committed, resident=resident)


def read_enclaves(path: str | Path) -> Iterator[EnclaveSample]:
    """
    Yield the enclaves listed in the enclave-listing resource.

    A malformed line marks the end of valid data: reading stops there and
    the lines after it are not consulted. Undecodable bytes become U+FFFD,
    which makes their line malformed.
    """
    try:
        fp = open(path, encoding="ascii", errors="replace")
    except OSError as exc:
        raise ResourceUnavailableError(str(path), exc.strerror or str(exc)) from exc

    with fp:
        for lineno, line in enumerate(fp, start=1):
            sample = parse_enclave_line(line)
            if sample is None:
                if line.strip():
                    logger.debug("%s:%d: malformed enclave line, stopping: %r", path, lineno, line)
                return
            capture_logger.info(
                "%d %d %d %d %d",
                sample.pid,
                sample.id,
                sample.size,
                sample.committed,
                sample.resident,
            )
            yield sample


def lookup_command(pid: int) -> str | None:
    """
    Resolve a pid to its short command name.

    Returns None when the process is gone or can't be inspected.
    """
    try:
        return psutil.Process(pid).name() or None
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess, ValueError):
        return None
