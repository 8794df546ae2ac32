"""Configuration for sgxtop."""

import argparse
import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from sgxtop.registry import DEFAULT_BUCKETS

DEFAULT_STATS_PATH = "/proc/sgx_stats"
DEFAULT_ENCLAVES_PATH = "/proc/sgx_enclaves"
DEFAULT_INTERVAL = 1.0
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env(key: str, default: str) -> str:
    value = os.getenv(key)
    return value if value is not None else default


def _env_int(key: str, default: int) -> int:
    try:
        return int(_env(key, str(default)))
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    try:
        return float(_env(key, str(default)))
    except ValueError:
        return default


def _env_path(key: str) -> Path | None:
    value = os.getenv(key)
    return Path(value) if value else None


@dataclass(slots=True)
class Config:
    """Runtime settings: resource paths, cadence, registry sizing and logging."""

    stats_path: Path = Path(DEFAULT_STATS_PATH)
    enclaves_path: Path = Path(DEFAULT_ENCLAVES_PATH)
    interval: float = DEFAULT_INTERVAL  # Seconds between polls
    buckets: int = DEFAULT_BUCKETS
    max_rows: int | None = None
    enclave_log: Path | None = None
    log_file: Path | None = None
    log_level: str = "WARNING"


def config_from_env() -> Config:
    """Build a Config from SGXTOP_* environment variables."""
    max_rows = _env_int("SGXTOP_MAX_ROWS", 0)
    level = _env("SGXTOP_LOG_LEVEL", "WARNING").upper()
    return Config(
        stats_path=Path(_env("SGXTOP_STATS_PATH", DEFAULT_STATS_PATH)),
        enclaves_path=Path(_env("SGXTOP_ENCLAVES_PATH", DEFAULT_ENCLAVES_PATH)),
        interval=_env_float("SGXTOP_INTERVAL", DEFAULT_INTERVAL),
        buckets=_env_int("SGXTOP_BUCKETS", DEFAULT_BUCKETS),
        max_rows=max_rows if max_rows > 0 else None,
        enclave_log=_env_path("SGXTOP_ENCLAVE_LOG"),
        log_file=_env_path("SGXTOP_LOG_FILE"),
        log_level=level if level in LOG_LEVELS else "WARNING",
    )


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than zero: {value!r}")
    return number


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value!r}")
    return number


def build_parser(defaults: Config) -> argparse.ArgumentParser:
    """Build the command-line parser, using ``defaults`` for omitted flags."""
    parser = argparse.ArgumentParser(
        prog="sgxtop",
        description="Live view of SGX enclaves and EPC paging activity.",
    )
    parser.add_argument("--stats-path", type=Path, default=defaults.stats_path,
                        help="aggregate counters resource (default: %(default)s)")
    parser.add_argument("--enclaves-path", type=Path, default=defaults.enclaves_path,
                        help="enclave listing resource (default: %(default)s)")
    parser.add_argument("-d", "--interval", type=_positive_float, default=defaults.interval,
                        help="seconds between polls (default: %(default)s)")
    parser.add_argument("--buckets", type=_positive_int, default=defaults.buckets,
                        help="registry hash buckets (default: %(default)s)")
    parser.add_argument("-n", "--max-rows", type=_positive_int, default=defaults.max_rows,
                        help="show at most this many enclaves")
    parser.add_argument("--enclave-log", type=Path, default=defaults.enclave_log,
                        help="append every enclave line read to this file")
    parser.add_argument("--log-file", type=Path, default=defaults.log_file,
                        help="write diagnostics to this file")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default=defaults.log_level)
    return parser


def load_config(argv: Sequence[str] | None = None) -> Config:
    """Load configuration from the environment, overridden by command-line flags."""
    defaults = config_from_env()
    if defaults.interval <= 0:
        defaults.interval = DEFAULT_INTERVAL
    if defaults.buckets < 1:
        defaults.buckets = DEFAULT_BUCKETS
    args = build_parser(defaults).parse_args(argv)
    return Config(
        stats_path=args.stats_path,
        enclaves_path=args.enclaves_path,
        interval=args.interval,
        buckets=args.buckets,
        max_rows=args.max_rows,
        enclave_log=args.enclave_log,
        log_file=args.log_file,
        log_level=args.log_level,
    )
