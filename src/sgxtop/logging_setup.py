"""Logging setup for sgxtop."""

import logging
from dataclasses import dataclass
from pathlib import Path

from sgxtop.config import Config

CAPTURE_LOGGER = "sgxtop.capture"


@dataclass(slots=True)
class LoggingConfig:
    level: int = logging.WARNING
    fmt: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    log_file: Path | None = None
    enclave_log: Path | None = None


def logging_config(config: Config) -> LoggingConfig:
    """Derive logging settings from the runtime Config."""
    return LoggingConfig(
        level=logging.getLevelName(config.log_level),
        log_file=config.log_file,
        enclave_log=config.enclave_log,
    )


def _clear_handlers(logger: logging.Logger) -> None:
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()


def setup_logging(config: LoggingConfig | None = None) -> dict[str, logging.Logger]:
    """
    Configure the sgxtop loggers.

    The terminal belongs to the UI, so diagnostics only go to a file when one
    is configured. The enclave capture log gets its own plain-text handler.
    Calling it again replaces the handlers installed by the previous call.
    """
    cfg = config or LoggingConfig()
    root = logging.getLogger("sgxtop")
    root.setLevel(cfg.level)
    _clear_handlers(root)
    if cfg.log_file is not None:
        handler: logging.Handler = logging.FileHandler(cfg.log_file)
        handler.setFormatter(logging.Formatter(cfg.fmt))
    else:
        handler = logging.NullHandler()
    root.addHandler(handler)

    capture = logging.getLogger(CAPTURE_LOGGER)
    capture.propagate = False
    _clear_handlers(capture)
    if cfg.enclave_log is not None:
        capture.setLevel(logging.INFO)
        capture_handler = logging.FileHandler(cfg.enclave_log, mode="w")
        capture_handler.setFormatter(logging.Formatter("%(message)s"))
        capture.addHandler(capture_handler)
    else:
        capture.addHandler(logging.NullHandler())

    return {
        "sgxtop": root,
        "sources": logging.getLogger("sgxtop.sources"),
        "registry": logging.getLogger("sgxtop.registry"),
        "poller": logging.getLogger("sgxtop.poller"),
        "monitor": logging.getLogger("sgxtop.monitor"),
        "capture": capture,
    }
