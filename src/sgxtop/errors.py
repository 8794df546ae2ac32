"""Exceptions raised by sgxtop."""


class SgxtopError(Exception):
    """Base class for all sgxtop errors."""


class ResourceUnavailableError(SgxtopError):
    """A kernel resource could not be opened or read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"couldn't open {path}: {reason}")
        self.path = path


class AggregateFormatError(SgxtopError):
    """The aggregate counters resource did not hold eight counters."""


class ClockError(SgxtopError):
    """The monotonic clock could not be read."""


class EnclaveConsistencyError(SgxtopError):
    """An enclave id was observed with a different owning pid."""

    def __init__(self, enclave_id: int, expected_pid: int, observed_pid: int) -> None:
        super().__init__(
            f"enclave {enclave_id} belonged to pid {expected_pid}, now reported for pid {observed_pid}"
        )
        self.enclave_id = enclave_id
        self.expected_pid = expected_pid
        self.observed_pid = observed_pid


class ReconciliationError(SgxtopError):
    """The registry's generation bookkeeping was used out of order."""
