"""Data models for sgxtop."""

from dataclasses import dataclass

PAGE_SIZE = 4096  # Bytes per enclave page


@dataclass(slots=True, frozen=True)
class AggregateSnapshot:
    """Immutable snapshot of the aggregate enclave counters."""

    enclaves_created: int
    enclaves_released: int
    pages_added: int
    pageins: int
    pageouts: int
    enclave_pages: int
    va_pages: int
    free_pages: int
    timestamp_ns: int  # Monotonic capture time

    @property
    def active_enclaves(self) -> int:
        """Number of enclaves created and not yet released."""
        return max(self.enclaves_created - self.enclaves_released, 0)

    @property
    def used_pages(self) -> int:
        """Enclave pages currently in use."""
        return max(self.enclave_pages - self.free_pages, 0)


@dataclass(slots=True, frozen=True)
class EnclaveSample:
    """One line of the enclave listing as read during a poll."""

    pid: int
    id: int
    size: int  # Bytes
    committed: int  # Pages added since creation
    resident: int  # Pages currently resident


@dataclass(slots=True)
class EnclaveRecord:
    """Live state of one enclave, owned by the registry."""

    id: int
    pid: int
    size: int
    committed: int
    resident: int
    previous_committed: int = 0
    previous_resident: int = 0
    command: str | None = None
