"""Generational registry of live enclaves."""

import logging
from collections.abc import Callable

from sgxtop.errors import EnclaveConsistencyError, ReconciliationError
from sgxtop.models import EnclaveRecord, EnclaveSample

logger = logging.getLogger("sgxtop.registry")

DEFAULT_BUCKETS = 101

CommandLookup = Callable[[int], str | None]


def _no_lookup(pid: int) -> str | None:
    return None


class EnclaveRegistry:
    """
    Registry that reconciles successive enclave polls into one live view.

    Records are indexed by id in a fixed-size, chained hash table. Two
    generations (ordered id -> record maps) hold the records seen in the
    current poll and in the previous one; ``_current`` selects which of the
    two is current. A poll is driven as::

        registry.begin_poll()
        for sample in samples:
            registry.upsert(...)
        registry.end_poll()

    Records seen in the previous poll but not in this one are swept by
    ``end_poll()``, so at most two generations are ever held.
    """

    def __init__(
        self,
        bucket_count: int = DEFAULT_BUCKETS,
        command_lookup: CommandLookup | None = None,
    ) -> None:
        """
        Initialize an empty registry.

        Args:
            bucket_count: Number of hash buckets. Collisions are chained.
            command_lookup: Resolves a pid to a command name for new records.
        """
        if bucket_count < 1:
            raise ValueError(f"bucket_count must be at least 1, got {bucket_count}")
        self._buckets: list[list[EnclaveRecord]] = [[] for _ in range(bucket_count)]
        self._generations: list[dict[int, EnclaveRecord]] = [{}, {}]
        self._current = 0
        self._in_poll = False
        self._command_lookup = command_lookup or _no_lookup

    @property
    def bucket_count(self) -> int:
        """Number of hash buckets."""
        return len(self._buckets)

    @property
    def count(self) -> int:
        """Number of enclaves in the current generation."""
        return len(self._generations[self._current])

    @property
    def indexed(self) -> int:
        """Number of records reachable from the hash index."""
        return sum(len(bucket) for bucket in self._buckets)

    def __len__(self) -> int:
        return self.count

    def __contains__(self, enclave_id: int) -> bool:
        return self.find(enclave_id) is not None

    def _bucket(self, enclave_id: int) -> list[EnclaveRecord]:
        return self._buckets[enclave_id % len(self._buckets)]

    def _unlink(self, record: EnclaveRecord) -> None:
        bucket = self._bucket(record.id)
        bucket[:] = [entry for entry in bucket if entry is not record]

    def find(self, enclave_id: int) -> EnclaveRecord | None:
        """Look up a record by enclave id."""
        for record in self._bucket(enclave_id):
            if record.id == enclave_id:
                return record
        return None

    def begin_poll(self) -> None:
        """Make the other generation current; it must be empty."""
        if self._in_poll:
            raise ReconciliationError("begin_poll() called while a poll is in progress")
        incoming = self._generations[self._current ^ 1]
        if incoming:
            raise ReconciliationError(f"new current generation holds {len(incoming)} stale records")
        self._current ^= 1
        self._in_poll = True

    def upsert(self, enclave_id: int, pid: int, size: int, committed: int, resident: int) -> EnclaveRecord | None:
        """
        Record one observation of an enclave in the current poll.

        Returns the record, or None if a new record couldn't be allocated,
        in which case the observation is dropped for this poll.

        Raises:
            EnclaveConsistencyError: The id is known under a different pid.
        """
        if not self._in_poll:
            raise ReconciliationError("upsert() called outside begin_poll()/end_poll()")

        current = self._generations[self._current]
        previous = self._generations[self._current ^ 1]
        record = self.find(enclave_id)

        if record is None:
            try:
                record = EnclaveRecord(
                    id=enclave_id,
                    pid=pid,
                    size=size,
                    committed=committed,
                    resident=resident,
                    command=self._command_lookup(pid),
                )
            except MemoryError:
                logger.warning("Out of memory tracking enclave %d, skipping it this poll", enclave_id)
                return None
            self._bucket(enclave_id).append(record)
            current[enclave_id] = record
            return record

        if record.pid != pid:
            raise EnclaveConsistencyError(enclave_id, record.pid, pid)

        if enclave_id in current:
            # Duplicate within this poll: last write wins, history untouched.
            logger.debug("Enclave %d listed twice in one poll", enclave_id)
        else:
            record.previous_committed = record.committed
            record.previous_resident = record.resident
            del previous[enclave_id]
            current[enclave_id] = record

        record.size = size
        record.committed = committed
        record.resident = resident
        return record

    def upsert_sample(self, sample: EnclaveSample) -> EnclaveRecord | None:
        """Record a parsed listing line."""
        return self.upsert(sample.id, sample.pid, sample.size, sample.committed, sample.resident)

    def end_poll(self) -> int:
        """
        Destroy every record not seen in this poll.

        Returns the number of records removed.
        """
        if not self._in_poll:
            raise ReconciliationError("end_poll() called without begin_poll()")

        # Take the stale generation out whole, then drop each record from the index.
        previous = self._current ^ 1
        stale, self._generations[previous] = self._generations[previous], {}
        for record in stale.values():
            self._unlink(record)
        removed = len(stale)
        self._in_poll = False

        if removed:
            logger.debug("Swept %d departed enclaves", removed)
        return removed

    def snapshot_view(self) -> tuple[EnclaveRecord, ...]:
        """Records in the current generation, in the order they were read."""
        return tuple(self._generations[self._current].values())
