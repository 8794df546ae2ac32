"""Ranking and presentation of the enclave table."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import cmp_to_key

from sgxtop.models import AggregateSnapshot, EnclaveRecord
from sgxtop.rates import PagingRates

COLUMNS = ("PID", "ID", "Size", "EADDed", "Resident", "Command")
PAGE_KB = 4


def _three_way(a: int, b: int) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def compare_records(a: EnclaveRecord, b: EnclaveRecord) -> int:
    """Order by resident pages ascending, then by id ascending."""
    return _three_way(a.resident, b.resident) or _three_way(a.id, b.id)


def rank_records(records: Iterable[EnclaveRecord]) -> list[EnclaveRecord]:
    """Return records in display order."""
    return sorted(records, key=cmp_to_key(compare_records))


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{int(size):5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_row(record: EnclaveRecord) -> tuple[str, ...]:
    """Render one enclave as table cells."""
    return (
        str(record.pid),
        str(record.id),
        f"{record.size // 1024}K",
        f"{record.committed * PAGE_KB}K",
        f"{record.resident * PAGE_KB}K",
        record.command or "",
    )


def format_header(aggregate: AggregateSnapshot, rates: PagingRates) -> tuple[str, str, str]:
    """Render the aggregate statistics and paging rates."""
    enclaves = f"{aggregate.active_enclaves}/{aggregate.enclaves_created}"
    memory = (
        f"{aggregate.va_pages * PAGE_KB}K/"
        f"{aggregate.used_pages * PAGE_KB}K/"
        f"{aggregate.enclave_pages * PAGE_KB}K"
    )
    return (
        f"{enclaves:>15} enclaves/created  {memory:>30} va/used/tot mem",
        f"pageins  {format_bytes(rates.pagein_rate)}/s  peak {format_bytes(rates.peak_pagein_rate)}/s",
        f"pageouts {format_bytes(rates.pageout_rate)}/s  peak {format_bytes(rates.peak_pageout_rate)}/s",
    )


@dataclass(slots=True, frozen=True)
class Frame:
    """Everything the render surface needs for one poll."""

    header: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    cleared_rows: tuple[int, ...]  # Row indices left over from the last frame
    total: int  # Enclaves in the registry, shown or not


class TablePresenter:
    """
    Builds row-bounded frames and remembers how many rows were last drawn.

    Rows are numbered from 0. When a frame has fewer rows than the previous
    one, the indices in between are listed in ``Frame.cleared_rows`` so the
    surface can blank them.
    """

    def __init__(self) -> None:
        """Initialize the presenter with nothing rendered."""
        self._last_rendered_rows = 0

    @property
    def last_rendered_rows(self) -> int:
        """Number of table rows drawn by the previous frame."""
        return self._last_rendered_rows

    def present(
        self,
        records: Sequence[EnclaveRecord],
        header: tuple[str, ...],
        max_rows: int,
    ) -> Frame:
        """Rank records and build a frame of at most ``max_rows`` rows."""
        ranked = rank_records(records)
        rows = tuple(format_row(record) for record in ranked[: max(max_rows, 0)])
        cleared = tuple(range(len(rows), self._last_rendered_rows))
        self._last_rendered_rows = len(rows)
        return Frame(header=header, rows=rows, cleared_rows=cleared, total=len(records))
