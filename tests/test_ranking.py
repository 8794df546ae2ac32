"""Tests for ranking and presentation."""

import pytest

from sgxtop.models import AggregateSnapshot, EnclaveRecord
from sgxtop.ranking import (
    COLUMNS,
    Frame,
    TablePresenter,
    compare_records,
    format_bytes,
    format_header,
    format_row,
    rank_records,
)
from sgxtop.rates import PagingRates


def record(enclave_id: int, resident: int, **kwargs) -> EnclaveRecord:
    values = dict(pid=100, size=65536, committed=8)
    values.update(kwargs)
    return EnclaveRecord(id=enclave_id, resident=resident, **values)


def records(count: int) -> list[EnclaveRecord]:
    return [record(i, i) for i in range(count)]


def test_format_bytes_bytes():
    """Test format_bytes with byte values."""
    assert "B" in format_bytes(500)


def test_format_bytes_kilobytes():
    """Test format_bytes with kilobyte values."""
    assert "K" in format_bytes(2048)


def test_format_bytes_megabytes():
    """Test format_bytes with megabyte values."""
    assert "M" in format_bytes(5242880)


def test_format_bytes_float_bytes():
    """Test fractional byte rates still format."""
    assert format_bytes(0.0) == "    0B"


class TestRanking:
    """Tests for compare_records and rank_records."""

    def test_resident_then_id(self):
        """Test resident pages ascending with id as tiebreak."""
        ranked = rank_records([record(2, 5), record(1, 3), record(3, 3), record(4, 9)])
        assert [r.id for r in ranked] == [1, 3, 2, 4]

    def test_compare_is_three_way(self):
        """Test the comparator returns -1, 0 or 1."""
        assert compare_records(record(1, 3), record(2, 3)) == -1
        assert compare_records(record(2, 3), record(1, 3)) == 1
        assert compare_records(record(1, 3), record(1, 3)) == 0
        assert compare_records(record(9, 1), record(1, 2)) == -1

    def test_large_values(self):
        """Test values near the 64-bit range order correctly."""
        huge = 2**64 - 1
        ranked = rank_records([record(huge, huge), record(0, huge), record(huge, 0)])
        assert [(r.id, r.resident) for r in ranked] == [(huge, 0), (0, huge), (huge, huge)]

    def test_input_not_modified(self):
        """Test ranking returns a new list."""
        original = [record(2, 5), record(1, 3)]
        rank_records(original)
        assert [r.id for r in original] == [2, 1]


class TestFormatting:
    """Tests for row and header formatting."""

    def test_row_cells(self):
        """Test sizes are shown in KiB and pages as 4K units."""
        row = format_row(record(7, 3, pid=42, size=81920, committed=10, command="enclave-app"))
        assert row == ("42", "7", "80K", "40K", "12K", "enclave-app")
        assert len(row) == len(COLUMNS)

    def test_row_without_command(self):
        """Test a missing command renders as an empty cell."""
        assert format_row(record(1, 1))[-1] == ""

    def test_header(self):
        """Test the header carries enclave counts, memory and rates."""
        aggregate = AggregateSnapshot(
            enclaves_created=10,
            enclaves_released=4,
            pages_added=0,
            pageins=0,
            pageouts=0,
            enclave_pages=1000,
            va_pages=16,
            free_pages=250,
            timestamp_ns=0,
        )
        rates = PagingRates(pagein_rate=2048, pageout_rate=0, peak_pagein_rate=4096, peak_pageout_rate=0)
        first, pageins, pageouts = format_header(aggregate, rates)

        assert "6/10 enclaves/created" in first
        assert "64K/3000K/4000K va/used/tot mem" in first
        assert pageins.startswith("pageins    2.0K/s  peak ")
        assert pageouts.startswith("pageouts     0B/s  peak ")
        assert "pageins" in pageins
        assert "2.0K/s" in pageins
        assert "4.0K/s" in pageins
        assert "pageouts" in pageouts


class TestTablePresenter:
    """Tests for TablePresenter."""

    def test_rows_are_ranked(self):
        """Test frame rows follow the ranking."""
        frame = TablePresenter().present([record(2, 5), record(1, 3)], ("h",), max_rows=10)
        assert [row[1] for row in frame.rows] == ["1", "2"]
        assert frame.header == ("h",)
        assert frame.total == 2

    def test_rows_bounded(self):
        """Test only max_rows rows are produced."""
        frame = TablePresenter().present(records(30), (), max_rows=5)
        assert len(frame.rows) == 5
        assert frame.total == 30

    def test_zero_capacity(self):
        """Test a surface with no room gets no rows."""
        frame = TablePresenter().present(records(3), (), max_rows=0)
        assert frame.rows == ()

    def test_shrinking_frame_clears_leftover_rows(self):
        """Test rows 5-10 are blanked when 10 rows shrink to 4."""
        presenter = TablePresenter()
        first = presenter.present(records(10), (), max_rows=50)
        second = presenter.present(records(4), (), max_rows=50)

        assert first.cleared_rows == ()
        assert len(second.rows) == 4
        # Indices are 0-based: rows 5 to 10 on screen.
        assert second.cleared_rows == (4, 5, 6, 7, 8, 9)
        assert presenter.last_rendered_rows == 4

    def test_growing_frame_clears_nothing(self):
        """Test nothing is cleared when the table grows."""
        presenter = TablePresenter()
        presenter.present(records(2), (), max_rows=50)
        assert presenter.present(records(6), (), max_rows=50).cleared_rows == ()

    def test_clearing_follows_capacity(self):
        """Test a smaller surface clears rows that no longer fit."""
        presenter = TablePresenter()
        presenter.present(records(8), (), max_rows=8)
        frame = presenter.present(records(8), (), max_rows=3)
        assert frame.cleared_rows == (3, 4, 5, 6, 7)

    def test_frame_is_frozen(self):
        """Test frames are immutable."""
        frame = TablePresenter().present([], (), max_rows=1)
        assert isinstance(frame, Frame)
        with pytest.raises(AttributeError):
            frame.total = 3
