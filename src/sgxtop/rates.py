"""Paging-rate computation over aggregate snapshots."""

from dataclasses import dataclass

from sgxtop.models import PAGE_SIZE, AggregateSnapshot

NS_PER_SECOND = 1_000_000_000


@dataclass(slots=True, frozen=True)
class PagingRates:
    """Page-in and page-out throughput in bytes per second."""

    pagein_rate: float
    pageout_rate: float
    peak_pagein_rate: float
    peak_pageout_rate: float


class PeakTracker:
    """Highest value observed so far; never decreases."""

    def __init__(self) -> None:
        """Initialize the tracker with a peak of zero."""
        self._peak = 0.0

    @property
    def peak(self) -> float:
        """Get the peak observed so far."""
        return self._peak

    def observe(self, value: float) -> float:
        """Record a value and return the updated peak."""
        if value > self._peak:
            self._peak = value
        return self._peak


def page_rate(previous: int, current: int, elapsed_ns: int) -> float:
    """
    Convert a page counter delta into bytes per second.

    Returns 0.0 when no time has elapsed (or the clock went backwards), and
    when the counter went backwards.
    """
    if elapsed_ns <= 0 or current <= previous:
        return 0.0
    return (current - previous) * PAGE_SIZE * NS_PER_SECOND / elapsed_ns


class RateTracker:
    """
    Derives page-in/page-out rates from consecutive aggregate snapshots.

    Peaks are kept for the lifetime of the tracker.
    """

    def __init__(self) -> None:
        """Initialize the tracker with zero peaks."""
        self._pagein_peak = PeakTracker()
        self._pageout_peak = PeakTracker()

    def update(self, previous: AggregateSnapshot, current: AggregateSnapshot) -> PagingRates:
        """Compute rates between two snapshots and fold them into the peaks."""
        elapsed_ns = current.timestamp_ns - previous.timestamp_ns
        pagein_rate = page_rate(previous.pageins, current.pageins, elapsed_ns)
        pageout_rate = page_rate(previous.pageouts, current.pageouts, elapsed_ns)

        return PagingRates(
            pagein_rate=pagein_rate,
            pageout_rate=pageout_rate,
            peak_pagein_rate=self._pagein_peak.observe(pagein_rate),
            peak_pageout_rate=self._pageout_peak.observe(pageout_rate),
        )
