"""Fixed-cadence polling loop driving the registry, rates and presenter."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from sgxtop.config import Config
from sgxtop.errors import ClockError
from sgxtop.models import AggregateSnapshot
from sgxtop.ranking import Frame, TablePresenter, format_header
from sgxtop.rates import NS_PER_SECOND, RateTracker
from sgxtop.registry import CommandLookup, EnclaveRegistry
from sgxtop.sources import lookup_command, read_aggregate, read_clock, read_enclaves

logger = logging.getLogger("sgxtop.poller")


class RenderSurface(Protocol):
    """Where frames are drawn."""

    def row_capacity(self) -> int:
        """Number of table rows that fit on the surface."""
        ...

    def render(self, frame: Frame) -> None:
        """Draw one frame."""
        ...


def sleep_until(
    deadline_ns: int,
    clock: Callable[[], int] = time.monotonic_ns,
    sleep: Callable[[float], object] = time.sleep,
) -> None:
    """
    Block until the monotonic clock reaches ``deadline_ns``.

    An interrupted sleep is resumed; any other OSError propagates.
    """
    while True:
        remaining = deadline_ns - read_clock(clock)
        if remaining <= 0:
            return
        try:
            sleep(remaining / NS_PER_SECOND)
        except InterruptedError:
            continue


@dataclass(slots=True)
class Session:
    """State carried from one poll to the next."""

    registry: EnclaveRegistry
    rates: RateTracker = field(default_factory=RateTracker)
    presenter: TablePresenter = field(default_factory=TablePresenter)
    previous: AggregateSnapshot | None = None
    current: AggregateSnapshot | None = None


class Poller:
    """
    Reads the kernel resources once per period and renders the result.

    Wake-ups are scheduled at ``t0 + n * period`` where ``t0`` is the capture
    time of the first aggregate snapshot, so processing time doesn't make
    the cadence drift. Errors are not handled here; they propagate to the
    caller, which decides whether they are fatal.
    """

    def __init__(
        self,
        config: Config,
        surface: RenderSurface,
        *,
        command_lookup: CommandLookup = lookup_command,
        clock: Callable[[], int] = time.monotonic_ns,
        sleep: Callable[[float], object] = time.sleep,
    ) -> None:
        """
        Initialize the Poller.

        Args:
            config: Resource paths, period and registry sizing.
            surface: Receives one frame per completed poll.
            command_lookup: Resolves pids to command names.
            clock: Monotonic clock returning nanoseconds.
            sleep: Sleeps for a number of seconds.
        """
        self._config = config
        self._surface = surface
        self._clock = clock
        self._sleep = sleep
        self._period_ns = round(config.interval * NS_PER_SECOND)
        self._deadline_ns: int | None = None
        self.session = Session(registry=EnclaveRegistry(config.buckets, command_lookup))

    @property
    def deadline_ns(self) -> int | None:
        """Monotonic time of the next scheduled wake-up."""
        return self._deadline_ns

    def prime(self) -> AggregateSnapshot:
        """Take the initial aggregate snapshot that anchors the cadence."""
        snapshot = read_aggregate(self._config.stats_path, self._clock)
        self.session.current = snapshot
        self._deadline_ns = snapshot.timestamp_ns
        return snapshot

    def reconcile(self) -> None:
        """Run one registry poll cycle against the enclave listing."""
        registry = self.session.registry
        registry.begin_poll()
        for sample in read_enclaves(self._config.enclaves_path):
            registry.upsert_sample(sample)
        registry.end_poll()

    def poll_once(self) -> Frame:
        """Read both resources, update the registry and render a frame."""
        session = self.session
        if session.current is None:
            self.prime()

        session.previous = session.current
        session.current = read_aggregate(self._config.stats_path, self._clock)
        self.reconcile()

        rates = session.rates.update(session.previous, session.current)
        header = format_header(session.current, rates)
        frame = session.presenter.present(
            session.registry.snapshot_view(),
            header,
            self._surface.row_capacity(),
        )
        self._surface.render(frame)
        logger.debug(
            "Polled %d enclaves, showing %d, clearing %d rows",
            frame.total,
            len(frame.rows),
            len(frame.cleared_rows),
        )
        return frame

    def wait(self) -> None:
        """Sleep until the next period boundary."""
        if self._deadline_ns is None:
            raise ClockError("cadence not started; call prime() first")
        self._deadline_ns += self._period_ns
        sleep_until(self._deadline_ns, self._clock, self._sleep)

    def run(
        self,
        should_stop: Callable[[], bool] = lambda: False,
        cycles: int | None = None,
    ) -> None:
        """
        Poll until ``should_stop`` returns True or ``cycles`` polls complete.

        ``should_stop`` is only consulted between polls.
        """
        if self.session.current is None:
            self.prime()
        completed = 0
        while not should_stop() and (cycles is None or completed < cycles):
            self.wait()
            if should_stop():
                break
            self.poll_once()
            completed += 1
