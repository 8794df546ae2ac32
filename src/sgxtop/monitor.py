"""Background enclave monitor for sgxtop."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from queue import Queue

from sgxtop.config import Config
from sgxtop.errors import SgxtopError
from sgxtop.poller import Poller
from sgxtop.ranking import Frame
from sgxtop.registry import CommandLookup
from sgxtop.sources import lookup_command

logger = logging.getLogger("sgxtop.monitor")


@dataclass(slots=True, frozen=True)
class PollFailure:
    """A fatal error that ended polling."""

    error: SgxtopError

    @property
    def message(self) -> str:
        """Text shown when the app exits."""
        return f"sgxtop: {self.error}"


class QueueSurface:
    """Render surface that hands frames to another thread through a queue."""

    def __init__(self, queue: "Queue[Frame | PollFailure]", capacity: Callable[[], int]) -> None:
        """
        Initialize the QueueSurface.

        Args:
            queue: Queue the UI thread drains.
            capacity: Returns how many table rows the UI can show.
        """
        self._queue = queue
        self._capacity = capacity

    def row_capacity(self) -> int:
        """Rows the UI can currently show."""
        return self._capacity()

    def render(self, frame: Frame) -> None:
        """Queue a frame for the UI thread."""
        self._queue.put(frame)


class EnclaveMonitor:
    """
    Enclave monitor that runs the Poller in a separate daemon thread.

    Each completed poll pushes a Frame onto the queue. A fatal error pushes a
    PollFailure instead and ends the thread; nothing is pushed for the poll
    that failed.
    """

    def __init__(
        self,
        update_queue: "Queue[Frame | PollFailure]",
        config: Config,
        capacity: Callable[[], int] = lambda: 1000,
        command_lookup: CommandLookup = lookup_command,
    ) -> None:
        """
        Initialize the EnclaveMonitor.

        Args:
            update_queue: Thread-safe queue to push frames to.
            config: Poller configuration.
            capacity: Returns how many table rows the UI can show.
            command_lookup: Resolves pids to command names.
        """
        self._queue = update_queue
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._poller = Poller(
            config,
            QueueSurface(update_queue, capacity),
            command_lookup=command_lookup,
        )

    @property
    def poller(self) -> Poller:
        """Get the underlying poller."""
        return self._poller

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="EnclaveMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Ask the monitoring thread to stop after the current poll.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        try:
            self._poller.run(should_stop=self._stop_event.is_set)
        except SgxtopError as exc:
            logger.error("Polling stopped: %s", exc)
            self._queue.put(PollFailure(exc))
        except OSError as exc:
            logger.error("Polling stopped: %s", exc)
            self._queue.put(PollFailure(SgxtopError(str(exc))))
        except Exception as exc:
            logger.exception("Polling stopped by unexpected error")
            self._queue.put(PollFailure(SgxtopError(f"unexpected error: {exc!r}")))
