"""Shared fixtures for sgxtop tests."""

from pathlib import Path

import pytest

from sgxtop.config import Config
from sgxtop.ranking import Frame


class SgxFiles:
    """Fake /proc/sgx_stats and /proc/sgx_enclaves resources."""

    def __init__(self, root: Path) -> None:
        self.stats_path = root / "sgx_stats"
        self.enclaves_path = root / "sgx_enclaves"
        self.write_stats()
        self.write_enclaves([])

    def write_stats(
        self,
        created: int = 3,
        released: int = 1,
        pages_added: int = 500,
        pageins: int = 100,
        pageouts: int = 50,
        enclave_pages: int = 1000,
        va_pages: int = 10,
        free_pages: int = 400,
    ) -> None:
        self.stats_path.write_text(
            f"{created} {released} {pages_added} {pageins} {pageouts} "
            f"{enclave_pages} {va_pages} {free_pages}\n"
        )

    def write_enclaves(self, rows: list[tuple[int, int, int, int, int]]) -> None:
        self.enclaves_path.write_text("".join(" ".join(map(str, row)) + "\n" for row in rows))

    def config(self, **overrides) -> Config:
        return Config(stats_path=self.stats_path, enclaves_path=self.enclaves_path, **overrides)


class RecordingSurface:
    """Render surface that keeps every frame it is given."""

    def __init__(self, capacity: int = 100) -> None:
        self.capacity = capacity
        self.frames: list[Frame] = []

    def row_capacity(self) -> int:
        return self.capacity

    def render(self, frame: Frame) -> None:
        self.frames.append(frame)


class FakeClock:
    """Monotonic clock whose sleeps advance time instantly."""

    def __init__(self, start_ns: int = 5_000_000_000) -> None:
        self.now = start_ns
        self.sleeps: list[float] = []

    def __call__(self) -> int:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(round(seconds * 1_000_000_000), 1)


@pytest.fixture
def sgx_files(tmp_path: Path) -> SgxFiles:
    return SgxFiles(tmp_path)


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
