"""Pytest fixtures for backend tests."""
from typing import Any, Generator, Sequence

import pytest
from fastapi.testclient import TestClient

from explosion_hot.logic.engine import GameEngine
from explosion_hot.logic.models import Symbol
from explosion_hot.logic.rng import RNGBase, SeededRNG
from explosion_hot.main import app
from explosion_hot.sessions import session_registry
from explosion_hot.telemetry import TelemetryService


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (long simulations)"
    )


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start_ms: float = 0.0):
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


class ScriptedRNG(RNGBase):
    """
    RNG that replays fixed values.

    ``random()`` cycles through ``randoms``; ``randint`` returns ``a``
    shifted by the next entry of ``ints`` (cycled), clamped into range.
    """

    def __init__(self, randoms: Sequence[float] = (0.0,), ints: Sequence[int] = (0,)):
        self.randoms = list(randoms)
        self.ints = list(ints)
        self._r = 0
        self._i = 0

    def random(self) -> float:
        value = self.randoms[self._r % len(self.randoms)]
        self._r += 1
        return value

    def randint(self, a: int, b: int) -> int:
        value = self.ints[self._i % len(self.ints)]
        self._i += 1
        return min(a + value, b)


class RecordingTelemetrySink:
    """Telemetry sink that keeps every event for assertions."""

    def __init__(self):
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event_name: str, data: dict[str, Any]) -> None:
        self.events.append((event_name, data))

    def get_events(self, event_name: str) -> list[dict[str, Any]]:
        return [data for name, data in self.events if name == event_name]

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


def grid_from_rows(*rows: Sequence[Symbol | None]) -> tuple[tuple[Symbol | None, ...], ...]:
    """Build ``grid[reel][row]`` from three rows written left to right."""
    return tuple(tuple(row[reel] for row in rows) for reel in range(len(rows[0])))


# Filler rows: every payline breaks at reel 1, no cherries, no jackpots
PLAIN_TOP = [Symbol.LEMON, Symbol.GRAPE, Symbol.PLUM, Symbol.WATERMELON, Symbol.ORANGE]
PLAIN_MID = [Symbol.PLUM, Symbol.WATERMELON, Symbol.ORANGE, Symbol.LEMON, Symbol.GRAPE]
PLAIN_BOT = [Symbol.ORANGE, Symbol.LEMON, Symbol.GRAPE, Symbol.PLUM, Symbol.WATERMELON]


def plain_rows() -> list[list[Symbol | None]]:
    """Fresh copies of the filler rows, ready to be edited by a test."""
    return [list(PLAIN_TOP), list(PLAIN_MID), list(PLAIN_BOT)]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def telemetry_sink() -> RecordingTelemetrySink:
    return RecordingTelemetrySink()


@pytest.fixture
def engine(clock: FakeClock, telemetry_sink: RecordingTelemetrySink) -> GameEngine:
    """Engine on a fake clock with seeded reels and recorded telemetry."""
    return GameEngine(
        rng=SeededRNG(seed=42),
        clock=clock,
        session_id="test-session",
        telemetry=TelemetryService(telemetry_sink),
    )


@pytest.fixture
def make_engine(clock: FakeClock, telemetry_sink: RecordingTelemetrySink):
    """Factory for engines with custom credits, stake or RNG."""

    def _make(rng: RNGBase | None = None, **kwargs) -> GameEngine:
        return GameEngine(
            rng=rng or SeededRNG(seed=42),
            clock=clock,
            session_id="test-session",
            telemetry=TelemetryService(telemetry_sink),
            **kwargs,
        )

    return _make


@pytest.fixture(autouse=True)
def reset_sessions() -> Generator[None, None, None]:
    """Every test starts without live sessions."""
    session_registry.reset()
    yield
    session_registry.reset()
    session_registry.set_factory(None)


@pytest.fixture
def client(clock: FakeClock, telemetry_sink: RecordingTelemetrySink) -> TestClient:
    """
    TestClient whose sessions run on the fake clock.

    The lifespan (and so the background ticker) is not started; tests
    advance sessions with ``session_registry.get(player).tick()``.
    """
    seeds = iter(range(1000, 2000))

    def factory(player_id: str) -> GameEngine:
        return GameEngine(
            rng=SeededRNG(seed=next(seeds)),
            clock=clock,
            session_id=player_id,
            telemetry=TelemetryService(telemetry_sink),
        )

    session_registry.set_factory(factory)
    return TestClient(app)
