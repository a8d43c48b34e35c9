"""Session registry tests."""
import asyncio

import pytest

from explosion_hot.config import settings
from explosion_hot.logic.engine import GameEngine
from explosion_hot.logic.models import GamePhase
from explosion_hot.logic.rng import SeededRNG
from explosion_hot.sessions import SessionRegistry
from explosion_hot.telemetry import TelemetryService

from conftest import FakeClock, RecordingTelemetrySink


@pytest.fixture
def registry(clock) -> SessionRegistry:
    def factory(player_id: str) -> GameEngine:
        return GameEngine(
            rng=SeededRNG(seed=1),
            clock=clock,
            session_id=player_id,
            telemetry=TelemetryService(RecordingTelemetrySink()),
        )

    return SessionRegistry(factory)


class TestSessionRegistry:
    def test_get_creates_once(self, registry):
        first = registry.get("alice")
        assert registry.get("alice") is first
        assert "alice" in registry
        assert len(registry) == 1

    def test_sessions_are_independent(self, registry):
        registry.get("alice").request_spin()
        assert registry.get("bob").state.phase == GamePhase.IDLE
        assert registry.get("alice").state.phase == GamePhase.SPINNING

    def test_tick_all_resolves_rounds(self, registry, clock: FakeClock):
        registry.get("alice").request_spin()
        registry.get("bob").request_spin()
        clock.advance(4000)
        registry.tick_all()
        for player in ("alice", "bob"):
            assert registry.get(player).state.phase != GamePhase.SPINNING

    def test_failing_session_recovers(self, registry, monkeypatch):
        alice = registry.get("alice")
        bob = registry.get("bob")
        alice.request_spin()

        def broken_tick(now_ms=None):
            raise RuntimeError("boom")

        monkeypatch.setattr(alice, "tick", broken_tick)
        bob.set_autoplay(True)
        registry.tick_all()
        assert alice.state.phase == GamePhase.IDLE
        assert alice.reels.spinning is False
        assert bob.state.phase == GamePhase.SPINNING

    def test_reset(self, registry):
        registry.get("alice")
        registry.reset()
        assert len(registry) == 0

    def test_default_factory_builds_engine(self):
        registry = SessionRegistry()
        engine = registry.get("carol")
        assert engine.session_id == "carol"
        assert engine.state.credits == 10000


class TestTicker:
    @pytest.mark.asyncio
    async def test_ticker_runs_until_cancelled(self, registry):
        ticks = []
        engine = registry.get("alice")
        original = engine.tick

        def counting_tick(now_ms=None):
            ticks.append(now_ms)
            return original(now_ms)

        engine.tick = counting_tick
        task = asyncio.create_task(registry.run_ticker(interval_ms=1))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(ticks) > 1


class TestIdleEviction:
    """Sessions nobody touches are dropped by the tick loop."""

    def test_idle_sessions_evicted(self, clock: FakeClock):
        registry = SessionRegistry(
            lambda player_id: GameEngine(
                rng=SeededRNG(seed=1),
                clock=clock,
                session_id=player_id,
                telemetry=TelemetryService(RecordingTelemetrySink()),
            ),
            idle_ttl_ms=60_000,
        )
        for i in range(500):
            registry.get(f"player-{i}")
        registry.tick_all()
        assert len(registry) == 500

        clock.advance(60_001)
        registry.tick_all()
        assert len(registry) == 0

    def test_activity_keeps_session_alive(self, clock: FakeClock):
        registry = SessionRegistry(
            lambda player_id: GameEngine(rng=SeededRNG(seed=1), clock=clock, session_id=player_id),
            idle_ttl_ms=1000,
        )
        alice = registry.get("alice")
        registry.get("bob")
        clock.advance(800)
        assert registry.get("alice") is alice
        clock.advance(800)
        assert registry.evict_idle() == 1
        assert "alice" in registry
        assert "bob" not in registry

    def test_default_ttl_from_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "session_idle_ttl_ms", 1234)
        assert SessionRegistry().idle_ttl_ms == 1234

    def test_evicted_player_starts_fresh(self, registry, clock: FakeClock):
        registry.get("alice").request_spin()
        clock.advance(registry.idle_ttl_ms + 1)
        registry.tick_all()
        assert "alice" not in registry
        assert registry.get("alice").state.credits == 10000


class TestRecover:
    def test_recover_abandons_round(self, engine):
        engine.request_spin()
        engine.recover()
        assert engine.state.phase == GamePhase.IDLE
        assert engine.reels.spinning is False
        assert engine.state.credits == 10000 - 25
