"""In-memory session registry and the shared tick loop."""
import asyncio
import logging
from typing import Callable

from explosion_hot.config import settings
from explosion_hot.logic.engine import GameEngine

logger = logging.getLogger(__name__)

EngineFactory = Callable[[str], GameEngine]


class SessionRegistry:
    """
    One GameEngine per player id, held while the player stays active.

    Nothing is persisted; a restart starts every player from scratch.
    Sessions untouched for longer than ``idle_ttl_ms`` are dropped by
    ``tick_all``.
    """

    def __init__(
        self,
        engine_factory: EngineFactory | None = None,
        idle_ttl_ms: int | None = None,
    ):
        self._sessions: dict[str, GameEngine] = {}
        self._last_active: dict[str, float] = {}
        self._factory = engine_factory or self._default_factory
        self._idle_ttl_ms = idle_ttl_ms
        self._tick_errors = 0

    @staticmethod
    def _default_factory(player_id: str) -> GameEngine:
        return GameEngine(session_id=player_id)

    def __contains__(self, player_id: str) -> bool:
        return player_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def idle_ttl_ms(self) -> int:
        if self._idle_ttl_ms is None:
            return settings.session_idle_ttl_ms
        return self._idle_ttl_ms

    def set_factory(self, engine_factory: EngineFactory | None) -> None:
        """Replace the engine factory (useful for testing)."""
        self._factory = engine_factory or self._default_factory

    def get(self, player_id: str) -> GameEngine:
        """Return the player's session, creating it on first use."""
        engine = self._sessions.get(player_id)
        if engine is None:
            engine = self._factory(player_id)
            self._sessions[player_id] = engine
            logger.info("Session created for player %s", player_id)
        self._last_active[player_id] = engine.clock()
        return engine

    def reset(self) -> None:
        self._sessions.clear()
        self._last_active.clear()

    def evict_idle(self) -> int:
        """Drop sessions idle for longer than the TTL. Returns the count dropped."""
        ttl = self.idle_ttl_ms
        expired = [
            player_id
            for player_id, engine in self._sessions.items()
            if engine.clock() - self._last_active.get(player_id, 0.0) > ttl
        ]
        for player_id in expired:
            del self._sessions[player_id]
            self._last_active.pop(player_id, None)
            logger.info("Session evicted for idle player %s", player_id)
        return len(expired)

    def tick_all(self) -> None:
        """
        Evict idle sessions, then tick every remaining session once.

        A failing session is logged and forced back to idle; the others
        keep running.
        """
        self.evict_idle()
        for player_id, engine in list(self._sessions.items()):
            try:
                engine.tick()
            except Exception:
                self._tick_errors += 1
                logger.exception(
                    "Tick failed for player %s (count=%d)", player_id, self._tick_errors
                )
                engine.recover()

    async def run_ticker(self, interval_ms: int | None = None) -> None:
        """Tick all sessions forever; cancel the task to stop."""
        interval = (interval_ms or settings.ticker_interval_ms) / 1000
        logger.info("Session ticker started (%.3fs)", interval)
        try:
            while True:
                self.tick_all()
                await asyncio.sleep(interval)
        finally:
            logger.info("Session ticker stopped")


# Global instance
session_registry = SessionRegistry()
