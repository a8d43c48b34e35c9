"""Reel strips, spin trajectories and the staged bounce settle."""
import logging
import math
from functools import partial
from typing import Callable

from explosion_hot.config import settings
from explosion_hot.logic.models import Symbol
from explosion_hot.logic.rng import ProductionRNG, RNGBase
from explosion_hot.logic.symbols import SymbolGenerator
from explosion_hot.logic.tween import TweenRunner, TweenStep, ease_out_quad, linear

logger = logging.getLogger(__name__)

# Grid dimensions
REELS = 5
ROWS = 3
STRIP_LENGTH = ROWS + 1

# Bounce settle, as (offset from the integral target, share of bounce_ms)
SETTLE_PROFILE: tuple[tuple[float, float], ...] = (
    (0.25, 0.20),
    (-0.02, 0.25),
    (0.0, 0.40),
)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class ReelStrip:
    """
    One circular strip of symbol slots with a continuous scroll position.

    Slot ``j`` sits ``(position + j) mod N`` rows below the top of the window,
    wrapped to just above it once past the last visible row. A slot that
    wraps while the reel moves forward is re-drawn from the generator.
    """

    def __init__(
        self,
        index: int,
        generator: SymbolGenerator,
        length: int = STRIP_LENGTH,
        visible_rows: int = ROWS,
    ):
        self.index = index
        self.generator = generator
        self.visible_rows = visible_rows
        self.symbols: list[Symbol | None] = list(generator.build_strip(length))
        self.position = 0.0
        self.previous_position = 0.0
        self._wraps = self._wrap_counts(self.position)

    def __len__(self) -> int:
        return len(self.symbols)

    def _wrap_counts(self, position: float) -> list[int]:
        n = len(self.symbols)
        return [
            math.ceil((position + j - self.visible_rows) / n)
            for j in range(n)
        ]

    def slot_offset(self, slot: int) -> float:
        """Row offset of ``slot`` from the top of the visible window."""
        n = len(self.symbols)
        y = (self.position + slot) % n
        if y > self.visible_rows:
            y -= n
        return y

    def move_to(self, position: float) -> None:
        """Scroll to ``position``, re-populating slots that wrapped forward."""
        self.previous_position = self.position
        self.position = position
        wraps = self._wrap_counts(position)
        for slot, (old, new) in enumerate(zip(self._wraps, wraps)):
            if new > old:
                self.symbols[slot] = self.generator.next_symbol(self.symbols)
        self._wraps = wraps

    def rebase(self) -> None:
        """Snap to the integral rest position and fold it into one revolution."""
        self.position = float(round_half_up(self.position) % len(self.symbols))
        self.previous_position = self.position
        self._wraps = self._wrap_counts(self.position)

    def set_symbol(self, slot: int, symbol: Symbol | None) -> None:
        self.symbols[slot] = symbol


class ReelSet:
    """
    All reels of the machine plus the tween runner that drives them.

    A spin runs one sequence per reel: a linear primary step followed by the
    bounce settle. ``tick`` reports True exactly once per spin, on the tick
    where the last reel finishes settling.
    """

    def __init__(
        self,
        rng: RNGBase | None = None,
        generator: SymbolGenerator | None = None,
        reel_count: int = REELS,
        on_reel_stopped: Callable[[int], None] | None = None,
    ):
        self.rng = rng or ProductionRNG()
        self.generator = generator or SymbolGenerator(self.rng)
        self.strips = [ReelStrip(i, self.generator) for i in range(reel_count)]
        self.runner = TweenRunner()
        self.on_reel_stopped = on_reel_stopped
        self.spinning = False
        self.stopping = False
        self._completed = 0
        self._settled_pending = False

    def __len__(self) -> int:
        return len(self.strips)

    def settle_steps(self) -> list[TweenStep]:
        return [
            TweenStep(offset, settings.bounce_ms * share, ease_out_quad)
            for offset, share in SETTLE_PROFILE
        ]

    def spin_steps(self, reel_index: int) -> list[TweenStep]:
        duration = settings.base_spin_ms + reel_index * settings.reel_stagger_ms
        return [TweenStep(0.0, duration, linear)] + self.settle_steps()

    def spin(self, now_ms: float) -> None:
        if self.spinning:
            raise RuntimeError("Reels are already spinning")
        self.spinning = True
        self.stopping = False
        self._completed = 0
        self._settled_pending = False
        for strip in self.strips:
            extra = self.rng.randint(0, settings.max_extra_distance)
            target = round_half_up(strip.position) + settings.base_spin_distance + extra
            self.runner.start(
                strip.index,
                self.spin_steps(strip.index),
                anchor=target,
                start_value=strip.position,
                now_ms=now_ms,
                apply=strip.move_to,
                on_complete=partial(self._reel_done, strip.index),
            )
        logger.debug("Spin started at %.0fms", now_ms)

    def stop(self, now_ms: float) -> int:
        """
        Cut every primary spin short and settle at the nearest row.

        Reels already in their bounce keep it. Returns the number of reels
        that were cut short.
        """
        if not self.spinning:
            return 0
        stopped = 0
        for strip in self.strips:
            sequence = self.runner.get(strip.index)
            if sequence is None or sequence.done or sequence.index != 0:
                continue
            self.runner.cancel(strip.index)
            self.runner.start(
                strip.index,
                self.settle_steps(),
                anchor=round_half_up(strip.position),
                start_value=strip.position,
                now_ms=now_ms,
                apply=strip.move_to,
                on_complete=partial(self._reel_done, strip.index),
            )
            stopped += 1
        if stopped:
            self.stopping = True
            logger.debug("Manual stop cut %d reel(s) short", stopped)
        return stopped

    def halt(self) -> None:
        """Drop every tween and snap the reels to rest without a settle."""
        self.runner.clear()
        for strip in self.strips:
            strip.rebase()
        self.spinning = False
        self.stopping = False
        self._settled_pending = False

    def _reel_done(self, reel_index: int) -> None:
        self._completed += 1
        if self.on_reel_stopped is not None:
            self.on_reel_stopped(reel_index)
        if self._completed == len(self.strips):
            for strip in self.strips:
                strip.rebase()
            self.spinning = False
            self.stopping = False
            self._settled_pending = True

    def tick(self, now_ms: float) -> bool:
        """Advance every reel; True on the tick the last reel comes to rest."""
        if not self.spinning:
            return False
        self.runner.tick(now_ms)
        if self._settled_pending:
            self._settled_pending = False
            return True
        return False
