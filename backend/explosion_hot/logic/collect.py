"""Eased transfer of a pending win into the credit balance."""
import math

from explosion_hot.config import settings
from explosion_hot.logic.tween import Easing, ease_in_quad


class CollectAnimator:
    """
    Ramps ``total`` into credits over ``duration_ms``.

    At elapsed ``t`` the transferred amount targets
    ``floor(total * easing(t / duration))``. Increments are released at most
    once per ``min_interval_ms``; the remainder is flushed when the duration
    runs out or on ``flush()``. The cumulative transfer is exactly ``total``.
    """

    def __init__(
        self,
        total: int,
        start_ms: float,
        duration_ms: float | None = None,
        min_interval_ms: float | None = None,
        easing: Easing = ease_in_quad,
    ):
        self.total = total
        self.start_ms = start_ms
        self.duration_ms = settings.collect_duration_ms if duration_ms is None else duration_ms
        self.min_interval_ms = settings.collect_tick_ms if min_interval_ms is None else min_interval_ms
        self.easing = easing
        self.transferred = 0
        self.last_update_ms = start_ms
        self.finished = False

    @property
    def remaining(self) -> int:
        return self.total - self.transferred

    def tick(self, now_ms: float) -> int:
        """Return the credits to move on this tick."""
        if self.finished:
            return 0
        elapsed = now_ms - self.start_ms
        if self.duration_ms <= 0 or elapsed >= self.duration_ms:
            return self.flush()

        phase = min(1.0, max(0.0, elapsed / self.duration_ms))
        target = math.floor(self.total * self.easing(phase))
        increment = target - self.transferred
        if increment > 0 and now_ms - self.last_update_ms >= self.min_interval_ms:
            self.transferred += increment
            self.last_update_ms = now_ms
            return increment
        return 0

    def flush(self) -> int:
        """Release everything not yet transferred and finish."""
        remainder = self.remaining
        self.transferred = self.total
        self.finished = True
        return remainder
