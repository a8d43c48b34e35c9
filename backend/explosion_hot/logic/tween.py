"""Tick-driven tweens: trajectories are lists of steps run by one runner."""
from dataclasses import dataclass, field
from typing import Callable, Hashable, Sequence

Easing = Callable[[float], float]


def linear(t: float) -> float:
    return t


def ease_out_quad(t: float) -> float:
    return t * (2 - t)


def ease_in_quad(t: float) -> float:
    return t * t


def lerp(a: float, b: float, t: float) -> float:
    return a * (1 - t) + b * t


@dataclass(frozen=True)
class TweenStep:
    """Move to ``anchor + offset`` over ``duration_ms`` with ``easing``."""

    offset: float
    duration_ms: float
    easing: Easing = linear


@dataclass
class TweenSequence:
    """
    A chain of steps applied to one value.

    Each step starts from wherever the previous one left the value and
    begins at the previous step's scheduled end, so the trajectory does not
    depend on how often the runner is ticked.
    """

    steps: Sequence[TweenStep]
    anchor: float
    start_value: float
    start_ms: float
    apply: Callable[[float], None]
    on_complete: Callable[[], None] | None = None
    index: int = 0
    done: bool = False
    _step_from: float = field(init=False)
    _step_start: float = field(init=False)

    def __post_init__(self) -> None:
        self._step_from = self.start_value
        self._step_start = self.start_ms

    @property
    def current_step(self) -> TweenStep | None:
        if self.done:
            return None
        return self.steps[self.index]

    def target_of(self, step: TweenStep) -> float:
        return self.anchor + step.offset

    def advance(self, now_ms: float) -> float:
        """Write the value for ``now_ms`` and return it."""
        value = self._step_from
        while not self.done:
            step = self.steps[self.index]
            target = self.target_of(step)
            if step.duration_ms <= 0:
                phase = 1.0
            else:
                phase = min(1.0, max(0.0, (now_ms - self._step_start) / step.duration_ms))
            if phase < 1.0:
                value = lerp(self._step_from, target, step.easing(phase))
                break
            # Step finished: land exactly on its target
            value = target
            self._step_from = target
            self._step_start += step.duration_ms
            self.index += 1
            if self.index >= len(self.steps):
                self.done = True
        self.apply(value)
        return value


class TweenRunner:
    """Advances every active sequence once per tick."""

    def __init__(self) -> None:
        self._active: dict[Hashable, TweenSequence] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._active

    def __len__(self) -> int:
        return len(self._active)

    def get(self, key: Hashable) -> TweenSequence | None:
        return self._active.get(key)

    def start(
        self,
        key: Hashable,
        steps: Sequence[TweenStep],
        anchor: float,
        start_value: float,
        now_ms: float,
        apply: Callable[[float], None],
        on_complete: Callable[[], None] | None = None,
    ) -> TweenSequence:
        """Start (or replace) the sequence registered under ``key``."""
        sequence = TweenSequence(
            steps=list(steps),
            anchor=anchor,
            start_value=start_value,
            start_ms=now_ms,
            apply=apply,
            on_complete=on_complete,
        )
        self._active[key] = sequence
        return sequence

    def cancel(self, key: Hashable) -> TweenSequence | None:
        """Drop a sequence without running its completion callback."""
        return self._active.pop(key, None)

    def clear(self) -> None:
        self._active.clear()

    def tick(self, now_ms: float) -> int:
        """
        Apply every sequence, then fire completions.

        All values are written before any completion callback runs.
        Returns the number of sequences that finished on this tick.
        """
        finished: list[TweenSequence] = []
        for key, sequence in list(self._active.items()):
            sequence.advance(now_ms)
            if sequence.done:
                finished.append(sequence)
                del self._active[key]
        for sequence in finished:
            if sequence.on_complete is not None:
                sequence.on_complete()
        return len(finished)
