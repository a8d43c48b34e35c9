"""Injectable random sources for reels and the gamble draw."""
import secrets
from abc import ABC, abstractmethod
from typing import Sequence, TypeVar

T = TypeVar("T")


class RNGBase(ABC):
    """Abstract RNG interface shared by every random decision in the engine."""

    @abstractmethod
    def random(self) -> float:
        """Return random float in [0, 1)."""
        pass

    @abstractmethod
    def randint(self, a: int, b: int) -> int:
        """Return random int in [a, b] inclusive."""
        pass

    def choice(self, items: Sequence[T]) -> T:
        """Uniform pick from a non-empty sequence."""
        return items[self.randint(0, len(items) - 1)]


class ProductionRNG(RNGBase):
    """
    Production RNG.

    Uses cryptographically secure source, no fixed seed.
    """

    def random(self) -> float:
        return secrets.randbelow(2**32) / (2**32)

    def randint(self, a: int, b: int) -> int:
        return secrets.randbelow(b - a + 1) + a


class SeededRNG(RNGBase):
    """
    Test/simulation RNG.

    Deterministic, fully controlled by seed, so a session can be replayed.
    """

    def __init__(self, seed: int):
        import random

        self._rng = random.Random(seed)
        self.seed = seed

    def random(self) -> float:
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)


def make_rng(seed: int | None = None) -> RNGBase:
    """Seeded RNG when a seed is configured, production RNG otherwise."""
    if seed is None:
        return ProductionRNG()
    return SeededRNG(seed)
