"""Symbol generation with per-strip exclusion of sevens and jackpots."""
from typing import Iterable

from explosion_hot.errors import ConfigurationError
from explosion_hot.logic.models import RESTRICTED_SYMBOLS, Symbol
from explosion_hot.logic.rng import ProductionRNG, RNGBase

ALL_SYMBOLS: tuple[Symbol, ...] = tuple(Symbol)
MIN_UNRESTRICTED_SYMBOLS = 6

if len([s for s in ALL_SYMBOLS if s not in RESTRICTED_SYMBOLS]) < MIN_UNRESTRICTED_SYMBOLS:
    raise ConfigurationError(
        f"Need at least {MIN_UNRESTRICTED_SYMBOLS} unrestricted symbol kinds"
    )


class SymbolGenerator:
    """Draws symbols uniformly, skipping restricted kinds a strip already holds."""

    def __init__(self, rng: RNGBase | None = None, symbols: Iterable[Symbol] = ALL_SYMBOLS):
        self.rng = rng or ProductionRNG()
        self.symbols = tuple(symbols)

    def candidates(self, current: Iterable[Symbol | None]) -> list[Symbol]:
        present = set(current)
        return [
            s for s in self.symbols
            if not (s in RESTRICTED_SYMBOLS and s in present)
        ]

    def next_symbol(self, current: Iterable[Symbol | None]) -> Symbol:
        """
        Pick the next symbol for a strip.

        Args:
            current: Symbols already on the target strip (None entries ignored)

        Raises:
            ConfigurationError: the candidate pool is empty
        """
        pool = self.candidates(current)
        if not pool:
            raise ConfigurationError("Symbol candidate pool is empty")
        return self.rng.choice(pool)

    def build_strip(self, length: int) -> list[Symbol]:
        """Populate a fresh strip one symbol at a time."""
        strip: list[Symbol] = []
        for _ in range(length):
            strip.append(self.next_symbol(strip))
        return strip
