"""Symbol generator tests."""
import pytest

from explosion_hot.errors import ConfigurationError
from explosion_hot.logic.models import RESTRICTED_SYMBOLS, Symbol
from explosion_hot.logic.rng import SeededRNG
from explosion_hot.logic.symbols import ALL_SYMBOLS, SymbolGenerator


class TestCandidates:
    def test_empty_strip_allows_everything(self):
        generator = SymbolGenerator(SeededRNG(seed=1))
        assert generator.candidates([]) == list(ALL_SYMBOLS)

    def test_seven_excluded_once_present(self):
        generator = SymbolGenerator(SeededRNG(seed=1))
        pool = generator.candidates([Symbol.SEVEN, Symbol.PLUM])
        assert Symbol.SEVEN not in pool
        assert Symbol.JACKPOT in pool
        assert Symbol.PLUM in pool

    def test_jackpot_excluded_once_present(self):
        generator = SymbolGenerator(SeededRNG(seed=1))
        pool = generator.candidates([None, Symbol.JACKPOT])
        assert Symbol.JACKPOT not in pool
        assert Symbol.SEVEN in pool

    def test_empty_pool_raises(self):
        generator = SymbolGenerator(SeededRNG(seed=1), symbols=[Symbol.SEVEN])
        with pytest.raises(ConfigurationError):
            generator.next_symbol([Symbol.SEVEN])


class TestBuildStrip:
    def test_strips_hold_at_most_one_restricted_of_each(self):
        generator = SymbolGenerator(SeededRNG(seed=3))
        for _ in range(2000):
            strip = generator.build_strip(4)
            assert len(strip) == 4
            for restricted in RESTRICTED_SYMBOLS:
                assert strip.count(restricted) <= 1

    def test_every_symbol_appears(self):
        generator = SymbolGenerator(SeededRNG(seed=5))
        seen = set()
        for _ in range(500):
            seen.update(generator.build_strip(4))
        assert seen == set(ALL_SYMBOLS)

    def test_same_seed_same_strip(self):
        first = SymbolGenerator(SeededRNG(seed=9)).build_strip(4)
        second = SymbolGenerator(SeededRNG(seed=9)).build_strip(4)
        assert first == second
