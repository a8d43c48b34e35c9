"""Grid resolver tests."""
import logging

import pytest

from explosion_hot.logic.grid import effective_offset, resolve_grid, resolve_reel
from explosion_hot.logic.models import Symbol
from explosion_hot.logic.reels import ReelSet, ReelStrip
from explosion_hot.logic.rng import SeededRNG
from explosion_hot.logic.symbols import SymbolGenerator

STRIP = [Symbol.PLUM, Symbol.LEMON, Symbol.GRAPE, Symbol.SEVEN]


def make_strip(symbols=STRIP, position: float = 0.0) -> ReelStrip:
    strip = ReelStrip(0, SymbolGenerator(SeededRNG(seed=1)))
    for slot, symbol in enumerate(symbols):
        strip.set_symbol(slot, symbol)
    strip.position = position
    strip.previous_position = position
    return strip


class TestEffectiveOffset:
    def test_hidden_slot_stays_below(self):
        assert effective_offset(make_strip(), 3) == 3

    def test_slot_above_window(self):
        strip = make_strip(position=0.6)
        # (0.6 + 3) mod 4 = 3.6 -> -0.4 above the window
        assert effective_offset(strip, 3) == pytest.approx(-0.4)


class TestResolveReel:
    def test_rest_at_zero(self):
        assert resolve_reel(make_strip()) == (Symbol.PLUM, Symbol.LEMON, Symbol.GRAPE)

    def test_rest_at_one(self):
        # Slot j sits at (1 + j) mod 4: slot 3 at row 0, slot 0 at row 1
        assert resolve_reel(make_strip(position=1.0)) == (
            Symbol.SEVEN,
            Symbol.PLUM,
            Symbol.LEMON,
        )

    def test_closest_slot_wins_off_grid(self):
        strip = make_strip(position=0.3)
        assert resolve_reel(strip) == (Symbol.PLUM, Symbol.LEMON, Symbol.GRAPE)

    def test_tie_goes_to_first_slot(self):
        strip = make_strip(position=0.5)
        # Row 0 is 0.5 from slot 3 (-0.5) and slot 0 (0.5)
        assert resolve_reel(strip)[0] == Symbol.PLUM

    def test_none_slot_skipped(self, caplog):
        strip = make_strip([None, Symbol.LEMON, Symbol.GRAPE, Symbol.SEVEN])
        with caplog.at_level(logging.WARNING):
            column = resolve_reel(strip)
        assert column[0] in (Symbol.LEMON, Symbol.SEVEN)
        assert None not in column
        assert sum("without a symbol" in r.message for r in caplog.records) == 1

    def test_empty_strip_resolves_to_none(self):
        strip = make_strip([None, None, None, None])
        assert resolve_reel(strip) == (None, None, None)


class TestResolveGrid:
    def test_shape_after_spin(self):
        reels = ReelSet(SeededRNG(seed=8))
        reels.spin(0)
        reels.tick(10_000)
        grid = resolve_grid(reels.strips)
        assert len(grid) == 5
        assert all(len(column) == 3 for column in grid)
        assert all(cell is not None for column in grid for cell in column)

    def test_resolved_rows_match_strip_slots(self):
        """At rest each visible row shows the slot sitting on it."""
        reels = ReelSet(SeededRNG(seed=8))
        reels.spin(0)
        reels.tick(10_000)
        grid = resolve_grid(reels.strips)
        for strip, column in zip(reels.strips, grid):
            for slot, symbol in enumerate(strip.symbols):
                offset = strip.slot_offset(slot)
                if 0 <= offset <= 2:
                    assert column[int(offset)] == symbol
