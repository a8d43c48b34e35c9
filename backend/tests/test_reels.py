"""Reel strip and spin trajectory tests."""
import pytest

from explosion_hot.config import settings
from explosion_hot.logic.models import Symbol
from explosion_hot.logic.reels import (
    REELS,
    STRIP_LENGTH,
    ReelSet,
    ReelStrip,
    round_half_up,
)
from explosion_hot.logic.rng import SeededRNG
from explosion_hot.logic.symbols import SymbolGenerator

# Last reel: primary 1500 + 4 * 300, then 200 + 250 + 400 of settle
LAST_REEL_SETTLED_MS = 3550


class TestRoundHalfUp:
    @pytest.mark.parametrize("value,expected", [(0.5, 1), (1.49, 1), (2.5, 3), (-0.5, 0)])
    def test_values(self, value, expected):
        assert round_half_up(value) == expected


class TestReelStrip:
    def make_strip(self, seed: int = 1) -> ReelStrip:
        return ReelStrip(0, SymbolGenerator(SeededRNG(seed=seed)))

    def test_initial_offsets(self):
        strip = self.make_strip()
        assert len(strip) == STRIP_LENGTH
        assert [strip.slot_offset(j) for j in range(4)] == [0, 1, 2, 3]

    def test_offsets_wrap_above_window(self):
        strip = self.make_strip()
        strip.move_to(0.5)
        assert [strip.slot_offset(j) for j in range(4)] == [0.5, 1.5, 2.5, -0.5]

    def test_forward_wrap_redraws_slot(self):
        strip = self.make_strip()
        strip.set_symbol(3, None)
        strip.move_to(0.5)
        assert strip.symbols[3] is not None
        assert strip.symbols[0] is not None

    def test_small_move_keeps_symbols(self):
        strip = self.make_strip()
        before = list(strip.symbols)
        strip.move_to(0.9)
        assert strip.symbols[:3] == before[:3]

    def test_full_revolution_redraws_every_slot_once(self):
        strip = self.make_strip()
        for slot in range(4):
            strip.set_symbol(slot, None)
        strip.move_to(4.0)
        assert None not in strip.symbols

    def test_rebase_folds_position(self):
        strip = self.make_strip()
        strip.move_to(21.0)
        strip.rebase()
        assert strip.position == 1.0
        assert strip.previous_position == 1.0

    def test_restricted_symbols_stay_unique_while_moving(self):
        strip = self.make_strip(seed=11)
        position = 0.0
        for _ in range(500):
            position += 0.3
            strip.move_to(position)
            assert strip.symbols.count(Symbol.SEVEN) <= 1
            assert strip.symbols.count(Symbol.JACKPOT) <= 1


class TestReelSpin:
    """Spin trajectory timing."""

    def test_spin_lands_on_integral_positions(self):
        reels = ReelSet(SeededRNG(seed=2))
        reels.spin(0)
        assert reels.tick(LAST_REEL_SETTLED_MS) is True
        for strip in reels.strips:
            assert strip.position == int(strip.position)
            assert 0 <= strip.position < STRIP_LENGTH

    def test_distance_is_twenty_plus_extra(self):
        reels = ReelSet(SeededRNG(seed=2))
        recorded: dict[int, float] = {}
        reels.spin(0)
        for strip in reels.strips:
            sequence = reels.runner.get(strip.index)
            recorded[strip.index] = sequence.anchor
        for distance in recorded.values():
            assert settings.base_spin_distance <= distance <= (
                settings.base_spin_distance + settings.max_extra_distance
            )

    def test_settled_reported_once(self):
        reels = ReelSet(SeededRNG(seed=2))
        reels.spin(0)
        assert reels.tick(LAST_REEL_SETTLED_MS - 10) is False
        assert reels.tick(LAST_REEL_SETTLED_MS + 10) is True
        assert reels.tick(LAST_REEL_SETTLED_MS + 20) is False
        assert reels.spinning is False

    def test_reels_stop_left_to_right(self):
        stopped: list[tuple[int, float]] = []
        clock = {"now": 0.0}
        reels = ReelSet(SeededRNG(seed=2), on_reel_stopped=lambda i: stopped.append((i, clock["now"])))
        reels.spin(0)
        for now in range(0, 4000, 10):
            clock["now"] = now
            reels.tick(now)
        assert [index for index, _ in stopped] == list(range(REELS))
        # Reel i settles at 1500 + 300 i + 850
        for index, at in stopped:
            assert at == pytest.approx(2350 + 300 * index, abs=10)

    def test_overshoot_during_settle(self):
        reels = ReelSet(SeededRNG(seed=2))
        reels.spin(0)
        target = reels.runner.get(0).anchor
        reels.tick(1500 + 200)
        assert reels.strips[0].position == pytest.approx(target + 0.25)

    def test_spin_while_spinning_raises(self):
        reels = ReelSet(SeededRNG(seed=2))
        reels.spin(0)
        with pytest.raises(RuntimeError):
            reels.spin(10)


class TestReelStop:
    """Manual stop."""

    def test_stop_settles_at_nearest_row(self):
        reels = ReelSet(SeededRNG(seed=4))
        reels.spin(0)
        reels.tick(100)
        at_stop = [strip.position for strip in reels.strips]
        assert reels.stop(100) == REELS
        assert reels.stopping is True
        assert reels.tick(100 + 850) is True
        for strip, position in zip(reels.strips, at_stop):
            assert strip.position == round_half_up(position) % STRIP_LENGTH

    def test_stop_leaves_settling_reels_alone(self):
        reels = ReelSet(SeededRNG(seed=4))
        reels.spin(0)
        # Reels 0 and 1 are already bouncing at 1900 ms
        reels.tick(1900)
        assert reels.stop(1900) == REELS - 2
        assert reels.runner.get(0).index > 0

    def test_stop_when_idle_does_nothing(self):
        reels = ReelSet(SeededRNG(seed=4))
        assert reels.stop(0) == 0

    def test_halt_snaps_to_rest(self):
        reels = ReelSet(SeededRNG(seed=4))
        reels.spin(0)
        reels.tick(700)
        reels.halt()
        assert reels.spinning is False
        assert len(reels.runner) == 0
        for strip in reels.strips:
            assert strip.position == int(strip.position)
