"""Map resting reel strips to the 5x3 symbol grid."""
import logging
from typing import Sequence

from explosion_hot.logic.models import Grid, Symbol
from explosion_hot.logic.reels import ROWS, ReelStrip

logger = logging.getLogger(__name__)


def effective_offset(strip: ReelStrip, slot: int) -> float:
    """Slot offset with wraparound folded back next to the window."""
    y = strip.slot_offset(slot)
    n = len(strip)
    if y < -0.5:
        y += n
    elif y > strip.visible_rows + 0.5:
        y -= n
    return y


def resolve_reel(strip: ReelStrip, rows: int = ROWS) -> tuple[Symbol | None, ...]:
    """
    Pick, for each visible row, the slot resting closest to it.

    Ties go to the first slot in strip order. Slots without a symbol are
    skipped; a row no slot can fill resolves to None.
    """
    candidates = [
        (slot, symbol) for slot, symbol in enumerate(strip.symbols) if symbol is not None
    ]
    if len(candidates) < len(strip.symbols):
        logger.warning(
            "Reel %d has %d slot(s) without a symbol",
            strip.index,
            len(strip.symbols) - len(candidates),
        )

    column: list[Symbol | None] = []
    for row in range(rows):
        closest: Symbol | None = None
        best = float("inf")
        for slot, symbol in candidates:
            distance = abs(effective_offset(strip, slot) - row)
            if distance < best:
                best = distance
                closest = symbol
        column.append(closest)
    return tuple(column)


def resolve_grid(strips: Sequence[ReelStrip], rows: int = ROWS) -> Grid:
    """Build a fresh grid (``grid[reel][row]``) from reels at rest."""
    return tuple(resolve_reel(strip, rows) for strip in strips)
