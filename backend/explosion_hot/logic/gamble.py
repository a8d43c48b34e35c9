"""Double-or-nothing card colour gamble on a pending win."""
import logging
from typing import Callable

from explosion_hot.config import settings
from explosion_hot.logic.models import CardColor, GambleOutcome
from explosion_hot.logic.rng import ProductionRNG, RNGBase

logger = logging.getLogger(__name__)


class GambleRound:
    """
    One gamble window.

    Each correct guess doubles ``current_win``; reaching ``max_rounds``
    banks automatically, a wrong guess zeroes the win and ends the round.
    ``on_complete`` receives the final amount exactly once.
    """

    def __init__(
        self,
        initial_win: int,
        rng: RNGBase | None = None,
        max_rounds: int | None = None,
        on_complete: Callable[[int], None] | None = None,
    ):
        self.initial_win = initial_win
        self.current_win = initial_win
        self.round = 0
        self.max_rounds = settings.gamble_max_rounds if max_rounds is None else max_rounds
        self.rng = rng or ProductionRNG()
        self.on_complete = on_complete
        self.outcome = GambleOutcome.PENDING
        self.last_card: CardColor | None = None

    @property
    def finished(self) -> bool:
        return self.outcome in (GambleOutcome.LOST, GambleOutcome.BANKED)

    def draw(self) -> CardColor:
        return CardColor.RED if self.rng.random() < 0.5 else CardColor.BLACK

    def guess(self, color: CardColor) -> GambleOutcome:
        if self.finished:
            raise RuntimeError("Gamble round already finished")

        card = self.draw()
        self.last_card = card
        previous = self.current_win
        if card == color:
            self.current_win = previous * 2
            self.round += 1
            logger.debug(
                "Gamble won: %d -> %d (%d/%d)",
                previous, self.current_win, self.round, self.max_rounds,
            )
            if self.round >= self.max_rounds:
                self._finish(GambleOutcome.BANKED)
            else:
                self.outcome = GambleOutcome.WON
        else:
            self.current_win = 0
            logger.debug("Gamble lost: %d -> 0", previous)
            self._finish(GambleOutcome.LOST)
        return self.outcome

    def take_win(self) -> int:
        if self.finished:
            raise RuntimeError("Gamble round already finished")
        self._finish(GambleOutcome.BANKED)
        return self.current_win

    def _finish(self, outcome: GambleOutcome) -> None:
        self.outcome = outcome
        if self.on_complete is not None:
            self.on_complete(self.current_win)
