"""Protocol models for the HTTP surface."""
from typing import Any

from pydantic import BaseModel, Field

from explosion_hot.config import settings
from explosion_hot.logic.evaluator import (
    JACKPOT_PAYOUTS,
    LINE_PAYOUTS,
    PAYLINES,
)
from explosion_hot.logic.models import (
    CardColor,
    EvaluationResult,
    GamePhase,
    SessionState,
    Symbol,
)


# === Request Models ===


class SpinRequest(BaseModel):
    """POST /spin request body."""

    stake: int | None = Field(default=None, description="Must be in allowedStakes")


class StakeRequest(BaseModel):
    """POST /stake request body."""

    delta: int = Field(..., description="+1 steps up, -1 steps down")


class GambleGuessRequest(BaseModel):
    """POST /gamble/guess request body."""

    color: CardColor


class AutoplayRequest(BaseModel):
    """POST /autoplay request body."""

    enabled: bool


# === Response Models ===


class Configuration(BaseModel):
    """Configuration object in /init response."""

    currency: str = settings.currency
    initialCredits: int = settings.initial_credits
    allowedStakes: list[int] = Field(default_factory=lambda: list(settings.allowed_stakes))
    stakeToPayout: dict[int, int] = Field(default_factory=lambda: dict(settings.stake_to_payout))
    paylines: list[list[int]] = Field(default_factory=lambda: [list(line) for line in PAYLINES])
    collectDurationMs: int = settings.collect_duration_ms
    gambleMaxRounds: int = settings.gamble_max_rounds
    configHash: str = ""


class WinningCell(BaseModel):
    """A highlighted cell; line is -1 for jackpot cells."""

    reel: int
    row: int
    line: int


class WinView(BaseModel):
    """Last evaluation, for win presentation."""

    totalWin: int
    lineWin: int
    jackpotWin: int
    jackpotCount: int
    hasLineWin: bool
    hasJackpotWin: bool
    qualifiesBonusSound: bool
    winningLines: list[int]
    winningCells: list[WinningCell]

    @classmethod
    def from_result(cls, result: EvaluationResult) -> "WinView":
        return cls(
            totalWin=result.total_win,
            lineWin=result.line_win,
            jackpotWin=result.jackpot_win,
            jackpotCount=result.jackpot_count,
            hasLineWin=result.has_line_win,
            hasJackpotWin=result.has_jackpot_win,
            qualifiesBonusSound=result.qualifies_bonus_sound,
            winningLines=result.winning_lines,
            winningCells=[
                WinningCell(reel=reel, row=row, line=line)
                for (reel, row), line in sorted(result.winning_cells.items())
            ],
        )


class GambleView(BaseModel):
    """Open gamble window."""

    win: int
    round: int
    maxRounds: int = settings.gamble_max_rounds


class StateView(BaseModel):
    """Session snapshot consumed by the rendering layer."""

    roundId: int
    credits: int
    stake: int
    payout: int
    pendingWin: int
    phase: GamePhase
    isSpinning: bool
    isStopping: bool
    isCollecting: bool
    isGambleOpen: bool
    isAutoplayActive: bool
    hasWin: bool
    statusMessage: str
    grid: list[list[Symbol | None]] | None = None
    gamble: GambleView | None = None
    lastWin: WinView | None = None

    @classmethod
    def build(
        cls,
        state: SessionState,
        round_id: int = 0,
        last_result: EvaluationResult | None = None,
    ) -> "StateView":
        gamble = None
        if state.is_gamble_open and state.gamble_win is not None:
            gamble = GambleView(win=state.gamble_win, round=state.gamble_round or 0)
        return cls(
            roundId=round_id,
            credits=state.credits,
            stake=state.stake,
            payout=state.payout,
            pendingWin=state.pending_win,
            phase=state.phase,
            isSpinning=state.is_spinning,
            isStopping=state.is_stopping,
            isCollecting=state.is_collecting,
            isGambleOpen=state.is_gamble_open,
            isAutoplayActive=state.is_autoplay_active,
            hasWin=state.has_win,
            statusMessage=state.status_message,
            grid=state.grid,
            gamble=gamble,
            lastWin=WinView.from_result(last_result) if last_result is not None else None,
        )


class StateResponse(BaseModel):
    """Response of GET /state and every accepted action."""

    protocolVersion: str = settings.protocol_version
    state: StateView


class InitResponse(BaseModel):
    """GET /init response."""

    protocolVersion: str = settings.protocol_version
    configuration: Configuration = Field(default_factory=Configuration)
    state: StateView


class PaytableEntry(BaseModel):
    """Credits paid per run length for one symbol at the current payout."""

    symbol: Symbol
    scatter: bool = False
    pays: dict[int, int]


class PaytableResponse(BaseModel):
    """GET /paytable response."""

    protocolVersion: str = settings.protocol_version
    payout: int
    entries: list[PaytableEntry]

    @classmethod
    def for_payout(cls, payout: int) -> "PaytableResponse":
        entries = [
            PaytableEntry(
                symbol=symbol,
                pays={count: payout * mult for count, mult in table.items()},
            )
            for symbol, table in LINE_PAYOUTS.items()
        ]
        entries.append(
            PaytableEntry(
                symbol=Symbol.JACKPOT,
                scatter=True,
                pays={count: payout * mult for count, mult in JACKPOT_PAYOUTS.items()},
            )
        )
        return cls(payout=payout, entries=entries)


def dump(model: BaseModel) -> dict[str, Any]:
    """JSON-ready dict of a response model."""
    return model.model_dump(mode="json")
