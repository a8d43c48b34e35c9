"""Game state models for the reel engine, evaluator and session."""
from enum import Enum

from pydantic import BaseModel, Field

from explosion_hot.errors import ErrorCode


class Symbol(str, Enum):
    """Reel symbols."""
    CHERRIES = "cherries"
    GRAPE = "grape"
    JACKPOT = "jackpot"
    LEMON = "lemon"
    ORANGE = "orange"
    PLUM = "plum"
    SEVEN = "seven"
    WATERMELON = "watermelon"


# At most one of each per reel strip
RESTRICTED_SYMBOLS = frozenset({Symbol.SEVEN, Symbol.JACKPOT})

# grid[reel][row]; None marks a cell the resolver could not fill
Grid = tuple[tuple[Symbol | None, ...], ...]


class GamePhase(str, Enum):
    """Session phase."""
    IDLE = "IDLE"
    SPINNING = "SPINNING"
    EVALUATING = "EVALUATING"
    WIN_PENDING = "WIN_PENDING"
    COLLECTING = "COLLECTING"
    GAMBLE_OPEN = "GAMBLE_OPEN"


class CardColor(str, Enum):
    """Gamble guess."""
    RED = "red"
    BLACK = "black"


class GambleOutcome(str, Enum):
    """State of a gamble round."""
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    BANKED = "banked"


class SoundCue(str, Enum):
    """Cues handed to the audio layer."""
    WIN = "win"
    BONUS = "bonus"
    REEL_STOP = "reel_stop"
    STOP = "stop"
    COLLECT = "collect"
    COLLECT_FINISHED = "collect_finished"
    GAMBLE_WIN = "gamble_win"
    GAMBLE_LOSS = "gamble_loss"
    TAKE_WIN = "take_win"
    AUTOPLAY = "autoplay"


class LineWin(BaseModel):
    """A single paying payline."""
    line_index: int
    symbol: Symbol
    count: int
    multiplier: int
    amount: int


class EvaluationResult(BaseModel):
    """Outcome of evaluating one settled grid."""
    total_win: int = 0
    line_win: int = 0
    jackpot_win: int = 0
    jackpot_count: int = 0
    line_wins: list[LineWin] = Field(default_factory=list)
    # (reel, row) -> payline index, or JACKPOT_MARKER for scatter cells
    winning_cells: dict[tuple[int, int], int] = Field(default_factory=dict)
    has_line_win: bool = False
    has_jackpot_win: bool = False
    qualifies_bonus_sound: bool = False

    @property
    def has_win(self) -> bool:
        return self.has_line_win or self.has_jackpot_win

    @property
    def winning_lines(self) -> list[int]:
        return sorted({idx for idx in self.winning_cells.values() if idx >= 0})


class SessionState(BaseModel):
    """
    Player session state.

    Tracks:
    - credits / stake / payout (payout derived from stake)
    - pending_win awaiting collect or gamble
    - the phase plus the flags derived from it
    - the last settled grid and the active gamble round
    """
    credits: int = 0
    stake: int = 5
    payout: int = 25
    pending_win: int = 0

    phase: GamePhase = GamePhase.IDLE
    is_spinning: bool = False
    is_stopping: bool = False
    is_collecting: bool = False
    is_gamble_open: bool = False
    is_autoplay_active: bool = False
    has_win: bool = False

    status_message: str = ""
    grid: list[list[Symbol | None]] | None = None

    # Present only while the gamble window is open
    gamble_win: int | None = None
    gamble_round: int | None = None

    def enter(self, phase: GamePhase) -> None:
        """Switch phase and keep the exclusive flags in step with it."""
        self.phase = phase
        self.is_spinning = phase == GamePhase.SPINNING
        self.is_collecting = phase == GamePhase.COLLECTING
        self.is_gamble_open = phase == GamePhase.GAMBLE_OPEN
        if phase != GamePhase.SPINNING:
            self.is_stopping = False
        if phase != GamePhase.GAMBLE_OPEN:
            self.gamble_win = None
            self.gamble_round = None

    def reset_transient(self) -> None:
        """Drop every in-flight flag and pending amount, back to IDLE."""
        self.enter(GamePhase.IDLE)
        self.pending_win = 0
        self.has_win = False

    def snapshot(self) -> "SessionState":
        return self.model_copy(deep=True)


class ActionResult(BaseModel):
    """Return value of every session request: new state or a rejection."""
    accepted: bool
    state: SessionState
    reason: ErrorCode | None = None
    message: str | None = None
