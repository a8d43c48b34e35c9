"""Session state machine: spin, evaluate, collect and gamble."""
import logging
import time
from typing import Callable, Iterable

from explosion_hot.config import settings
from explosion_hot.config_hash import get_config_hash
from explosion_hot.errors import ErrorCode, EvaluationFault
from explosion_hot.logic.collect import CollectAnimator
from explosion_hot.logic.evaluator import evaluate
from explosion_hot.logic.gamble import GambleRound
from explosion_hot.logic.grid import resolve_grid
from explosion_hot.logic.models import (
    ActionResult,
    CardColor,
    EvaluationResult,
    GambleOutcome,
    GamePhase,
    Grid,
    SessionState,
    SoundCue,
)
from explosion_hot.logic.reels import ReelSet
from explosion_hot.logic.rng import RNGBase, make_rng
from explosion_hot.telemetry import (
    ActionRejectedEvent,
    CollectCompletedEvent,
    EvaluationFaultEvent,
    GambleResolvedEvent,
    SpinResolvedEvent,
    SpinStartedEvent,
    TelemetryService,
    telemetry_service,
)

logger = logging.getLogger(__name__)

# Status lines shown in the bet field
READY_MESSAGE = "Please place your bet"
GOOD_LUCK_MESSAGE = "Good luck!"
NO_CREDITS_MESSAGE = "No more credits"
NOT_ENOUGH_CREDITS_MESSAGE = "Not enough credits"
CHOOSE_COLOR_MESSAGE = "Choose a card color"

Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000


def payout_for(stake: int) -> int:
    """Payout unit for ``stake`` from the stake table."""
    return settings.stake_to_payout[stake]


class SessionObserver:
    """
    Hooks for the presentation layer.

    Every method is a no-op; subclasses override what they render or play.
    """

    def on_state_changed(self, state: SessionState) -> None:
        pass

    def on_win_resolved(self, result: EvaluationResult, cue: SoundCue | None) -> None:
        pass

    def on_sound(self, cue: SoundCue) -> None:
        pass


class GameEngine:
    """
    One player's game session.

    Implements:
    - Spin with bet debit at spin start, manual stop
    - Grid resolution and evaluation once every reel has settled
    - Eased collect with a collect-all shortcut
    - Gamble sub-game on a pending win
    - Autoplay and stake stepping

    Transition table (anything else is rejected with INVALID_TRANSITION):

        IDLE         spin                  -> SPINNING
        SPINNING     stop                  -> SPINNING (settling)
        SPINNING     all reels settled     -> EVALUATING -> IDLE | WIN_PENDING
        WIN_PENDING  collect               -> COLLECTING
        WIN_PENDING  gamble                -> GAMBLE_OPEN
        COLLECTING   collect / ramp done   -> IDLE
        GAMBLE_OPEN  guess / take win      -> GAMBLE_OPEN | IDLE

    Requests never raise for state reasons; they return an ActionResult.
    """

    def __init__(
        self,
        rng: RNGBase | None = None,
        clock: Clock | None = None,
        session_id: str = "local",
        telemetry: TelemetryService | None = None,
        observers: Iterable[SessionObserver] | None = None,
        credits: int | None = None,
        stake: int | None = None,
    ):
        self.rng = rng or make_rng(settings.rng_seed)
        self.clock = clock or monotonic_ms
        self.session_id = session_id
        self.telemetry = telemetry or telemetry_service
        self.observers: list[SessionObserver] = list(observers or [])
        self.reels = ReelSet(rng=self.rng, on_reel_stopped=self._on_reel_stopped)

        stake = settings.initial_stake if stake is None else stake
        if stake not in settings.allowed_stakes:
            raise ValueError(f"Stake {stake} not allowed: {settings.allowed_stakes}")
        self.state = SessionState(
            credits=settings.initial_credits if credits is None else credits,
            stake=stake,
            payout=payout_for(stake),
            status_message=READY_MESSAGE,
        )

        self.last_result: EvaluationResult | None = None
        self.round_id = 0
        self._manual_stop = False
        self._collect: CollectAnimator | None = None
        self._gamble: GambleRound | None = None
        self._last_autoplay_ms: float | None = None

    # === Observers ===

    def subscribe(self, observer: SessionObserver) -> None:
        self.observers.append(observer)

    def _notify_state(self) -> None:
        snapshot = self.state.snapshot()
        for observer in self.observers:
            observer.on_state_changed(snapshot)

    def _cue(self, cue: SoundCue) -> None:
        for observer in self.observers:
            observer.on_sound(cue)

    # === Results ===

    def snapshot(self) -> SessionState:
        return self.state.snapshot()

    def _accept(self) -> ActionResult:
        self._notify_state()
        return ActionResult(accepted=True, state=self.state.snapshot())

    def _reject(self, action: str, code: ErrorCode, message: str) -> ActionResult:
        logger.debug(
            "Rejected %s in %s: %s (%s)",
            action, self.state.phase.value, message, code.value,
        )
        self.telemetry.emit_action_rejected(
            ActionRejectedEvent(
                session_id=self.session_id,
                action=action,
                reason=code.value,
                phase=self.state.phase.value,
            )
        )
        if code == ErrorCode.INSUFFICIENT_CREDITS:
            self.state.status_message = message
            self._notify_state()
        return ActionResult(
            accepted=False,
            state=self.state.snapshot(),
            reason=code,
            message=message,
        )

    def _invalid(self, action: str) -> ActionResult:
        return self._reject(
            action,
            ErrorCode.INVALID_TRANSITION,
            f"Cannot {action} while {self.state.phase.value}",
        )

    # === Spin ===

    def request_spin(self, stake: int | None = None, autoplay: bool = False) -> ActionResult:
        """
        Take the bet and set the reels in motion.

        Args:
            stake: Optional stake to play at (must be an allowed stake)
            autoplay: Whether the spin was triggered by autoplay
        """
        state = self.state
        if state.phase != GamePhase.IDLE:
            return self._invalid("spin")

        stake_to_play, payout = state.stake, state.payout
        if stake is not None and stake != state.stake:
            if stake not in settings.allowed_stakes:
                return self._reject(
                    "spin",
                    ErrorCode.INVALID_STAKE,
                    f"Stake {stake} not allowed. Allowed: {settings.allowed_stakes}",
                )
            stake_to_play, payout = stake, payout_for(stake)

        if state.credits <= 0:
            return self._reject("spin", ErrorCode.INSUFFICIENT_CREDITS, NO_CREDITS_MESSAGE)
        if payout <= 0 or state.credits < payout:
            return self._reject(
                "spin", ErrorCode.INSUFFICIENT_CREDITS, NOT_ENOUGH_CREDITS_MESSAGE
            )

        now = self.clock()
        state.stake = stake_to_play
        state.payout = payout
        state.credits -= payout
        state.pending_win = 0
        state.has_win = False
        state.enter(GamePhase.SPINNING)
        state.status_message = GOOD_LUCK_MESSAGE
        self.round_id += 1
        self._manual_stop = False
        self.last_result = None
        self.reels.spin(now)

        self.telemetry.emit_spin_started(
            SpinStartedEvent(
                session_id=self.session_id,
                round_id=self.round_id,
                stake=state.stake,
                payout=state.payout,
                credits_after_debit=state.credits,
                autoplay=autoplay,
            )
        )
        return self._accept()

    def request_stop(self) -> ActionResult:
        """Cut the running spin short; every reel still plays its settle."""
        if self.state.phase != GamePhase.SPINNING or self.state.is_stopping:
            return self._invalid("stop")
        if self.reels.stop(self.clock()) == 0:
            return self._reject(
                "stop", ErrorCode.INVALID_TRANSITION, "Reels are already settling"
            )
        self.state.is_stopping = True
        self._manual_stop = True
        self._cue(SoundCue.STOP)
        return self._accept()

    def _on_reel_stopped(self, reel_index: int) -> None:
        self._cue(SoundCue.REEL_STOP)

    # === Evaluation ===

    def on_grid_settled(self, grid: Grid) -> EvaluationResult:
        """
        Evaluate a settled grid and move to WIN_PENDING or IDLE.

        A malformed grid is treated as a zero win: the session is forced
        back to IDLE with every transient flag cleared.
        """
        state = self.state
        if state.phase not in (GamePhase.SPINNING, GamePhase.EVALUATING):
            logger.warning("Ignoring settled grid in %s", state.phase.value)
            return EvaluationResult()
        if self.reels.spinning:
            self.reels.halt()

        state.enter(GamePhase.EVALUATING)
        try:
            result = evaluate(grid, state.payout)
        except EvaluationFault as e:
            logger.warning("Evaluation fault in round %d: %s", self.round_id, e)
            self.telemetry.emit_evaluation_fault(
                EvaluationFaultEvent(
                    session_id=self.session_id,
                    round_id=self.round_id,
                    error=str(e),
                )
            )
            self.recover()
            return EvaluationResult()

        state.grid = [list(column) for column in grid]
        self.last_result = result
        self.telemetry.emit_spin_resolved(
            SpinResolvedEvent(
                session_id=self.session_id,
                round_id=self.round_id,
                config_hash=get_config_hash(),
                payout=state.payout,
                total_win=result.total_win,
                line_win=result.line_win,
                jackpot_win=result.jackpot_win,
                jackpot_count=result.jackpot_count,
                winning_lines=result.winning_lines,
                manual_stop=self._manual_stop,
            )
        )

        cue: SoundCue | None = None
        if result.total_win > 0:
            state.enter(GamePhase.WIN_PENDING)
            state.pending_win = result.total_win
            state.has_win = True
            state.status_message = f"Win: {result.total_win}"
            cue = SoundCue.BONUS if result.qualifies_bonus_sound else SoundCue.WIN
        else:
            state.reset_transient()
            state.status_message = self._idle_message()

        for observer in self.observers:
            observer.on_win_resolved(result, cue)
        if cue is not None:
            self._cue(cue)
        self._notify_state()
        return result

    def recover(self) -> None:
        """Abandon the round in flight and return to idle; credits are kept."""
        if self.reels.spinning:
            self.reels.halt()
        self._collect = None
        self._gamble = None
        self.state.reset_transient()
        self.state.status_message = READY_MESSAGE
        self._notify_state()

    def _idle_message(self) -> str:
        return NO_CREDITS_MESSAGE if self.state.credits == 0 else READY_MESSAGE

    # === Collect ===

    def request_collect(self) -> ActionResult:
        """Start the credit ramp; a second press while it runs collects everything."""
        state = self.state
        if state.phase == GamePhase.WIN_PENDING:
            self._collect = CollectAnimator(state.pending_win, self.clock())
            state.enter(GamePhase.COLLECTING)
            self._cue(SoundCue.COLLECT)
            return self._accept()
        if state.phase == GamePhase.COLLECTING:
            self._finish_collect(instant=True)
            return self._accept()
        return self._invalid("collect")

    def _transfer(self, amount: int) -> None:
        self.state.credits += amount
        self.state.pending_win -= amount

    def _finish_collect(self, instant: bool) -> None:
        animator = self._collect
        if animator is not None:
            self._transfer(animator.flush())
            amount = animator.total
        else:
            amount = self.state.pending_win
            self._transfer(amount)
        self._collect = None
        self.state.reset_transient()
        self.state.status_message = READY_MESSAGE
        self._cue(SoundCue.COLLECT_FINISHED)
        self.telemetry.emit_collect_completed(
            CollectCompletedEvent(
                session_id=self.session_id,
                amount=amount,
                instant=instant,
                credits=self.state.credits,
            )
        )

    # === Gamble ===

    def request_gamble_open(self) -> ActionResult:
        state = self.state
        if state.phase != GamePhase.WIN_PENDING or state.pending_win <= 0:
            return self._invalid("gamble")
        self._gamble = GambleRound(
            state.pending_win,
            rng=self.rng,
            on_complete=self._on_gamble_complete,
        )
        state.enter(GamePhase.GAMBLE_OPEN)
        state.gamble_win = self._gamble.current_win
        state.gamble_round = 0
        state.status_message = CHOOSE_COLOR_MESSAGE
        return self._accept()

    def request_gamble_guess(self, color: CardColor | str) -> ActionResult:
        if self.state.phase != GamePhase.GAMBLE_OPEN or self._gamble is None:
            return self._invalid("guess")
        try:
            color = CardColor(color)
        except ValueError:
            return self._reject(
                "guess", ErrorCode.INVALID_REQUEST, f"Unknown card color: {color}"
            )

        gamble = self._gamble
        outcome = gamble.guess(color)
        self._cue(SoundCue.GAMBLE_WIN if gamble.last_card == color else SoundCue.GAMBLE_LOSS)
        if outcome == GambleOutcome.WON:
            self.state.gamble_win = gamble.current_win
            self.state.gamble_round = gamble.round
            self.state.status_message = f"Win: {gamble.current_win}"
        return self._accept()

    def request_gamble_take_win(self) -> ActionResult:
        if self.state.phase != GamePhase.GAMBLE_OPEN or self._gamble is None:
            return self._invalid("take win")
        self._cue(SoundCue.TAKE_WIN)
        self._gamble.take_win()
        return self._accept()

    def _on_gamble_complete(self, final_amount: int) -> None:
        gamble = self._gamble
        self.state.credits += final_amount
        if gamble is not None:
            self.telemetry.emit_gamble_resolved(
                GambleResolvedEvent(
                    session_id=self.session_id,
                    initial_win=gamble.initial_win,
                    final_win=final_amount,
                    rounds_won=gamble.round,
                    outcome=gamble.outcome.value,
                )
            )
        self._gamble = None
        self.state.reset_transient()
        self.state.status_message = self._idle_message()

    # === Autoplay / stake ===

    def set_autoplay(self, enabled: bool) -> ActionResult:
        self.state.is_autoplay_active = enabled
        self._cue(SoundCue.AUTOPLAY)
        return self._accept()

    def set_stake(self, delta: int) -> ActionResult:
        """Step one stake level up (delta > 0) or down (delta < 0), clamped."""
        state = self.state
        if state.phase != GamePhase.IDLE:
            return self._invalid("change stake")
        stakes = list(settings.allowed_stakes)
        index = stakes.index(state.stake)
        step = (delta > 0) - (delta < 0)
        new_index = min(max(index + step, 0), len(stakes) - 1)
        if new_index != index:
            state.stake = stakes[new_index]
            state.payout = payout_for(state.stake)
        return self._accept()

    def request_start(self) -> ActionResult:
        """
        Single Start button.

        IDLE spins, SPINNING stops, WIN_PENDING starts the collect,
        COLLECTING collects everything, GAMBLE_OPEN takes the win.
        """
        phase = self.state.phase
        if phase == GamePhase.IDLE:
            return self.request_spin()
        if phase == GamePhase.SPINNING:
            return self.request_stop()
        if phase in (GamePhase.WIN_PENDING, GamePhase.COLLECTING):
            return self.request_collect()
        if phase == GamePhase.GAMBLE_OPEN:
            return self.request_gamble_take_win()
        return self._invalid("start")

    # === Tick ===

    def _autoplay_ready(self, now: float) -> bool:
        state = self.state
        if not state.is_autoplay_active or state.phase != GamePhase.IDLE:
            return False
        if state.credits <= 0 or state.credits < state.payout:
            return False
        return (
            self._last_autoplay_ms is None
            or now - self._last_autoplay_ms >= settings.autoplay_delay_ms
        )

    def tick(self, now_ms: float | None = None) -> SessionState:
        """
        Advance the session by one frame.

        Order: reel positions (and evaluation once every reel has settled),
        then the collect ramp, then autoplay.
        """
        now = self.clock() if now_ms is None else now_ms

        if self.state.phase == GamePhase.SPINNING and self.reels.tick(now):
            self.on_grid_settled(resolve_grid(self.reels.strips))

        if self.state.phase == GamePhase.COLLECTING and self._collect is not None:
            amount = self._collect.tick(now)
            if amount:
                self._transfer(amount)
                self.state.status_message = f"Win: {self.state.pending_win}"
            if self._collect.finished:
                self._finish_collect(instant=False)
            if amount or self._collect is None:
                self._notify_state()

        if self._autoplay_ready(now):
            self._last_autoplay_ms = now
            self.request_spin(autoplay=True)

        return self.state.snapshot()
