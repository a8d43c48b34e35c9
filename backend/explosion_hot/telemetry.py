"""Session telemetry: structured events handed to a pluggable sink."""
import logging
from dataclasses import asdict, dataclass
from typing import Any, Protocol


logger = logging.getLogger(__name__)


class TelemetrySink(Protocol):
    """Protocol for telemetry sinks."""

    def emit(self, event_name: str, data: dict[str, Any]) -> None:
        """Emit a telemetry event."""
        ...


class LoggingTelemetrySink:
    """Default sink that logs telemetry events."""

    def emit(self, event_name: str, data: dict[str, Any]) -> None:
        """Log telemetry event."""
        logger.info("TELEMETRY %s: %s", event_name, data)


@dataclass
class SpinStartedEvent:
    """spin_started: bet debited, reels set in motion."""

    session_id: str
    round_id: int
    stake: int
    payout: int
    credits_after_debit: int
    autoplay: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SpinResolvedEvent:
    """spin_resolved: grid settled and evaluated."""

    session_id: str
    round_id: int
    config_hash: str
    payout: int
    total_win: int
    line_win: int
    jackpot_win: int
    jackpot_count: int
    winning_lines: list[int]
    manual_stop: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ActionRejectedEvent:
    """action_rejected: a request arrived in an incompatible phase."""

    session_id: str
    action: str
    reason: str  # "INVALID_TRANSITION" | "INSUFFICIENT_CREDITS" | "INVALID_STAKE"
    phase: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CollectCompletedEvent:
    """collect_completed: pending win fully moved into credits."""

    session_id: str
    amount: int
    instant: bool  # True when finished by the collect-all shortcut
    credits: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GambleResolvedEvent:
    """gamble_resolved: gamble window closed."""

    session_id: str
    initial_win: int
    final_win: int
    rounds_won: int
    outcome: str  # "banked" | "lost"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class EvaluationFaultEvent:
    """evaluation_fault: settled grid could not be evaluated."""

    session_id: str
    round_id: int
    error: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class TelemetryService:
    """Service for emitting session telemetry events."""

    def __init__(self, sink: TelemetrySink | None = None):
        self._sink = sink or LoggingTelemetrySink()
        self._sink_errors = 0  # Counter for sink failures

    def set_sink(self, sink: TelemetrySink) -> None:
        """Set the telemetry sink (useful for testing)."""
        self._sink = sink

    def _safe_emit(self, event_name: str, data: dict[str, Any]) -> None:
        """
        Emit event with exception safety.

        Sink failures MUST NOT break the game loop.
        """
        try:
            self._sink.emit(event_name, data)
        except Exception as e:
            self._sink_errors += 1
            logger.warning(
                "Telemetry sink error (count=%d): %s - %s",
                self._sink_errors,
                event_name,
                str(e),
            )

    def emit_spin_started(self, event: SpinStartedEvent) -> None:
        self._safe_emit("spin_started", event.to_dict())

    def emit_spin_resolved(self, event: SpinResolvedEvent) -> None:
        self._safe_emit("spin_resolved", event.to_dict())

    def emit_action_rejected(self, event: ActionRejectedEvent) -> None:
        self._safe_emit("action_rejected", event.to_dict())

    def emit_collect_completed(self, event: CollectCompletedEvent) -> None:
        self._safe_emit("collect_completed", event.to_dict())

    def emit_gamble_resolved(self, event: GambleResolvedEvent) -> None:
        self._safe_emit("gamble_resolved", event.to_dict())

    def emit_evaluation_fault(self, event: EvaluationFaultEvent) -> None:
        self._safe_emit("evaluation_fault", event.to_dict())


# Global instance
telemetry_service = TelemetryService()
