"""Request validators and rejection mapping."""
from explosion_hot.config import settings
from explosion_hot.errors import ErrorCode, GameError
from explosion_hot.logic.models import ActionResult
from explosion_hot.protocol import SpinRequest, StakeRequest


def validate_spin_request(request: SpinRequest) -> None:
    """
    Validate an explicit stake on a spin.

    Raises INVALID_STAKE if stake is given and not in allowed stakes.
    """
    if request.stake is not None and request.stake not in settings.allowed_stakes:
        raise GameError(
            ErrorCode.INVALID_STAKE,
            f"Stake {request.stake} not allowed. "
            f"Allowed: {settings.allowed_stakes}",
        )


def validate_stake_request(request: StakeRequest) -> None:
    """Raises INVALID_REQUEST unless delta is exactly one step."""
    if request.delta not in (-1, 1):
        raise GameError(
            ErrorCode.INVALID_REQUEST,
            f"Stake delta must be -1 or 1, got {request.delta}",
        )


def raise_for_rejection(result: ActionResult) -> None:
    """Turn a rejected session action into a GameError."""
    if result.accepted:
        return
    raise GameError(result.reason or ErrorCode.INVALID_TRANSITION, result.message)
