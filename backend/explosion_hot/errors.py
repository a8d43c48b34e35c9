"""Error codes and exceptions for the engine and its HTTP surface."""
from enum import Enum

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from explosion_hot.config import settings


class ErrorCode(str, Enum):
    """Error codes surfaced to callers."""

    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_STAKE = "INVALID_STAKE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    EVALUATION_FAULT = "EVALUATION_FAULT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.INVALID_STAKE: 400,
    ErrorCode.INVALID_TRANSITION: 409,
    ErrorCode.INSUFFICIENT_CREDITS: 402,
    ErrorCode.EVALUATION_FAULT: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}

# Whether the client may simply retry later
ERROR_RECOVERABLE: dict[ErrorCode, bool] = {
    ErrorCode.INVALID_REQUEST: False,
    ErrorCode.INVALID_STAKE: False,
    ErrorCode.INVALID_TRANSITION: True,
    ErrorCode.INSUFFICIENT_CREDITS: True,
    ErrorCode.EVALUATION_FAULT: True,
    ErrorCode.INTERNAL_ERROR: True,
}


class ErrorBody(BaseModel):
    """Error body shape."""

    code: str
    message: str
    recoverable: bool


class ErrorResponse(BaseModel):
    """Full error response."""

    protocolVersion: str = settings.protocol_version
    error: ErrorBody


class GameError(Exception):
    """Base game error that maps to protocol error response."""

    def __init__(self, code: ErrorCode, message: str | None = None):
        self.code = code
        self.message = message or f"Error: {code.value}"
        self.status_code = ERROR_HTTP_STATUS[code]
        self.recoverable = ERROR_RECOVERABLE[code]
        super().__init__(self.message)

    def to_response(self) -> JSONResponse:
        """Convert to JSONResponse."""
        return JSONResponse(
            status_code=self.status_code,
            content=ErrorResponse(
                error=ErrorBody(
                    code=self.code.value,
                    message=self.message,
                    recoverable=self.recoverable,
                )
            ).model_dump(),
        )


class EvaluationFault(Exception):
    """Settled grid could not be evaluated (wrong shape or unknown cell)."""


class ConfigurationError(Exception):
    """Static game configuration cannot satisfy an engine invariant."""
