"""Call-level error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    TRANSPORT_ERROR = 4
    VALIDATION_ERROR = 7
    DELIVERY_FAILED = 9


@dataclass
class GcmError(Exception):
    message: str
    code: ErrorCode = ErrorCode.TRANSPORT_ERROR
    hint: str = ""
    status_code: int = 0
    retry_after: int | None = None

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
