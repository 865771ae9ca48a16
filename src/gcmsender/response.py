"""GCM server response model and per-recipient outcome classification."""

from __future__ import annotations

import json
import logging as py_logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from gcmsender.errors import ErrorCode, GcmError

logger = py_logging.getLogger(__name__)


class ResponseError(str, Enum):
    MISSING_REGISTRATION = "MissingRegistration"
    INVALID_REGISTRATION = "InvalidRegistration"
    MISMATCH_SENDER_ID = "MismatchSenderId"
    NOT_REGISTERED = "NotRegistered"
    MESSAGE_TOO_BIG = "MessageTooBig"
    INVALID_DATA_KEY = "InvalidDataKey"
    INVALID_TTL = "InvalidTtl"
    UNAVAILABLE = "Unavailable"
    INTERNAL_SERVER_ERROR = "InternalServerError"
    INVALID_PACKAGE_NAME = "InvalidPackageName"
    DEVICE_MESSAGE_RATE_EXCEEDED = "DeviceMessageRateExceeded"
    UNKNOWN = "UnknownError"

    @classmethod
    def parse(cls, raw: str) -> ResponseError:
        try:
            return cls(raw.strip())
        except ValueError:
            return cls.UNKNOWN


# Only transient unavailability is worth another round; every other kind is
# terminal for the recipient.
_RETRYABLE_ERRORS = frozenset({ResponseError.UNAVAILABLE})


def is_retryable(kind: ResponseError | None) -> bool:
    return kind in _RETRYABLE_ERRORS


@dataclass(frozen=True)
class Result:
    message_id: str = ""
    # Canonical registration id the caller should use from now on.
    registration_id: str = ""
    error: ResponseError | None = None
    error_detail: str = ""

    @property
    def ok(self) -> bool:
        return bool(self.message_id) and self.error is None

    @property
    def retryable(self) -> bool:
        return is_retryable(self.error)

    @classmethod
    def unknown(cls) -> Result:
        return cls(error=ResponseError.UNKNOWN, error_detail="no result reported for registration id")

    def to_dict(self) -> dict[str, str]:
        payload: dict[str, str] = {}
        if self.message_id:
            payload["message_id"] = self.message_id
        if self.registration_id:
            payload["registration_id"] = self.registration_id
        if self.error is not None:
            payload["error"] = self.error_detail or self.error.value
        return payload


@dataclass
class Response:
    multicast_id: int = 0
    success: int = 0
    failure: int = 0
    canonical_ids: int = 0
    results: list[Result] = field(default_factory=list)

    @classmethod
    def aggregate(cls, multicast_id: int, results: Sequence[Result]) -> Response:
        success = failure = canonical_ids = 0
        for result in results:
            if result.ok:
                success += 1
                if result.registration_id:
                    canonical_ids += 1
            else:
                failure += 1
        return cls(
            multicast_id=multicast_id,
            success=success,
            failure=failure,
            canonical_ids=canonical_ids,
            results=list(results),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "multicast_id": self.multicast_id,
            "success": self.success,
            "failure": self.failure,
            "canonical_ids": self.canonical_ids,
            "results": [result.to_dict() for result in self.results],
        }


def _int_field(raw: dict[str, object], key: str) -> int:
    value = raw.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int):
        raise GcmError(
            f"GCM response field '{key}' is not an integer.",
            code=ErrorCode.TRANSPORT_ERROR,
            hint="The server answered with an unexpected body.",
        )
    return value


def _parse_result(entry: object) -> Result:
    if not isinstance(entry, dict):
        raise GcmError(
            "GCM response contains a malformed result entry.",
            code=ErrorCode.TRANSPORT_ERROR,
        )
    message_id = entry.get("message_id")
    registration_id = entry.get("registration_id")
    raw_error = entry.get("error")
    error: ResponseError | None = None
    error_detail = ""
    if isinstance(raw_error, str) and raw_error.strip():
        error = ResponseError.parse(raw_error)
        error_detail = raw_error.strip()
        if error is ResponseError.UNKNOWN:
            logger.debug("Unrecognized per-recipient error: %s", error_detail)
    return Result(
        message_id=str(message_id) if message_id else "",
        registration_id=registration_id if isinstance(registration_id, str) else "",
        error=error,
        error_detail=error_detail,
    )


def parse_response(payload: str) -> Response:
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError as exc:
        logger.error("GCM response body was not valid JSON")
        raise GcmError(
            "GCM response could not be decoded.",
            code=ErrorCode.TRANSPORT_ERROR,
            hint="The server answered with a body that is not JSON.",
        ) from exc

    if not isinstance(raw, dict):
        raise GcmError(
            "GCM response has an unexpected shape.",
            code=ErrorCode.TRANSPORT_ERROR,
            hint="Expected a JSON object.",
        )

    raw_results = raw.get("results", [])
    if not isinstance(raw_results, list):
        raise GcmError(
            "GCM response 'results' is not a list.",
            code=ErrorCode.TRANSPORT_ERROR,
        )

    return Response(
        multicast_id=_int_field(raw, "multicast_id"),
        success=_int_field(raw, "success"),
        failure=_int_field(raw, "failure"),
        canonical_ids=_int_field(raw, "canonical_ids"),
        results=[_parse_result(entry) for entry in raw_results],
    )
