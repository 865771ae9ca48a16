"""HTTP batch transport for the GCM send endpoint."""

from __future__ import annotations

import json
import logging as py_logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from http.client import HTTPException
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from gcmsender.errors import ErrorCode, GcmError
from gcmsender.message import Message
from gcmsender.response import Response, parse_response

logger = py_logging.getLogger(__name__)

GCM_SEND_ENDPOINT = "https://android.googleapis.com/gcm/send"
DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_MAX_REGISTRATION_IDS = 1000
# Four weeks, in seconds.
DEFAULT_MAX_TIME_TO_LIVE = 2419200


@dataclass(frozen=True)
class TransportLimits:
    max_registration_ids: int = DEFAULT_MAX_REGISTRATION_IDS
    max_time_to_live: int = DEFAULT_MAX_TIME_TO_LIVE


class BatchTransport(Protocol):
    """Sends one batch and answers with one result per registration id, in order.

    Raising ``GcmError`` means the whole batch failed and no result of that
    call can be trusted.
    """

    limits: TransportLimits

    def send(self, message: Message) -> Response: ...


HttpResponse = tuple[int, str, dict[str, str]]


class HttpRequester(Protocol):
    def __call__(self, url: str, body: bytes, headers: dict[str, str], timeout: float) -> HttpResponse: ...


def _default_requester(url: str, body: bytes, headers: dict[str, str], timeout: float) -> HttpResponse:
    request = Request(url, data=body, headers=headers, method="POST")
    try:
        with urlopen(request, timeout=timeout) as response:  # nosec B310
            status = int(getattr(response, "status", response.getcode()))
            raw_payload = response.read()
            response_headers = {key.lower(): value for key, value in response.headers.items()}
    except HTTPError as exc:
        payload = ""
        if exc.fp is not None:
            payload = exc.read().decode("utf-8", errors="replace")
        response_headers = {key.lower(): value for key, value in (exc.headers.items() if exc.headers else [])}
        return exc.code, payload, response_headers
    except URLError as exc:
        raise GcmError(
            "Could not connect to the GCM server.",
            code=ErrorCode.TRANSPORT_ERROR,
            hint=str(exc.reason) or "Check the network connection.",
        ) from exc
    except TimeoutError as exc:
        raise GcmError(
            "The GCM server did not answer in time.",
            code=ErrorCode.TRANSPORT_ERROR,
            hint=f"Timed out after {timeout}s.",
        ) from exc
    except (OSError, HTTPException) as exc:
        raise GcmError(
            "The connection to the GCM server failed.",
            code=ErrorCode.TRANSPORT_ERROR,
            hint=str(exc) or type(exc).__name__,
        ) from exc

    try:
        payload = raw_payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        logger.error("GCM response body was not valid UTF-8")
        raise GcmError(
            "GCM response could not be decoded.",
            code=ErrorCode.TRANSPORT_ERROR,
            hint="The server answered with a body that is not UTF-8.",
        ) from exc
    return status, payload, response_headers


def parse_retry_after(value: str, *, now: datetime | None = None) -> int | None:
    """Parse a Retry-After header into seconds.

    Accepts a delta in seconds or an HTTP date. Returns ``None`` for a
    missing or unparseable header.
    """
    raw = value.strip()
    if not raw:
        return None
    try:
        return max(int(raw), 0)
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError):
        retry_at = None
    if retry_at is None:
        logger.warning("Unparseable Retry-After header: %s", raw)
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    reference = now or datetime.now(timezone.utc)
    return int((retry_at - reference).total_seconds())


def _validate_endpoint(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise GcmError(
            f"Invalid GCM endpoint: {url}",
            code=ErrorCode.CONFIG_ERROR,
            hint="Use an http(s) URL such as " + GCM_SEND_ENDPOINT,
        )


class HttpTransport:
    def __init__(
        self,
        api_key: str,
        *,
        endpoint: str = GCM_SEND_ENDPOINT,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        limits: TransportLimits | None = None,
        requester: HttpRequester | None = None,
    ) -> None:
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout_seconds = timeout_seconds
        self.limits = limits or TransportLimits()
        self._requester = requester or _default_requester

    def _headers(self) -> dict[str, str]:
        api_key = self.api_key.strip()
        if not api_key:
            raise GcmError(
                "The sender's API key must not be empty.",
                code=ErrorCode.CONFIG_ERROR,
                hint="Set api_key in the config file or the GCM_API_KEY environment variable.",
            )
        return {
            "Authorization": f"key={api_key}",
            "Content-Type": "application/json",
        }

    def send(self, message: Message) -> Response:
        headers = self._headers()
        _validate_endpoint(self.endpoint)
        body = json.dumps(message.to_payload(), separators=(",", ":")).encode("utf-8")

        logger.debug("POST %s registration_ids=%s", self.endpoint, len(message.registration_ids))
        status, payload, response_headers = self._requester(self.endpoint, body, headers, self.timeout_seconds)
        header_map = {key.lower(): value for key, value in response_headers.items()}

        if status == 200:
            return parse_response(payload)

        retry_after = parse_retry_after(header_map.get("retry-after", ""))
        logger.warning("GCM server answered HTTP %s retry_after=%s", status, retry_after)
        if status == 400:
            hint = payload.strip() or "The request could not be parsed as JSON or had invalid fields."
        elif status == 401:
            hint = "Check the API key."
        elif status >= 500:
            hint = "The server is unavailable; try again later."
        else:
            hint = payload.strip()
        raise GcmError(
            f"GCM server rejected the batch (HTTP {status}).",
            code=ErrorCode.TRANSPORT_ERROR,
            hint=hint,
            status_code=status,
            retry_after=retry_after,
        )
