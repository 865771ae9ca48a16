"""Send multicast messages, retrying recipients the server could not reach.

``Sender.send`` issues one batch with every registration id, then keeps
re-sending a shrinking batch made of the ids whose latest result is
retryable (``Unavailable``) until none are left or the retry budget is
spent. Results from every round are merged per id, and the returned
``Response`` lists them in the caller's original order.

The caller's ``Message`` is never modified: each retry round sends a copy
addressed to the remaining ids.
"""

from __future__ import annotations

import logging as py_logging
import random
import time
from collections.abc import Callable

from gcmsender.config import SenderConfig
from gcmsender.errors import ErrorCode, GcmError
from gcmsender.message import Message
from gcmsender.response import Response, Result
from gcmsender.retry import BackoffPolicy, BackoffScheduler
from gcmsender.transport import BatchTransport, HttpRequester, HttpTransport, TransportLimits

logger = py_logging.getLogger(__name__)


def _invalid(message: str, hint: str = "") -> GcmError:
    return GcmError(message, code=ErrorCode.VALIDATION_ERROR, hint=hint)


def check_message(message: Message | None, limits: TransportLimits) -> None:
    """Raise a validation error if the message cannot be sent as is.

    Registration ids must be unique within one message: results of every
    round are merged per id, so a repeated id could not be accounted for
    separately.
    """
    if message is None:
        raise _invalid("The message must not be None.")
    registration_ids = message.registration_ids
    if registration_ids is None:
        raise _invalid("The message's registration_ids must not be None.")
    if not registration_ids:
        raise _invalid("The message must specify at least one registration id.")
    if len(registration_ids) > limits.max_registration_ids:
        raise _invalid(
            f"The message may specify at most {limits.max_registration_ids} registration ids.",
            hint="Split the recipients across several messages.",
        )
    if len(set(registration_ids)) != len(registration_ids):
        raise _invalid("The message's registration ids must be unique.")
    ttl = message.time_to_live
    if ttl is not None and not 0 <= ttl <= limits.max_time_to_live:
        raise _invalid(
            f"The message's time_to_live must be between 0 and {limits.max_time_to_live} seconds.",
        )


def _record_round(sent_ids: list[str], response: Response, ledger: dict[str, Result]) -> list[str]:
    """Merge one round into the ledger and return the ids worth retrying."""
    if len(response.results) < len(sent_ids):
        logger.warning(
            "GCM returned %s results for %s registration ids",
            len(response.results),
            len(sent_ids),
        )
    retry_ids: list[str] = []
    for registration_id, result in zip(sent_ids, response.results):
        ledger[registration_id] = result
        if result.retryable:
            retry_ids.append(registration_id)
    return retry_ids


class Sender:
    def __init__(
        self,
        transport: BatchTransport | None,
        *,
        backoff: BackoffPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.transport = transport
        self.backoff = backoff or BackoffPolicy()
        self._sleep = sleep
        self._rng = rng

    @classmethod
    def from_config(
        cls,
        config: SenderConfig,
        *,
        requester: HttpRequester | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Sender:
        transport = HttpTransport(
            config.api_key,
            endpoint=config.endpoint,
            timeout_seconds=config.timeout_seconds,
            limits=config.limits(),
            requester=requester,
        )
        return cls(transport, backoff=config.backoff_policy(), sleep=sleep)

    def _require_transport(self) -> BatchTransport:
        if self.transport is None:
            raise GcmError(
                "No batch transport is configured.",
                code=ErrorCode.CONFIG_ERROR,
                hint="Create the Sender with a transport or use Sender.from_config.",
            )
        return self.transport

    def send_no_retry(self, message: Message) -> Response:
        """Send the message once; per-recipient failures are returned, not raised."""
        transport = self._require_transport()
        check_message(message, transport.limits)
        return transport.send(message)

    def send(self, message: Message, retries: int) -> Response:
        """Send the message, retrying unavailable recipients up to ``retries`` times.

        May block for several seconds while backing off between rounds.
        """
        if retries < 0:
            raise _invalid("'retries' must not be negative.")

        response = self.send_no_retry(message)
        if response.failure == 0 or retries == 0:
            return response

        original_ids = tuple(message.registration_ids)
        ledger: dict[str, Result] = {}
        scheduler = BackoffScheduler(self.backoff, sleep=self._sleep, rng=self._rng)
        transport = self._require_transport()

        sent_ids = list(original_ids)
        rounds = 0
        while True:
            retry_ids = _record_round(sent_ids, response, ledger)
            if not retry_ids or rounds >= retries:
                break
            rounds += 1
            scheduler.wait()
            logger.debug("Retry round %s/%s for %s registration ids", rounds, retries, len(retry_ids))
            sent_ids = retry_ids
            response = transport.send(message.with_registration_ids(sent_ids))

        final = Response.aggregate(
            response.multicast_id,
            [ledger.get(registration_id) or Result.unknown() for registration_id in original_ids],
        )
        logger.info(
            "Sent to %s registration ids in %s retry rounds success=%s failure=%s",
            len(original_ids),
            rounds,
            final.success,
            final.failure,
        )
        return final
