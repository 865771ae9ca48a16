"""Jittered exponential backoff between retry rounds."""

from __future__ import annotations

import logging as py_logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = py_logging.getLogger(__name__)

BACKOFF_INITIAL_DELAY_MS = 1000
MAX_BACKOFF_DELAY_MS = 1024000
# Share of each backoff that is randomized.
JITTER_PERCENTAGE = 50


@dataclass(frozen=True)
class BackoffPolicy:
    initial_delay_ms: int = BACKOFF_INITIAL_DELAY_MS
    max_delay_ms: int = MAX_BACKOFF_DELAY_MS
    jitter_percentage: int = JITTER_PERCENTAGE


class BackoffScheduler:
    def __init__(
        self,
        policy: BackoffPolicy | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.policy = policy or BackoffPolicy()
        self.current = self.policy.initial_delay_ms
        self._sleep = sleep
        self._rng = rng or random.Random()

    def next_delay_ms(self) -> int:
        """Return the jittered delay for this round and double the backoff."""
        jitter = self.policy.jitter_percentage
        jitter_range = self.current * jitter // 100
        delay = self.current * (100 - jitter) // 100
        if jitter_range > 0:
            delay += self._rng.randrange(jitter_range)
        self.current = min(self.current * 2, self.policy.max_delay_ms)
        return delay

    def wait(self) -> int:
        delay = self.next_delay_ms()
        logger.debug("Backing off for %sms (next backoff %sms)", delay, self.current)
        self._sleep(delay / 1000)
        return delay
