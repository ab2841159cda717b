# fiscal/services/retry.py
import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from django.conf import settings

from fiscal.exceptions import ContentionExceeded
from fiscal.services.range_store import WriteConflict

logger = logging.getLogger("ncf.fiscal")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    backoff_base_seconds: float = 0.01
    backoff_max_seconds: float = 0.2

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        conf = getattr(settings, "FISCAL_NUMBERING", {})
        return cls(
            max_attempts=int(conf.get("MAX_ATTEMPTS", cls.max_attempts)),
            backoff_base_seconds=float(conf.get("BACKOFF_BASE_SECONDS", cls.backoff_base_seconds)),
            backoff_max_seconds=float(conf.get("BACKOFF_MAX_SECONDS", cls.backoff_max_seconds)),
        )

    def delay_for(self, attempt: int) -> float:
        """Exponential backoff with full jitter; ``attempt`` starts at 1."""
        ceiling = min(self.backoff_max_seconds, self.backoff_base_seconds * (2 ** (attempt - 1)))
        return random.uniform(0, ceiling)


def run_with_retry(operation: Callable[[], T], *, policy: RetryPolicy, kind: str, event: str) -> T:
    """
    Run ``operation`` until it stops raising WriteConflict.

    Every other exception propagates untouched on the first attempt. After
    ``policy.max_attempts`` conflicts, raises ContentionExceeded.
    """
    attempts = max(1, policy.max_attempts)
    last_conflict = None

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except WriteConflict as exc:
            last_conflict = exc
            logger.debug(
                "fiscal_number_conflict",
                extra={
                    "event": "fiscal_number_conflict",
                    "operation": event,
                    "kind": kind,
                    "attempt": attempt,
                    "max_attempts": attempts,
                },
            )
            if attempt < attempts:
                time.sleep(policy.delay_for(attempt))

    raise ContentionExceeded(
        f"Gave up on {kind} after {attempts} conflicting attempts.",
        kind=kind,
    ) from last_conflict
