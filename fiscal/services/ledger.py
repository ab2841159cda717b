# fiscal/services/ledger.py
import logging
from typing import Optional

from fiscal.exceptions import ConfigNotFound, FiscalNumberingError, FormatError, NumberNotIssued
from fiscal.services import sequence_codec
from fiscal.services.allocator import highest_issued, issued_numbers, normalize_kind
from fiscal.services.range_store import RangeStore, WriteConflict, get_range_store
from fiscal.services.retry import RetryPolicy, run_with_retry

logger = logging.getLogger("ncf.fiscal")


class ReclamationLedger:
    """
    Audit trail of issued numbers whose invoice was deleted.

    Releasing never touches ``last_assigned`` and never makes a number
    available again; it only appends to ``released_numbers``, once.

    A number is accepted when its series is the current cursor's or one left
    behind by a rotation, and it is not above the highest number issued there.
    """

    def __init__(self, store: Optional[RangeStore] = None, policy: Optional[RetryPolicy] = None):
        self.store = store if store is not None else get_range_store()
        self.policy = policy if policy is not None else RetryPolicy.from_settings()

    def release(self, kind, number: str) -> bool:
        """
        Record ``number`` as released. Returns False when it was already
        recorded (idempotent no-op), True when this call appended it.
        """
        kind = normalize_kind(kind)

        def attempt():
            snapshot = self.store.get(kind)
            if snapshot is None:
                raise ConfigNotFound(
                    f"Cannot release {kind} number: range is not configured.",
                    kind=kind,
                )

            issued = issued_numbers(snapshot)
            top = highest_issued(issued, number)
            if top is None:
                if not sequence_codec.same_format(snapshot.range_start, number):
                    raise FormatError(
                        f"{number!r} does not belong to any {kind} series in use.",
                        kind=kind,
                    )
                raise NumberNotIssued(f"{kind} has not issued any number in the series of {number!r}.", kind=kind)
            if number > top:
                raise NumberNotIssued(
                    f"{number!r} was never issued: {kind} has only reached {top!r} in that series.",
                    kind=kind,
                )

            if number in snapshot.released_numbers:
                return False

            released = snapshot.released_numbers + (number,)
            if not self.store.compare_and_swap(snapshot, released_numbers=released):
                raise WriteConflict(f"{kind} changed since version {snapshot.version}.")
            return True

        try:
            recorded = run_with_retry(attempt, policy=self.policy, kind=kind, event="release")
        except FiscalNumberingError as exc:
            logger.warning(
                "fiscal_number_release_failed",
                extra={
                    "event": "fiscal_number_release_failed",
                    "kind": kind,
                    "number": number,
                    "code": exc.code,
                    "outcome": type(exc).__name__,
                },
            )
            raise

        event = "fiscal_number_released" if recorded else "fiscal_number_release_noop"
        logger.info(event, extra={"event": event, "kind": kind, "number": number})
        return recorded


def release_number(kind, number: str, *, store: Optional[RangeStore] = None) -> bool:
    return ReclamationLedger(store=store).release(kind, number)
