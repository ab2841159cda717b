# fiscal/services/allocator.py
import logging
from typing import Iterable, Optional

from fiscal.exceptions import ConfigNotFound, FiscalNumberingError, FormatError, RangeExhausted, SequenceOverflow
from fiscal.models import RangeKind
from fiscal.services import sequence_codec
from fiscal.services.range_store import RangeSnapshot, RangeStore, WriteConflict, get_range_store
from fiscal.services.retry import RetryPolicy, run_with_retry

logger = logging.getLogger("ncf.fiscal")


def normalize_kind(kind) -> str:
    """Accepts ``RangeKind`` members or their raw values ("ncf" works too)."""
    value = str(getattr(kind, "value", kind) or "").strip().upper()
    if value not in RangeKind.values:
        raise ConfigNotFound(f"Unknown fiscal range {kind!r}.", kind=value or None)
    return value


def validate_snapshot(snapshot: RangeSnapshot) -> None:
    """
    Stored bounds and cursor must share prefix and width, the cursor must
    not sit before range_start, and the next number must lie above any mark
    recorded for the same series. Anything else is corrupted data.
    """
    try:
        sequence_codec.ensure_same_format(snapshot.range_start, snapshot.range_end)
        if snapshot.range_start > snapshot.range_end:
            raise FormatError(
                f"range_start {snapshot.range_start!r} is after range_end {snapshot.range_end!r}."
            )
        if snapshot.last_assigned is not None:
            sequence_codec.ensure_same_format(snapshot.range_start, snapshot.last_assigned)
            if snapshot.last_assigned < snapshot.range_start:
                raise FormatError(
                    f"last_assigned {snapshot.last_assigned!r} is before range_start {snapshot.range_start!r}."
                )
        floor = highest_issued(snapshot.issued_marks, snapshot.range_start)
        if floor is not None:
            if snapshot.last_assigned is None and snapshot.range_start <= floor:
                raise FormatError(f"range_start {snapshot.range_start!r} reopens numbers issued up to {floor!r}.")
            if snapshot.last_assigned is not None and snapshot.last_assigned < floor:
                raise FormatError(f"last_assigned {snapshot.last_assigned!r} is behind issued mark {floor!r}.")
    except FormatError as exc:
        logger.error(
            "fiscal_range_corrupted",
            extra={
                "event": "fiscal_range_corrupted",
                "kind": snapshot.kind,
                "range_start": snapshot.range_start,
                "range_end": snapshot.range_end,
                "last_assigned": snapshot.last_assigned,
                "reason": exc.message,
            },
        )
        exc.kind = snapshot.kind
        raise


def next_candidate(snapshot: RangeSnapshot) -> str:
    """
    Number the next allocation would issue, or RangeExhausted.
    Pure: does not touch the store.
    """
    validate_snapshot(snapshot)

    if snapshot.last_assigned is None:
        candidate = snapshot.range_start
    else:
        try:
            candidate = sequence_codec.increment(snapshot.last_assigned)
        except SequenceOverflow as exc:
            raise RangeExhausted(
                f"{snapshot.kind} range has been fully consumed.",
                kind=snapshot.kind,
            ) from exc

    if candidate > snapshot.range_end:
        raise RangeExhausted(f"{snapshot.kind} range has been fully consumed.", kind=snapshot.kind)

    return candidate


def issued_numbers(snapshot: RangeSnapshot) -> tuple:
    """Cursor plus the marks left by rotations; the top of every series used."""
    if snapshot.last_assigned is None:
        return tuple(snapshot.issued_marks)
    return (snapshot.last_assigned,) + tuple(snapshot.issued_marks)


def highest_issued(numbers: Iterable[str], sample: str) -> Optional[str]:
    """
    Highest of ``numbers`` sharing ``sample``'s prefix and width, or None.
    Unparseable entries are skipped; ``sample`` itself must parse.
    """
    sequence_codec.parse(sample)
    same_series = []
    for number in numbers:
        try:
            if sequence_codec.same_format(number, sample):
                same_series.append(number)
        except FormatError:
            continue
    return max(same_series) if same_series else None


class FiscalNumberAllocator:
    """
    Issues the next number of a range exactly once per call.

    Each attempt reads the RangeConfig, computes the candidate and commits it
    with compare-and-swap on the snapshot version. A lost race re-reads and
    recomputes; nothing is written on failure.
    """

    def __init__(self, store: Optional[RangeStore] = None, policy: Optional[RetryPolicy] = None):
        self.store = store if store is not None else get_range_store()
        self.policy = policy if policy is not None else RetryPolicy.from_settings()

    def allocate(self, kind) -> str:
        kind = normalize_kind(kind)

        def attempt():
            snapshot = self.store.get(kind)
            if snapshot is None:
                raise ConfigNotFound(
                    f"Cannot issue {kind} number: range is not configured, contact an administrator.",
                    kind=kind,
                )

            candidate = next_candidate(snapshot)

            if not self.store.compare_and_swap(snapshot, last_assigned=candidate):
                raise WriteConflict(f"{kind} changed since version {snapshot.version}.")
            return candidate

        try:
            number = run_with_retry(attempt, policy=self.policy, kind=kind, event="allocate")
        except FiscalNumberingError as exc:
            logger.warning(
                "fiscal_number_allocation_failed",
                extra={
                    "event": "fiscal_number_allocation_failed",
                    "kind": kind,
                    "code": exc.code,
                    "outcome": type(exc).__name__,
                },
            )
            raise

        logger.info(
            "fiscal_number_allocated",
            extra={
                "event": "fiscal_number_allocated",
                "kind": kind,
                "number": number,
                "outcome": "success",
            },
        )
        return number


def allocate_number(kind, *, store: Optional[RangeStore] = None) -> str:
    """Shortcut used by the invoice workflow and the API."""
    return FiscalNumberAllocator(store=store).allocate(kind)
