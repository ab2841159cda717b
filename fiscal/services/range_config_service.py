# fiscal/services/range_config_service.py
"""
Administrative side of the fiscal ranges: creating/extending/rotating the
authorized bounds and reporting where each range stands.

The allocation cursor is never set from here; the only cursor write is the
reset done by an explicit rotation to a new authorized block.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from fiscal.exceptions import FormatError, RangeConfigInvalid, RangeExhausted
from fiscal.models import RangeKind
from fiscal.services import sequence_codec
from fiscal.services.allocator import highest_issued, next_candidate, normalize_kind
from fiscal.services.range_store import RangeSnapshot, RangeStore, WriteConflict, get_range_store
from fiscal.services.retry import RetryPolicy, run_with_retry

logger = logging.getLogger("ncf.fiscal")


class RangeState:
    UNINITIALIZED = "UNINITIALIZED"
    ACTIVE = "ACTIVE"
    EXHAUSTED = "EXHAUSTED"


@dataclass
class RangeStatus:
    kind: str
    state: str
    range_start: Optional[str] = None
    range_end: Optional[str] = None
    last_assigned: Optional[str] = None
    next_number: Optional[str] = None
    remaining: int = 0
    released_numbers: tuple = ()

    @property
    def released_count(self) -> int:
        return len(self.released_numbers)


def _validate_bounds(range_start: str, range_end: str) -> None:
    try:
        sequence_codec.ensure_same_format(range_start, range_end)
    except FormatError as exc:
        raise RangeConfigInvalid(exc.message) from exc

    if range_start > range_end:
        raise RangeConfigInvalid(f"range_start {range_start!r} must not be after range_end {range_end!r}.")


def _cursor_fits(snapshot: RangeSnapshot, range_start: str, range_end: str) -> bool:
    last = snapshot.last_assigned
    if last is None:
        return True
    try:
        sequence_codec.ensure_same_format(range_start, last)
    except FormatError:
        return False
    return range_start <= last <= range_end


def _with_mark(marks, number: str) -> tuple:
    """``marks`` with ``number`` recorded as the top of its series."""
    try:
        sequence_codec.parse(number)
    except FormatError:
        # corrupted cursor; nothing trustworthy to record
        return tuple(marks)
    top = max(highest_issued(marks, number) or number, number)
    others = [m for m in marks if highest_issued([m], number) is None]
    return tuple(others) + (top,)


def configure_range(
    kind,
    range_start: str,
    range_end: str,
    *,
    rotate: bool = False,
    store: Optional[RangeStore] = None,
    policy: Optional[RetryPolicy] = None,
) -> RangeSnapshot:
    """
    Create the range or update its bounds.

    Rules:
      - both bounds share prefix and width, start <= end;
      - with numbers already issued, the new bounds must contain
        ``last_assigned`` (extending range_end is the usual change);
      - otherwise ``rotate=True`` is required: the cursor is recorded in
        ``issued_marks``, cleared, and the next allocation issues the new
        range_start. released_numbers is kept;
      - whenever the cursor ends up empty, range_start must lie above every
        number already issued in its prefix/width series.
    """
    kind = normalize_kind(kind)
    range_start = (range_start or "").strip()
    range_end = (range_end or "").strip()
    _validate_bounds(range_start, range_end)

    store = store if store is not None else get_range_store()
    policy = policy if policy is not None else RetryPolicy.from_settings()

    def attempt():
        snapshot = store.get(kind)
        if snapshot is None:
            return store.create(kind, range_start, range_end), "created"

        changes = {"range_start": range_start, "range_end": range_end}
        outcome = "updated"
        if not _cursor_fits(snapshot, range_start, range_end):
            if not rotate:
                raise RangeConfigInvalid(
                    f"{kind} already issued {snapshot.last_assigned!r}; the new range must contain it "
                    "or be applied as a rotation."
                )
            changes["last_assigned"] = None
            changes["issued_marks"] = _with_mark(snapshot.issued_marks, snapshot.last_assigned)
            outcome = "rotated"

        if changes.get("last_assigned", snapshot.last_assigned) is None:
            floor = highest_issued(changes.get("issued_marks", snapshot.issued_marks), range_start)
            if floor is not None and range_start <= floor:
                raise RangeConfigInvalid(
                    f"{kind} already issued up to {floor!r}; a block of that series must start after it."
                )

        if not store.compare_and_swap(snapshot, **changes):
            raise WriteConflict(f"{kind} changed since version {snapshot.version}.")
        return store.get(kind), outcome

    snapshot, outcome = run_with_retry(attempt, policy=policy, kind=kind, event="configure")

    extra = {
        "event": "fiscal_range_configured",
        "kind": kind,
        "range_start": range_start,
        "range_end": range_end,
        "outcome": outcome,
    }
    if outcome == "rotated":
        logger.warning("fiscal_range_rotated", extra={**extra, "event": "fiscal_range_rotated"})
    else:
        logger.info("fiscal_range_configured", extra=extra)

    return snapshot


def range_status(kind, *, store: Optional[RangeStore] = None) -> RangeStatus:
    kind = normalize_kind(kind)
    store = store if store is not None else get_range_store()

    snapshot = store.get(kind)
    if snapshot is None:
        return RangeStatus(kind=kind, state=RangeState.UNINITIALIZED)

    status = RangeStatus(
        kind=kind,
        state=RangeState.ACTIVE,
        range_start=snapshot.range_start,
        range_end=snapshot.range_end,
        last_assigned=snapshot.last_assigned,
        released_numbers=snapshot.released_numbers,
    )

    try:
        candidate = next_candidate(snapshot)
    except RangeExhausted:
        status.state = RangeState.EXHAUSTED
        return status

    status.next_number = candidate
    status.remaining = sequence_codec.distance(candidate, snapshot.range_end) + 1
    return status


def all_range_statuses(*, store: Optional[RangeStore] = None) -> List[RangeStatus]:
    store = store if store is not None else get_range_store()
    return [range_status(kind, store=store) for kind in RangeKind.values]
