# fiscal/services/range_store.py
"""
Transactional key-value access to RangeConfig.

The allocator and the ledger only ever talk to a RangeStore:

  - get(kind)                     -> RangeSnapshot | None
  - create(kind, start, end)      -> RangeSnapshot
  - compare_and_swap(snap, **chg) -> bool (False when ``snap.version`` is stale)

A store may raise WriteConflict when the backend itself reports a
concurrency failure (lock timeout, serialization failure); callers treat it
exactly like a stale version.
"""
import threading
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from django.conf import settings
from django.db import IntegrityError, OperationalError, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.module_loading import import_string

from fiscal.models import RangeConfig

MUTABLE_FIELDS = frozenset({"range_start", "range_end", "last_assigned", "released_numbers", "issued_marks"})
LIST_FIELDS = ("released_numbers", "issued_marks")


class WriteConflict(Exception):
    """A concurrent writer got to the RangeConfig first."""


@dataclass(frozen=True)
class RangeSnapshot:
    kind: str
    range_start: str
    range_end: str
    last_assigned: Optional[str]
    released_numbers: Tuple[str, ...]
    version: int
    issued_marks: Tuple[str, ...] = ()


class RangeStore:
    def get(self, kind: str) -> Optional[RangeSnapshot]:
        raise NotImplementedError

    def create(self, kind: str, range_start: str, range_end: str) -> RangeSnapshot:
        raise NotImplementedError

    def compare_and_swap(self, snapshot: RangeSnapshot, **changes) -> bool:
        raise NotImplementedError

    @staticmethod
    def _check_changes(changes):
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"RangeConfig fields not writable through the store: {sorted(unknown)}")


class DjangoRangeStore(RangeStore):
    """
    RangeConfig rows through the Django ORM.

    compare_and_swap is a single ``UPDATE ... WHERE kind=%s AND version=%s``;
    the row lock taken by the UPDATE serializes concurrent writers and the
    loser sees zero affected rows.
    """

    def get(self, kind):
        try:
            row = (
                RangeConfig.objects.filter(kind=kind)
                .values(
                    "kind", "range_start", "range_end", "last_assigned",
                    "released_numbers", "issued_marks", "version",
                )
                .first()
            )
        except OperationalError as exc:
            # e.g. SQLite "database is locked" while another writer commits
            raise WriteConflict(str(exc)) from exc
        if row is None:
            return None
        return _snapshot_from_row(row)

    def create(self, kind, range_start, range_end):
        try:
            with transaction.atomic():
                config = RangeConfig.objects.create(
                    kind=kind,
                    range_start=range_start,
                    range_end=range_end,
                )
        except IntegrityError as exc:
            # another process created the same range first
            raise WriteConflict(f"RangeConfig {kind} already exists.") from exc
        except OperationalError as exc:
            raise WriteConflict(str(exc)) from exc

        return RangeSnapshot(
            kind=config.kind,
            range_start=config.range_start,
            range_end=config.range_end,
            last_assigned=None,
            released_numbers=(),
            version=config.version,
        )

    def compare_and_swap(self, snapshot, **changes):
        self._check_changes(changes)
        values = dict(changes)
        for field in LIST_FIELDS:
            if field in values:
                values[field] = list(values[field])

        try:
            # savepoint: a lock failure must not poison the caller's transaction
            with transaction.atomic():
                updated = RangeConfig.objects.filter(
                    kind=snapshot.kind,
                    version=snapshot.version,
                ).update(
                    version=F("version") + 1,
                    updated_at=timezone.now(),
                    **values,
                )
        except OperationalError as exc:
            raise WriteConflict(str(exc)) from exc

        return updated == 1


class InMemoryRangeStore(RangeStore):
    """
    Process-local store. The lock only makes compare_and_swap atomic; callers
    still go through the optimistic read/compute/swap cycle.
    """

    def __init__(self):
        self._rows = {}
        self._lock = threading.Lock()

    def get(self, kind):
        with self._lock:
            return self._rows.get(kind)

    def create(self, kind, range_start, range_end):
        with self._lock:
            if kind in self._rows:
                raise WriteConflict(f"RangeConfig {kind} already exists.")
            snapshot = RangeSnapshot(
                kind=kind,
                range_start=range_start,
                range_end=range_end,
                last_assigned=None,
                released_numbers=(),
                version=0,
            )
            self._rows[kind] = snapshot
            return snapshot

    def compare_and_swap(self, snapshot, **changes):
        self._check_changes(changes)
        for field in LIST_FIELDS:
            if field in changes:
                changes[field] = tuple(changes[field])

        with self._lock:
            current = self._rows.get(snapshot.kind)
            if current is None or current.version != snapshot.version:
                return False
            self._rows[snapshot.kind] = replace(current, version=current.version + 1, **changes)
            return True


def _snapshot_from_row(row) -> RangeSnapshot:
    return RangeSnapshot(
        kind=row["kind"],
        range_start=row["range_start"],
        range_end=row["range_end"],
        last_assigned=row["last_assigned"] or None,
        released_numbers=tuple(row["released_numbers"] or ()),
        version=row["version"],
        issued_marks=tuple(row["issued_marks"] or ()),
    )


def get_range_store() -> RangeStore:
    """Store configured in settings.FISCAL_NUMBERING["STORE"]."""
    conf = getattr(settings, "FISCAL_NUMBERING", {})
    dotted = conf.get("STORE", "fiscal.services.range_store.DjangoRangeStore")
    return import_string(dotted)()
