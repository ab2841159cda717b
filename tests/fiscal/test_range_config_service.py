# tests/fiscal/test_range_config_service.py
import logging

import pytest

from fiscal.exceptions import ConfigNotFound, FormatError, RangeConfigInvalid
from fiscal.models import RangeConfig
from fiscal.services.allocator import allocate_number
from fiscal.services.range_config_service import (
    RangeState,
    all_range_statuses,
    configure_range,
    range_status,
)


# =============================================================================
# configure_range
# =============================================================================

@pytest.mark.django_db
def test_configure_creates_missing_range():
    snap = configure_range("NCF", "B01000000001", "B01000000100")

    assert snap.kind == "NCF"
    assert snap.last_assigned is None
    config = RangeConfig.objects.get(kind="NCF")
    assert (config.range_start, config.range_end) == ("B01000000001", "B01000000100")
    assert allocate_number("NCF") == "B01000000001"


@pytest.mark.django_db
def test_configure_strips_whitespace_and_normalizes_kind():
    configure_range("cf", "  B02000000001 ", "B02000000009\n")

    config = RangeConfig.objects.get(kind="CF")
    assert config.range_start == "B02000000001"
    assert config.range_end == "B02000000009"


@pytest.mark.django_db
def test_extending_range_end_keeps_cursor(ncf_range):
    for _ in range(3):
        allocate_number("NCF")

    snap = configure_range("NCF", "B01000000001", "B01000000010")

    assert snap.last_assigned == "B01000000003"
    assert snap.range_end == "B01000000010"
    assert allocate_number("NCF") == "B01000000004"


@pytest.mark.django_db
def test_new_block_outside_cursor_requires_rotation(ncf_range):
    allocate_number("NCF")

    with pytest.raises(RangeConfigInvalid) as exc:
        configure_range("NCF", "B01000000500", "B01000000600")

    assert exc.value.code == "FISCAL_5005"
    ncf_range.refresh_from_db()
    assert ncf_range.range_start == "B01000000001"
    assert ncf_range.last_assigned == "B01000000001"


@pytest.mark.django_db
def test_rotation_resets_cursor_and_keeps_ledger(ncf_range, caplog):
    allocate_number("NCF")
    allocate_number("NCF")
    ncf_range.refresh_from_db()
    ncf_range.released_numbers = ["B01000000002"]
    ncf_range.save(update_fields=["released_numbers"])

    with caplog.at_level(logging.WARNING, logger="ncf.fiscal"):
        snap = configure_range("NCF", "B01000000500", "B01000000600", rotate=True)

    assert snap.last_assigned is None
    assert snap.released_numbers == ("B01000000002",)
    assert allocate_number("NCF") == "B01000000500"
    assert any(getattr(r, "event", None) == "fiscal_range_rotated" for r in caplog.records)


@pytest.mark.django_db
def test_rotate_flag_is_harmless_when_cursor_fits(ncf_range):
    allocate_number("NCF")

    snap = configure_range("NCF", "B01000000001", "B01000000009", rotate=True)

    assert snap.last_assigned == "B01000000001"


@pytest.mark.django_db
def test_configure_bumps_version(ncf_range):
    configure_range("NCF", "B01000000001", "B01000000009")

    ncf_range.refresh_from_db()
    assert ncf_range.version == 1


@pytest.mark.django_db
@pytest.mark.parametrize(
    "start,end",
    [
        ("B01000000010", "B01000000001"),   # inverted
        ("B01000000001", "B02000000009"),   # prefix mismatch
        ("B01000000001", "B0100000009"),    # width mismatch
        ("B01", "B01000000009"),
        ("", ""),
        ("B01ABC", "B01DEF"),
    ],
)
def test_invalid_bounds_are_rejected(start, end):
    with pytest.raises(RangeConfigInvalid):
        configure_range("NCF", start, end)

    assert not RangeConfig.objects.exists()


@pytest.mark.django_db
def test_configure_unknown_kind():
    with pytest.raises(ConfigNotFound):
        configure_range("E31", "E31000000001", "E31000000009")


# =============================================================================
# range_status
# =============================================================================

@pytest.mark.django_db
def test_status_of_missing_range_is_uninitialized():
    status = range_status("CF")

    assert status.state == RangeState.UNINITIALIZED
    assert status.next_number is None
    assert status.remaining == 0


@pytest.mark.django_db
def test_status_of_fresh_range(ncf_range):
    status = range_status("NCF")

    assert status.state == RangeState.ACTIVE
    assert status.next_number == "B01000000001"
    assert status.remaining == 3
    assert status.released_count == 0


@pytest.mark.django_db
def test_status_follows_allocations_until_exhausted(ncf_range):
    allocate_number("NCF")
    status = range_status("NCF")
    assert status.next_number == "B01000000002"
    assert status.remaining == 2
    assert status.last_assigned == "B01000000001"

    allocate_number("NCF")
    allocate_number("NCF")
    status = range_status("NCF")
    assert status.state == RangeState.EXHAUSTED
    assert status.next_number is None
    assert status.remaining == 0


@pytest.mark.django_db
def test_status_counts_released_numbers(range_factory):
    range_factory(
        "CF", "B02000000001", "B02000000500",
        last_assigned="B02000000010", released_numbers=["B02000000003", "B02000000004"],
    )

    status = range_status("CF")

    assert status.released_count == 2
    assert status.remaining == 490


@pytest.mark.django_db
def test_all_range_statuses_covers_every_kind(ncf_range):
    statuses = {s.kind: s.state for s in all_range_statuses()}

    assert statuses == {"NCF": RangeState.ACTIVE, "CF": RangeState.UNINITIALIZED}


def test_configure_and_status_with_memory_store(memory_store, no_backoff_policy):
    configure_range("CF", "B02000000001", "B02000000002", store=memory_store, policy=no_backoff_policy)

    status = range_status("CF", store=memory_store)

    assert status.state == RangeState.ACTIVE
    assert status.remaining == 2


# =============================================================================
# issued numbers are never reopened
# =============================================================================

@pytest.mark.django_db
def test_rotation_onto_already_issued_numbers_is_rejected(ncf_range):
    issued = [allocate_number("NCF") for _ in range(3)]

    with pytest.raises(RangeConfigInvalid):
        configure_range("NCF", "B01000000001", "B01000000002", rotate=True)

    ncf_range.refresh_from_db()
    assert ncf_range.last_assigned == issued[-1]
    assert ncf_range.issued_marks == []


@pytest.mark.django_db
def test_update_after_rotation_cannot_move_back_into_issued_numbers(ncf_range):
    issued = [allocate_number("NCF") for _ in range(3)]
    configure_range("NCF", "B01000000500", "B01000000600", rotate=True)

    with pytest.raises(RangeConfigInvalid) as exc:
        configure_range("NCF", "B01000000001", "B01000000600")

    assert exc.value.code == "FISCAL_5005"
    ncf_range.refresh_from_db()
    assert ncf_range.range_start == "B01000000500"
    assert ncf_range.issued_marks == ["B01000000003"]
    assert allocate_number("NCF") not in issued


@pytest.mark.django_db
def test_rotation_records_the_top_of_each_series_left(ncf_range):
    allocate_number("NCF")
    allocate_number("NCF")
    configure_range("NCF", "E31000000001", "E31000000010", rotate=True)
    allocate_number("NCF")
    configure_range("NCF", "B01000000100", "B01000000200", rotate=True)

    ncf_range.refresh_from_db()
    assert sorted(ncf_range.issued_marks) == ["B01000000002", "E31000000001"]
    assert allocate_number("NCF") == "B01000000100"

    # going back to E31 must start after E31000000001
    allocate_number("NCF")
    with pytest.raises(RangeConfigInvalid):
        configure_range("NCF", "E31000000001", "E31000000050", rotate=True)
    snap = configure_range("NCF", "E31000000002", "E31000000050", rotate=True)
    assert sorted(snap.issued_marks) == ["B01000000101", "E31000000001"]


@pytest.mark.django_db
def test_rotation_just_past_the_issued_mark_is_allowed(ncf_range):
    for _ in range(3):
        allocate_number("NCF")

    configure_range("NCF", "B01000000004", "B01000000010", rotate=True)

    assert allocate_number("NCF") == "B01000000004"


@pytest.mark.django_db
def test_hand_edited_row_reopening_issued_numbers_is_refused_by_allocator(range_factory):
    config = range_factory("NCF", "B01000000001", "B01000000010")
    config.issued_marks = ["B01000000005"]
    config.save(update_fields=["issued_marks"])

    with pytest.raises(FormatError):
        allocate_number("NCF")
