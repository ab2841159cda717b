# tests/fiscal/test_allocator_concurrency_postgres.py
from concurrent.futures import ThreadPoolExecutor, as_completed

import pytest
from django.db import close_old_connections, connection

from fiscal.models import RangeConfig
from fiscal.services.allocator import FiscalNumberAllocator
from fiscal.services.range_store import DjangoRangeStore
from fiscal.services.retry import RetryPolicy

pytestmark = pytest.mark.skipif(
    connection.vendor != "postgresql",
    reason="row-level concurrency needs PostgreSQL (TEST_DATABASE=postgres)",
)


@pytest.mark.django_db(transaction=True)
def test_parallel_allocations_form_a_contiguous_sequence():
    """
    N threads, each with its own connection, allocating from one range:
    every number is issued exactly once and the sequence has no gaps.
    """
    RangeConfig.objects.create(kind="NCF", range_start="B01000000001", range_end="B01000001000")
    policy = RetryPolicy(max_attempts=200, backoff_base_seconds=0.001, backoff_max_seconds=0.02)

    N = 12

    def worker():
        close_old_connections()
        try:
            return FiscalNumberAllocator(store=DjangoRangeStore(), policy=policy).allocate("NCF")
        finally:
            close_old_connections()

    with ThreadPoolExecutor(max_workers=N) as ex:
        numbers = [f.result() for f in as_completed([ex.submit(worker) for _ in range(N)])]

    assert sorted(numbers) == [f"B01{i:09d}" for i in range(1, N + 1)], f"Numbers not contiguous: {sorted(numbers)}"

    config = RangeConfig.objects.get(kind="NCF")
    assert config.last_assigned == f"B01{N:09d}"
    assert config.version == N


@pytest.mark.django_db(transaction=True)
def test_parallel_allocations_past_range_end_never_overissue():
    RangeConfig.objects.create(kind="CF", range_start="B02000000001", range_end="B02000000005")
    policy = RetryPolicy(max_attempts=200, backoff_base_seconds=0.001, backoff_max_seconds=0.02)

    def worker():
        close_old_connections()
        try:
            return FiscalNumberAllocator(store=DjangoRangeStore(), policy=policy).allocate("CF")
        except Exception as exc:
            return exc
        finally:
            close_old_connections()

    with ThreadPoolExecutor(max_workers=10) as ex:
        results = [f.result() for f in as_completed([ex.submit(worker) for _ in range(10)])]

    issued = sorted(r for r in results if isinstance(r, str))
    failures = [r for r in results if not isinstance(r, str)]

    assert issued == [f"B02{i:09d}" for i in range(1, 6)]
    assert len(failures) == 5
    assert all(getattr(f, "code", None) == "FISCAL_5002" for f in failures)
