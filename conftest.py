# conftest.py (project root)

import logging

import pytest
from rest_framework.test import APIClient

from fiscal.models import RangeConfig
from fiscal.services.range_store import InMemoryRangeStore
from fiscal.services.retry import RetryPolicy


logger = logging.getLogger(__name__)

NCF_START = "B01000000001"
NCF_END = "B01000000003"
CF_START = "B02000000001"
CF_END = "B02000000500"


# =============================================================================
# GLOBAL TUNING
# =============================================================================

@pytest.fixture(autouse=True)
def _fast_retries(settings):
    """No backoff sleeping in tests; conflicts are still retried."""
    settings.FISCAL_NUMBERING = {
        **settings.FISCAL_NUMBERING,
        "MAX_ATTEMPTS": 5,
        "BACKOFF_BASE_SECONDS": 0.0,
        "BACKOFF_MAX_SECONDS": 0.0,
        "STORE": "fiscal.services.range_store.DjangoRangeStore",
    }


@pytest.fixture
def no_backoff_policy():
    return RetryPolicy(max_attempts=5, backoff_base_seconds=0.0, backoff_max_seconds=0.0)


# =============================================================================
# FISCAL RANGES
# =============================================================================

@pytest.fixture
def memory_store():
    return InMemoryRangeStore()


@pytest.fixture
def range_factory(db):
    """
    Creates a RangeConfig row directly (test setup only; production code
    goes through fiscal.services.range_config_service).

    Usage:
        range_factory("NCF", "B01000000001", "B01000000003", last_assigned=None)
    """
    def _create(kind="NCF", range_start=NCF_START, range_end=NCF_END, *, last_assigned=None, released_numbers=None):
        config = RangeConfig.objects.create(
            kind=kind,
            range_start=range_start,
            range_end=range_end,
            last_assigned=last_assigned,
            released_numbers=list(released_numbers or []),
        )
        logger.info("[conftest] RangeConfig %s created: %s..%s", kind, range_start, range_end)
        return config

    return _create


@pytest.fixture
def ncf_range(range_factory):
    return range_factory("NCF", NCF_START, NCF_END)


@pytest.fixture
def cf_range(range_factory):
    return range_factory("CF", CF_START, CF_END)


# =============================================================================
# HTTP CLIENTS
# =============================================================================

@pytest.fixture
def operator_user(django_user_model):
    return django_user_model.objects.create_user(username="operator", password="123456")


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(username="admin", password="123456", is_staff=True)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def operator_api(api_client, operator_user):
    api_client.force_authenticate(user=operator_user)
    return api_client


@pytest.fixture
def staff_api(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client
