import logging
from datetime import datetime, timezone

from django.db import DatabaseError, connection
from django.http import JsonResponse

from fiscal.exceptions import FiscalNumberingError
from fiscal.services.range_config_service import RangeState, all_range_statuses

logger = logging.getLogger("ncf.fiscal")


def liveness(request):
    return JsonResponse({"ok": True})


def readiness(request):
    """
    Database reachable and every fiscal range configured and not exhausted.
    A missing/exhausted range blocks invoice creation, so it is reported as
    not ready.
    """
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
        statuses = all_range_statuses()
    except DatabaseError as e:
        return JsonResponse({"ok": False, "error": str(e)}, status=503)
    except FiscalNumberingError as e:
        logger.error("fiscal_readiness_failed", extra={"event": "fiscal_readiness_failed", "code": e.code})
        return JsonResponse({"ok": False, "error": e.message, "code": e.code}, status=503)

    ranges = {s.kind: {"state": s.state, "remaining": s.remaining} for s in statuses}
    ok = all(s.state == RangeState.ACTIVE for s in statuses)
    return JsonResponse({"ok": ok, "fiscal_ranges": ranges}, status=200 if ok else 503)


def time_now(request):
    now = datetime.now(timezone.utc).astimezone()
    return JsonResponse({"now": now.isoformat()})
