# fiscal/views/range_views.py
import logging
from dataclasses import asdict

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import APIException
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from fiscal.permissions import IsStaffForRangeChanges
from fiscal.serializers import (
    AllocatedNumberOutputSerializer,
    ConfigureRangeInputSerializer,
    RangeStatusOutputSerializer,
    ReleaseNumberInputSerializer,
    ReleaseNumberOutputSerializer,
)
from fiscal.services.allocator import allocate_number, normalize_kind
from fiscal.services.ledger import release_number
from fiscal.services.range_config_service import all_range_statuses, configure_range, range_status

logger = logging.getLogger("ncf.fiscal")


def _status_payload(range_state):
    payload = asdict(range_state)
    payload["released_numbers"] = list(range_state.released_numbers)
    payload["released_count"] = range_state.released_count
    return RangeStatusOutputSerializer(payload).data


def _internal_error(event: str, request, kind, message: str):
    """Unexpected failure -> 500 + structured log with traceback."""
    logger.exception(
        event,
        extra={
            "event": event,
            "outcome": "exception",
            "user_id": getattr(request.user, "id", None),
            "kind": kind,
            "request_id": getattr(request, "request_id", None),
        },
    )
    return Response({"detail": message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@extend_schema(request=None, responses=AllocatedNumberOutputSerializer)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
@throttle_classes([UserRateThrottle])
def allocate_number_view(request, kind):
    """
    Issues the next number of the NCF/CF range.

    - FiscalNumberingError (not configured, exhausted, contention, corrupted
      data) propagates and DRF answers with {"code", "message"}.
    """
    try:
        kind = normalize_kind(kind)
        number = allocate_number(kind)
    except APIException:
        raise
    except Exception:
        return _internal_error("fiscal_number_allocate_view", request, kind, "Internal error while issuing fiscal number.")

    logger.info(
        "fiscal_number_allocate_view",
        extra={
            "event": "fiscal_number_allocate_view",
            "outcome": "success",
            "user_id": getattr(request.user, "id", None),
            "kind": kind,
            "number": number,
            "request_id": getattr(request, "request_id", None),
        },
    )

    ser_out = AllocatedNumberOutputSerializer({"kind": kind, "number": number})
    return Response(ser_out.data, status=status.HTTP_200_OK)


@extend_schema(request=ReleaseNumberInputSerializer, responses=ReleaseNumberOutputSerializer)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def release_number_view(request, kind):
    """Records a number whose invoice was deleted. Repeating it is a no-op."""
    ser_in = ReleaseNumberInputSerializer(data=request.data)
    ser_in.is_valid(raise_exception=True)
    number = ser_in.validated_data["number"]

    try:
        kind = normalize_kind(kind)
        recorded = release_number(kind, number)
    except APIException:
        raise
    except Exception:
        return _internal_error("fiscal_number_release_view", request, kind, "Internal error while releasing fiscal number.")

    ser_out = ReleaseNumberOutputSerializer({"kind": kind, "number": number, "recorded": recorded})
    return Response(ser_out.data, status=status.HTTP_200_OK)


@extend_schema(responses=RangeStatusOutputSerializer(many=True))
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def range_list_view(request):
    return Response([_status_payload(s) for s in all_range_statuses()])


@extend_schema(request=ConfigureRangeInputSerializer, responses=RangeStatusOutputSerializer)
@api_view(["GET", "PUT"])
@permission_classes([IsAuthenticated, IsStaffForRangeChanges])
def range_detail_view(request, kind):
    """
    GET: state of the range (ACTIVE / EXHAUSTED / UNINITIALIZED).
    PUT: administrative configuration of the bounds (staff only). Never
    accepts last_assigned or released_numbers.
    """
    kind = normalize_kind(kind)

    if request.method == "PUT":
        ser_in = ConfigureRangeInputSerializer(data=request.data)
        ser_in.is_valid(raise_exception=True)
        data = ser_in.validated_data
        configure_range(
            kind,
            data["range_start"],
            data["range_end"],
            rotate=data["rotate"],
        )
        logger.info(
            "fiscal_range_configure_view",
            extra={
                "event": "fiscal_range_configure_view",
                "user_id": getattr(request.user, "id", None),
                "kind": kind,
                "rotate": data["rotate"],
            },
        )

    return Response(_status_payload(range_status(kind)), status=status.HTTP_200_OK)
