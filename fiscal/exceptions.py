# fiscal/exceptions.py
from rest_framework import status
from rest_framework.exceptions import APIException

# Domain error codes
ERR_CONFIG_NOT_FOUND = "FISCAL_5001"
ERR_RANGE_EXHAUSTED = "FISCAL_5002"
ERR_CONTENTION_EXCEEDED = "FISCAL_5003"
ERR_FORMAT = "FISCAL_5004"
ERR_RANGE_CONFIG_INVALID = "FISCAL_5005"
ERR_NUMBER_NOT_ISSUED = "FISCAL_5006"


class FiscalNumberingError(APIException):
    """
    Base for every failure of the fiscal numbering core.

    Carries a stable ``code`` and a human readable ``message``; DRF renders
    the detail as ``{"code": ..., "message": ...}``.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "fiscal_numbering_error"
    error_code = "FISCAL_5000"
    default_message = "Fiscal numbering failure."

    def __init__(self, message: str | None = None, *, kind: str | None = None):
        self.code = self.error_code
        self.message = message or self.default_message
        self.kind = kind
        super().__init__(detail={"code": self.code, "message": self.message})

    def __str__(self):
        return self.message


class ConfigNotFound(FiscalNumberingError):
    """Range was never configured; contact an administrator."""
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "config_not_found"
    error_code = ERR_CONFIG_NOT_FOUND
    default_message = "Cannot issue fiscal number: range is not configured, contact an administrator."


class RangeExhausted(FiscalNumberingError):
    """No numbers left in the authorized range. Blocks invoice creation."""
    status_code = status.HTTP_409_CONFLICT
    default_code = "range_exhausted"
    error_code = ERR_RANGE_EXHAUSTED
    default_message = "Fiscal number range has been fully consumed."


class ContentionExceeded(FiscalNumberingError):
    """Transient: too many concurrent writers. Safe to retry with backoff."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "contention_exceeded"
    error_code = ERR_CONTENTION_EXCEEDED
    default_message = "Too much contention on the fiscal number range, try again."


class FormatError(FiscalNumberingError):
    """Malformed fiscal number or stored range value (data corruption)."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "fiscal_number_format_error"
    error_code = ERR_FORMAT
    default_message = "Malformed fiscal number."


class SequenceOverflow(FormatError):
    """Numeric suffix would need more digits than its fixed width."""
    default_code = "fiscal_number_overflow"
    default_message = "Fiscal number suffix overflowed its fixed width."


class RangeConfigInvalid(FiscalNumberingError):
    """Administrative configuration rejected."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "range_config_invalid"
    error_code = ERR_RANGE_CONFIG_INVALID
    default_message = "Invalid fiscal range configuration."


class NumberNotIssued(FiscalNumberingError):
    """Release of a well-formed number this range never handed out."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "number_not_issued"
    error_code = ERR_NUMBER_NOT_ISSUED
    default_message = "Fiscal number was never issued by this range."
