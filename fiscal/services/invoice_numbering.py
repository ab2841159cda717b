# fiscal/services/invoice_numbering.py
"""
Hooks for the invoice workflow (which lives outside this app).

- create: call number_for_new_invoice() before persisting the invoice, inside
  the same transaction.atomic() block; if it raises, do not persist.
- edit:   number_for_edited_invoice() when the invoice type may have changed.
- delete: release_for_deleted_invoice() in the same transaction that deletes
  the invoice.
"""
import logging
from typing import Optional

from django.db import models

from fiscal.exceptions import FiscalNumberingError
from fiscal.models import RangeKind
from fiscal.services.allocator import FiscalNumberAllocator
from fiscal.services.ledger import ReclamationLedger
from fiscal.services.range_store import RangeStore

logger = logging.getLogger("ncf.fiscal")


class InvoiceType(models.TextChoices):
    FISCAL = "FISCAL", "Crédito fiscal"
    FINAL = "FINAL", "Consumidor final"
    RECEIPT = "RECEIPT", "Pre-cuenta"


RANGE_KIND_BY_INVOICE_TYPE = {
    InvoiceType.FISCAL: RangeKind.NCF,
    InvoiceType.FINAL: RangeKind.CF,
    InvoiceType.RECEIPT: None,
}


def range_kind_for(invoice_type) -> Optional[str]:
    """Range an invoice type draws from; None for pre-account receipts."""
    try:
        invoice_type = InvoiceType(str(getattr(invoice_type, "value", invoice_type)).upper())
    except ValueError:
        raise ValueError(f"Unknown invoice type: {invoice_type!r}")
    kind = RANGE_KIND_BY_INVOICE_TYPE[invoice_type]
    return kind.value if kind is not None else None


def number_for_new_invoice(invoice_type, *, store: Optional[RangeStore] = None) -> Optional[str]:
    kind = range_kind_for(invoice_type)
    if kind is None:
        return None
    return FiscalNumberAllocator(store=store).allocate(kind)


def number_for_edited_invoice(
    previous_type,
    new_type,
    current_number: Optional[str],
    *,
    store: Optional[RangeStore] = None,
) -> Optional[str]:
    """
    Same type keeps its number. A type change issues a number for the new
    type first, then releases the previous one into its own range's ledger.
    """
    previous_kind = range_kind_for(previous_type)
    new_kind = range_kind_for(new_type)

    if previous_kind == new_kind:
        return current_number

    new_number = None
    if new_kind is not None:
        new_number = FiscalNumberAllocator(store=store).allocate(new_kind)

    if previous_kind is not None and current_number:
        ReclamationLedger(store=store).release(previous_kind, current_number)

    return new_number


def release_for_deleted_invoice(
    invoice_type,
    number: Optional[str],
    *,
    strict: bool = True,
    store: Optional[RangeStore] = None,
) -> bool:
    """
    Record the deleted invoice's number in its range ledger.

    strict=True lets failures propagate so the caller's deletion rolls back.
    strict=False is best-effort: the failure is logged with its traceback
    and False is returned, leaving the ledger incomplete for an operator.
    """
    kind = range_kind_for(invoice_type)
    if kind is None or not number:
        return False

    try:
        return ReclamationLedger(store=store).release(kind, number)
    except FiscalNumberingError:
        if strict:
            raise
        logger.exception(
            "fiscal_number_release_failed",
            extra={
                "event": "fiscal_number_release_failed",
                "kind": kind,
                "number": number,
                "invoice_type": str(invoice_type),
                "outcome": "ledger_incomplete",
            },
        )
        return False
