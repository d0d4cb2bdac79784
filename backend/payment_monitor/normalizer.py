from __future__ import annotations
from pydantic import ValidationError
from .schemas import (
    Charge, ChargeFailedEvent, Event, FailureRecord, InvoicePaymentFailedEvent, UnrecognizedEvent,
)

CHARGE_FAILED = "charge.failed"
INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
FAILURE_EVENTS = [CHARGE_FAILED, INVOICE_PAYMENT_FAILED]

# invoices carry no outcome, so these are fixed
INVOICE_FAILURE_CODE = "declined_by_network"
INVOICE_FAILURE_REASON = "invoice_payment_failed"

class EventParseError(ValueError):
    pass

def parse_event(payload) -> Event:
    if not isinstance(payload, dict):
        raise EventParseError("event payload must be a JSON object")
    kind = payload.get("type")
    if not isinstance(kind, str) or not kind:
        raise EventParseError("event payload has no 'type'")
    model = {CHARGE_FAILED: ChargeFailedEvent, INVOICE_PAYMENT_FAILED: InvoicePaymentFailedEvent}.get(kind, UnrecognizedEvent)
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        err = e.errors()[0]; loc = ".".join(str(p) for p in err["loc"])
        raise EventParseError(f"invalid {kind} event: {loc}: {err['msg']}") from e

def record_from_charge(charge: Charge) -> FailureRecord:
    bd, oc = charge.billing_details, charge.outcome
    return FailureRecord(
        id=charge.id, amount_minor_units=charge.amount, currency=charge.currency, occurred_at=charge.created,
        customer_name=bd.name if bd else None, customer_email=bd.email if bd else None,
        failure_code=oc.network_status if oc else None, failure_reason=oc.reason if oc else None,
    )

def normalize(event: Event) -> FailureRecord | None:
    """Map a failure event onto a FailureRecord; other event types yield None."""
    if isinstance(event, ChargeFailedEvent):
        return record_from_charge(event.data.object)
    if isinstance(event, InvoicePaymentFailedEvent):
        inv = event.data.object
        return FailureRecord(
            id=inv.id, amount_minor_units=inv.amount_due, currency=inv.currency, occurred_at=inv.created,
            customer_name=inv.customer_name, customer_email=inv.customer_email,
            failure_code=INVOICE_FAILURE_CODE, failure_reason=INVOICE_FAILURE_REASON,
        )
    if isinstance(event, UnrecognizedEvent):
        return None
    raise TypeError(f"unsupported event object: {type(event).__name__}")
