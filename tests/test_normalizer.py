import pytest

from payment_monitor.normalizer import (
    EventParseError, INVOICE_FAILURE_CODE, INVOICE_FAILURE_REASON, normalize, parse_event,
)
from payment_monitor.schemas import ChargeFailedEvent, InvoicePaymentFailedEvent, UnrecognizedEvent


def charge_event(**obj):
    base = {"id": "ch_42", "amount": 1234, "currency": "usd", "created": 1700000000}
    base.update(obj)
    return {"id": "evt_1", "type": "charge.failed", "data": {"object": base}}


def invoice_event(**obj):
    base = {"id": "in_7", "amount_due": 5000, "currency": "gbp", "created": 1690000000,
            "customer_name": "Ada", "customer_email": "ada@example.com"}
    base.update(obj)
    return {"id": "evt_2", "type": "invoice.payment_failed", "data": {"object": base}}


class TestParseEvent:
    def test_variants(self):
        assert isinstance(parse_event(charge_event()), ChargeFailedEvent)
        assert isinstance(parse_event(invoice_event()), InvoicePaymentFailedEvent)
        assert isinstance(parse_event({"type": "customer.created", "data": {}}), UnrecognizedEvent)

    def test_not_an_object(self):
        with pytest.raises(EventParseError):
            parse_event(["charge.failed"])

    def test_missing_type(self):
        with pytest.raises(EventParseError, match="type"):
            parse_event({"data": {}})

    def test_invalid_charge(self):
        with pytest.raises(EventParseError, match="amount"):
            parse_event({"type": "charge.failed", "data": {"object": {"id": "ch_1", "currency": "usd", "created": 1}}})


class TestNormalizeCharge:
    def test_fields_copied_verbatim(self):
        rec = normalize(parse_event(charge_event(
            billing_details={"name": "Grace", "email": "grace@example.com"},
            outcome={"network_status": "declined_by_network", "reason": "insufficient_funds"},
        )))
        assert (rec.id, rec.amount_minor_units, rec.currency) == ("ch_42", 1234, "usd")
        assert rec.customer_name == "Grace"
        assert rec.customer_email == "grace@example.com"
        assert rec.failure_code == "declined_by_network"
        assert rec.failure_reason == "insufficient_funds"
        assert rec.occurred_at == 1700000000

    def test_missing_optional_objects(self):
        rec = normalize(parse_event(charge_event(billing_details=None)))
        assert rec.customer_name is None and rec.customer_email is None
        assert rec.failure_code is None and rec.failure_reason is None


class TestNormalizeInvoice:
    def test_synthesized_record(self):
        rec = normalize(parse_event(invoice_event()))
        assert rec.id == "in_7"
        assert rec.amount_minor_units == 5000
        assert rec.customer_name == "Ada"
        assert rec.occurred_at == 1690000000

    @pytest.mark.parametrize("extra", [{}, {"outcome": {"reason": "card_declined"}}, {"customer_email": None}])
    def test_failure_fields_are_fixed(self, extra):
        rec = normalize(parse_event(invoice_event(**extra)))
        assert rec.failure_code == INVOICE_FAILURE_CODE == "declined_by_network"
        assert rec.failure_reason == INVOICE_FAILURE_REASON == "invoice_payment_failed"


def test_unrecognized_event_yields_nothing():
    assert normalize(parse_event({"type": "payment_intent.succeeded"})) is None


def test_created_outside_datetime_range_is_a_parse_error():
    with pytest.raises(EventParseError, match="created"):
        parse_event(charge_event(created=10**18))
    with pytest.raises(EventParseError, match="created"):
        parse_event(invoice_event(created=-1))
