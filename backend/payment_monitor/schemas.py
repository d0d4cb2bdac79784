from __future__ import annotations
from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field

# last second of 9999-12-31 UTC, the datetime ceiling
MAX_EPOCH = 253402300799
Epoch = Annotated[int, Field(ge=0, le=MAX_EPOCH)]

class _Obj(BaseModel):
    model_config = ConfigDict(extra="ignore")

class BillingDetails(_Obj): name: str|None = None; email: str|None = None
class Outcome(_Obj): network_status: str|None = None; reason: str|None = None

class Charge(_Obj):
    id: str; amount: int; currency: str; created: Epoch; paid: bool = False
    billing_details: BillingDetails|None = None; outcome: Outcome|None = None

class Invoice(_Obj):
    id: str; amount_due: int; currency: str; created: Epoch
    customer_name: str|None = None; customer_email: str|None = None

class ChargeData(_Obj): object: Charge
class InvoiceData(_Obj): object: Invoice

class ChargeFailedEvent(_Obj): type: Literal["charge.failed"]; data: ChargeData
class InvoicePaymentFailedEvent(_Obj): type: Literal["invoice.payment_failed"]; data: InvoiceData
class UnrecognizedEvent(_Obj): type: str

Event = Union[ChargeFailedEvent, InvoicePaymentFailedEvent, UnrecognizedEvent]

class FailureRecord(BaseModel):
    id: str; amount_minor_units: int; currency: str; occurred_at: Epoch
    customer_name: str|None = None; customer_email: str|None = None
    failure_code: str|None = None; failure_reason: str|None = None

class ChargeSummary(BaseModel):
    id: str; amount: float; currency: str; customer: str|None; created: str; failure_reason: str|None
