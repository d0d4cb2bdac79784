from __future__ import annotations
from datetime import datetime, timezone
from decimal import Decimal
from html import escape
from typing import Protocol
from .activity import ActivityLog
from .schemas import FailureRecord

UNKNOWN = "Unknown"
DASHBOARD_URL = "https://dashboard.stripe.com/payments/{id}"
DATE_FMT = "%b %d, %Y %I:%M:%S %p UTC"

class Mailer(Protocol):
    def send(self, sender: str, to: str, subject: str, text: str, html: str) -> None: ...

def format_amount(minor_units: int, currency: str) -> str:
    return f"${Decimal(minor_units) / 100:.2f} {currency.upper()}"

def format_date(epoch_seconds: int) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime(DATE_FMT)

def _fields(rec: FailureRecord) -> list[tuple[str, str]]:
    return [
        ("Customer", rec.customer_name or UNKNOWN), ("Email", rec.customer_email or UNKNOWN),
        ("Amount", format_amount(rec.amount_minor_units, rec.currency)), ("Charge ID", rec.id),
        ("Failure Code", rec.failure_code or UNKNOWN), ("Failure Reason", rec.failure_reason or UNKNOWN),
        ("Date", format_date(rec.occurred_at)),
    ]

def render_subject(rec: FailureRecord) -> str:
    return f"Payment Failed - {format_amount(rec.amount_minor_units, rec.currency)}"

def render_text(rec: FailureRecord) -> str:
    lines = ["Payment Failed Alert", ""] + [f"{k}: {v}" for k, v in _fields(rec)]
    lines += ["", f"View in Stripe: {DASHBOARD_URL.format(id=rec.id)}"]
    return "\n".join(lines) + "\n"

def render_html(rec: FailureRecord) -> str:
    rows = "\n".join(f'      <p><strong>{k}:</strong> {escape(v)}</p>' for k, v in _fields(rec))
    link = escape(DASHBOARD_URL.format(id=rec.id), quote=True)
    return f"""<div style="font-family: Arial, sans-serif; max-width: 600px;">
  <h2 style="color: #d32f2f;">Payment Failed Alert</h2>
  <div style="background: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <h3>Payment Details</h3>
{rows}
  </div>
  <p><a href="{link}" style="background: #635bff; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">View in Stripe Dashboard</a></p>
  <hr>
  <p style="color: #666; font-size: 12px;">This alert was sent by your Stripe failed payment monitor.</p>
</div>
"""

class AlertDispatcher:
    def __init__(self, mailer: Mailer, sender: str, recipient: str, activity: ActivityLog):
        self.mailer, self.sender, self.recipient, self.activity = mailer, sender, recipient, activity

    def send_alert(self, rec: FailureRecord) -> bool:
        """Render and send one alert. Transport errors are logged and reported as False."""
        try:
            self.mailer.send(self.sender, self.recipient, render_subject(rec), render_text(rec), render_html(rec))
        except Exception as e:
            self.activity.error(f"Failed to send email for charge {rec.id}: {e}")
            return False
        self.activity.add(f"Email alert sent for failed payment: {rec.id}")
        return True
