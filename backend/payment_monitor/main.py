from __future__ import annotations

import time
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, load_config
from .activity import ActivityLog
from .alerts import AlertDispatcher, Mailer, format_amount
from .normalizer import (
    FAILURE_EVENTS, INVOICE_PAYMENT_FAILED, normalize, parse_event, record_from_charge,
)
from .schemas import ChargeSummary, FailureRecord
from .providers.smtp import SmtpMailer
from .providers.stripe import StripeClient, account_display_name

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
log = logging.getLogger("payment_monitor")
if not log.handlers:
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    log.addHandler(h)
log.setLevel(logging.INFO)

SERVICE_NAME = "Stripe Failed Payment Monitor"
LOOKBACK_SEC = 24 * 60 * 60
CHARGE_LIST_LIMIT = 100
LOGS_PAGE = 50
ENDPOINTS = [
    "POST /webhook - Receive Stripe webhooks (for real-time alerts)",
    "POST /check-failed-payments - Manual check for failed payments",
    "POST /setup-webhook - Automatically register webhook with Stripe",
    "POST /test - Test connections and send sample alert",
    "GET /health - Health check",
    "GET /logs - View recent activity",
]

# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_settings(request: Request) -> Settings: return request.app.state.settings
def get_activity(request: Request) -> ActivityLog: return request.app.state.activity
def get_dispatcher(request: Request) -> AlertDispatcher: return request.app.state.dispatcher
def get_stripe(request: Request) -> StripeClient: return request.app.state.stripe

def _webhook_url(request: Request) -> str:
    host = request.headers.get("host") or request.url.netloc
    return f"{request.url.scheme}://{host}/webhook"

def _uptime(request: Request) -> float:
    return round(time.monotonic() - request.app.state.started, 3)

def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def _error(status: int, msg: str) -> JSONResponse:
    return JSONResponse({"error": msg}, status_code=status)

def _summary(rec: FailureRecord) -> dict:
    return ChargeSummary(
        id=rec.id, amount=rec.amount_minor_units / 100, currency=rec.currency, customer=rec.customer_email,
        created=_iso(rec.occurred_at), failure_reason=rec.failure_reason,
    ).model_dump()

# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------
def create_app(cfg: Settings | None = None, stripe: StripeClient | None = None,
               mailer: Mailer | None = None, activity: ActivityLog | None = None) -> FastAPI:
    cfg = cfg or load_config()
    log.setLevel(cfg.log_level.upper())
    # ActivityLog defines __len__, so an empty one is falsy
    if activity is None: activity = ActivityLog()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        activity.add(f"{SERVICE_NAME} started on port {cfg.port}")
        activity.add(f"Email alerts will be sent to: {cfg.alert_email or cfg.email_user or 'NOT_CONFIGURED'}")
        activity.add(f"Webhook URL: http://localhost:{cfg.port}/webhook (update after deployment)")
        yield
        close = getattr(app.state.stripe, "close", None)
        if close: close()

    app = FastAPI(title=SERVICE_NAME, lifespan=lifespan)
    app.state.settings = cfg
    app.state.activity = activity
    app.state.stripe = stripe if stripe is not None else StripeClient.from_settings(cfg)
    app.state.dispatcher = AlertDispatcher(mailer if mailer is not None else SmtpMailer.from_settings(cfg), cfg.sender, cfg.recipient, activity)
    app.state.started = time.monotonic()
    _register_routes(app)
    return app

# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------
def _register_routes(app: FastAPI) -> None:

    @app.post("/webhook")
    async def webhook(request: Request, activity: ActivityLog = Depends(get_activity),
                      dispatcher: AlertDispatcher = Depends(get_dispatcher)):
        try:
            payload = await request.json()
            kind = payload.get("type") if isinstance(payload, dict) else None
            activity.add(f"Received Stripe webhook: {kind}")
            event = parse_event(payload)
            rec = normalize(event)
            if rec is not None:
                what = "failed invoice payment" if event.type == INVOICE_PAYMENT_FAILED else "failed payment"
                activity.add(f"Processing {what}: {rec.id} - {format_amount(rec.amount_minor_units, rec.currency)}")
                await run_in_threadpool(dispatcher.send_alert, rec)
        except Exception as e:
            activity.error(f"Webhook error: {e}")
            return _error(400, str(e))
        return {"received": True}

    @app.post("/check-failed-payments")
    def check_failed_payments(activity: ActivityLog = Depends(get_activity),
                              dispatcher: AlertDispatcher = Depends(get_dispatcher),
                              stripe: StripeClient = Depends(get_stripe)):
        try:
            activity.add("Manually checking for recent failed payments...")
            charges = stripe.list_charges(int(time.time()) - LOOKBACK_SEC, limit=CHARGE_LIST_LIMIT)
            failed = [c for c in charges if not c.paid]
            activity.add(f"Found {len(failed)} failed payments in the last 24 hours")
            sent = 0; out = []
            for c in failed:
                rec = record_from_charge(c)
                if dispatcher.send_alert(rec): sent += 1
                out.append(_summary(rec))
        except Exception as e:
            activity.error(f"Error checking failed payments: {e}")
            return _error(500, str(e))
        return {"success": True, "failedPayments": len(failed), "emailsSent": sent, "charges": out}

    @app.post("/test")
    def run_test(request: Request, activity: ActivityLog = Depends(get_activity),
                 dispatcher: AlertDispatcher = Depends(get_dispatcher),
                 stripe: StripeClient = Depends(get_stripe)):
        try:
            activity.add("Running test...")
            name = account_display_name(stripe.retrieve_account())
            activity.add(f"Stripe connected: {name}")
            now = time.time()
            sample = FailureRecord(
                id=f"ch_test_{int(now * 1000)}", amount_minor_units=2500, currency="usd", occurred_at=int(now),
                customer_name="Test Customer", customer_email="test@example.com",
                failure_code="declined_by_network", failure_reason="insufficient_funds",
            )
            sent = dispatcher.send_alert(sample)
        except Exception as e:
            activity.error(f"Test failed: {e}")
            return _error(500, str(e))
        return {"success": True, "message": "Test completed successfully", "stripe_account": name,
                "test_email_sent": sent, "webhook_url": _webhook_url(request)}

    @app.post("/setup-webhook")
    def setup_webhook(request: Request, activity: ActivityLog = Depends(get_activity),
                      stripe: StripeClient = Depends(get_stripe)):
        url = _webhook_url(request)
        try:
            hook = stripe.create_webhook_endpoint(url, FAILURE_EVENTS)
        except Exception as e:
            activity.error(f"Failed to setup webhook: {e}")
            return _error(500, str(e))
        activity.add(f"Webhook registered: {hook.get('id')} -> {url}")
        return {"success": True, "webhook_id": hook.get("id"), "webhook_url": url,
                "events": hook.get("enabled_events", FAILURE_EVENTS)}

    @app.get("/")
    def status(request: Request, activity: ActivityLog = Depends(get_activity)):
        return {"service": SERVICE_NAME, "status": "running", "endpoints": ENDPOINTS,
                "uptime": _uptime(request), "last_activity": activity.last() or "No activity yet",
                "webhook_url": _webhook_url(request)}

    @app.get("/health")
    def health(request: Request, cfg: Settings = Depends(get_settings)):
        return {"status": "healthy", "timestamp": _iso(time.time()), "uptime": _uptime(request),
                "environment": {"stripe_configured": cfg.stripe_configured, "email_configured": cfg.email_configured}}

    @app.get("/logs")
    def logs(activity: ActivityLog = Depends(get_activity)):
        return {"logs": activity.recent(LOGS_PAGE), "total_logs": activity.total}

    # ---- JSON error shape for routing errors and anything unhandled
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        request.app.state.activity.error(f"Unhandled error on {request.url.path}: {exc}")
        return _error(500, str(exc))

app = create_app()

def run():
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)

if __name__ == "__main__":
    run()
