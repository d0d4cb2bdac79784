"""Shared fixtures: settings, a recording mailer and a Stripe client on a mock transport."""

import json
import httpx
import pytest
from fastapi.testclient import TestClient

from payment_monitor.activity import ActivityLog
from payment_monitor.config import Settings
from payment_monitor.main import create_app
from payment_monitor.providers.stripe import StripeClient


class FakeMailer:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, sender, to, subject, text, html):
        if any(f in text for f in self.fail_for):
            raise ConnectionError("smtp connection refused")
        self.sent.append({"from": sender, "to": to, "subject": subject, "text": text, "html": html})


class StripeStub:
    """Routes for httpx.MockTransport keyed by (method, path)."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, body, status=200):
        self.routes[(method, path)] = (status, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get((request.method, request.url.path), (404, {"error": {"message": "No such route"}}))
        return httpx.Response(status, content=json.dumps(body), headers={"content-type": "application/json"})


def make_charge(id="ch_1", amount=999, currency="eur", paid=False, **extra):
    return {"id": id, "object": "charge", "amount": amount, "currency": currency,
            "created": 1700000000, "paid": paid, **extra}


@pytest.fixture
def settings():
    return Settings(stripe_secret_key="sk_test_123", email_user="ops@example.com",
                    email_password="secret", alert_email="alerts@example.com")


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def activity():
    return ActivityLog()


@pytest.fixture
def stripe_stub():
    return StripeStub()


@pytest.fixture
def stripe_client(stripe_stub):
    return StripeClient("sk_test_123", transport=httpx.MockTransport(stripe_stub))


@pytest.fixture
def app(settings, stripe_client, mailer, activity):
    return create_app(settings, stripe=stripe_client, mailer=mailer, activity=activity)


@pytest.fixture
def client(app):
    return TestClient(app)
