from __future__ import annotations
import httpx
from ..config import Settings
from ..schemas import Charge

class StripeError(RuntimeError):
    def __init__(self, message: str, status: int|None = None):
        super().__init__(message); self.status = status

class StripeClient:
    def __init__(self, secret_key: str|None, base_url: str = "https://api.stripe.com/v1", transport: httpx.BaseTransport|None = None):
        headers = {"Authorization": f"Bearer {secret_key}"} if secret_key else {}
        self._http = httpx.Client(base_url=base_url.rstrip("/") + "/", headers=headers, timeout=20, transport=transport)

    @classmethod
    def from_settings(cls, cfg: Settings, transport: httpx.BaseTransport|None = None) -> "StripeClient":
        return cls(cfg.stripe_secret_key, cfg.stripe_api_base, transport=transport)

    def _request(self, method: str, path: str, **kw) -> dict:
        try:
            r = self._http.request(method, path, **kw)
        except httpx.HTTPError as e:
            raise StripeError(f"Stripe request failed: {e}") from e
        if r.is_error:
            try: msg = r.json().get("error", {}).get("message")
            except ValueError: msg = None
            raise StripeError(msg or f"Stripe API returned HTTP {r.status_code}", r.status_code)
        return r.json()

    def list_charges(self, created_gte: int, limit: int = 100) -> list[Charge]:
        data = self._request("GET", "charges", params={"limit": limit, "created[gte]": created_gte})
        return [Charge.model_validate(c) for c in data.get("data", [])]

    def retrieve_account(self) -> dict:
        return self._request("GET", "account")

    def create_webhook_endpoint(self, url: str, events: list[str]) -> dict:
        return self._request("POST", "webhook_endpoints", data={"url": url, "enabled_events[]": list(events)})

    def close(self): self._http.close()

def account_display_name(account: dict) -> str:
    dash = (account.get("settings") or {}).get("dashboard") or {}
    prof = account.get("business_profile") or {}
    return dash.get("display_name") or prof.get("name") or account.get("display_name") or account.get("id", "")
