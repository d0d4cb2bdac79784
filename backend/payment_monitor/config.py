from __future__ import annotations
import os
from pathlib import Path
from pydantic import BaseModel
import yaml

# env var -> Settings field
ENV_MAP = {
    "STRIPE_SECRET_KEY": "stripe_secret_key", "STRIPE_API_BASE": "stripe_api_base",
    "EMAIL_USER": "email_user", "EMAIL_PASSWORD": "email_password", "ALERT_EMAIL": "alert_email",
    "SMTP_HOST": "smtp_host", "SMTP_PORT": "smtp_port", "PORT": "port", "LOG_LEVEL": "log_level",
}
FALLBACK_SENDER = "payment-monitor@localhost"

class Settings(BaseModel):
    stripe_secret_key: str|None = None; stripe_api_base: str = "https://api.stripe.com/v1"
    email_user: str|None = None; email_password: str|None = None; alert_email: str|None = None
    smtp_host: str = "smtp.gmail.com"; smtp_port: int = 587
    port: int = 3000; log_level: str = "INFO"

    @property
    def stripe_configured(self) -> bool: return bool(self.stripe_secret_key)
    @property
    def email_configured(self) -> bool: return bool(self.email_user and self.email_password)
    @property
    def sender(self) -> str: return self.email_user or FALLBACK_SENDER
    @property
    def recipient(self) -> str: return self.alert_email or self.sender

def load_config(environ: dict | None = None) -> Settings:
    """Resolve settings once: environment, then the optional YAML file, then defaults."""
    env = os.environ if environ is None else environ
    data: dict = {}
    path = (env.get("PAYMENT_MONITOR_CONFIG") or "").strip()
    if path:
        data.update(yaml.safe_load(Path(path).read_text()) or {})
    for var, field in ENV_MAP.items():
        val = (env.get(var) or "").strip()
        if val: data[field] = val
    return Settings(**data)
