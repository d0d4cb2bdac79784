from __future__ import annotations
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from ..config import Settings

class SmtpMailer:
    def __init__(self, host: str, port: int = 587, user: str|None = None, password: str|None = None, timeout: float = 10):
        self.host, self.port, self.user, self.password, self.timeout = host, port, user, password, timeout

    @classmethod
    def from_settings(cls, cfg: Settings) -> "SmtpMailer":
        return cls(cfg.smtp_host, cfg.smtp_port, cfg.email_user, cfg.email_password)

    def send(self, sender: str, to: str, subject: str, text: str, html: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject; msg["From"] = sender; msg["To"] = to
        msg.attach(MIMEText(text, "plain", "utf-8")); msg.attach(MIMEText(html, "html", "utf-8"))
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
            s.starttls()
            if self.user and self.password: s.login(self.user, self.password)
            s.sendmail(sender, [to], msg.as_string())
