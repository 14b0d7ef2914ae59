from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Protocol

from ..core.constants import DEFAULT_EMAIL_TIMEOUT_SECONDS
from ..core.exceptions import NotificationError

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to: str, subject: str, html_body: str) -> bool:
        """Deliver one message.

        Returns False when delivery was skipped (not configured); raises
        NotificationError when the transport failed.
        """

        raise NotImplementedError


@dataclass(frozen=True)
class SmtpSettings:
    host: str
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    sender: Optional[str] = None
    timeout: float = DEFAULT_EMAIL_TIMEOUT_SECONDS
    use_tls: bool = True

    @classmethod
    def from_mapping(cls, cfg: dict) -> "SmtpSettings":
        return cls(
            host=str(cfg.get("host") or ""),
            port=int(cfg.get("port") or 587),
            user=cfg.get("user") or None,
            password=cfg.get("password") or None,
            sender=cfg.get("sender") or cfg.get("user") or None,
            timeout=float(cfg.get("timeout") or DEFAULT_EMAIL_TIMEOUT_SECONDS),
            use_tls=bool(cfg.get("use_tls", True)),
        )


class SmtpMailer(Mailer):
    """SMTP sender with an explicit socket timeout so a slow server cannot hold a request."""

    def __init__(self, settings: SmtpSettings):
        self._settings = settings

    @property
    def configured(self) -> bool:
        s = self._settings
        return bool(s.host and s.user and s.password)

    def send(self, to: str, subject: str, html_body: str) -> bool:
        s = self._settings
        if not self.configured:
            logger.warning("mail not configured (EMAIL_HOST/EMAIL_USER/EMAIL_PASS); skipped %r to %s", subject, to)
            return False

        msg = MIMEMultipart("alternative")
        msg["From"] = s.sender or s.user
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(s.host, s.port, timeout=s.timeout) as server:
                server.ehlo()
                if s.use_tls:
                    server.starttls()
                    server.ehlo()
                server.login(s.user, s.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Failed to send email to {to}") from e

        logger.info("email sent to %s: %s", to, subject)
        return True
