"""Email channel via SMTP.

Supports STARTTLS (587) or SSL (465).  Credentials come from the
resolved :class:`~server_monitor_service.config.EmailSettings`.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage

from .config import EmailSettings
from .notifier import ChannelMisconfigured, ChannelSendFailed, NotificationChannel

logger = logging.getLogger(__name__)


class EmailChannel(NotificationChannel):
    kind = "email"

    def __init__(self, settings: EmailSettings) -> None:
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def _check(self) -> None:
        s = self.settings
        missing = [
            name
            for name, value in (
                ("SMTP host", s.host),
                ("SMTP port", s.port),
                ("SMTP user", s.username),
                ("SMTP password", s.password),
                ("from address", s.sender),
                ("to address", s.recipients),
            )
            if not value
        ]
        if missing:
            raise ChannelMisconfigured(self.kind, "missing " + ", ".join(missing))

    def build_message(self, report: str) -> EmailMessage:
        s = self.settings
        msg = EmailMessage()
        msg["Subject"] = s.subject
        msg["From"] = s.sender or ""
        msg["To"] = ", ".join(s.recipients)
        msg.set_content(report)
        return msg

    def send(self, report: str) -> None:
        self._check()
        s = self.settings
        msg = self.build_message(report)

        host, port = s.host, int(s.port)
        try:
            if s.use_tls and port != 465:
                with smtplib.SMTP(host, port, timeout=s.timeout) as smtp:
                    smtp.ehlo()
                    smtp.starttls(context=ssl.create_default_context())
                    smtp.login(s.username, s.password)
                    smtp.send_message(msg)
            else:
                with smtplib.SMTP_SSL(host, port, context=ssl.create_default_context(), timeout=s.timeout) as smtp:
                    smtp.login(s.username, s.password)
                    smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise ChannelSendFailed(self.kind, e) from e

        logger.info("Email sent to %s (subject=%s)", ", ".join(s.recipients), msg.get("Subject"))


__all__ = ["EmailChannel"]
