"""SMS channel via the Twilio REST API.

Posts to the account's Messages resource with HTTP basic auth; no SDK.
"""
from __future__ import annotations

import logging
from typing import Optional

import requests

from .config import SmsSettings
from .notifier import ChannelMisconfigured, ChannelSendFailed, NotificationChannel
from .utils import get_http_session

logger = logging.getLogger(__name__)


class SmsChannel(NotificationChannel):
    kind = "sms"

    def __init__(self, settings: SmsSettings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self._session = session

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def _messages_url(self) -> str:
        return f"{self.settings.api_base.rstrip('/')}/Accounts/{self.settings.account_sid}/Messages.json"

    def send(self, report: str) -> None:
        s = self.settings
        if not (s.account_sid and s.auth_token):
            raise ChannelMisconfigured(self.kind, "account SID and auth token must be set in the environment")
        if not (s.sender and s.recipient):
            raise ChannelMisconfigured(self.kind, "from and to numbers must be configured")

        close_session = False
        session = self._session
        if session is None:
            session = get_http_session()
            close_session = True

        try:
            resp = session.post(
                self._messages_url(),
                data={"To": s.recipient, "From": s.sender, "Body": report},
                auth=(s.account_sid, s.auth_token),
                timeout=s.timeout,
            )
            if resp.status_code >= 400:
                raise ChannelSendFailed(
                    self.kind, RuntimeError(f"Twilio returned status {resp.status_code}: {resp.text[:200]}")
                )
        except requests.RequestException as e:
            raise ChannelSendFailed(self.kind, e) from e
        finally:
            if close_session:
                session.close()

        logger.info("SMS sent from: %s", s.sender)


__all__ = ["SmsChannel"]
