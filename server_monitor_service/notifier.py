"""Report rendering and fan-out to notification channels.

Each channel is sent to in turn; a failing or misconfigured channel is
reported in its :class:`ChannelOutcome` and never stops the others.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .config import DEFAULT_FOOTER
from .scraper import AvailabilityRecord

logger = logging.getLogger(__name__)

SENT = "sent"
DISABLED = "disabled"
MISCONFIGURED = "misconfigured"
FAILED = "failed"


class ChannelError(Exception):
    def __init__(self, channel: str, message: str) -> None:
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class ChannelMisconfigured(ChannelError):
    """Required credentials or addresses are missing."""


class ChannelSendFailed(ChannelError):
    """The transport rejected or failed the send."""

    def __init__(self, channel: str, cause: BaseException) -> None:
        super().__init__(channel, str(cause) or cause.__class__.__name__)
        self.cause = cause


class NotificationChannel:
    kind: str = "channel"

    @property
    def enabled(self) -> bool:
        return False

    def send(self, report: str) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class ChannelOutcome:
    channel: str
    status: str
    error: Optional[ChannelError] = None

    @property
    def ok(self) -> bool:
        return self.status == SENT


def report_lines(results: Iterable[AvailabilityRecord], footer: str = DEFAULT_FOOTER) -> List[str]:
    text: List[str] = []
    for item in results:
        text.append(f"server: {item.server.name}")
        text.append(f"code: {item.server.code}")
        text.append(f"zone: {item.zone.code}")
        text.append(f"location: {item.zone.location}")
        text.append(f"status: {item.status}")
        text.append("\n")

    text.append(footer)
    text.append("\n")
    return text


def render_report(results: Iterable[AvailabilityRecord], footer: str = DEFAULT_FOOTER) -> str:
    return "\n".join(report_lines(results, footer))


def dispatch(
    results: Sequence[AvailabilityRecord],
    channels: Sequence[NotificationChannel],
    footer: str = DEFAULT_FOOTER,
) -> List[ChannelOutcome]:
    if not results:
        logger.info("Nothing available to report; no notifications sent.")
        return []

    report = render_report(results, footer)
    outcomes: List[ChannelOutcome] = []

    for channel in channels:
        if not channel.enabled:
            logger.debug("Channel %s disabled", channel.kind)
            outcomes.append(ChannelOutcome(channel.kind, DISABLED))
            continue

        try:
            channel.send(report)
        except ChannelMisconfigured as e:
            logger.error("Skipping %s notification: %s", channel.kind, e)
            outcomes.append(ChannelOutcome(channel.kind, MISCONFIGURED, e))
        except ChannelSendFailed as e:
            logger.error("Failed to send %s notification: %s", channel.kind, e)
            outcomes.append(ChannelOutcome(channel.kind, FAILED, e))
        except Exception as e:
            logger.exception("Unexpected error sending %s notification", channel.kind)
            outcomes.append(ChannelOutcome(channel.kind, FAILED, ChannelSendFailed(channel.kind, e)))
        else:
            logger.info("Sent %s notification for %d records", channel.kind, len(results))
            outcomes.append(ChannelOutcome(channel.kind, SENT))

    return outcomes


__all__ = [
    "SENT",
    "DISABLED",
    "MISCONFIGURED",
    "FAILED",
    "ChannelError",
    "ChannelMisconfigured",
    "ChannelSendFailed",
    "NotificationChannel",
    "ChannelOutcome",
    "report_lines",
    "render_report",
    "dispatch",
]
