from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from . import config
from .changes import should_notify
from .emailer import EmailChannel
from .notifier import ChannelOutcome, NotificationChannel, dispatch
from .scraper import AvailabilityRecord, Extractor, FetchError, fetch_provider_response, get_extractor
from .sms import SmsChannel
from .store import SnapshotStore, StorageUnavailable, StorageWriteFailed

logger = logging.getLogger(__name__)

FAILED = "failed"
IDLE = "idle"
DONE = "done"


@dataclass
class RunResult:
    state: str
    results: List[AvailabilityRecord] = field(default_factory=list)
    outcomes: List[ChannelOutcome] = field(default_factory=list)


def setup_logging(level_name: Optional[str] = None) -> None:
    level = getattr(logging, (level_name or config.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_channels(settings: config.Settings) -> List[NotificationChannel]:
    return [EmailChannel(settings.email), SmsChannel(settings.sms)]


def run_once(
    settings: config.Settings,
    *,
    extractor: Extractor,
    store: SnapshotStore,
    channels: Sequence[NotificationChannel],
    force: bool = False,
    fetch: Callable[..., Any] = fetch_provider_response,
) -> RunResult:
    """Perform one fetch, compare and notify cycle."""
    provider = settings.provider

    try:
        data = fetch(provider.api, timeout=settings.http_timeout)
    except FetchError:
        logger.exception("Fetching availability for %s failed; aborting run.", provider.name)
        return RunResult(FAILED)

    results = extractor.extract(
        data,
        settings.servers,
        settings.zones,
        provider.server_map,
        provider.zone_map,
    )
    logger.info("Found %d available server/zone pairs for %s", len(results), provider.name)

    try:
        previous = store.load()
    except StorageUnavailable:
        logger.exception("Could not load last run; treating it as absent.")
        previous = None

    if not should_notify(results, previous, force=force, order_sensitive=settings.order_sensitive):
        logger.info("This run produced same results as last run.")
        return RunResult(IDLE, results)

    try:
        store.save(results)
    except StorageWriteFailed:
        logger.exception("Could not save last run data; notifying anyway.")

    outcomes = dispatch(results, channels, footer=provider.footer)
    for outcome in outcomes:
        if outcome.error is not None:
            logger.warning("Channel %s finished as %s: %s", outcome.channel, outcome.status, outcome.error)
    return RunResult(DONE, results, outcomes)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="server-monitor",
        description="Check provider server availability once and notify on change.",
    )
    parser.add_argument(
        "-p", "--provider",
        default=config.DEFAULT_PROVIDER,
        help="Server provider to run alerts for (default: %(default)s)",
    )
    parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Force a run regardless of last run",
    )
    parser.add_argument("-c", "--config", default=config.CONFIG_PATH, help="Path to config.json")
    parser.add_argument("--snapshot", default=config.SNAPSHOT_PATH, help="Path of the last-run snapshot")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        settings = config.load_settings(
            args.provider,
            args.config,
            snapshot_path=args.snapshot,
        )
        extractor = get_extractor(args.provider)
    except config.ConfigError:
        logger.exception("Could not load configuration for provider %s.", args.provider)
        return 2

    logger.debug("Provider definition: %s", settings.provider)
    logger.info(
        "Checking %s for servers %s in zones %s%s",
        settings.provider.name,
        ", ".join(settings.servers) or "-",
        ", ".join(settings.zones) or "-",
        " (forced)" if args.force else "",
    )

    result = run_once(
        settings,
        extractor=extractor,
        store=SnapshotStore(settings.snapshot_path),
        channels=build_channels(settings),
        force=args.force,
    )
    return 1 if result.state == FAILED else 0


if __name__ == "__main__":
    sys.exit(main())
