"""Provider fetch and availability extraction.

`fetch_provider_response` is the only network call of a run.  Extraction
is pure: each provider gets an :class:`Extractor` subclass, registered in
``EXTRACTORS`` and chosen once at startup with :func:`get_extractor`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Type

import requests

from .config import HTTP_TIMEOUT_SECONDS, UnknownProvider
from .utils import HTTPError, get_http_session, retryable_request

logger = logging.getLogger(__name__)

UNAVAILABLE = "unavailable"


class FetchError(Exception):
    """Raised when the provider API cannot be read."""


@dataclass(frozen=True)
class ServerRef:
    code: str
    name: str


@dataclass(frozen=True)
class ZoneRef:
    code: str
    location: Optional[str]


@dataclass(frozen=True)
class AvailabilityRecord:
    server: ServerRef
    zone: ZoneRef
    status: str

    def to_dict(self) -> dict:
        return {
            "server": {"code": self.server.code, "name": self.server.name},
            "zone": {"code": self.zone.code, "location": self.zone.location},
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AvailabilityRecord":
        server = data["server"]
        zone = data["zone"]
        return cls(
            server=ServerRef(code=server["code"], name=server["name"]),
            zone=ZoneRef(code=zone["code"], location=zone.get("location")),
            status=data["status"],
        )


ResultSet = List[AvailabilityRecord]


@retryable_request
def _get(session: requests.Session, url: str, **kwargs: dict) -> requests.Response:
    """Thin wrapper around session.get with retry policy from utils.retryable_request."""
    return session.get(url, **kwargs)


def fetch_provider_response(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    timeout: int = HTTP_TIMEOUT_SECONDS,
) -> Any:
    """GET the provider API and return the decoded JSON body."""
    close_session = False
    if session is None:
        session = get_http_session()
        close_session = True

    try:
        logger.info("Fetching availability from %s", url)
        resp = _get(session, url, timeout=timeout)
        try:
            return resp.json()
        except ValueError as e:
            raise FetchError(f"Provider returned invalid JSON from {url}: {e}") from e
    except (requests.RequestException, HTTPError) as e:
        raise FetchError(f"Could not fetch {url}: {e}") from e
    finally:
        if close_session:
            session.close()


# ---- Extraction --------------------------------------------------------------

class Extractor:
    """Turns a provider response into the tracked availability records.

    Subclasses only say where the entities live in the response
    (:meth:`entities`); matching, ordering and filtering are shared.
    """

    name = "base"

    def entities(self, response: Any) -> Iterable[Mapping[str, Any]]:
        raise NotImplementedError

    def _entity_list(self, response: Any) -> List[Mapping[str, Any]]:
        try:
            items = self.entities(response)
        except (AttributeError, KeyError, TypeError):
            return []
        if not isinstance(items, (list, tuple)):
            return []
        return [it for it in items if isinstance(it, Mapping)]

    def extract(
        self,
        response: Any,
        servers: Sequence[str],
        zones: Sequence[str],
        server_map: Mapping[str, str],
        zone_map: Mapping[str, str],
    ) -> ResultSet:
        items = self._entity_list(response)
        results: ResultSet = []

        for server_name in servers:
            code = server_map.get(server_name)
            if code is None:
                logger.debug("Server %s has no code in the provider map; skipping", server_name)
                continue

            item = next((it for it in items if it.get("reference") == code), None)
            if item is None:
                continue

            raw_zones = item.get("zones")
            if not isinstance(raw_zones, (list, tuple)):
                raw_zones = []
            entries = [z for z in raw_zones if isinstance(z, Mapping)]
            for zone_code in zones:
                entry = next((z for z in entries if z.get("zone") == zone_code), None)
                # An entry without a status is as good as no entry.
                status = entry.get("availability") if entry is not None else None
                if status is None or status == UNAVAILABLE:
                    continue

                results.append(
                    AvailabilityRecord(
                        server=ServerRef(code=code, name=server_name),
                        zone=ZoneRef(code=zone_code, location=zone_map.get(zone_code)),
                        status=str(status),
                    )
                )

        return results


class KimsufiExtractor(Extractor):
    """OVH/Kimsufi ``getAvailability2`` payload: ``answer.availability``."""

    name = "kimsufi"

    def entities(self, response: Any) -> Iterable[Mapping[str, Any]]:
        return (response.get("answer") or {}).get("availability") or []


EXTRACTORS: Dict[str, Type[Extractor]] = {
    KimsufiExtractor.name: KimsufiExtractor,
}


def get_extractor(provider: str) -> Extractor:
    try:
        return EXTRACTORS[provider]()
    except KeyError:
        raise UnknownProvider(
            f"No extractor registered for provider {provider!r} "
            f"(known: {', '.join(sorted(EXTRACTORS))})"
        ) from None


__all__ = [
    "UNAVAILABLE",
    "FetchError",
    "ServerRef",
    "ZoneRef",
    "AvailabilityRecord",
    "ResultSet",
    "fetch_provider_response",
    "Extractor",
    "KimsufiExtractor",
    "EXTRACTORS",
    "get_extractor",
]
