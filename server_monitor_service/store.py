"""JSON snapshot of the last notified run.

Exactly one rolling snapshot is kept.  Writes go through a temp file in
the same directory and ``os.replace`` so a reader never sees a partial
file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from .scraper import AvailabilityRecord

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class StorageUnavailable(StorageError):
    """The snapshot exists but could not be read or decoded."""


class StorageWriteFailed(StorageError):
    """The new snapshot could not be written."""


class SnapshotStore:
    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)

    def load(self) -> Optional[List[AvailabilityRecord]]:
        """Return the last saved results, or None when there is no snapshot."""
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except FileNotFoundError:
            logger.info("No previous run found at %s", self.path)
            return None
        except (OSError, ValueError) as e:
            raise StorageUnavailable(f"Could not read snapshot {self.path}: {e}") from e

        try:
            records = [AvailabilityRecord.from_dict(item) for item in raw]
        except (KeyError, TypeError, AttributeError) as e:
            raise StorageUnavailable(f"Snapshot {self.path} has an unexpected shape: {e}") from e

        logger.info("Loaded last run from %s (%d records)", self.path, len(records))
        return records

    def save(self, results: List[AvailabilityRecord]) -> None:
        payload = json.dumps([r.to_dict() for r in results], indent=2)
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise StorageWriteFailed(f"Could not save snapshot {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temp snapshot %s", tmp_name)

        logger.info("Saved %d records to %s", len(results), self.path)


__all__ = ["StorageError", "StorageUnavailable", "StorageWriteFailed", "SnapshotStore"]
