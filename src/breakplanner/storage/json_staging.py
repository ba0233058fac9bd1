"""File-backed staging snapshots.

Each scope key gets one JSON file holding the draft assignment list, so an
unsaved plan survives between CLI invocations.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Union
from urllib.parse import quote

from breakplanner.domain.models import Assignment, ScopeKey
from breakplanner.errors import SnapshotCorruptError, StoreError
from breakplanner.storage.interfaces import StagingStore

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def dump_snapshot(assignments: Iterable[Assignment]) -> str:
    """Serialize assignments to snapshot JSON."""
    return json.dumps(
        {
            "version": SNAPSHOT_VERSION,
            "assignments": [a.to_dict() for a in assignments],
        },
        indent=2,
    )


def parse_snapshot(text: str) -> list[Assignment]:
    """Parse snapshot JSON.

    Raises:
        SnapshotCorruptError: If the text is not a valid snapshot.
    """
    try:
        data = json.loads(text)
        if isinstance(data, list):
            rows = data
        else:
            rows = data["assignments"]
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise SnapshotCorruptError("Unreadable staging snapshot: rows must be objects")
        return [Assignment.from_dict(row) for row in rows]
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise SnapshotCorruptError(f"Unreadable staging snapshot: {exc}") from exc


class JsonFileStagingStore(StagingStore):
    """Stores one snapshot file per scope key under ``directory``."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, key: ScopeKey) -> Path:
        # Percent-encoding keeps distinct keys in distinct files
        safe = quote(key.value, safe="")
        return self.directory / f"{safe}.json"

    def persist_staging_snapshot(self, key: ScopeKey, assignments: list[Assignment]) -> None:
        path = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_text(dump_snapshot(assignments))
        except OSError as exc:
            raise StoreError(f"Could not write {path}: {exc}") from exc

    def load_staging_snapshot(self, key: ScopeKey) -> Optional[list[Assignment]]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            text = path.read_text()
        except OSError as exc:
            raise SnapshotCorruptError(f"Could not read {path}: {exc}") from exc
        return parse_snapshot(text)

    def clear_staging_snapshot(self, key: ScopeKey) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StoreError(f"Could not remove {path}: {exc}") from exc
        logger.debug("Cleared staging snapshot %s", key)
