"""JSON marker files that record finished work between runs."""

import json
import re
import time
from pathlib import Path
from typing import Optional, Dict, Any

from datafetch.shared.logging import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class MarkerStore:
    """
    Stores one small JSON document per name in a directory.

    Used for job completion markers (under the destination root) and for
    extraction markers (next to extracted data).
    """

    def __init__(self, directory: Path):
        """
        Initialize marker store.

        Args:
            directory: Directory holding the marker files (created lazily)
        """
        self.directory = Path(directory)
        self._logger = get_logger(__name__)

    def path_for(self, name: str) -> Path:
        safe = _UNSAFE_CHARS.sub("_", name).strip("_") or "marker"
        return self.directory / f"{safe}.json"

    def save(self, name: str, data: Dict[str, Any]) -> None:
        """
        Write a marker, stamping it with the current time.

        Args:
            name: Marker name (job name, archive name)
            data: JSON-serializable payload
        """
        marker_path = self.path_for(name)
        payload = dict(data)
        payload.setdefault("timestamp", int(time.time()))

        marker_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = marker_path.with_suffix(".json.tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, default=str)
        tmp_path.replace(marker_path)

        self._logger.debug(f"Saved marker: {marker_path}")

    def load(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Load a marker if it exists.

        Returns:
            Marker payload, or None if missing or unreadable
        """
        marker_path = self.path_for(name)
        if not marker_path.exists():
            return None

        try:
            with open(marker_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self._logger.warning(f"Ignoring unreadable marker {marker_path}: {e}")
            return None

        if not isinstance(data, dict):
            self._logger.warning(f"Ignoring malformed marker {marker_path}")
            return None
        return data

    def remove(self, name: str) -> None:
        """Remove a marker if present."""
        marker_path = self.path_for(name)
        if marker_path.exists():
            marker_path.unlink()
            self._logger.debug(f"Removed marker {marker_path}")

    def exists(self, name: str) -> bool:
        return self.load(name) is not None
