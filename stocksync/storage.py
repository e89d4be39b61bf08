"""Durable local key-value storage for offline snapshots.

Each key is stored as its own JSON file inside a cache directory. Every
operation reports failure through its return value and the log instead of
raising, so a broken disk never takes the inventory view down with it.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024
PROBE_KEY = "__storage_test__"

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class LocalStore:
    """JSON file-backed key-value store.

    Attributes:
        directory: Directory holding one ``<key>.json`` file per key.
        quota_bytes: Nominal capacity used for usage reporting.
    """

    def __init__(self, directory: Path | str, quota_bytes: int = DEFAULT_QUOTA_BYTES):
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        return self.directory / f"{_SAFE_KEY.sub('_', key)}.json"

    def is_available(self) -> bool:
        """Probe whether the store can be written to.

        Returns:
            bool: True if a test key could be written and removed.
        """
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self._path(PROBE_KEY)
            path.write_text(json.dumps(PROBE_KEY))
            path.unlink()
            return True
        except OSError:
            return False

    def get_item(self, key: str, default: Any = None) -> Any:
        """Read a value.

        Args:
            key: Storage key.
            default: Returned when the key is missing or unreadable.

        Returns:
            Any: Decoded JSON value or ``default``.
        """
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error retrieving {key} from local storage: {e}")
            return default

    def set_item(self, key: str, value: Any) -> bool:
        """Write a value.

        The file is replaced atomically so a crash mid-write leaves the
        previous snapshot intact.

        Args:
            key: Storage key.
            value: JSON-serializable value.

        Returns:
            bool: True if the value was stored.
        """
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(value, default=str), encoding="utf-8")
            tmp_path.replace(path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving {key} to local storage: {e}")
            return False

    def remove_item(self, key: str) -> bool:
        """Remove a key. Missing keys count as removed.

        Returns:
            bool: True unless the file could not be deleted.
        """
        try:
            self._path(key).unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.error(f"Error removing {key} from local storage: {e}")
            return False

    def usage(self) -> dict:
        """Report how much of the nominal quota is in use.

        Returns:
            dict: ``used`` and ``total`` in bytes plus ``percentage``.
        """
        try:
            used = sum(p.stat().st_size for p in self.directory.glob("*.json"))
        except OSError as e:
            logger.error(f"Error calculating storage usage: {e}")
            return {"used": 0, "total": 0, "percentage": 0.0}

        total = self.quota_bytes
        return {
            "used": used,
            "total": total,
            "percentage": (used / total) * 100 if total else 0.0,
        }

    def purge_check(self, threshold: float = 80) -> bool:
        """Warn when usage exceeds ``threshold`` percent.

        Returns:
            bool: True if usage is above the threshold.
        """
        usage = self.usage()
        if usage["percentage"] > threshold:
            logger.warning(
                f"Local storage usage is high ({usage['percentage']:.1f}%). Consider cleaning up."
            )
            return True
        return False
