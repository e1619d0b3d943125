"""File-backed persistence of one browser session snapshot."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from datetime import datetime, UTC
from pathlib import Path

logger = logging.getLogger(__name__)


def session_key(site_name: str, base_url: str) -> str:
    """Stable file stem for a site: "<site>-<digest of base URL>"."""
    digest = hashlib.sha256(base_url.encode("utf-8")).hexdigest()[:12]
    return f"{site_name}-{digest}"


def is_valid_snapshot(data: object) -> bool:
    """A snapshot is a storage-state document with cookie and origin lists."""
    return (
        isinstance(data, dict)
        and isinstance(data.get("cookies"), list)
        and isinstance(data.get("origins"), list)
    )


class SessionStore:
    """Stores the Playwright storage state for one site.

    Writes are atomic (temp file + rename), so a reader sees either the
    previous snapshot or the new one. Anything unreadable is treated as
    absent.
    """

    def __init__(self, directory: Path, key: str):
        self.directory = Path(directory)
        self.path = self.directory / f"{key}.json"

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> dict | None:
        """Return the stored snapshot, or None if missing or corrupt."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return None

        try:
            data = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable session snapshot {self.path}: {e}")
            return None

        if not is_valid_snapshot(data):
            logger.warning(f"Ignoring malformed session snapshot {self.path}")
            return None
        return data

    def has_snapshot(self) -> bool:
        return self.exists() and self.load() is not None

    def save(self, snapshot: dict) -> Path:
        if not is_valid_snapshot(snapshot):
            raise ValueError("Snapshot must contain 'cookies' and 'origins' lists")

        self.directory.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(snapshot, ensure_ascii=False, indent=2).encode("utf-8")

        fd, tmp_name = tempfile.mkstemp(prefix=self.path.stem, suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"Session saved to {self.path}")
        return self.path

    def delete(self) -> bool:
        """Remove the snapshot. Returns False when there was nothing to delete."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Session cleared: {self.path}")
        return True

    def modified_at(self) -> datetime | None:
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            return None
        return datetime.fromtimestamp(mtime, UTC)
