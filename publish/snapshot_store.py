"""File-backed snapshot persistence: latest pointer plus dated archives."""

from __future__ import annotations

import os
import re
import tempfile
from datetime import datetime, tzinfo
from pathlib import Path
from typing import List, Optional

from ingestion.models.domain import Snapshot
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)

LATEST_FILENAME = "latest.json"
_DATE_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class SnapshotWriteError(RuntimeError):
    """Snapshot or archive could not be persisted."""


def archive_date_key(instant: datetime, tz: tzinfo) -> str:
    """Calendar date of ``instant`` in ``tz`` as YYYY-MM-DD."""
    return instant.astimezone(tz).strftime("%Y-%m-%d")


def is_date_key(value: str) -> bool:
    return bool(_DATE_KEY.match(value))


class SnapshotStore:
    """File-backed store for the latest snapshot and dated archives.

    Every write replaces the whole file atomically, so a failed write leaves
    the previous file untouched.
    """

    def __init__(self, data_dir: str | Path, archive_dir: str | Path):
        self.data_dir = Path(data_dir)
        self.archive_dir = Path(archive_dir)

    @property
    def latest_path(self) -> Path:
        return self.data_dir / LATEST_FILENAME

    def archive_path(self, date_key: str) -> Path:
        if not is_date_key(date_key):
            raise ValueError(f"invalid archive date key: {date_key!r}")
        return self.archive_dir / f"{date_key}.json"

    def write_latest(self, snapshot: Snapshot) -> Path:
        path = self.latest_path
        _atomic_write(path, _serialize(snapshot))
        logger.info("publish.latest_written", extra={"path": str(path), "articles": len(snapshot.articles)})
        return path

    def write_archive(self, date_key: str, snapshot: Snapshot) -> Path:
        path = self.archive_path(date_key)
        _atomic_write(path, _serialize(snapshot))
        logger.info("publish.archive_written", extra={"path": str(path), "date": date_key})
        return path

    def read_latest(self) -> Optional[Snapshot]:
        return _read(self.latest_path)

    def read_archive(self, date_key: str) -> Optional[Snapshot]:
        return _read(self.archive_path(date_key))

    def list_archives(self) -> List[str]:
        """Archive date keys, newest first."""
        if not self.archive_dir.is_dir():
            return []
        keys = [p.stem for p in self.archive_dir.glob("*.json") if is_date_key(p.stem)]
        return sorted(keys, reverse=True)


def _serialize(snapshot: Snapshot) -> str:
    return snapshot.model_dump_json(indent=2) + "\n"


def _read(path: Path) -> Optional[Snapshot]:
    if not path.is_file():
        return None
    return Snapshot.model_validate_json(path.read_text(encoding="utf-8"))


def _atomic_write(path: Path, text: str) -> None:
    tmp_name: Optional[str] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as fh:
            tmp_name = fh.name
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise SnapshotWriteError(f"failed to write {path}: {exc}") from exc
