"""
Export file naming and housekeeping.

Files are named `questions_{sessionId}_{epochMs}.{ext}` so the download
endpoint can check ownership from the name alone.
"""

import os
import re
import time
from pathlib import Path
from typing import Optional

from intervai.models import ExportFormat
from intervai.utils.logging import export_logger as logger

_FILENAME_RE = re.compile(r"^questions_(?P<session_id>[A-Za-z0-9-]+)_(?P<ms>\d+)\.(?P<ext>pdf|csv|docx)$")


class ExportStorage:
    """The directory rendered exports wait in until downloaded."""

    def __init__(self, export_dir: str):
        self.root = Path(export_dir)

    def ensure_dir(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    @staticmethod
    def make_filename(session_id: str, fmt: ExportFormat) -> str:
        return f"questions_{session_id}_{int(time.time() * 1000)}.{fmt.value}"

    @staticmethod
    def session_id_from_filename(filename: str) -> Optional[str]:
        """Session id encoded in an export filename, or None if it isn't one."""
        match = _FILENAME_RE.match(filename)
        return match.group("session_id") if match else None

    @staticmethod
    def is_safe_filename(filename: str) -> bool:
        """Only bare names; no directories, no traversal."""
        return (
            bool(filename)
            and filename not in (".", "..")
            and os.path.basename(filename) == filename
            and "/" not in filename
            and "\\" not in filename
        )

    def path_for(self, filename: str) -> Path:
        return self.root / filename

    def purge_older_than(self, max_age_seconds: float) -> int:
        """
        Delete export files older than `max_age_seconds`.

        Returns:
            Number of files deleted
        """
        if not self.root.exists():
            return 0

        cutoff = time.time() - max_age_seconds
        removed = 0
        for entry in self.root.iterdir():
            if not entry.is_file() or not _FILENAME_RE.match(entry.name):
                continue
            try:
                if entry.stat().st_mtime < cutoff:
                    entry.unlink()
                    removed += 1
            except FileNotFoundError:
                # Downloaded and removed concurrently
                continue

        if removed:
            logger.info("Purged stale exports", removed=removed, directory=str(self.root))
        return removed
