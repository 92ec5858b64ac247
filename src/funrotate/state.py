"""Persistent record of when each file was last rotated."""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from funrotate.utils import atomic_write_text

logger = logging.getLogger(__name__)

ROTATION_TIME_FORMAT = "%Y-%m-%d %H:%M"
HEADER = ("path", "last_rotation")


class StateStoreError(Exception):
    """The rotation state file is unreadable or could not be written."""


def format_rotation_time(when: datetime) -> str:
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc)
    return when.strftime(ROTATION_TIME_FORMAT)


def parse_rotation_time(value: str) -> datetime:
    """Parse a stored timestamp as a UTC datetime. Raises ValueError."""
    return datetime.strptime(value.strip(), ROTATION_TIME_FORMAT).replace(tzinfo=timezone.utc)


class RotationStateStore:
    """Maps file paths to their last rotation time.

    Loaded once per run, updated in memory as targets rotate, and written
    back in one piece by :meth:`save`. Timestamps are kept at minute
    precision, matching what the file can hold.
    """

    def __init__(self, path: Path, entries: dict[str, datetime] | None = None) -> None:
        self.path = path
        self._entries: dict[str, datetime] = dict(entries or {})
        self._dirty = False

    @classmethod
    def load(cls, path: Path) -> RotationStateStore:
        """Read the store at path.

        A missing file gives an empty store. Rows with the wrong number of
        columns or an unparsable timestamp are skipped with a warning. A
        file that cannot be read or decoded as CSV raises StateStoreError.
        """
        logger.debug("reading information about last rotation from %s", path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("no rotation state at %s, starting empty", path)
            return cls(path)
        except (OSError, UnicodeDecodeError) as exc:
            raise StateStoreError(f"Cannot read rotation state {path}: {exc}") from exc

        entries: dict[str, datetime] = {}
        try:
            rows = list(csv.reader(io.StringIO(text, newline=""), strict=True))
        except csv.Error as exc:
            raise StateStoreError(f"Malformed rotation state {path}: {exc}") from exc

        for lineno, row in enumerate(rows, start=1):
            if not row:
                continue
            if lineno == 1 and tuple(c.strip() for c in row) == HEADER:
                continue
            if len(row) != 2:
                logger.warning("%s:%d: expected 2 columns, got %d; ignoring", path, lineno, len(row))
                continue
            file_path, stamp = row
            try:
                entries[file_path] = parse_rotation_time(stamp)
            except ValueError:
                logger.warning("%s:%d: bad timestamp %r for %s; ignoring", path, lineno, stamp, file_path)
        return cls(path, entries)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, file_path: object) -> bool:
        return file_path in self._entries

    def records(self) -> Iterator[tuple[str, datetime]]:
        for file_path in sorted(self._entries):
            yield file_path, self._entries[file_path]

    def last_rotation_time(self, file_path: str) -> datetime | None:
        """Return when file_path was last rotated, or None if never."""
        return self._entries.get(file_path)

    def update(self, file_path: str, rotated_at: datetime) -> None:
        if rotated_at.tzinfo is None:
            rotated_at = rotated_at.replace(tzinfo=timezone.utc)
        self._entries[file_path] = rotated_at.astimezone(timezone.utc).replace(
            second=0, microsecond=0
        )
        self._dirty = True

    def save(self) -> bool:
        """Persist all records if anything changed. Returns True if written."""
        if not self._dirty:
            logger.debug("rotation state unchanged, not writing %s", self.path)
            return False

        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(HEADER)
        for file_path, rotated_at in self.records():
            writer.writerow((file_path, format_rotation_time(rotated_at)))
        try:
            atomic_write_text(self.path, buf.getvalue())
        except OSError as exc:
            raise StateStoreError(f"Failed to persist rotation times to {self.path}: {exc}") from exc

        self._dirty = False
        logger.debug("saved %d rotation record(s) to %s", len(self._entries), self.path)
        return True
