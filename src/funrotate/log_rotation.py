"""Rotation triggers and the generation shift for a single target."""

from __future__ import annotations

import glob
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from funrotate.config import INTERVAL_DURATIONS, WILDCARD_RE, RotationTarget, Strategy
from funrotate.transforms import OUTPUT_SUFFIXES, get_transform
from funrotate.utils import TEMP_SUFFIX

logger = logging.getLogger(__name__)


class FilesystemError(Exception):
    """A stat, copy, transform, or truncate step failed for a target."""


class PatternError(Exception):
    """A target path cannot be turned into a generation pattern."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def discover_generations(path: str) -> list[str]:
    """Return the live file and its numbered backups, sorted by name.

    Every regular file whose name starts with ``path`` counts, except
    names whose remainder after ``path`` is a transform output or temp
    suffix. The live file itself always counts.
    """
    if WILDCARD_RE.search(path):
        raise PatternError(f"Rotation path must not contain wildcards: {path}")
    pattern = glob.escape(path) + "*"
    skip = tuple(OUTPUT_SUFFIXES) + (TEMP_SUFFIX,)
    files = []
    for name in glob.glob(pattern):
        if name != path and name[len(path):].endswith(skip):
            continue
        if os.path.isfile(name):
            files.append(name)
    files.sort()
    logger.debug("found %d file(s) using pattern %s", len(files), pattern)
    return files


class RotationEngine:
    """Decides whether targets are due and rotates them.

    ``clock`` returns the current time as an aware datetime; tests pass a
    fixed one.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utc_now

    def now(self) -> datetime:
        """Current time, truncated to whole seconds."""
        return self._clock().replace(microsecond=0)

    def is_due(self, target: RotationTarget, last_rotation: datetime | None) -> bool:
        return self.is_due_by_time(target, last_rotation) or self.is_due_by_size(target)

    def is_due_by_time(self, target: RotationTarget, last_rotation: datetime | None) -> bool:
        if last_rotation is None:
            return True
        if last_rotation.tzinfo is None:
            last_rotation = last_rotation.replace(tzinfo=timezone.utc)
        next_rotation = last_rotation + INTERVAL_DURATIONS[target.interval]
        return self.now() >= next_rotation

    def is_due_by_size(self, target: RotationTarget) -> bool:
        try:
            size = os.stat(target.path).st_size
        except OSError as exc:
            raise FilesystemError(f"Cannot read metadata of {target.path}: {exc}") from exc
        return target.size_threshold < size

    def rotate(self, target: RotationTarget) -> datetime | None:
        """Shift every generation of target up by one.

        Returns the rotation time, or None when there was nothing to rotate
        (no live file). Copies run from the highest slot down so no source
        is overwritten before it is copied. Nothing is rolled back if a step
        fails part way.
        """
        path = target.path
        files = discover_generations(path)
        if not files:
            logger.info("no files were found for %s, nothing to rotate", path)
            return None
        if files[0] != path:
            logger.info("%s does not exist, nothing to rotate", path)
            return None

        logger.info("rotating %s", path)
        surplus = files[target.max_generations:]
        files = files[:target.max_generations]
        count = len(files)
        if count < target.max_generations:
            n = count
            while f"{path}.{n}" in files:
                n += 1
            files.append(f"{path}.{n}")
        elif target.apply_transform:
            transform = get_transform(target.transform)
            try:
                output = transform.apply(Path(path))
            except OSError as exc:
                raise FilesystemError(f"Cannot transform {path}: {exc}") from exc
            logger.debug("applied %s transform to %s -> %s", transform.name, path, output)

        for i in range(len(files) - 1, 0, -1):
            logger.debug("copy %s to %s", files[i - 1], files[i])
            try:
                shutil.copy(files[i - 1], files[i])
            except OSError as exc:
                raise FilesystemError(f"Cannot copy {files[i - 1]} to {files[i]}: {exc}") from exc

        # Left over from a larger max_files; outside the retained slots.
        for name in surplus:
            logger.info("removing %s, beyond %d generations", name, target.max_generations)
            try:
                os.remove(name)
            except OSError as exc:
                raise FilesystemError(f"Cannot remove {name}: {exc}") from exc

        if target.strategy is Strategy.COPY_TRUNCATE:
            try:
                with open(path, "wb"):
                    pass
            except OSError as exc:
                raise FilesystemError(f"Cannot truncate {path}: {exc}") from exc

        return self.now()
