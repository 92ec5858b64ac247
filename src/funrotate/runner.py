"""Run orchestrator: evaluate every target, rotate the due ones, record results."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from funrotate.config import RotationTarget
from funrotate.log_rotation import FilesystemError, RotationEngine
from funrotate.state import RotationStateStore

logger = logging.getLogger(__name__)

ROTATED = "rotated"
SKIPPED = "skipped"
NOOP = "noop"
DUE = "due"
FAILED = "failed"


@dataclass
class TargetResult:
    path: str
    status: str
    detail: str = ""
    rotated_at: datetime | None = None

    @property
    def failed(self) -> bool:
        return self.status == FAILED


def process_target(
    target: RotationTarget,
    store: RotationStateStore,
    engine: RotationEngine,
    dry_run: bool = False,
) -> TargetResult:
    """Check one target and rotate it if due. Raises FilesystemError."""
    last = store.last_rotation_time(target.path)
    logger.debug("last rotation time of %s: %s", target.path, last or "never")

    if not engine.is_due(target, last):
        return TargetResult(path=target.path, status=SKIPPED, detail="not due")
    if dry_run:
        return TargetResult(path=target.path, status=DUE, detail="would rotate")

    rotated_at = engine.rotate(target)
    if rotated_at is None:
        return TargetResult(path=target.path, status=NOOP, detail="nothing to rotate")

    store.update(target.path, rotated_at)
    return TargetResult(path=target.path, status=ROTATED, rotated_at=rotated_at)


def run_rotation(
    targets: list[RotationTarget],
    store: RotationStateStore,
    engine: RotationEngine | None = None,
    fail_fast: bool = False,
    dry_run: bool = False,
) -> list[TargetResult]:
    """Process targets in order, one at a time.

    A FilesystemError only fails its own target unless fail_fast is set,
    in which case it propagates. PatternError always propagates. The store
    is updated in memory but not saved.
    """
    engine = engine or RotationEngine()
    results: list[TargetResult] = []
    for target in targets:
        try:
            result = process_target(target, store, engine, dry_run=dry_run)
        except FilesystemError as exc:
            if fail_fast:
                raise
            logger.error("rotation of %s failed: %s", target.path, exc)
            result = TargetResult(path=target.path, status=FAILED, detail=str(exc))
        results.append(result)

    rotated = sum(1 for r in results if r.status == ROTATED)
    failed = sum(1 for r in results if r.failed)
    logger.info("%d target(s) checked, %d rotated, %d failed", len(results), rotated, failed)
    return results
