"""Config loading, target enums, and validation."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path

import yaml

from funrotate.transforms import DEFAULT_TRANSFORM, TRANSFORMS
from funrotate.utils import deep_merge

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "funrotate.yaml"
STATE_FILENAME = ".last_rotation"

WILDCARD_RE = re.compile(r"[*?\[]")


class ConfigError(Exception):
    """Configuration file is missing, unparsable, or invalid."""


class Interval(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Strategy(str, Enum):
    COPY_TRUNCATE = "copytruncate"
    COPY_ONLY = "nocopytruncate"


# Months are a fixed 30 days, not calendar months.
INTERVAL_DURATIONS: dict[Interval, timedelta] = {
    Interval.HOURLY: timedelta(hours=1),
    Interval.DAILY: timedelta(days=1),
    Interval.WEEKLY: timedelta(days=7),
    Interval.MONTHLY: timedelta(days=30),
}

STRATEGY_NAMES: dict[str, Strategy] = {
    "copy": Strategy.COPY_TRUNCATE,
    "copytruncate": Strategy.COPY_TRUNCATE,
    "create": Strategy.COPY_TRUNCATE,
    "nocopytruncate": Strategy.COPY_ONLY,
}

DEFAULT_TARGET: dict = {
    "interval": "daily",
    "strategy": "copytruncate",
    "max_files": 5,
    "compress": False,
    "size": 0,
    "transform": DEFAULT_TRANSFORM,
}


@dataclass(frozen=True)
class RotationTarget:
    path: str
    interval: Interval = Interval.DAILY
    strategy: Strategy = Strategy.COPY_TRUNCATE
    max_generations: int = 5
    apply_transform: bool = False
    size_threshold: int = 0
    transform: str = DEFAULT_TRANSFORM


@dataclass
class RotationConfig:
    targets: list[RotationTarget] = field(default_factory=list)
    state_file: Path = Path(STATE_FILENAME)
    source: Path | None = None


def parse_interval(name: str) -> Interval:
    """Resolve an interval name, raising ConfigError on unknown names."""
    try:
        return Interval(str(name).lower())
    except ValueError:
        valid = ", ".join(i.value for i in Interval)
        raise ConfigError(f"Invalid interval '{name}' (expected one of: {valid})") from None


def parse_strategy(name: str) -> Strategy:
    """Resolve a strategy name or alias, raising ConfigError on unknown names."""
    strategy = STRATEGY_NAMES.get(str(name).lower())
    if strategy is None:
        valid = ", ".join(sorted(STRATEGY_NAMES))
        raise ConfigError(f"Invalid strategy '{name}' (expected one of: {valid})")
    return strategy


def get_config_path(start_dir: Path | None = None) -> Path:
    """Return the default config location for start_dir (or cwd)."""
    return (start_dir or Path.cwd()) / CONFIG_FILENAME


def _entries(data: dict) -> list[dict]:
    defaults = deep_merge(DEFAULT_TARGET, data.get("defaults") or {})
    return [deep_merge(defaults, entry) for entry in data.get("files", [])]


def validate_config(data: dict) -> list[str]:
    """Validate a raw config mapping, returning error messages (empty if valid)."""
    errors: list[str] = []
    files = data.get("files")
    if files is None:
        errors.append("Missing 'files' key")
        return errors
    if not isinstance(files, list):
        errors.append("'files' must be a list")
        return errors
    if not isinstance(data.get("defaults") or {}, dict):
        errors.append("'defaults' must be a mapping")
        return errors

    seen: set[str] = set()
    for idx, raw in enumerate(files):
        if not isinstance(raw, dict):
            errors.append(f"File entry {idx} must be a mapping")
            continue
    if errors:
        return errors

    for idx, entry in enumerate(_entries(data)):
        path = entry.get("path")
        label = f"File '{path}'" if path else f"File entry {idx}"
        if not path or not isinstance(path, str):
            errors.append(f"{label}: missing 'path'")
        elif WILDCARD_RE.search(path):
            errors.append(f"{label}: path must not contain wildcards")
        elif path in seen:
            errors.append(f"{label}: duplicate path")
        else:
            seen.add(path)

        if str(entry.get("interval", "")).lower() not in {i.value for i in Interval}:
            errors.append(f"{label}: invalid interval '{entry.get('interval')}'")
        if str(entry.get("strategy", "")).lower() not in STRATEGY_NAMES:
            errors.append(f"{label}: invalid strategy '{entry.get('strategy')}'")
        transform = entry.get("transform")
        if not isinstance(transform, str) or transform not in TRANSFORMS:
            errors.append(f"{label}: invalid transform '{entry.get('transform')}'")

        max_files = entry.get("max_files")
        if isinstance(max_files, bool) or not isinstance(max_files, int) or max_files < 1:
            errors.append(f"{label}: max_files must be a positive integer")
        size = entry.get("size")
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            errors.append(f"{label}: size must be a non-negative integer")
        if not isinstance(entry.get("compress"), bool):
            errors.append(f"{label}: compress must be true or false")
    return errors


def build_targets(data: dict) -> list[RotationTarget]:
    """Turn a validated config mapping into RotationTarget objects."""
    targets = []
    for entry in _entries(data):
        targets.append(
            RotationTarget(
                path=entry["path"],
                interval=parse_interval(entry["interval"]),
                strategy=parse_strategy(entry["strategy"]),
                max_generations=entry["max_files"],
                apply_transform=entry["compress"],
                size_threshold=entry["size"],
                transform=entry["transform"],
            )
        )
    return targets


def load_config(config_path: Path | None = None) -> RotationConfig:
    """Load and validate a YAML config file.

    Raises ConfigError if the file is missing, is not valid YAML, or
    fails validation.
    """
    path = config_path or get_config_path()
    logger.debug("reading config from %s", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config YAML {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    errors = validate_config(data)
    if errors:
        raise ConfigError("; ".join(errors))

    state_file = Path(data.get("state_file") or STATE_FILENAME)
    if not state_file.is_absolute():
        state_file = path.parent / state_file

    config = RotationConfig(
        targets=build_targets(data),
        state_file=state_file,
        source=path,
    )
    logger.debug("configuration loaded from %s (%d targets)", path, len(config.targets))
    return config
