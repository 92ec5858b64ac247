"""Last-step transforms applied to a file when its history is at capacity."""

from __future__ import annotations

import gzip
import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TRANSFORM = "duplicate"


class Transform(ABC):
    """Writes a transformed sibling of a file at ``<source><suffix>``."""

    name: str = ""
    suffix: str = ".zip"

    def output_path(self, source: Path) -> Path:
        return source.with_name(source.name + self.suffix)

    def apply(self, source: Path) -> Path:
        """Transform source into its sibling output file and return that path."""
        target = self.output_path(source)
        logger.debug("transforming %s to %s (%s)", source, target, self.name)
        target.write_bytes(self.transform_bytes(source.read_bytes()))
        return target

    @abstractmethod
    def transform_bytes(self, data: bytes) -> bytes:
        """Return the transformed contents."""


class DuplicateBytesTransform(Transform):
    """Legacy "compression": every byte of every line is written twice.

    Output is larger than input. Kept so existing rotated archives keep the
    same shape.
    """

    name = "duplicate"
    suffix = ".zip"

    def transform_bytes(self, data: bytes) -> bytes:
        if not data:
            return b""
        ends_with_newline = data.endswith(b"\n")
        lines = data.split(b"\n")
        if ends_with_newline:
            lines.pop()
        doubled = []
        for line in lines:
            if line.endswith(b"\r"):
                line = line[:-1]
            doubled.append(bytes(b for byte in line for b in (byte, byte)))
        out = b"\n".join(doubled)
        if ends_with_newline:
            out += b"\n"
        return out


class IdentityTransform(Transform):
    name = "identity"
    suffix = ".zip"

    def transform_bytes(self, data: bytes) -> bytes:
        return data


class GzipTransform(Transform):
    name = "gzip"
    suffix = ".gz"

    def apply(self, source: Path) -> Path:
        target = self.output_path(source)
        logger.debug("compressing %s to %s", source, target)
        with open(source, "rb") as f_in, gzip.open(target, "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
        return target

    def transform_bytes(self, data: bytes) -> bytes:
        return gzip.compress(data)


TRANSFORMS: dict[str, Transform] = {
    t.name: t for t in (DuplicateBytesTransform(), IdentityTransform(), GzipTransform())
}

# Sibling files produced by transforms; never counted as generations.
OUTPUT_SUFFIXES: frozenset[str] = frozenset(t.suffix for t in TRANSFORMS.values())


def get_transform(name: str) -> Transform:
    """Look up a transform by name. Raises KeyError for unknown names."""
    try:
        return TRANSFORMS[name]
    except KeyError:
        raise KeyError(f"Unknown transform '{name}' (expected one of: {', '.join(sorted(TRANSFORMS))})") from None
