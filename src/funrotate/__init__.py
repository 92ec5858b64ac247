"""funrotate - size and interval based file rotation."""

__version__ = "0.1.0"
