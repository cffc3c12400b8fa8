"""Application name and version."""

from __future__ import annotations

__all__ = ["APP_NAME", "APP_VERSION_MAJOR", "APP_VERSION_MINOR", "version_string"]

APP_NAME = "Karaoke Lyric Editor"
APP_VERSION_MAJOR = 4
APP_VERSION_MINOR = 1


def version_string() -> str:
    """Return the version as ``major.minor``."""
    return f"{APP_VERSION_MAJOR}.{APP_VERSION_MINOR}"