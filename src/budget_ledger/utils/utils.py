"""Filesystem and clock helpers."""

from datetime import datetime, timezone
from pathlib import Path


def get_project_root() -> Path:
    """Return the repository root (the directory holding ``src``)."""
    return Path(__file__).resolve().parents[3]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


__all__ = ["get_project_root", "utc_now"]
