"""Version metadata for campfire-stream.

This module is import-safe and exposes version identifiers for the CLI and
the streaming client without executing side effects on import.
"""

from __future__ import annotations

PROJECT_NAME = "campfire-stream"
VERSION = "0.3.0"

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "as_string",
    "user_agent",
]


def as_string() -> str:
    """Return a concise version string."""

    return f"{PROJECT_NAME} {VERSION}"


def user_agent() -> str:
    return f"{PROJECT_NAME}/{VERSION}"
