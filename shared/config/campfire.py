"""
Campfire streaming configuration.

Resolves the credential token, room ids and service host for the stream
client. Explicit values (CLI flags) win over environment variables:

    CAMPFIRE_TOKEN   API token of the streaming user
    CAMPFIRE_ROOMS   comma separated room ids (the id is in the room url)
    CAMPFIRE_HOST    service host, defaults to campfirenow.com

Design rules:
- Import-safe (no side effects; .env loading belongs to the entry point)
- Missing token or rooms is fatal and reported before any connection
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from shared.logging.logger import get_logger

log = get_logger("shared.config.campfire")

DEFAULT_HOST = "campfirenow.com"

MISSING_PARAMETERS = "Not enough parameters provided. I need a token and rooms"


class ConfigError(RuntimeError):
    """Raised when the stream client cannot be configured."""


def split_rooms(value: Union[str, Iterable[str], None]) -> List[str]:
    """
    Normalize room ids from a comma separated string or an iterable.

    Whitespace is trimmed, empty entries dropped and duplicates removed
    while keeping first-seen order.
    """
    if value is None:
        return []

    if isinstance(value, str):
        candidates: Iterable[str] = value.split(",")
    else:
        candidates = value

    rooms: List[str] = []
    for raw in candidates:
        room = str(raw).strip()
        if room and room not in rooms:
            rooms.append(room)
    return rooms


@dataclass
class CampfireSettings:
    """Resolved stream client settings."""

    token: str
    rooms: List[str] = field(default_factory=list)
    host: str = DEFAULT_HOST

    def validate(self) -> None:
        if not self.token or not self.rooms:
            raise ConfigError(MISSING_PARAMETERS)
        if not self.host:
            raise ConfigError("Campfire host must not be empty")


def load_settings(
    *,
    token: Optional[str] = None,
    rooms: Union[str, Iterable[str], None] = None,
    host: Optional[str] = None,
) -> CampfireSettings:
    """
    Build validated settings from explicit values and the environment.

    Never logs the token.
    """

    resolved_token = (token or os.getenv("CAMPFIRE_TOKEN", "")).strip()

    resolved_rooms = split_rooms(rooms)
    if not resolved_rooms:
        resolved_rooms = split_rooms(os.getenv("CAMPFIRE_ROOMS"))

    resolved_host = (host or os.getenv("CAMPFIRE_HOST", "") or DEFAULT_HOST).strip()

    settings = CampfireSettings(
        token=resolved_token,
        rooms=resolved_rooms,
        host=resolved_host,
    )
    settings.validate()

    log.debug(
        "Loaded Campfire settings (host=%s, rooms=%s)",
        settings.host,
        ",".join(settings.rooms),
    )
    return settings
