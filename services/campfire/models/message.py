from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class CampfireMessage:
    raw: Dict[str, Any]
    message_id: Optional[str]
    room_id: Optional[str]
    body: str

    user_id: Optional[str] = None
    type: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["CampfireMessage"]:
        """
        Normalize one decoded stream payload.

        Returns None for anything that is not a JSON object; those are
        still delivered to listeners, just not as messages.
        """
        if not isinstance(payload, dict):
            return None

        def _str(key: str) -> Optional[str]:
            value = payload.get(key)
            return None if value is None else str(value)

        return cls(
            raw=payload,
            message_id=_str("id"),
            room_id=_str("room_id"),
            body=str(payload.get("body") or ""),
            user_id=_str("user_id"),
            type=_str("type"),
            created_at=_str("created_at"),
        )

    def to_event(self) -> Dict[str, Any]:
        return {
            "platform": "campfire",
            "type": self.type or "message",
            "room_id": self.room_id,
            "user": {"id": self.user_id},
            "message_id": self.message_id,
            "text": self.body,
            "timestamp": self.created_at,
            "raw": self.raw,
        }

    def format_line(self) -> str:
        return f"{self.message_id}: {self.body}"
