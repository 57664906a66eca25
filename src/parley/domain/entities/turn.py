"""Turn entity."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class Turn:
    """One entry of a conversation history.

    Turns are never modified after they are appended.

    Attributes:
        content: Text of the turn.
        author_id: Platform user ID of the author (the agent's own ID for its replies).
        timestamp: When the turn was recorded.
    """

    content: str
    author_id: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored form (timestamp in epoch milliseconds)."""
        return {
            "content": self.content,
            "authorId": self.author_id,
            "timestamp": int(self.timestamp.timestamp() * 1000),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Turn":
        return cls(
            content=str(data.get("content", "")),
            author_id=str(data["authorId"]),
            timestamp=datetime.fromtimestamp(
                data.get("timestamp", 0) / 1000, tz=timezone.utc
            ),
        )
