"""Generation request entities."""

from dataclasses import dataclass, field
from enum import Enum


class Role(Enum):
    """Speaker of a chat message."""

    USER = "user"
    MODEL = "model"


@dataclass(frozen=True)
class ContentPart:
    """Part of a chat message: text or inline base64 data.

    Exactly one of ``text`` or ``data`` is set.
    """

    text: str | None = None
    mime_type: str | None = None
    data: str | None = None

    @classmethod
    def of_text(cls, text: str) -> "ContentPart":
        return cls(text=text)

    @classmethod
    def of_data(cls, mime_type: str, data: str) -> "ContentPart":
        return cls(mime_type=mime_type, data=data)

    @property
    def is_text(self) -> bool:
        return self.text is not None


@dataclass(frozen=True)
class ChatMessage:
    """Role-tagged message sent to the generation service."""

    role: Role
    parts: list[ContentPart] = field(default_factory=list)

    @classmethod
    def user(cls, text: str) -> "ChatMessage":
        return cls(role=Role.USER, parts=[ContentPart.of_text(text)])

    @classmethod
    def model(cls, text: str) -> "ChatMessage":
        return cls(role=Role.MODEL, parts=[ContentPart.of_text(text)])

    @property
    def text(self) -> str:
        """Concatenated text parts."""
        return "".join(part.text for part in self.parts if part.text is not None)
