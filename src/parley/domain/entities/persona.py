"""Persona entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Persona:
    """Named character the agent speaks as.

    Attributes:
        key: Lookup key (lowercase), used in history partitions and session IDs.
        name: Display name used in confirmations and command replies.
        personality: Personality description text.
        character_info: Background / character information text.
        response_style: Instructions about how to phrase replies.
        confirmation: Message sent after switching to this persona.
    """

    key: str
    name: str
    personality: str
    character_info: str
    response_style: str
    confirmation: str = ""

    @property
    def system_instructions(self) -> str:
        """System instructions sent to the generation service."""
        return f"{self.personality}\n\n{self.character_info}\n\n{self.response_style}"
