"""User entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """User entity (platform-independent).

    Attributes:
        id: Platform-specific user ID.
        name: Username shown in prompts and opinion records.
        is_bot: Whether the user is a bot account.
    """

    id: str
    name: str
    is_bot: bool = False

    @property
    def mention(self) -> str:
        """Mention markup that pings this user."""
        return f"<@{self.id}>"
