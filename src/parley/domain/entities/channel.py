"""Channel entity."""

from dataclasses import dataclass
from enum import Enum


class ChannelKind(Enum):
    """Surfaces a message can arrive on."""

    DM = "dm"
    GROUP_DM = "group_dm"
    GUILD_TEXT = "guild_text"


@dataclass(frozen=True)
class Channel:
    """Channel entity.

    Attributes:
        id: Platform-specific channel ID.
        name: Channel name (empty for direct messages).
        kind: Surface type.
        guild_id: Owning guild, None outside guilds.
    """

    id: str
    name: str
    kind: ChannelKind = ChannelKind.GUILD_TEXT
    guild_id: str | None = None

    @property
    def is_dm(self) -> bool:
        return self.kind is ChannelKind.DM

    @property
    def is_group_dm(self) -> bool:
        return self.kind is ChannelKind.GROUP_DM
