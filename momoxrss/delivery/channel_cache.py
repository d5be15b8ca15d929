"""
Channel Cache
=============

Process-lifetime mapping of Discord channel id to ChannelInfo. Entries are
only removed by explicit invalidation.
"""

from typing import Dict, Optional

from ..database.models import ChannelInfo


class ChannelCache:
    """Unbounded channel-id -> ChannelInfo cache."""

    def __init__(self):
        self._entries: Dict[str, ChannelInfo] = {}

    def get(self, channel_id: str) -> Optional[ChannelInfo]:
        return self._entries.get(str(channel_id))

    def set(self, info: ChannelInfo, channel_id: Optional[str] = None) -> None:
        self._entries[str(channel_id or info.id)] = info

    def invalidate(self, *channel_ids: Optional[str]) -> None:
        """Drop cached info for each given channel id (None is ignored)."""
        for channel_id in channel_ids:
            if channel_id is not None:
                self._entries.pop(str(channel_id), None)

    def __contains__(self, channel_id: object) -> bool:
        return str(channel_id) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
