"""
Channels API.
"""

from typing import List

from ..exceptions import ChannelNotFoundError
from ..models import Channel
from .base import ResourceApi


class ChannelsApi(ResourceApi):
    """Channel lookups. Requires an OAuth token."""

    async def get(self, slug: str) -> Channel:
        """
        Get a channel by its slug.

        Raises:
            ChannelNotFoundError: no channel has this slug
        """
        response = await self.pipeline.execute("GET", "/channels", params={"slug": slug})
        channels = self._many(response, Channel.from_dict)
        if not channels:
            raise ChannelNotFoundError(slug)
        return channels[0]

    async def get_mine(self) -> List[Channel]:
        """Get the channels of the token's owner."""
        response = await self.pipeline.execute("GET", "/channels")
        return self._many(response, Channel.from_dict)
