"""
Moderation API for bans and timeouts.
"""

from ..models import BanRequest, UnbanRequest
from .base import ResourceApi


class ModerationApi(ResourceApi):

    async def ban(self, request: BanRequest) -> None:
        """Ban or time out a user (timeout when ``request.duration`` is set)."""
        await self.pipeline.execute("POST", "/moderation/bans", body=request.to_dict())

    async def unban(self, request: UnbanRequest) -> None:
        """Lift a ban or timeout."""
        await self.pipeline.execute("DELETE", "/moderation/bans", body=request.to_dict())
