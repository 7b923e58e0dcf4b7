"""
Channel points rewards API.
"""

from typing import Iterable, List, Optional

from ..models import (
    ChannelReward,
    ChannelRewardRedemption,
    CreateRewardRequest,
    ManageRedemptionsResponse,
    RedemptionStatus,
    UpdateRewardRequest,
)
from .base import ResourceApi


class RewardsApi(ResourceApi):
    """Manage rewards and their redemptions for the token owner's channel."""

    async def get_all(self) -> List[ChannelReward]:
        response = await self.pipeline.execute("GET", "/channels/rewards")
        return self._many(response, ChannelReward.from_dict)

    async def create(self, request: CreateRewardRequest) -> ChannelReward:
        response = await self.pipeline.execute("POST", "/channels/rewards", body=request.to_dict())
        return self._one(response, ChannelReward.from_dict)

    async def update(self, reward_id: str, request: UpdateRewardRequest) -> ChannelReward:
        response = await self.pipeline.execute(
            "PATCH", f"/channels/rewards/{reward_id}", body=request.to_dict()
        )
        return self._one(response, ChannelReward.from_dict)

    async def delete(self, reward_id: str) -> None:
        await self.pipeline.execute("DELETE", f"/channels/rewards/{reward_id}")

    async def get_redemptions(
        self,
        reward_id: Optional[str] = None,
        status: Optional[RedemptionStatus] = None,
    ) -> List[ChannelRewardRedemption]:
        """
        List redemptions, optionally for one reward and/or one status.
        """
        params = {}
        if reward_id is not None:
            params["reward_id"] = reward_id
        if status is not None:
            params["status"] = RedemptionStatus(status).value
        response = await self.pipeline.execute(
            "GET", "/channels/rewards/redemptions", params=params or None
        )
        return self._many(response, ChannelRewardRedemption.from_dict)

    async def accept_redemptions(self, ids: Iterable[str]) -> ManageRedemptionsResponse:
        return await self._manage("accept", ids)

    async def reject_redemptions(self, ids: Iterable[str]) -> ManageRedemptionsResponse:
        return await self._manage("reject", ids)

    async def _manage(self, action: str, ids: Iterable[str]) -> ManageRedemptionsResponse:
        response = await self.pipeline.execute(
            "POST", f"/channels/rewards/redemptions/{action}", body={"ids": list(ids)}
        )
        # The batch result is not wrapped in "data"; it carries "data" and "failed".
        payload = response.json()
        if not isinstance(payload, dict):
            payload = {}
        return ManageRedemptionsResponse.from_dict(payload)
