"""
Webhook event subscriptions API.
"""

from typing import Iterable, List, Optional

from ..models import EventSubscription, SubscribeRequest, SubscribeResult
from .base import ResourceApi


class EventsApi(ResourceApi):
    """Subscribe Kick webhooks to channel events."""

    async def list(self, broadcaster_user_id: Optional[int] = None) -> List[EventSubscription]:
        params = None
        if broadcaster_user_id is not None:
            params = {"broadcaster_user_id": str(broadcaster_user_id)}
        response = await self.pipeline.execute("GET", "/events/subscriptions", params=params)
        return self._many(response, EventSubscription.from_dict)

    async def subscribe(self, request: SubscribeRequest) -> List[SubscribeResult]:
        """Each requested event gets its own result; check ``result.ok``."""
        response = await self.pipeline.execute(
            "POST", "/events/subscriptions", body=request.to_dict()
        )
        return self._many(response, SubscribeResult.from_dict)

    async def unsubscribe(self, ids: Iterable[str]) -> None:
        params = [("id", subscription_id) for subscription_id in ids]
        if not params:
            return
        await self.pipeline.execute("DELETE", "/events/subscriptions", params=params)
