"""
Chat API for sending and deleting messages.
"""

from ..models import SendMessageRequest, SendMessageResponse
from .base import ResourceApi


class ChatApi(ResourceApi):
    """
    Posts to chat on behalf of the token's owner.

    Needs the ``chat:write`` scope (``moderation:chat_message:manage`` to delete).
    """

    async def send_message(self, request: SendMessageRequest) -> SendMessageResponse:
        response = await self.pipeline.execute("POST", "/chat", body=request.to_dict())
        return self._one(response, SendMessageResponse.from_dict)

    async def delete_message(self, message_id: str) -> None:
        await self.pipeline.execute("DELETE", f"/chat/{message_id}")
