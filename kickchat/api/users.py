"""
Users API.
"""

from typing import Iterable, List, Optional

from ..exceptions import RequestError
from ..models import TokenIntrospection, User
from .base import ResourceApi


class UsersApi(ResourceApi):

    async def get(self, user_ids: Optional[Iterable[int]] = None) -> List[User]:
        """
        Get users by ID.

        Args:
            user_ids: IDs to look up; with none, returns the token's owner
        """
        params = [("id", str(user_id)) for user_id in user_ids or ()]
        response = await self.pipeline.execute("GET", "/users", params=params or None)
        return self._many(response, User.from_dict)

    async def get_me(self) -> User:
        users = await self.get()
        if not users:
            raise RequestError("No user data returned")
        return users[0]

    async def introspect_token(self) -> TokenIntrospection:
        """Check whether the current token is active and which scopes it has."""
        response = await self.pipeline.execute("POST", "/token/introspect")
        return self._one(response, TokenIntrospection.from_dict)
