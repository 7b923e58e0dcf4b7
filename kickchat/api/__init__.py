"""
REST resource APIs. Each one is a thin wrapper over ``RequestPipeline``.
"""

from .channels import ChannelsApi
from .chat import ChatApi
from .events import EventsApi
from .moderation import ModerationApi
from .rewards import RewardsApi
from .users import UsersApi

__all__ = [
    "ChannelsApi",
    "ChatApi",
    "EventsApi",
    "ModerationApi",
    "RewardsApi",
    "UsersApi",
]
