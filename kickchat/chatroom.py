"""
Resolve a channel slug to its live chat room ID.

The public API does not expose chatroom IDs, so this goes through the
kick.com website API, which sits behind Cloudflare.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import cloudscraper
import requests
import ua_generator

from .config import KICK_WEBSITE_URL
from .exceptions import ChannelNotFoundError, RequestError

logger = logging.getLogger(__name__)


def _headers() -> Dict[str, str]:
    ua = ua_generator.generate()
    return {
        "Accept": "application/json",
        "Alt-Used": "kick.com",
        "Priority": "u=0, i",
        "Connection": "keep-alive",
        "User-Agent": ua.text,
    }


def extract_slug(channel: str) -> str:
    """Accept a bare slug or a channel URL such as ``https://kick.com/xqc``."""
    return channel.rstrip("/").split("/")[-1]


def fetch_chatroom_id(channel: str, scraper: Optional[Any] = None) -> int:
    """
    Look up the chatroom ID of a channel (blocking).

    Args:
        channel: Channel slug or URL
        scraper: A ``cloudscraper.CloudScraper`` to reuse; one is created if omitted

    Raises:
        ChannelNotFoundError: no such channel, or it has no chatroom
        RequestError: the website API failed
    """
    slug = extract_slug(channel)
    url = f"{KICK_WEBSITE_URL}/api/v2/channels/{slug}"
    session = scraper or cloudscraper.CloudScraper()
    try:
        response = session.get(url, headers=_headers())
    except requests.RequestException as e:
        raise RequestError(f"Failed to reach the Kick website API: {e}") from e
    finally:
        if scraper is None:
            session.close()

    if response.status_code == 404:
        raise ChannelNotFoundError(slug)
    if response.status_code != 200:
        raise RequestError(f"Failed to get channel info: {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise RequestError(f"Invalid JSON from channel info: {e}") from e

    chatroom = data.get("chatroom") if isinstance(data, dict) else None
    chatroom_id = chatroom.get("id") if isinstance(chatroom, dict) else None
    if not chatroom_id:
        raise ChannelNotFoundError(slug)

    logger.debug("Channel %s has chatroom %s", slug, chatroom_id)
    return int(chatroom_id)


async def get_chatroom_id(channel: str) -> int:
    """Async wrapper around :func:`fetch_chatroom_id`, run in a worker thread."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, fetch_chatroom_id, channel)
