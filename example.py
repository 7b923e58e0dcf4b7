"""
Example usage of the kickchat library.

Looks up a channel over the REST API (when a token is configured) and then
prints live chat messages until interrupted.
"""

import asyncio
import logging

import dotenv

from kickchat import ApiConfig, KickApiClient, KickChatError, get_chatroom_id

dotenv.load_dotenv()


async def example(channel_url: str):
    config = ApiConfig.from_env()

    try:
        async with KickApiClient(config=config) as client:
            if client.has_token:
                channel = await client.channels.get(channel_url.rstrip("/").split("/")[-1])
                print(f"Channel: {channel.slug} (live: {channel.is_live})")

            chatroom_id = await get_chatroom_id(channel_url)
            print(f"Connecting to chatroom {chatroom_id}")

            async with client.live_chat(chatroom_id) as chat:
                print("Connected! Listening for messages...")
                async for message in chat.listen():
                    print(f"[{message.timestamp:%H:%M:%S}] {message.sender.username}: {message.content}")

                    print(f"  └─ Badges: {message.sender.badge_types}")
                    print(f"  └─ Moderator: {message.sender.is_moderator}")
                    print(f"  └─ Subscriber: {message.sender.is_subscriber}")
                    print(f"  └─ Color: {message.sender.color}")

    except KickChatError as e:
        print(f"Error: {e}")


async def main():
    await example("https://kick.com/chips")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    print("Environment variables you can set:")
    print("- KICK_OAUTH_TOKEN: OAuth token for the REST API (live chat needs none)")
    print("- KICK_API_BASE_URL, KICK_HTTP_TIMEOUT, KICK_MAX_ATTEMPTS")
    print()

    asyncio.run(main())
