"""
Tests for REST data models.
"""

from kickchat.models import (
    BanRequest,
    Channel,
    ChannelReward,
    ChannelRewardRedemption,
    CreateRewardRequest,
    FailedRedemption,
    FailureReason,
    ManageRedemptionsResponse,
    RedemptionStatus,
    SendMessageRequest,
    SubscribeEvent,
    SubscribeRequest,
    TokenIntrospection,
    UpdateRewardRequest,
)


class TestChannel:
    """Tests for Channel."""

    def test_from_dict_live(self):
        channel = Channel.from_dict(
            {
                "broadcaster_user_id": 1,
                "slug": "xqc",
                "active_subscribers_count": 10,
                "category": {"id": 15, "name": "Just Chatting", "thumbnail": None},
                "stream": {
                    "is_live": True,
                    "viewer_count": 5000,
                    "custom_tags": ["English"],
                    "language": "en",
                    "key": "",
                    "url": "",
                    "start_time": "2025-01-01T00:00:00Z",
                    "is_mature": False,
                },
                "stream_title": "hello",
            }
        )

        assert channel.is_live
        assert channel.category.name == "Just Chatting"
        assert channel.stream.viewer_count == 5000
        assert channel.stream.custom_tags == ["English"]

    def test_from_dict_offline(self):
        channel = Channel.from_dict({"broadcaster_user_id": 2, "slug": "quiet"})

        assert not channel.is_live
        assert channel.category is None


class TestTokenIntrospection:
    """Tests for TokenIntrospection."""

    def test_scopes(self):
        token = TokenIntrospection(active=True, scope="user:read channel:read", exp=9999999999)

        assert token.scopes == ["user:read", "channel:read"]
        assert token.has_scope("channel:read")
        assert not token.has_scope("chat:write")

    def test_no_scopes(self):
        assert TokenIntrospection(active=False).scopes == []

    def test_expiry(self):
        assert TokenIntrospection(active=True, exp=0).is_expired()
        assert not TokenIntrospection(active=True, exp=9999999999).is_expired()
        assert not TokenIntrospection(active=True).is_expired()
        assert TokenIntrospection(active=True, exp=100).is_expired(now=100)


class TestRequestBodies:
    """Tests for request serialisation."""

    def test_send_message_omits_unset(self):
        body = SendMessageRequest(content="hi", broadcaster_user_id=5).to_dict()

        assert body == {"content": "hi", "type": "user", "broadcaster_user_id": 5}

    def test_ban_is_timeout_with_duration(self):
        assert BanRequest(1, 2).to_dict() == {"broadcaster_user_id": 1, "user_id": 2}
        assert BanRequest(1, 2, reason="spam", duration=600).to_dict()["duration"] == 600

    def test_update_reward_partial(self):
        assert UpdateRewardRequest(cost=50).to_dict() == {"cost": 50}

    def test_create_reward(self):
        body = CreateRewardRequest(title="Hydrate", cost=100, is_enabled=False).to_dict()

        assert body == {"title": "Hydrate", "cost": 100, "is_enabled": False}

    def test_subscribe_request(self):
        request = SubscribeRequest(
            events=[SubscribeEvent("chat.message.sent"), SubscribeEvent("channel.followed", 2)],
            broadcaster_user_id=7,
        )

        assert request.to_dict() == {
            "method": "webhook",
            "events": [
                {"name": "chat.message.sent", "version": 1},
                {"name": "channel.followed", "version": 2},
            ],
            "broadcaster_user_id": 7,
        }


class TestRewards:
    """Tests for reward and redemption models."""

    def test_reward_defaults(self):
        reward = ChannelReward.from_dict({"id": "r1", "title": "Hydrate", "cost": 100})

        assert reward.is_enabled is True
        assert reward.is_paused is False
        assert reward.background_color == "#00e701"
        assert reward.description == ""

    def test_redemption(self):
        redemption = ChannelRewardRedemption.from_dict(
            {
                "id": "x1",
                "redeemed_at": "2025-01-01T00:00:00Z",
                "redeemer": {"user_id": 9},
                "status": "pending",
            }
        )

        assert redemption.status == RedemptionStatus.PENDING
        assert redemption.redeemer_user_id == 9
        assert redemption.user_input is None

    def test_failed_redemption_unknown_reason(self):
        assert FailedRedemption.from_dict({"id": "a", "reason": "NEW_REASON"}).reason == FailureReason.UNKNOWN
        assert FailedRedemption.from_dict({"id": "a", "reason": "NOT_OWNED"}).reason == FailureReason.NOT_OWNED

    def test_manage_response(self):
        response = ManageRedemptionsResponse.from_dict(
            {"data": [], "failed": [{"id": "a", "reason": "NOT_PENDING"}]}
        )

        assert not response.all_succeeded
        assert response.failed[0].reason == FailureReason.NOT_PENDING
        assert ManageRedemptionsResponse.from_dict({"data": []}).all_succeeded
