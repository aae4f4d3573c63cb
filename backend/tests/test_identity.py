"""Tests for operator identity resolution and best-effort enrichment."""

import logging

import httpx
import pytest

from blocklisthub.db.repositories.slack import SlackUserRepository
from blocklisthub.services.identity import OperatorDirectory
from blocklisthub.services.slack_client import SlackApiError, SlackWebClient


def _client(handler) -> SlackWebClient:
    return SlackWebClient(
        bot_token="xoxb-test",
        base_url="https://slack.test/api",
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
class TestOperatorDirectory:
    async def test_enrichment_updates_names(self, session_factory):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer xoxb-test"
            assert request.url.params["user"] == "U1"
            return httpx.Response(200, json={
                "ok": True,
                "user": {"profile": {
                    "display_name_normalized": "alice",
                    "real_name_normalized": "Alice Analyst",
                }},
            })

        slack = _client(handler)
        users = SlackUserRepository(session_factory)
        actor_id = await OperatorDirectory(users, slack).resolve_actor("U1", "T1")
        await slack.cleanup()

        user = await users.get_by_slack_id("U1")
        assert user.id == actor_id
        assert user.display_name == "alice"
        assert user.real_name == "Alice Analyst"
        assert user.team_id == "T1"

    async def test_enrichment_failure_is_swallowed(self, session_factory, caplog):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        slack = _client(handler)
        users = SlackUserRepository(session_factory)
        with caplog.at_level(logging.WARNING, logger="blocklisthub.services.identity"):
            actor_id = await OperatorDirectory(users, slack).resolve_actor("U2")
        await slack.cleanup()

        user = await users.get_by_slack_id("U2")
        assert user.id == actor_id
        assert user.display_name == "U2"
        assert "users.info failed for U2" in caplog.text

    async def test_unconfigured_client_skips_lookup(self, session_factory):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"ok": True})

        slack = SlackWebClient(bot_token="", transport=httpx.MockTransport(handler))
        users = SlackUserRepository(session_factory)
        first = await OperatorDirectory(users, slack).resolve_actor("U3")
        second = await OperatorDirectory(users, slack).resolve_actor("U3")

        assert first == second
        assert calls == []


@pytest.mark.asyncio
class TestSlackWebClient:
    async def test_api_error(self):
        slack = _client(lambda request: httpx.Response(200, json={"ok": False, "error": "invalid_auth"}))
        with pytest.raises(SlackApiError) as exc:
            await slack.post_message("C1", "hi")
        await slack.cleanup()
        assert exc.value.error == "invalid_auth"

    async def test_unknown_user(self):
        slack = _client(lambda request: httpx.Response(200, json={"ok": True}))
        assert await slack.users_info("U404") is None
        await slack.cleanup()
