"""Slack Web API client — users.info, chat.postMessage and response_url replies."""

import logging
from typing import Any, Optional

import httpx

from blocklisthub.config import settings

logger = logging.getLogger(__name__)


class SlackApiError(Exception):
    """Slack answered with ``ok: false``."""

    def __init__(self, method: str, error: str):
        super().__init__(f"{method} failed: {error}")
        self.method = method
        self.error = error


class SlackWebClient:
    """Thin async wrapper around the handful of Web API methods we need."""

    def __init__(
        self,
        bot_token: str = "",
        base_url: str = "",
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.bot_token = bot_token or settings.SLACK_BOT_TOKEN
        self.base_url = (base_url or settings.SLACK_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.SLACK_TIMEOUT_SECONDS
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def cleanup(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    @property
    def is_configured(self) -> bool:
        return bool(self.bot_token)

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.bot_token}"}

    async def _call(self, method: str, *, params: dict | None = None, json: dict | None = None) -> dict:
        client = self._get_client()
        url = f"{self.base_url}/{method}"
        if json is not None:
            resp = await client.post(url, headers=self._headers(), json=json)
        else:
            resp = await client.get(url, headers=self._headers(), params=params)
        resp.raise_for_status()
        data = resp.json()
        if not data.get("ok"):
            raise SlackApiError(method, data.get("error", "unknown_error"))
        return data

    async def users_info(self, user_id: str) -> Optional[dict[str, Any]]:
        """Return ``{"display_name", "real_name"}`` for a user, or None if unknown."""
        data = await self._call("users.info", params={"user": user_id})
        user = data.get("user") or {}
        profile = user.get("profile") or {}
        if not user:
            return None
        return {
            "display_name": profile.get("display_name_normalized") or None,
            "real_name": profile.get("real_name_normalized") or None,
        }

    async def post_message(self, channel: str, text: str) -> dict:
        return await self._call("chat.postMessage", json={"channel": channel, "text": text})

    async def respond(self, response_url: str, text: str, response_type: str = "in_channel") -> None:
        """Deliver a delayed slash-command reply through its ``response_url``."""
        client = self._get_client()
        resp = await client.post(
            response_url,
            json={"response_type": response_type, "text": text},
        )
        resp.raise_for_status()
