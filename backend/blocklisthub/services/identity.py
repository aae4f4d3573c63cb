"""Operator identity — maps a Slack user to a local actor id.

The local row is created on first sight; display/real names are refreshed
best-effort from ``users.info``. Directory failures never fail a command.
"""

import asyncio
import logging

from blocklisthub.config import settings
from blocklisthub.db.models import SlackUser
from blocklisthub.db.repositories.slack import SlackUserRepository
from blocklisthub.services.slack_client import SlackWebClient

logger = logging.getLogger(__name__)


class OperatorDirectory:
    def __init__(
        self,
        users: SlackUserRepository,
        slack: SlackWebClient | None = None,
        timeout: float | None = None,
    ):
        self.users = users
        self.slack = slack
        self.timeout = timeout if timeout is not None else settings.SLACK_TIMEOUT_SECONDS

    async def resolve_actor(self, slack_user_id: str, team_id: str | None = None) -> int:
        user = await self.users.ensure(slack_user_id, team_id)
        user = await self._enrich(user)
        return user.id

    async def _enrich(self, user: SlackUser) -> SlackUser:
        if self.slack is None or not self.slack.is_configured:
            return user
        try:
            profile = await asyncio.wait_for(
                self.slack.users_info(user.slack_user_id), timeout=self.timeout
            )
            if not profile:
                return user

            new_display = profile.get("display_name") or user.display_name
            new_real = profile.get("real_name") or user.real_name
            if new_display == user.display_name and new_real == user.real_name:
                return user

            updated = await self.users.update_names(user.id, new_display, new_real)
            return updated or user
        except Exception as e:
            logger.warning("users.info failed for %s: %s", user.slack_user_id, e)
            return user
