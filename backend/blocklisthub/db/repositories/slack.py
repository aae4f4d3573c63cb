"""Slack repository — operator records and the dynamic channel whitelist."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blocklisthub.db.models import SlackChannelWhitelist, SlackUser

logger = logging.getLogger(__name__)


class SlackUserRepository:
    """Typed access to ``slack_users``; one session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_by_slack_id(self, slack_user_id: str) -> SlackUser | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SlackUser).where(SlackUser.slack_user_id == slack_user_id)
            )
            return result.scalar_one_or_none()

    async def ensure(self, slack_user_id: str, team_id: str | None) -> SlackUser:
        """Return the operator row, creating a minimal one on first sight."""
        existing = await self.get_by_slack_id(slack_user_id)
        if existing:
            return existing

        async with self._session_factory() as session:
            user = SlackUser(
                slack_user_id=slack_user_id,
                team_id=team_id,
                display_name=slack_user_id,
            )
            session.add(user)
            try:
                await session.commit()
                return user
            except IntegrityError:
                # concurrent first command from the same operator
                await session.rollback()

        existing = await self.get_by_slack_id(slack_user_id)
        if existing is None:
            raise RuntimeError(f"Slack user {slack_user_id} vanished after insert race")
        return existing

    async def update_names(
        self, user_id: int, display_name: str | None, real_name: str | None
    ) -> SlackUser | None:
        async with self._session_factory() as session:
            user = await session.get(SlackUser, user_id)
            if user is None:
                return None
            user.display_name = display_name
            user.real_name = real_name
            await session.commit()
            return user


class ChannelWhitelistRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def is_active(self, channel_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SlackChannelWhitelist.id)
                .where(SlackChannelWhitelist.channel_id == channel_id)
                .where(SlackChannelWhitelist.active.is_(True))
                .limit(1)
            )
            return result.scalar_one_or_none() is not None
