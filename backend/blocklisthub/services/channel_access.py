"""Channel authorization — static whitelist from config merged with the DB whitelist."""

import logging
from typing import Iterable

from blocklisthub.config import settings
from blocklisthub.core.status import StatusMarker
from blocklisthub.db.repositories.slack import ChannelWhitelistRepository

logger = logging.getLogger(__name__)

DENIED_MESSAGE = f"{StatusMarker.DENIED} Commands are not allowed in this channel."


class ChannelAccessService:
    def __init__(
        self,
        whitelist: ChannelWhitelistRepository,
        static_channels: Iterable[str] | None = None,
    ):
        self.whitelist = whitelist
        self.static_channels = frozenset(
            static_channels if static_channels is not None else settings.static_channel_whitelist
        )

    async def is_allowed(self, channel_id: str) -> bool:
        static_allowed = channel_id in self.static_channels
        db_allowed = False
        if not static_allowed:
            db_allowed = await self.whitelist.is_active(channel_id)
        allowed = static_allowed or db_allowed
        logger.info(
            "Channel %s -> staticAllowed=%s dbAllowed=%s final=%s",
            channel_id, static_allowed, db_allowed, allowed,
        )
        return allowed
