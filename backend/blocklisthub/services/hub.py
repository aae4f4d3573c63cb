"""BlocklistHub — wires the four indicator kinds to their stores and engines.

Also runs the transport-side flow of one slash command:
channel check -> parse -> route -> format.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blocklisthub.core.audit import IocAuditRecorder
from blocklisthub.core.kinds import ALL_KINDS, KINDS_BY_COMMAND, IndicatorKind, IocType
from blocklisthub.core.status import StatusMarker
from blocklisthub.db.repositories.indicators import IndicatorRepository
from blocklisthub.db.repositories.slack import ChannelWhitelistRepository, SlackUserRepository
from blocklisthub.services.bulk import BulkCoordinator
from blocklisthub.services.channel_access import DENIED_MESSAGE, ChannelAccessService
from blocklisthub.services.command_router import CommandRouter, parse_command
from blocklisthub.services.formatter import build_audit_message, pretty_result_for_channel
from blocklisthub.services.identity import OperatorDirectory
from blocklisthub.services.lifecycle import LifecycleEngine
from blocklisthub.services.slack_client import SlackWebClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResponse:
    text: str
    response_type: str = "in_channel"   # in_channel | ephemeral
    audit_text: Optional[str] = None


class BlocklistHub:
    def __init__(
        self,
        routers: dict[IocType, CommandRouter],
        channel_access: ChannelAccessService,
        audit: IocAuditRecorder,
    ):
        self.routers = routers
        self.channel_access = channel_access
        self.audit = audit

    def router_for(self, kind: IndicatorKind) -> CommandRouter:
        return self.routers[kind.ioc_type]

    def engine_for(self, kind: IndicatorKind) -> LifecycleEngine:
        return self.routers[kind.ioc_type].engine

    async def handle_command(
        self,
        command_name: str,
        text: str | None,
        user_id: str,
        team_id: str | None,
        channel_id: str,
    ) -> CommandResponse:
        kind = KINDS_BY_COMMAND.get(command_name)
        if kind is None:
            return CommandResponse(
                f"{StatusMarker.WARNING} Unsupported command `{command_name}`", "ephemeral"
            )

        try:
            if not await self.channel_access.is_allowed(channel_id):
                logger.warning("Command from user %s in unauthorized channel %s", user_id, channel_id)
                return CommandResponse(DENIED_MESSAGE)

            parsed = parse_command(text)
            raw = await self.router_for(kind).dispatch(parsed, user_id, team_id, channel_id)
        except Exception as e:
            logger.error("Error executing command for user %s: %s", user_id, e, exc_info=True)
            return CommandResponse(f"{StatusMarker.ERROR} Internal error: {e}", "ephemeral")

        return CommandResponse(
            text=pretty_result_for_channel(user_id, raw, parsed),
            audit_text=build_audit_message(user_id, kind.command, parsed) if parsed.sub else None,
        )

    async def export(self, kind: IndicatorKind) -> str:
        """Published blocklist: one active value per line, newline-terminated."""
        values = await self.engine_for(kind).active_values()
        return "\n".join(values) + "\n"


def build_hub(
    session_factory: async_sessionmaker[AsyncSession],
    slack: SlackWebClient | None = None,
    static_channels: list[str] | None = None,
) -> BlocklistHub:
    audit = IocAuditRecorder(session_factory)
    operators = OperatorDirectory(SlackUserRepository(session_factory), slack)

    routers: dict[IocType, CommandRouter] = {}
    for kind in ALL_KINDS:
        engine = LifecycleEngine(kind, IndicatorRepository(kind, session_factory), audit, operators)
        routers[kind.ioc_type] = CommandRouter(engine, BulkCoordinator(engine))

    channel_access = ChannelAccessService(
        ChannelWhitelistRepository(session_factory), static_channels
    )
    return BlocklistHub(routers, channel_access, audit)
