"""Slash-command parsing and dispatch.

``/ip add 1.2.3.4 seen in phishing campaign`` parses into
``ParsedCommand(sub="add", argument="1.2.3.4", tail="seen in phishing campaign")``.
Everything after the first argument is kept verbatim so reasons may contain
spaces. Dispatch only picks the engine call; it does no I/O itself.
"""

import logging
from dataclasses import dataclass

from blocklisthub.core.status import StatusMarker
from blocklisthub.services.bulk import BulkCoordinator
from blocklisthub.services.lifecycle import LifecycleEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedCommand:
    sub: str = ""
    argument: str = ""
    tail: str = ""

    @property
    def reason(self) -> str | None:
        """Trailing text, or None when blank."""
        return self.tail if self.tail and self.tail.strip() else None


def parse_command(text: str | None) -> ParsedCommand:
    if not text or not text.strip():
        return ParsedCommand()

    parts = text.strip().split(maxsplit=2)
    sub = parts[0].lower()
    if len(parts) == 1:
        return ParsedCommand(sub=sub)
    if len(parts) == 2:
        return ParsedCommand(sub=sub, argument=parts[1])
    return ParsedCommand(sub=sub, argument=parts[1], tail=parts[2])


class CommandRouter:
    """Routes one parsed command to the lifecycle engine or bulk coordinator of a kind."""

    def __init__(self, engine: LifecycleEngine, bulk: BulkCoordinator):
        self.engine = engine
        self.bulk = bulk
        self.kind = engine.kind

    def usage(self) -> str:
        cmd = self.kind.command
        label = self.kind.label
        return (
            "Usage:\n"
            f"• {cmd} add <{label}> [reason]\n"
            f"• {cmd} deactivate <{label}> [reason]\n"
            f"• {cmd} reactivate <{label}> [reason]\n"
            f"• {cmd} edit <{label}> <new reason>\n"
            f"• {cmd} list\n"
            f"• {cmd} bulk <{label}1,{label}2,...> [reason]\n"
        )

    async def dispatch(
        self,
        parsed: ParsedCommand,
        slack_user_id: str,
        team_id: str | None = None,
        channel_id: str | None = None,
    ) -> str:
        sub = parsed.sub or ""
        kind = self.kind.label.lower()

        if sub == "":
            return self.usage()

        if sub in ("add", "deactivate", "reactivate", "edit"):
            logger.info(
                "CMD %s %s=%s by user=%s in channel=%s",
                sub, kind, parsed.argument, slack_user_id, channel_id,
            )
            operation = getattr(self.engine, sub)
            return await operation(slack_user_id, team_id, parsed.argument, parsed.reason)

        if sub == "list":
            logger.info("CMD list %s by user=%s in channel=%s", kind, slack_user_id, channel_id)
            return await self.engine.list(True, self.kind.list_limit)

        if sub == "bulk":
            logger.info(
                "CMD bulk add %s by user=%s in channel=%s", kind, slack_user_id, channel_id
            )
            return await self.bulk.bulk_add(slack_user_id, team_id, parsed.argument, parsed.reason)

        return (
            f"{StatusMarker.WARNING} Unknown subcommand: `{sub}`\n"
            f"Try `{self.kind.command} list` or see `{self.kind.command}` usage."
        )
