"""Slack message formatting for command results.

Pure string transforms: a terse audit line for the permanent record and the
public ``in_channel`` rendering of an engine result.
"""

from blocklisthub.core.status import RESULT_MARKERS, StatusMarker
from blocklisthub.services.command_router import ParsedCommand

# Subcommands whose trailing text is a reason worth echoing
REASON_SUBCOMMANDS = frozenset({"add", "deactivate", "reactivate", "edit"})


def _capitalize(s: str | None) -> str:
    if not s or not s.strip():
        return ""
    return s[0].upper() + s[1:]


def build_audit_message(user_id: str, command_name: str, parsed: ParsedCommand) -> str:
    """``:memo: <@U123> Add *IP* `1.2.3.4`` plus the reason line, if any."""
    action = _capitalize(parsed.sub)
    ioc_type = (command_name or "").replace("/", "").upper()

    out = f":memo: <@{user_id}> {action}"
    if ioc_type.strip():
        out += f" *{ioc_type}*"
    if parsed.argument.strip():
        out += f" `{parsed.argument}`"

    reason = parsed.reason
    if reason is not None:
        label = "new reason" if parsed.sub.lower() == "edit" else "reason"
        out += f"\n *{label}:* {reason}"
    return out


def split_marker(raw: str | None) -> tuple[StatusMarker, str]:
    """Separate the leading status marker from the rest of an engine result."""
    msg = (raw or "").strip()
    for marker in RESULT_MARKERS:
        if msg.startswith(marker.value):
            return marker, msg[len(marker.value):].strip()
    return StatusMarker.SUCCESS, msg


def pretty_result_for_channel(user_id: str, raw: str | None, parsed: ParsedCommand) -> str:
    marker, rest = split_marker(raw)
    out = f"{marker} <@{user_id}> {rest}"

    sub = (parsed.sub or "").lower()
    reason = parsed.reason
    if reason is not None and sub in REASON_SUBCOMMANDS:
        label = "new reason" if sub == "edit" else "reason"
        out += f"\n {label}: {reason}"
    return out
