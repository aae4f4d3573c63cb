"""Slack transport — slash-command webhook and Events API endpoint."""

import asyncio
import json
import logging
from urllib.parse import parse_qs

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from pydantic import BaseModel

from blocklisthub.api.deps import get_hub, get_slack
from blocklisthub.config import settings
from blocklisthub.core.security import verify_slack_signature
from blocklisthub.core.status import StatusMarker
from blocklisthub.services.hub import BlocklistHub, CommandResponse
from blocklisthub.services.slack_client import SlackWebClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"])

PROCESSING_TEXT = f"{StatusMarker.PENDING} processing…"
ALIVE_TEXT = "👋 I'm alive and managing IoC blocklist commands (/ip, /hash, /domain, /url)."


# ── Models ────────────────────────────────────────────────────────────


class SlashCommand(BaseModel):
    command: str
    text: str = ""
    user_id: str
    team_id: str | None = None
    channel_id: str
    response_url: str | None = None


class SlackAck(BaseModel):
    response_type: str = "ephemeral"
    text: str


# ── Helpers ───────────────────────────────────────────────────────────


async def _verified_body(request: Request) -> bytes:
    body = await request.body()
    secret = settings.SLACK_SIGNING_SECRET
    if secret and not verify_slack_signature(
        secret,
        request.headers.get("X-Slack-Request-Timestamp"),
        request.headers.get("X-Slack-Signature"),
        body,
    ):
        logger.warning("Rejected Slack request with bad signature from %s", request.client)
        raise HTTPException(status_code=401, detail="Invalid Slack signature")
    return body


def _parse_form(body: bytes) -> SlashCommand:
    fields = {k: v[0] for k, v in parse_qs(body.decode("utf-8"), keep_blank_values=True).items()}
    try:
        return SlashCommand(**fields)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Malformed slash command: {e}")


async def run_slash_command(hub: BlocklistHub, slack: SlackWebClient, cmd: SlashCommand) -> None:
    """Execute a command under the outer deadline and deliver the replies."""
    try:
        response = await asyncio.wait_for(
            hub.handle_command(cmd.command, cmd.text, cmd.user_id, cmd.team_id, cmd.channel_id),
            timeout=settings.COMMAND_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.error("Command %s '%s' timed out for user %s", cmd.command, cmd.text, cmd.user_id)
        response = CommandResponse(
            f"{StatusMarker.ERROR} Internal error: command timed out after "
            f"{settings.COMMAND_TIMEOUT_SECONDS:g}s",
            "ephemeral",
        )

    if cmd.response_url:
        try:
            await slack.respond(cmd.response_url, response.text, response.response_type)
        except Exception as e:
            logger.error("Failed to respond to %s: %s", cmd.command, e)

    if response.audit_text and settings.SLACK_AUDIT_CHANNEL and slack.is_configured:
        try:
            await slack.post_message(settings.SLACK_AUDIT_CHANNEL, response.audit_text)
        except Exception as e:
            logger.error("Failed to post audit line for %s: %s", cmd.command, e)


# ── Routes ────────────────────────────────────────────────────────────


@router.post("/commands", response_model=SlackAck)
async def slash_command(
    request: Request,
    background: BackgroundTasks,
    hub: BlocklistHub = Depends(get_hub),
    slack: SlackWebClient = Depends(get_slack),
):
    """Acknowledge immediately; the result arrives later via ``response_url``."""
    body = await _verified_body(request)
    cmd = _parse_form(body)
    logger.info(
        "Received %s '%s' from user=%s in channel=%s",
        cmd.command, cmd.text, cmd.user_id, cmd.channel_id,
    )
    background.add_task(run_slash_command, hub, slack, cmd)
    return SlackAck(text=PROCESSING_TEXT)


@router.post("/events")
async def slack_events(
    request: Request,
    background: BackgroundTasks,
    slack: SlackWebClient = Depends(get_slack),
):
    body = await _verified_body(request)
    try:
        payload = json.loads(body or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge", "")}

    event = payload.get("event") or {}
    if payload.get("type") == "event_callback" and event.get("type") == "app_mention":
        channel = event.get("channel")
        logger.info("App mentioned in channel %s", channel)
        if channel and slack.is_configured:
            background.add_task(slack.post_message, channel, ALIVE_TEXT)

    return {"ok": True}
