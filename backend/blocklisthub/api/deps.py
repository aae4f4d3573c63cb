"""Request-scoped accessors for objects built at startup."""

from fastapi import Request

from blocklisthub.services.hub import BlocklistHub
from blocklisthub.services.slack_client import SlackWebClient


def get_hub(request: Request) -> BlocklistHub:
    return request.app.state.hub


def get_slack(request: Request) -> SlackWebClient:
    return request.app.state.slack
