"""BlocklistHub backend application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blocklisthub.api.routes import blocklist, slack
from blocklisthub.config import settings
from blocklisthub.db import async_session_factory, dispose_db, init_db
from blocklisthub.services.hub import build_hub
from blocklisthub.services.slack_client import SlackWebClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    await init_db()

    slack_client = SlackWebClient()
    app.state.slack = slack_client
    app.state.hub = build_hub(async_session_factory, slack_client)
    if not slack_client.is_configured:
        logger.warning("BH_SLACK_BOT_TOKEN not set; audit channel and mention replies disabled")
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)

    yield

    await slack_client.cleanup()
    await dispose_db()
    logger.info("%s stopped", settings.APP_NAME)


# Create FastAPI application
app = FastAPI(
    title="BlocklistHub API",
    description="Slack slash commands for managing IP, hash, domain and URL blocklists",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routes
app.include_router(slack.router)
app.include_router(blocklist.router)


@app.get("/", tags=["health"])
async def root():
    """API health check."""
    return {
        "service": "BlocklistHub",
        "status": "running",
        "docs": "/docs",
    }
