"""Published blocklists — plain-text feeds of active indicators for edge devices."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from blocklisthub.api.deps import get_hub
from blocklisthub.core.kinds import DOMAIN, HASH, IP, URL, IndicatorKind
from blocklisthub.services.hub import BlocklistHub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blacklist", tags=["blocklist"])


async def _feed(hub: BlocklistHub, kind: IndicatorKind) -> PlainTextResponse:
    try:
        body = await hub.export(kind)
    except Exception as e:
        logger.error("Failed to export %s blocklist: %s", kind.label, e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"{kind.label} blocklist unavailable")
    return PlainTextResponse(body, media_type="text/plain; charset=utf-8")


@router.get(f"/{IP.export_name}", response_class=PlainTextResponse)
async def ip_blocklist(hub: BlocklistHub = Depends(get_hub)):
    return await _feed(hub, IP)


@router.get(f"/{HASH.export_name}", response_class=PlainTextResponse)
async def hash_blocklist(hub: BlocklistHub = Depends(get_hub)):
    return await _feed(hub, HASH)


@router.get(f"/{DOMAIN.export_name}", response_class=PlainTextResponse)
async def domain_blocklist(hub: BlocklistHub = Depends(get_hub)):
    return await _feed(hub, DOMAIN)


@router.get(f"/{URL.export_name}", response_class=PlainTextResponse)
async def url_blocklist(hub: BlocklistHub = Depends(get_hub)):
    return await _feed(hub, URL)
