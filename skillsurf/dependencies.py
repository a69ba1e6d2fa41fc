"""FastAPI dependencies for pipeline objects built in the lifespan."""

import hmac

from fastapi import Header, HTTPException, Request

from skillsurf.adapters.base import SkillSource
from skillsurf.cache import ContentCache
from skillsurf.config import settings
from skillsurf.queue import DiscoveryQueue
from skillsurf.services.discovery_producer import DiscoveryProducer


def get_source(request: Request) -> SkillSource:
    return request.app.state.source


def get_content_cache(request: Request) -> ContentCache:
    return request.app.state.content_cache


def get_queue(request: Request) -> DiscoveryQueue:
    return request.app.state.queue


def get_producer(request: Request) -> DiscoveryProducer:
    return request.app.state.producer


async def require_admin(x_admin_secret: str | None = Header(default=None)) -> None:
    if not settings.admin_secret:
        raise HTTPException(status_code=503, detail="Admin endpoints are disabled")
    if not x_admin_secret or not hmac.compare_digest(x_admin_secret, settings.admin_secret):
        raise HTTPException(status_code=401, detail="Invalid admin secret")
