"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skillsurf.adapters.github import GitHubSource
from skillsurf.cache import ContentCache
from skillsurf.config import settings
from skillsurf.database import async_session, init_db
from skillsurf.queue import DiscoveryQueue
from skillsurf.routers import admin, owners, skills
from skillsurf.scheduler import DailyScheduler
from skillsurf.services.discovery_producer import DiscoveryProducer
from skillsurf.services.reconciler import RepositoryReconciler
from skillsurf.services.store import SkillStore

# ── Logging setup ────────────────────────────────────────────────────
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
# httpx logs every request at INFO, which drowns out the pipeline
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await init_db()

    source = GitHubSource.from_settings(settings)
    store = SkillStore(async_session)
    reconciler = RepositoryReconciler(
        source,
        store,
        settings.github_token,
        strict_validation=settings.strict_validation,
        raw_base=settings.github_raw_base,
    )
    queue = DiscoveryQueue(
        concurrency=settings.queue_concurrency,
        max_retries=settings.queue_max_retries,
        retry_base_delay=settings.queue_retry_base_delay,
    )
    producer = DiscoveryProducer(source, queue, settings.github_token)
    scheduler = DailyScheduler(producer.run, hour=settings.discovery_schedule_hour)

    app.state.source = source
    app.state.queue = queue
    app.state.producer = producer
    app.state.content_cache = ContentCache(
        stale_after=settings.content_cache_stale_after,
        expire_after=settings.content_cache_expire_after,
    )

    if not settings.github_configured:
        logger.warning("SKILLSURF_GITHUB_TOKEN is not set; discovery and sync are disabled")

    queue.start(reconciler.reconcile)
    if settings.discovery_schedule_enabled:
        scheduler.start()

    yield

    # Shutdown
    await scheduler.stop()
    await queue.stop()
    await source.aclose()


app = FastAPI(
    title="skills.surf",
    description="Directory of Agent Skills discovered on GitHub",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],  # Next.js dev
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(skills.router, prefix="/api/skills", tags=["skills"])
app.include_router(owners.router, prefix="/api/owners", tags=["owners"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])


@app.get("/health")
async def health():
    queue: DiscoveryQueue = app.state.queue
    return {
        "status": "ok",
        "service": "skillsurf",
        "github": {"configured": settings.github_configured},
        "queue": queue.stats(),
    }
