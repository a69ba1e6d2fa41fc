"""Discovery producer — finds repositories with SKILL.md files and enqueues them."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from skillsurf.adapters.base import SkillSource
from skillsurf.queue import DiscoveryQueue
from skillsurf.schemas.discovery import DiscoveryJob, DiscoveryRunResult

logger = logging.getLogger(__name__)


class DiscoveryProducer:
    """One discovery run = one code search + one job per unique repository.

    Known repositories are not filtered out here; the reconciler's upserts
    make re-processing them harmless.
    """

    def __init__(self, source: SkillSource, queue: DiscoveryQueue, token: str | None) -> None:
        self.source = source
        self.queue = queue
        self.token = token

    async def run(self) -> DiscoveryRunResult:
        start = time.monotonic()
        result = DiscoveryRunResult()
        logger.info("[producer] Starting discovery at %s", datetime.now(timezone.utc).isoformat())

        if not self.token:
            logger.error("[producer] GitHub token not configured, skipping discovery")
            result.skipped_reason = "github token not configured"
            return result

        try:
            repos = await self.source.search_repositories_with_manifests()
        except Exception:
            logger.exception("[producer] Discovery failed")
            raise
        result.found = len(repos)
        logger.info("[producer] Found %d repositories with SKILL.md files", len(repos))

        for stub in repos:
            try:
                await self.queue.send(DiscoveryJob.from_stub(stub))
            except Exception:
                logger.exception("[producer] Failed to enqueue %s", stub.full_name)
                result.failed += 1
                continue
            result.enqueued += 1

        result.duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "[producer] Enqueued %d repositories in %dms (%d failed)",
            result.enqueued, result.duration_ms, result.failed,
        )
        return result
