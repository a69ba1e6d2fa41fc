"""Admin triggers — run discovery now, or enqueue one repository."""

from fastapi import APIRouter, Depends, HTTPException

from skillsurf.dependencies import get_producer, get_queue, require_admin
from skillsurf.errors import GitHubError
from skillsurf.queue import DiscoveryQueue
from skillsurf.schemas.discovery import DiscoveryJob, DiscoveryRunResult
from skillsurf.services.discovery_producer import DiscoveryProducer

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/discover", response_model=DiscoveryRunResult)
async def run_discovery(producer: DiscoveryProducer = Depends(get_producer)):
    try:
        result = await producer.run()
    except GitHubError as exc:
        raise HTTPException(status_code=502, detail=f"Discovery failed: {exc}")
    if result.skipped_reason:
        raise HTTPException(status_code=503, detail=result.skipped_reason)
    return result


@router.post("/repos/{owner}/{repo}", status_code=202)
async def enqueue_repo(owner: str, repo: str, queue: DiscoveryQueue = Depends(get_queue)):
    job = DiscoveryJob.for_repo(owner, repo)
    await queue.send(job)
    return {"enqueued": job.to_message()}


@router.get("/queue")
async def queue_stats(queue: DiscoveryQueue = Depends(get_queue)):
    return queue.stats()
