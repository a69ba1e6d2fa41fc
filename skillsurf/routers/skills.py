"""Skill read endpoints — listing, detail, stats and raw SKILL.md content."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from skillsurf.adapters.base import SkillSource
from skillsurf.cache import ContentCache
from skillsurf.database import get_db
from skillsurf.dependencies import get_content_cache, get_source
from skillsurf.errors import GitHubError
from skillsurf.schemas.skill import (
    CategoryCount,
    SkillContentResponse,
    SkillPage,
    SkillResponse,
    SkillStats,
)
from skillsurf.services import skill_service

router = APIRouter()


@router.get("/", response_model=SkillPage)
async def list_skills(
    cursor: str | None = None,
    limit: int = Query(skill_service.DEFAULT_PAGE_SIZE, ge=1, le=skill_service.MAX_PAGE_SIZE),
    search: str | None = None,
    categories: list[str] | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await skill_service.list_skills(
        db, cursor=cursor, limit=limit, search=search, categories=categories
    )


@router.get("/stats", response_model=SkillStats)
async def get_stats(db: AsyncSession = Depends(get_db)):
    return await skill_service.get_stats(db)


@router.get("/categories", response_model=list[CategoryCount])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await skill_service.list_categories(db)


@router.get("/{owner}/{repo}/{skill}", response_model=SkillResponse)
async def get_skill(owner: str, repo: str, skill: str, db: AsyncSession = Depends(get_db)):
    found = await skill_service.get_skill(db, f"{owner}/{repo}/{skill}")
    if not found:
        raise HTTPException(status_code=404, detail="Skill not found")
    return found


@router.get("/{owner}/{repo}/{skill}/content", response_model=SkillContentResponse)
async def get_skill_content(
    owner: str,
    repo: str,
    skill: str,
    db: AsyncSession = Depends(get_db),
    source: SkillSource = Depends(get_source),
    cache: ContentCache = Depends(get_content_cache),
):
    try:
        content = await skill_service.get_skill_content(db, f"{owner}/{repo}/{skill}", source, cache)
    except GitHubError as exc:
        raise HTTPException(status_code=502, detail=f"Could not fetch SKILL.md: {exc}")
    if not content:
        raise HTTPException(status_code=404, detail="Skill not found")
    return content
