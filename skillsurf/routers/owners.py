"""Owner / repository scoped skill listings."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from skillsurf.database import get_db
from skillsurf.schemas.skill import SkillPage, SkillResponse
from skillsurf.services import skill_service

router = APIRouter()


@router.get("/{owner}/skills", response_model=SkillPage)
async def list_owner_skills(
    owner: str,
    cursor: str | None = None,
    limit: int = Query(skill_service.DEFAULT_PAGE_SIZE, ge=1, le=skill_service.MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
):
    return await skill_service.list_skills_by_owner(db, owner, cursor=cursor, limit=limit)


@router.get("/{owner}/{repo}/skills", response_model=list[SkillResponse])
async def list_repo_skills(owner: str, repo: str, db: AsyncSession = Depends(get_db)):
    return await skill_service.list_skills_by_repo(db, owner, repo)
