"""Skill read service — paginated listing, lookups and stats over the store.

Soft-deleted skills, and skills of soft-deleted repositories, are never
returned.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from skillsurf.adapters.base import SkillSource
from skillsurf.cache import CacheEntry, ContentCache
from skillsurf.errors import GitHubError, MalformedManifest
from skillsurf.models import Owner, Repo, Skill, SkillTag, Tag
from skillsurf.schemas.skill import (
    CategoryCount,
    SkillContentResponse,
    SkillPage,
    SkillResponse,
    SkillLocation,
    SkillStats,
)
from skillsurf.utils.cursor import decode_cursor, encode_cursor
from skillsurf.utils.inference import SKILL_CATEGORIES
from skillsurf.utils.markdown import parse_skill_md

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 24
MAX_PAGE_SIZE = 100
TAG_BATCH_SIZE = 100  # keep IN (...) well under SQLite's variable limit


def install_command(owner: str, repo: str, path: str) -> str:
    return (
        f"git clone --depth 1 --filter=blob:none --sparse https://github.com/{owner}/{repo}.git"
        f" && cd {repo} && git sparse-checkout set {path}"
    )


def curl_command(raw_url: str) -> str:
    return f"curl -sL {raw_url}"


def _active_skills() -> Select:
    return (
        select(Skill, Repo, Owner)
        .join(Repo, Skill.repo_id == Repo.id)
        .join(Owner, Repo.owner_id == Owner.id)
        .where(Skill.deleted_at.is_(None), Repo.deleted_at.is_(None))
    )


def _after_cursor(stmt: Select, cursor: str | None) -> Select:
    decoded = decode_cursor(cursor)
    if decoded is None:
        return stmt
    stars, skill_id = decoded
    return stmt.where(
        or_(Repo.stars < stars, and_(Repo.stars == stars, Skill.id > skill_id))
    )


def _to_response(skill: Skill, repo: Repo, owner: Owner, tags: list[str]) -> SkillResponse:
    updated = skill.updated_at or datetime.now(timezone.utc)
    return SkillResponse(
        id=skill.id,
        name=skill.name,
        description=skill.description,
        license=skill.license,
        compatibility=skill.compatibility,
        metadata=json.loads(skill.metadata_json) if skill.metadata_json else None,
        source=SkillLocation(
            owner=owner.login,
            repo=repo.name,
            path=skill.path,
            branch=repo.default_branch,
            github_url=skill.github_url,
            raw_skill_md_url=skill.raw_url,
        ),
        category=skill.category,
        tags=sorted(tags),
        repo_stars=repo.stars,
        repo_description=repo.description,
        updated_at=updated.isoformat(),
        install_command=install_command(owner.login, repo.name, skill.path),
        curl_command=curl_command(skill.raw_url),
    )


async def _fetch_tags(db: AsyncSession, skill_ids: Sequence[str]) -> dict[str, list[str]]:
    tags: dict[str, list[str]] = {}
    for i in range(0, len(skill_ids), TAG_BATCH_SIZE):
        batch = list(skill_ids[i : i + TAG_BATCH_SIZE])
        rows = await db.execute(
            select(SkillTag.skill_id, Tag.name)
            .join(Tag, SkillTag.tag_id == Tag.id)
            .where(SkillTag.skill_id.in_(batch))
        )
        for skill_id, tag_name in rows.all():
            tags.setdefault(skill_id, []).append(tag_name)
    return tags


async def _page(db: AsyncSession, stmt: Select, cursor: str | None, limit: int) -> SkillPage:
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    stmt = _after_cursor(stmt, cursor).order_by(Repo.stars.desc(), Skill.id.asc()).limit(limit + 1)
    rows = (await db.execute(stmt)).all()

    has_more = len(rows) > limit
    items = rows[:limit]
    tags = await _fetch_tags(db, [skill.id for skill, _, _ in items])

    skills = [_to_response(skill, repo, owner, tags.get(skill.id, [])) for skill, repo, owner in items]
    next_cursor = None
    if has_more and items:
        last_skill, last_repo, _ = items[-1]
        next_cursor = encode_cursor(last_repo.stars, last_skill.id)
    return SkillPage(skills=skills, next_cursor=next_cursor)


async def list_skills(
    db: AsyncSession,
    cursor: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    search: str | None = None,
    categories: list[str] | None = None,
) -> SkillPage:
    stmt = _active_skills()
    if search and search.strip():
        term = search.strip()
        stmt = stmt.where(
            or_(
                Skill.name.icontains(term, autoescape=True),
                Skill.description.icontains(term, autoescape=True),
            )
        )
    if categories:
        stmt = stmt.where(Skill.category.in_(categories))
    return await _page(db, stmt, cursor, limit)


async def list_skills_by_owner(
    db: AsyncSession, owner: str, cursor: str | None = None, limit: int = DEFAULT_PAGE_SIZE
) -> SkillPage:
    stmt = _active_skills().where(func.lower(Owner.login) == owner.lower())
    return await _page(db, stmt, cursor, limit)


async def list_skills_by_repo(db: AsyncSession, owner: str, repo: str) -> list[SkillResponse]:
    stmt = (
        _active_skills()
        .where(func.lower(Owner.login) == owner.lower(), func.lower(Repo.name) == repo.lower())
        .order_by(Skill.name)
    )
    rows = (await db.execute(stmt)).all()
    tags = await _fetch_tags(db, [skill.id for skill, _, _ in rows])
    return [_to_response(skill, r, o, tags.get(skill.id, [])) for skill, r, o in rows]


async def _get_active_row(db: AsyncSession, skill_id: str):
    return (await db.execute(_active_skills().where(Skill.id == skill_id))).first()


async def get_skill(db: AsyncSession, skill_id: str) -> SkillResponse | None:
    row = await _get_active_row(db, skill_id)
    if row is None:
        return None
    skill, repo, owner = row
    tags = await _fetch_tags(db, [skill.id])
    return _to_response(skill, repo, owner, tags.get(skill.id, []))


async def get_stats(db: AsyncSession) -> SkillStats:
    active = and_(Skill.deleted_at.is_(None), Repo.deleted_at.is_(None))
    totals = (
        await db.execute(
            select(func.count(Skill.id), func.count(func.distinct(Skill.repo_id)))
            .join(Repo, Skill.repo_id == Repo.id)
            .where(active)
        )
    ).one()
    category_rows = await db.execute(
        select(Skill.category, func.count(Skill.id))
        .join(Repo, Skill.repo_id == Repo.id)
        .where(active, Skill.category.is_not(None))
        .group_by(Skill.category)
    )
    return SkillStats(
        total_skills=totals[0] or 0,
        total_repos=totals[1] or 0,
        category_counts={category: count for category, count in category_rows.all()},
    )


async def list_categories(db: AsyncSession) -> list[CategoryCount]:
    counts = (await get_stats(db)).category_counts
    return [
        CategoryCount(id=category_id, label=label, count=counts.get(category_id, 0))
        for category_id, label in SKILL_CATEGORIES
    ]


async def get_skill_content(
    db: AsyncSession, skill_id: str, source: SkillSource, cache: ContentCache
) -> SkillContentResponse | None:
    """Raw SKILL.md for a skill, served from cache and revalidated by ETag."""
    row = await _get_active_row(db, skill_id)
    if row is None:
        return None
    skill = row[0]
    key = skill.raw_url

    entry = cache.get(key)
    if entry is None or cache.is_stale(entry):
        entry = await _revalidate(source, cache, key, entry)

    try:
        _, body = parse_skill_md(entry.content)
    except MalformedManifest:
        body = entry.content
    return SkillContentResponse(id=skill.id, content=entry.content, etag=entry.etag, body=body)


async def _revalidate(
    source: SkillSource, cache: ContentCache, key: str, entry: CacheEntry | None
) -> CacheEntry:
    try:
        result = await source.fetch_with_conditional_get(key, entry.etag if entry else None)
    except GitHubError as exc:
        if entry is None:
            raise
        logger.warning("Serving stale SKILL.md for %s: %s", key, exc)
        return entry

    if result.not_modified and entry is not None:
        cache.touch(key)
        return entry
    if result.content is None:
        # 304 without anything cached to fall back on
        result = await source.fetch_with_conditional_get(key)
    return cache.set(key, result.content or "", result.etag)
