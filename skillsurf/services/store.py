"""Store — the reconciler's write path into owners/repos/skills/tags.

Every method opens its own session and commits on return. Writes are
single-row upserts (``INSERT … ON CONFLICT``), never one transaction across
tables, so a crash mid-repository leaves partial progress that the next
pass converges.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from skillsurf.models import Owner, Repo, Skill, SkillTag, Tag
from skillsurf.models.tag import generate_id
from skillsurf.schemas.github import RepoInfo
from skillsurf.schemas.skill import SkillUpsert


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _insert(session: AsyncSession, model):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upserts are not supported on {dialect!r}")


class SkillStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def upsert_owner(
        self, login: str, owner_type: str, avatar_url: str | None, html_url: str
    ) -> None:
        now = utcnow()
        async with self.session_factory() as session:
            stmt = _insert(session, Owner).values(
                id=login,
                login=login,
                type=owner_type,
                avatar_url=avatar_url,
                html_url=html_url,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["id"],
                set_={
                    "type": stmt.excluded["type"],
                    "avatar_url": stmt.excluded.avatar_url,
                    "html_url": stmt.excluded.html_url,
                    "updated_at": now,
                },
            )
            await session.execute(stmt)
            await session.commit()

    async def upsert_repo(self, repo_id: str, owner_id: str, name: str, info: RepoInfo) -> None:
        """Insert or refresh a repository and clear its tombstone."""
        now = utcnow()
        async with self.session_factory() as session:
            stmt = _insert(session, Repo).values(
                id=repo_id,
                owner_id=owner_id,
                name=name,
                full_name=repo_id,
                description=info.description,
                html_url=f"https://github.com/{repo_id}",
                stars=info.stars,
                default_branch=info.default_branch,
                is_fork=info.is_fork,
                license=info.license,
                last_synced_at=now,
                deleted_at=None,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["id"],
                set_={
                    "description": stmt.excluded.description,
                    "stars": stmt.excluded.stars,
                    "default_branch": stmt.excluded.default_branch,
                    "is_fork": stmt.excluded.is_fork,
                    "license": stmt.excluded.license,
                    "last_synced_at": now,
                    "deleted_at": None,
                    "updated_at": now,
                },
            )
            await session.execute(stmt)
            await session.commit()

    async def soft_delete_repo(self, repo_id: str) -> None:
        """Tombstone a repository; ids match case-insensitively, unknown ids are a no-op."""
        async with self.session_factory() as session:
            await session.execute(
                update(Repo)
                .where(func.lower(Repo.id) == repo_id.lower())
                .values(deleted_at=utcnow())
            )
            await session.commit()

    async def upsert_skill(self, skill: SkillUpsert) -> None:
        """Insert or refresh a skill and clear its tombstone."""
        now = utcnow()
        values = skill.model_dump()
        async with self.session_factory() as session:
            stmt = _insert(session, Skill).values(**values, deleted_at=None)
            refreshed = {
                key: stmt.excluded[key] for key in values if key not in ("id", "repo_id")
            }
            stmt = stmt.on_conflict_do_update(
                index_elements=["id"],
                set_={**refreshed, "deleted_at": None, "updated_at": now},
            )
            await session.execute(stmt)
            await session.commit()

    async def replace_skill_tags(self, skill_id: str, tag_names: set[str] | list[str]) -> None:
        """Drop every tag link for ``skill_id`` and link exactly ``tag_names``."""
        async with self.session_factory() as session:
            await session.execute(delete(SkillTag).where(SkillTag.skill_id == skill_id))

            for name in sorted(tag_names):
                tag_stmt = _insert(session, Tag).values(id=generate_id(), name=name)
                await session.execute(tag_stmt.on_conflict_do_nothing(index_elements=["name"]))
                tag_id = (await session.execute(select(Tag.id).where(Tag.name == name))).scalar_one()

                link = _insert(session, SkillTag).values(skill_id=skill_id, tag_id=tag_id)
                await session.execute(link.on_conflict_do_nothing())

            await session.commit()

    async def list_active_skill_ids(self, repo_id: str) -> list[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Skill.id).where(Skill.repo_id == repo_id, Skill.deleted_at.is_(None))
            )
            return list(result.scalars().all())

    async def soft_delete_skills(self, skill_ids: list[str]) -> None:
        if not skill_ids:
            return
        async with self.session_factory() as session:
            await session.execute(
                update(Skill).where(Skill.id.in_(skill_ids)).values(deleted_at=utcnow())
            )
            await session.commit()
