"""Discovery job message — producer → queue → reconciler."""

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from skillsurf.schemas.github import RepoStub


class DiscoveryJob(BaseModel):
    """One repository to reconcile.

    Serialized with camelCase keys (``repoFullName``, ``isFork`` …). Only
    ``owner``/``repo`` are trusted; the rest are hints the reconciler
    replaces with a fresh repository lookup.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    repo_full_name: str
    owner: str
    repo: str
    default_branch: str = "main"
    stars: int = 0
    is_fork: bool = False
    owner_type: str = "User"
    owner_avatar_url: str | None = None
    description: str | None = None
    license: str | None = None

    @classmethod
    def from_stub(cls, stub: RepoStub) -> "DiscoveryJob":
        return cls(
            repo_full_name=stub.full_name,
            owner=stub.owner,
            repo=stub.name,
            default_branch=stub.default_branch,
            stars=stub.stars,
            is_fork=stub.is_fork,
            owner_type=stub.owner_type,
            owner_avatar_url=stub.owner_avatar_url,
            description=stub.description,
            license=stub.license,
        )

    @classmethod
    def for_repo(cls, owner: str, repo: str) -> "DiscoveryJob":
        """Minimal job for a manually registered repository."""
        return cls(repo_full_name=f"{owner}/{repo}", owner=owner, repo=repo)

    def to_message(self) -> dict:
        return self.model_dump(by_alias=True)


class ReconcileStatus(StrEnum):
    NOT_FOUND = "not_found"  # repo lookup 404'd, known repo tombstoned
    EMPTIED = "emptied"  # no SKILL.md left, repo tombstoned
    SYNCED = "synced"


class ReconcileResult(BaseModel):
    repo_full_name: str
    status: ReconcileStatus
    upserted: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)  # manifest paths that failed


class DiscoveryRunResult(BaseModel):
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    found: int = 0
    enqueued: int = 0
    failed: int = 0
    skipped_reason: str | None = None
    duration_ms: int = 0
