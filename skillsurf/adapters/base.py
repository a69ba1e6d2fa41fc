"""Abstract base class for skill sources.

The producer and reconciler only talk to this interface, so tests (or a
future GitLab source) can stand in for GitHub.
"""

from abc import ABC, abstractmethod

from skillsurf.schemas.github import ConditionalResult, RepoInfo, RepoStub


class SkillSource(ABC):
    """Contract that any skill-hosting backend must satisfy."""

    @abstractmethod
    async def get_repository_info(self, owner: str, repo: str) -> RepoInfo | None:
        """Return current repository metadata, or None if it no longer exists."""

    @abstractmethod
    async def list_manifest_paths(self, owner: str, repo: str, branch: str) -> list[str]:
        """Return the directory of every SKILL.md in the tree ("" for the root)."""

    @abstractmethod
    async def fetch_raw_content(self, owner: str, repo: str, branch: str, path: str) -> str:
        """Return the raw text of one file; raise on any non-2xx."""

    @abstractmethod
    async def search_repositories_with_manifests(self) -> list[RepoStub]:
        """Return every repository that appears to contain SKILL.md files."""

    @abstractmethod
    async def fetch_with_conditional_get(
        self, url: str, previous_etag: str | None = None
    ) -> ConditionalResult:
        """Fetch ``url`` revalidating against ``previous_etag``."""

    async def aclose(self) -> None:
        """Release any held connections."""
