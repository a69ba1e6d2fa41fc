"""GitHub-side value objects returned by the source adapter."""

from pydantic import BaseModel


class RepoStub(BaseModel):
    """A repository as seen in code-search results.

    Code search omits stars, default branch and license, so those carry
    placeholders until the reconciler looks the repository up.
    """

    full_name: str
    owner: str
    owner_type: str = "User"
    owner_avatar_url: str | None = None
    owner_html_url: str | None = None
    name: str
    description: str | None = None
    html_url: str | None = None
    stars: int = 0
    default_branch: str = "main"
    is_fork: bool = False
    license: str | None = None


class RepoInfo(RepoStub):
    """Authoritative repository metadata from ``GET /repos/{owner}/{repo}``."""

    stars: int
    default_branch: str


class ConditionalResult(BaseModel):
    content: str | None = None
    etag: str | None = None
    not_modified: bool = False
