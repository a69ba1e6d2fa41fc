"""Exception taxonomy for the discovery / reconciliation pipeline."""


class SkillSurfError(Exception):
    """Base class for pipeline errors."""


class MalformedManifest(SkillSurfError):
    """SKILL.md text has no parseable ``---`` frontmatter block."""


class ValidationFailed(SkillSurfError):
    """Frontmatter parsed but breaks the Agent Skills naming/shape contract."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class GitHubError(SkillSurfError):
    """Base class for failures talking to GitHub."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimited(GitHubError):
    """GitHub answered 403/429 — stop the current query, carry on elsewhere."""


class TransientNetworkError(GitHubError):
    """Transport failure or unexpected status — the whole job should be retried."""


class AuthMissing(SkillSurfError):
    """No GitHub token configured; search and bulk tree calls cannot run."""
