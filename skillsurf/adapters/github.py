"""GitHub source adapter — REST API, code search and raw content over httpx.

Rate limits worth knowing:
    - code search: 30 requests/minute authenticated, max 1000 results/query
    - core REST: 5000 requests/hour authenticated
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from skillsurf.adapters.base import SkillSource
from skillsurf.config import Settings
from skillsurf.errors import AuthMissing, GitHubError, RateLimited, TransientNetworkError
from skillsurf.schemas.github import ConditionalResult, RepoInfo, RepoStub

logger = logging.getLogger(__name__)

GITHUB_WEB_BASE = "https://github.com"
SEARCH_PER_PAGE = 100


def build_github_url(owner: str, repo: str, branch: str, path: str) -> str:
    url = f"{GITHUB_WEB_BASE}/{owner}/{repo}/tree/{branch}"
    return f"{url}/{path}" if path else url


def build_raw_skill_md_url(
    owner: str, repo: str, branch: str, path: str, raw_base: str = "https://raw.githubusercontent.com"
) -> str:
    skill_md = f"{path}/SKILL.md" if path else "SKILL.md"
    return f"{raw_base}/{owner}/{repo}/{branch}/{skill_md}"


def manifest_file_path(path: str) -> str:
    """Skill directory → path of its SKILL.md within the repo."""
    return f"{path}/SKILL.md" if path else "SKILL.md"


class GitHubSource(SkillSource):
    """Skill source backed by the public GitHub APIs.

    Example usage:
        ```python
        source = GitHubSource.from_settings(settings)
        info = await source.get_repository_info("anthropics", "skills")
        paths = await source.list_manifest_paths("anthropics", "skills", info.default_branch)
        await source.aclose()
        ```
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        api_base: str = "https://api.github.com",
        raw_base: str = "https://raw.githubusercontent.com",
        user_agent: str = "skills.surf",
        timeout: float = 30.0,
        search_queries: list[str] | None = None,
        search_page_delay: float = 0.1,
        search_query_delay: float = 0.5,
        search_max_results: int = 1000,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.token = token or None
        self.api_base = api_base.rstrip("/")
        self.raw_base = raw_base.rstrip("/")
        self.user_agent = user_agent
        self.search_queries = list(search_queries or [])
        self.search_page_delay = search_page_delay
        self.search_query_delay = search_query_delay
        self.search_max_results = search_max_results
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> GitHubSource:
        return cls(
            settings.github_token,
            api_base=settings.github_api_base,
            raw_base=settings.github_raw_base,
            user_agent=settings.user_agent,
            timeout=settings.http_timeout,
            search_queries=settings.search_queries,
            search_page_delay=settings.search_page_delay,
            search_query_delay=settings.search_query_delay,
            search_max_results=settings.search_max_results,
            client=client,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── HTTP plumbing ────────────────────────────────────────────────

    def _headers(self, *, api: bool = True, etag: str | None = None) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if api:
            headers["Accept"] = "application/vnd.github.v3+json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if etag:
            headers["If-None-Match"] = etag
        return headers

    async def _get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            return await self._client.get(url, params=params, headers=headers or self._headers())
        except httpx.RequestError as exc:
            raise TransientNetworkError(f"GitHub request failed: {exc!r}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response, what: str) -> None:
        status = response.status_code
        if response.is_success:
            return
        if status == 429 or (status == 403 and _looks_rate_limited(response)):
            raise RateLimited(f"{what}: rate limited ({status})", status)
        raise TransientNetworkError(f"{what}: {status} {response.reason_phrase}", status)

    # ── Repository metadata ──────────────────────────────────────────

    async def get_repository_info(self, owner: str, repo: str) -> RepoInfo | None:
        response = await self._get(f"{self.api_base}/repos/{owner}/{repo}")
        if response.status_code == 404:
            logger.info("Repo %s/%s not found (404)", owner, repo)
            return None
        self._raise_for_status(response, f"Failed to fetch repo info for {owner}/{repo}")

        data = response.json()
        repo_owner = data.get("owner") or {}
        license_info = data.get("license") or {}
        return RepoInfo(
            full_name=data["full_name"],
            owner=repo_owner.get("login", owner),
            owner_type=repo_owner.get("type", "User"),
            owner_avatar_url=repo_owner.get("avatar_url"),
            owner_html_url=repo_owner.get("html_url"),
            name=data.get("name", repo),
            description=data.get("description"),
            html_url=data.get("html_url"),
            stars=data.get("stargazers_count", 0),
            default_branch=data.get("default_branch") or "main",
            is_fork=bool(data.get("fork", False)),
            license=license_info.get("spdx_id"),
        )

    # ── Tree listing ─────────────────────────────────────────────────

    async def list_manifest_paths(self, owner: str, repo: str, branch: str) -> list[str]:
        url = f"{self.api_base}/repos/{owner}/{repo}/git/trees/{branch}"
        response = await self._get(url, params={"recursive": "1"})
        # 404: repo gone/private; 409: repository is empty
        if response.status_code in (404, 409):
            logger.info("Tree for %s/%s@%s unavailable (%d)", owner, repo, branch, response.status_code)
            return []
        self._raise_for_status(response, f"Failed to fetch repo tree for {owner}/{repo}")

        data = response.json()
        if data.get("truncated"):
            logger.warning("Tree for %s/%s is truncated; some SKILL.md files may be missed", owner, repo)

        paths: list[str] = []
        for item in data.get("tree", []):
            if item.get("type") != "blob":
                continue
            path = item.get("path", "")
            if path == "SKILL.md":
                paths.append("")
            elif path.endswith("/SKILL.md"):
                paths.append(path[: -len("/SKILL.md")])
        return paths

    # ── Raw content ──────────────────────────────────────────────────

    async def fetch_raw_content(self, owner: str, repo: str, branch: str, path: str) -> str:
        url = f"{self.raw_base}/{owner}/{repo}/{branch}/{path}"
        response = await self._get(url, headers=self._headers(api=False))
        if not response.is_success:
            raise GitHubError(f"Failed to fetch {path}: {response.status_code}", response.status_code)
        return response.text

    async def fetch_with_conditional_get(
        self, url: str, previous_etag: str | None = None
    ) -> ConditionalResult:
        response = await self._get(url, headers=self._headers(etag=previous_etag))
        if response.status_code == 304:
            return ConditionalResult(content=None, etag=previous_etag, not_modified=True)
        self._raise_for_status(response, f"Failed to fetch {url}")
        return ConditionalResult(
            content=response.text,
            etag=response.headers.get("etag"),
            not_modified=False,
        )

    # ── Code search ──────────────────────────────────────────────────

    async def _search_page(self, query: str, page: int) -> dict[str, Any]:
        response = await self._get(
            f"{self.api_base}/search/code",
            params={"q": query, "per_page": SEARCH_PER_PAGE, "page": page},
        )
        if response.status_code == 403:
            # Search answers 403 (not 429) when the secondary limit trips
            raise RateLimited(f"Search rate limited at page {page}", 403)
        self._raise_for_status(response, f"GitHub search failed for {query!r}")
        return response.json()

    async def search_repositories_with_manifests(self) -> list[RepoStub]:
        if not self.token:
            raise AuthMissing("GitHub code search requires a token")

        repos: dict[str, RepoStub] = {}
        logger.info("Starting search for SKILL.md files (%d queries)", len(self.search_queries))

        for index, query in enumerate(self.search_queries):
            if index:
                await asyncio.sleep(self.search_query_delay)
            logger.info("Query: %s", query)
            page = 1
            while True:
                try:
                    data = await self._search_page(query, page)
                except RateLimited:
                    logger.warning(
                        "Rate limited at page %d, moving to next query (%d repos so far)",
                        page, len(repos),
                    )
                    break

                items = data.get("items", [])
                logger.info("Page %d: %d results (total: %s)", page, len(items), data.get("total_count"))

                for item in items:
                    stub = _stub_from_search_item(item)
                    if stub is not None and stub.full_name not in repos:
                        repos[stub.full_name] = stub

                if len(items) < SEARCH_PER_PAGE or page * SEARCH_PER_PAGE >= self.search_max_results:
                    break
                page += 1
                await asyncio.sleep(self.search_page_delay)

        logger.info("Found %d unique repositories with SKILL.md", len(repos))
        return list(repos.values())


def _looks_rate_limited(response: httpx.Response) -> bool:
    if response.headers.get("x-ratelimit-remaining") == "0":
        return True
    if "retry-after" in response.headers:
        return True
    try:
        message = str(response.json().get("message", ""))
    except ValueError:
        return False
    return "rate limit" in message.lower()


def _stub_from_search_item(item: dict[str, Any]) -> RepoStub | None:
    repo = item.get("repository") or {}
    full_name = repo.get("full_name")
    if not full_name:
        return None
    owner = repo.get("owner") or {}
    return RepoStub(
        full_name=full_name,
        owner=owner.get("login") or full_name.split("/", 1)[0],
        owner_type=owner.get("type", "User"),
        owner_avatar_url=owner.get("avatar_url"),
        owner_html_url=owner.get("html_url"),
        name=repo.get("name") or full_name.split("/", 1)[-1],
        description=repo.get("description"),
        html_url=repo.get("html_url"),
        is_fork=bool(repo.get("fork", False)),
    )
