"""Shared fixtures: in-memory database, fake GitHub source, API client."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import skillsurf.models  # noqa: F401  register tables on Base.metadata
from skillsurf.adapters.base import SkillSource
from skillsurf.adapters.github import build_raw_skill_md_url
from skillsurf.cache import ContentCache
from skillsurf.database import Base, get_db
from skillsurf.errors import GitHubError
from skillsurf.main import app
from skillsurf.queue import DiscoveryQueue
from skillsurf.schemas.github import ConditionalResult, RepoInfo, RepoStub
from skillsurf.services.discovery_producer import DiscoveryProducer
from skillsurf.services.reconciler import RepositoryReconciler
from skillsurf.services.store import SkillStore


class FakeSource(SkillSource):
    """In-memory stand-in for GitHub keyed by ``owner/repo``."""

    def __init__(self):
        self.repos: dict[str, RepoInfo] = {}
        self.manifests: dict[str, dict[str, str]] = {}
        self.search_results: list[RepoStub] = []
        self.raw: dict[str, tuple[str, str | None]] = {}
        self.broken: set[tuple[str, str]] = set()
        self.conditional_calls: list[tuple[str, str | None]] = []
        self.conditional_error: Exception | None = None

    def add_repo(self, full_name: str, stars: int = 0, branch: str = "main", **kwargs) -> RepoInfo:
        owner, name = full_name.split("/", 1)
        info = RepoInfo(
            full_name=full_name,
            owner=owner,
            name=name,
            stars=stars,
            default_branch=branch,
            **kwargs,
        )
        self.repos[full_name.lower()] = info
        self.manifests.setdefault(full_name.lower(), {})
        return info

    def add_manifest(self, full_name: str, path: str, content: str) -> None:
        self.manifests.setdefault(full_name.lower(), {})[path] = content

    def remove_manifest(self, full_name: str, path: str) -> None:
        self.manifests[full_name.lower()].pop(path, None)

    async def get_repository_info(self, owner, repo):
        return self.repos.get(f"{owner}/{repo}".lower())

    async def list_manifest_paths(self, owner, repo, branch):
        return sorted(self.manifests.get(f"{owner}/{repo}".lower(), {}))

    async def fetch_raw_content(self, owner, repo, branch, path):
        directory = path[: -len("SKILL.md")].rstrip("/")
        key = f"{owner}/{repo}".lower()
        if (key, directory) in self.broken:
            raise GitHubError(f"Failed to fetch {path}: 500", 500)
        try:
            return self.manifests[key][directory]
        except KeyError:
            raise GitHubError(f"Failed to fetch {path}: 404", 404)

    async def search_repositories_with_manifests(self):
        return list(self.search_results)

    async def fetch_with_conditional_get(self, url, previous_etag=None):
        self.conditional_calls.append((url, previous_etag))
        if self.conditional_error is not None:
            raise self.conditional_error
        if url not in self.raw:
            raise GitHubError(f"Failed to fetch {url}: 404", 404)
        content, etag = self.raw[url]
        if previous_etag is not None and previous_etag == etag:
            return ConditionalResult(content=None, etag=etag, not_modified=True)
        return ConditionalResult(content=content, etag=etag)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def manifest(name: str, description: str, **extra) -> str:
    lines = ["---", f"name: {name}", f"description: {description}"]
    lines += [f"{key}: {value}" for key, value in extra.items()]
    return "\n".join(lines + ["---", "", f"# {name}", ""])


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory) -> SkillStore:
    return SkillStore(session_factory)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def reconciler(source, store) -> RepositoryReconciler:
    return RepositoryReconciler(source, store, "test-token")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def client(session_factory, source, clock):
    async def _get_db():
        async with session_factory() as session:
            yield session

    queue = DiscoveryQueue()
    app.dependency_overrides[get_db] = _get_db
    app.state.source = source
    app.state.queue = queue
    app.state.producer = DiscoveryProducer(source, queue, "test-token")
    app.state.content_cache = ContentCache(stale_after=300, expire_after=86400, clock=clock)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def raw_url():
    def _raw_url(full_name: str, path: str, branch: str = "main") -> str:
        owner, repo = full_name.split("/", 1)
        return build_raw_skill_md_url(owner, repo, branch, path)

    return _raw_url
