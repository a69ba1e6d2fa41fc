"""Repository reconciler tests against a fake source and an in-memory store."""

import json

import pytest
from sqlalchemy import select

from conftest import manifest
from skillsurf.errors import AuthMissing, TransientNetworkError
from skillsurf.models import Owner, Repo, Skill, SkillTag, Tag
from skillsurf.schemas.discovery import DiscoveryJob, ReconcileStatus
from skillsurf.services.reconciler import RepositoryReconciler, derive_skill_name


async def _rows(session_factory, model):
    async with session_factory() as session:
        return list((await session.execute(select(model))).scalars().all())


async def _skills(session_factory) -> dict[str, Skill]:
    return {skill.id: skill for skill in await _rows(session_factory, Skill)}


async def _snapshot(session_factory):
    skills = sorted(
        (s.id, s.name, s.description, s.path, s.category, s.deleted_at is None)
        for s in await _rows(session_factory, Skill)
    )
    repos = sorted((r.id, r.stars, r.deleted_at is None) for r in await _rows(session_factory, Repo))
    owners = sorted((o.id, o.type) for o in await _rows(session_factory, Owner))
    tags = sorted(t.name for t in await _rows(session_factory, Tag))
    links = len(await _rows(session_factory, SkillTag))
    return skills, repos, owners, tags, links


def _acme_tools(source, *paths):
    source.add_repo("acme/tools", stars=50, owner_type="Organization")
    for path in paths:
        source.add_manifest("acme/tools", path, manifest(path, f"The {path} skill for web apps"))


def test_derive_skill_name():
    assert derive_skill_name({"name": "pdf"}, "skills/x", "repo") == "pdf"
    assert derive_skill_name({}, "skills/x", "repo") == "x"
    assert derive_skill_name({"name": ["a"]}, "skills/x", "repo") == "x"
    assert derive_skill_name({"name": 7}, "", "repo") == "repo"
    assert derive_skill_name({"name": ""}, "", "repo") == "repo"


@pytest.mark.asyncio
async def test_reconcile_creates_owner_repo_skills(source, reconciler, session_factory):
    _acme_tools(source, "a", "b")
    source.add_manifest(
        "acme/tools",
        "",
        "---\nname: root\ndescription: Review code\nlicense: MIT\n"
        "metadata:\n  author: acme\n---\n",
    )

    result = await reconciler.reconcile(DiscoveryJob.for_repo("acme", "tools"))

    assert result.status == ReconcileStatus.SYNCED
    assert result.upserted == ["acme/tools/a", "acme/tools/b", "acme/tools/root"]

    owners = await _rows(session_factory, Owner)
    assert [(o.id, o.type, o.html_url) for o in owners] == [
        ("acme", "Organization", "https://github.com/acme")
    ]
    repos = await _rows(session_factory, Repo)
    assert repos[0].id == "acme/tools"
    assert repos[0].stars == 50
    assert repos[0].last_synced_at is not None
    assert repos[0].deleted_at is None

    skills = await _skills(session_factory)
    root = skills["acme/tools/root"]
    assert root.path == ""
    assert root.github_url == "https://github.com/acme/tools/tree/main"
    assert root.raw_url == "https://raw.githubusercontent.com/acme/tools/main/SKILL.md"
    assert root.license == "MIT"
    assert json.loads(root.metadata_json) == {"author": "acme"}
    assert skills["acme/tools/a"].category == "react-web"
    assert skills["acme/tools/a"].github_url == "https://github.com/acme/tools/tree/main/a"


@pytest.mark.asyncio
async def test_reconcile_is_idempotent(source, reconciler, session_factory):
    _acme_tools(source, "a", "b")
    job = DiscoveryJob.for_repo("acme", "tools")

    await reconciler.reconcile(job)
    first = await _snapshot(session_factory)
    await reconciler.reconcile(job)
    second = await _snapshot(session_factory)

    assert first == second


@pytest.mark.asyncio
async def test_removed_manifest_is_tombstoned(source, reconciler, session_factory):
    _acme_tools(source, "a", "b")
    job = DiscoveryJob.for_repo("acme", "tools")
    await reconciler.reconcile(job)

    source.remove_manifest("acme/tools", "b")
    result = await reconciler.reconcile(job)

    assert result.deleted == ["acme/tools/b"]
    skills = await _skills(session_factory)
    assert skills["acme/tools/a"].deleted_at is None
    assert skills["acme/tools/b"].deleted_at is not None


@pytest.mark.asyncio
async def test_reappearing_manifest_is_restored(source, reconciler, session_factory):
    _acme_tools(source, "a", "b")
    job = DiscoveryJob.for_repo("acme", "tools")
    await reconciler.reconcile(job)
    source.remove_manifest("acme/tools", "b")
    await reconciler.reconcile(job)

    source.add_manifest("acme/tools", "b", manifest("b", "Back again"))
    await reconciler.reconcile(job)

    skills = await _skills(session_factory)
    assert skills["acme/tools/b"].deleted_at is None
    assert skills["acme/tools/b"].description == "Back again"


@pytest.mark.asyncio
async def test_emptied_repo_is_tombstoned_then_restored(source, reconciler, session_factory):
    _acme_tools(source, "a")
    job = DiscoveryJob.for_repo("acme", "tools")
    await reconciler.reconcile(job)

    source.remove_manifest("acme/tools", "a")
    result = await reconciler.reconcile(job)
    assert result.status == ReconcileStatus.EMPTIED
    assert (await _rows(session_factory, Repo))[0].deleted_at is not None

    source.add_manifest("acme/tools", "a", manifest("a", "Returns"))
    result = await reconciler.reconcile(job)
    assert result.status == ReconcileStatus.SYNCED
    assert (await _rows(session_factory, Repo))[0].deleted_at is None


@pytest.mark.asyncio
async def test_missing_repo_writes_nothing(reconciler, session_factory):
    result = await reconciler.reconcile(DiscoveryJob.for_repo("ghost", "repo"))

    assert result.status == ReconcileStatus.NOT_FOUND
    assert await _rows(session_factory, Owner) == []
    assert await _rows(session_factory, Repo) == []
    assert await _rows(session_factory, Skill) == []


@pytest.mark.asyncio
async def test_known_repo_that_disappears_is_tombstoned(source, reconciler, session_factory):
    source.add_repo("Acme/Tools", stars=3)
    source.add_manifest("Acme/Tools", "a", manifest("a", "x"))
    await reconciler.reconcile(DiscoveryJob.for_repo("acme", "tools"))

    del source.repos["acme/tools"]
    result = await reconciler.reconcile(DiscoveryJob.for_repo("acme", "tools"))

    assert result.status == ReconcileStatus.NOT_FOUND
    repos = await _rows(session_factory, Repo)
    assert [r.id for r in repos] == ["Acme/Tools"]
    assert repos[0].deleted_at is not None


@pytest.mark.asyncio
async def test_bad_manifests_do_not_abort_siblings(source, reconciler, session_factory):
    _acme_tools(source, "good")
    source.add_manifest("acme/tools", "malformed", "# no frontmatter here\n")
    source.add_manifest("acme/tools", "invalid", manifest("Invalid_Name", "Broken"))
    source.add_manifest("acme/tools", "unreachable", manifest("unreachable", "x"))
    source.broken.add(("acme/tools", "unreachable"))

    result = await reconciler.reconcile(DiscoveryJob.for_repo("acme", "tools"))

    assert result.status == ReconcileStatus.SYNCED
    assert result.upserted == ["acme/tools/good"]
    assert sorted(result.skipped) == ["invalid", "malformed", "unreachable"]
    assert list(await _skills(session_factory)) == ["acme/tools/good"]


@pytest.mark.asyncio
async def test_lenient_validation_indexes_invalid_manifest(source, store, session_factory):
    _acme_tools(source)
    source.add_manifest("acme/tools", "skills/odd", "---\ndescription: No name given\n---\n")
    reconciler = RepositoryReconciler(source, store, "test-token", strict_validation=False)

    result = await reconciler.reconcile(DiscoveryJob.for_repo("acme", "tools"))

    assert result.upserted == ["acme/tools/odd"]
    assert (await _skills(session_factory))["acme/tools/odd"].name == "odd"


@pytest.mark.asyncio
async def test_lenient_validation_ignores_non_string_name(source, store, session_factory):
    _acme_tools(source)
    source.add_manifest("acme/tools", "skills/listed", "---\nname: [a, b]\ndescription: x\n---\n")
    reconciler = RepositoryReconciler(source, store, "test-token", strict_validation=False)

    result = await reconciler.reconcile(DiscoveryJob.for_repo("acme", "tools"))

    assert result.upserted == ["acme/tools/listed"]


@pytest.mark.asyncio
async def test_manifest_that_is_not_strict_yaml_is_indexed(source, reconciler, session_factory):
    _acme_tools(source)
    source.add_manifest(
        "acme/tools",
        "pdf",
        "---\nname: pdf\ndescription: Fill PDF forms. Use when: the user uploads a form\n---\n",
    )

    result = await reconciler.reconcile(DiscoveryJob.for_repo("acme", "tools"))

    assert result.upserted == ["acme/tools/pdf"]
    skill = (await _skills(session_factory))["acme/tools/pdf"]
    assert skill.description == "Fill PDF forms. Use when: the user uploads a form"
    assert skill.category == "documents"


@pytest.mark.asyncio
async def test_tags_are_replaced(source, reconciler, session_factory):
    source.add_repo("acme/tools", stars=5)
    source.add_manifest("acme/tools", "x", manifest("x", "Test the api"))
    job = DiscoveryJob.for_repo("acme", "tools")
    await reconciler.reconcile(job)

    source.add_manifest("acme/tools", "x", manifest("x", "Deploy it"))
    await reconciler.reconcile(job)

    async with session_factory() as session:
        rows = await session.execute(
            select(Tag.name).join(SkillTag, SkillTag.tag_id == Tag.id).where(SkillTag.skill_id == "acme/tools/x")
        )
        assert sorted(rows.scalars().all()) == ["deploy"]
    # tags are never deleted
    assert sorted(t.name for t in await _rows(session_factory, Tag)) == ["api", "deploy", "test"]


@pytest.mark.asyncio
async def test_uses_github_casing(source, reconciler, session_factory):
    source.add_repo("Acme/Tools", stars=1)
    source.add_manifest("Acme/Tools", "a", manifest("a", "x"))

    result = await reconciler.reconcile(DiscoveryJob.for_repo("acme", "tools"))

    assert result.repo_full_name == "Acme/Tools"
    assert list(await _skills(session_factory)) == ["Acme/Tools/a"]


@pytest.mark.asyncio
async def test_requires_token(source, store):
    reconciler = RepositoryReconciler(source, store, None)
    with pytest.raises(AuthMissing):
        await reconciler.reconcile(DiscoveryJob.for_repo("acme", "tools"))


@pytest.mark.asyncio
async def test_lookup_failure_propagates(source, reconciler):
    async def boom(owner, repo):
        raise TransientNetworkError("503", 503)

    source.get_repository_info = boom
    with pytest.raises(TransientNetworkError):
        await reconciler.reconcile(DiscoveryJob.for_repo("acme", "tools"))
