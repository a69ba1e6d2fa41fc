"""Repository reconciler — brings the store in line with one GitHub repository.

Stages run strictly in order and are never rolled back:

    1. look the repository up (404 → tombstone it if known, stop)
    2. upsert the owner
    3. upsert the repository, clearing its tombstone
    4. list SKILL.md paths (none → tombstone the repository, stop)
    5. per manifest: fetch, parse, validate, infer, upsert skill, replace tags
    6. tombstone previously active skills that stage 5 did not see

Stage-5 failures are contained to the one manifest. Anything else raises to
the queue worker, which redelivers the whole job; upserts make that safe.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from skillsurf.adapters.base import SkillSource
from skillsurf.adapters.github import build_github_url, build_raw_skill_md_url, manifest_file_path
from skillsurf.errors import AuthMissing, MalformedManifest, ValidationFailed
from skillsurf.schemas.discovery import DiscoveryJob, ReconcileResult, ReconcileStatus
from skillsurf.schemas.github import RepoInfo
from skillsurf.schemas.skill import SkillUpsert
from skillsurf.services.store import SkillStore
from skillsurf.utils.inference import infer_category, infer_tags
from skillsurf.utils.markdown import parse_skill_md
from skillsurf.utils.validation import validate_skill_frontmatter

logger = logging.getLogger(__name__)


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


def derive_skill_name(frontmatter: Mapping[str, Any], path: str, repo: str) -> str:
    """Manifest ``name`` if it is a non-empty string, else the directory name, else the repo name."""
    name = frontmatter.get("name")
    if isinstance(name, str) and name:
        return name
    if path:
        return path.rsplit("/", 1)[-1]
    return repo


class RepositoryReconciler:
    def __init__(
        self,
        source: SkillSource,
        store: SkillStore,
        token: str | None,
        *,
        strict_validation: bool = True,
        raw_base: str = "https://raw.githubusercontent.com",
    ) -> None:
        self.source = source
        self.store = store
        self.token = token
        self.strict_validation = strict_validation
        self.raw_base = raw_base

    async def reconcile(self, job: DiscoveryJob) -> ReconcileResult:
        log = f"[consumer:{job.repo_full_name}]"
        logger.info("%s Processing repository", log)
        if not self.token:
            raise AuthMissing(f"{log} GitHub token not configured")

        # 1. Job fields are only hints; the lookup is authoritative
        info = await self.source.get_repository_info(job.owner, job.repo)
        if info is None:
            logger.info("%s Repository not found, marking repo as deleted if known", log)
            await self.store.soft_delete_repo(job.repo_full_name)
            return ReconcileResult(repo_full_name=job.repo_full_name, status=ReconcileStatus.NOT_FOUND)

        owner, repo, repo_id = _canonical_names(job, info)
        branch = info.default_branch

        # 2. Owner
        await self.store.upsert_owner(
            login=owner,
            owner_type=info.owner_type,
            avatar_url=info.owner_avatar_url or job.owner_avatar_url,
            html_url=f"https://github.com/{owner}",
        )
        logger.debug("%s Upserted owner: %s", log, owner)

        # 3. Repository
        await self.store.upsert_repo(repo_id, owner, repo, info)
        logger.debug("%s Upserted repo: %s", log, repo_id)

        # 4. Manifests
        paths = await self.source.list_manifest_paths(owner, repo, branch)
        logger.info("%s Found %d SKILL.md files", log, len(paths))
        if not paths:
            logger.info("%s No skills found, marking repo as deleted", log)
            await self.store.soft_delete_repo(repo_id)
            return ReconcileResult(repo_full_name=repo_id, status=ReconcileStatus.EMPTIED)

        # 5. Skills, one at a time
        result = ReconcileResult(repo_full_name=repo_id, status=ReconcileStatus.SYNCED)
        seen: set[str] = set()
        for path in paths:
            try:
                await self._reconcile_manifest(owner, repo, repo_id, branch, path, seen, log)
            except MalformedManifest as exc:
                logger.warning("%s Skipping %s: %s", log, manifest_file_path(path), exc)
                result.skipped.append(path)
            except ValidationFailed as exc:
                logger.warning(
                    "%s Skipping %s, invalid frontmatter: %s", log, manifest_file_path(path), exc.errors
                )
                result.skipped.append(path)
            except Exception:
                logger.exception("%s Failed to process skill at %s", log, manifest_file_path(path))
                result.skipped.append(path)
        result.upserted = sorted(seen)

        # 6. Orphans
        active = await self.store.list_active_skill_ids(repo_id)
        orphans = sorted(skill_id for skill_id in active if skill_id not in seen)
        await self.store.soft_delete_skills(orphans)
        for skill_id in orphans:
            logger.info("%s Soft deleted skill: %s", log, skill_id)
        result.deleted = orphans

        logger.info(
            "%s Completed processing with %d skills (%d skipped, %d removed)",
            log, len(seen), len(result.skipped), len(orphans),
        )
        return result

    async def _reconcile_manifest(
        self,
        owner: str,
        repo: str,
        repo_id: str,
        branch: str,
        path: str,
        seen: set[str],
        log: str,
    ) -> None:
        content = await self.source.fetch_raw_content(owner, repo, branch, manifest_file_path(path))
        frontmatter, _body = parse_skill_md(content)

        validation = validate_skill_frontmatter(frontmatter)
        if not validation.valid:
            if self.strict_validation:
                raise ValidationFailed(validation.errors)
            logger.info("%s Indexing %s despite: %s", log, manifest_file_path(path), validation.errors)

        name = derive_skill_name(frontmatter, path, repo)
        skill_id = f"{repo_id}/{name}"
        metadata = frontmatter.get("metadata")

        await self.store.upsert_skill(
            SkillUpsert(
                id=skill_id,
                repo_id=repo_id,
                name=name,
                description=_optional_str(frontmatter.get("description")) or "",
                path=path,
                github_url=build_github_url(owner, repo, branch, path),
                raw_url=build_raw_skill_md_url(owner, repo, branch, path, self.raw_base),
                license=_optional_str(frontmatter.get("license")),
                category=infer_category(frontmatter),
                compatibility=_optional_str(frontmatter.get("compatibility")),
                metadata_json=(
                    json.dumps(dict(metadata), default=str)
                    if isinstance(metadata, Mapping) and metadata
                    else None
                ),
            )
        )
        seen.add(skill_id)
        logger.debug("%s Upserted skill: %s", log, skill_id)

        await self.store.replace_skill_tags(skill_id, infer_tags(frontmatter))


def _canonical_names(job: DiscoveryJob, info: RepoInfo) -> tuple[str, str, str]:
    """Prefer GitHub's casing for owner/repo; keep the job's names after a rename."""
    if info.full_name.lower() == job.repo_full_name.lower():
        owner, repo = info.full_name.split("/", 1)
        return owner, repo, info.full_name
    logger.info(
        "[consumer:%s] GitHub reports this repository as %s", job.repo_full_name, info.full_name
    )
    return job.owner, job.repo, job.repo_full_name
