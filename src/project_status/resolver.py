"""Merge fetched sources into the flat dashboard record.

Precedence is spelled out as one small function per field that can come
from more than one place. Each of them is total: an absent source
yields the field's neutral value instead of raising.

Rules worth knowing:
- Identity (id, name, owner, path) always comes from the descriptor,
  even if a remote source disagrees
- ``version`` is only trusted from the registry; an unpublished
  package.json version says nothing about what users install
- Manifest fields (license, engines, template version, coverage) come
  from whichever manifest the selector fetched
- A license reported as NOASSERTION is treated as no license at all
"""

from __future__ import annotations

from collections.abc import Sequence

from project_status.classify import ClassifiedBacklog, classify
from project_status.coverage import get_coverage
from project_status.projections import project_issues, project_prs
from project_status.release import find_pending_release
from project_status.schemas import (
    CommitStatus,
    FullRepository,
    HistoryEntry,
    LastPush,
    Manifest,
    NormalizedRecord,
    ProjectDescriptor,
    Stars,
    StatusLink,
    WorkspaceRepository,
)
from project_status.selector import PackageSource, ProjectSources, RegistryPackage
from project_status.urls import (
    full_url,
    package_url,
    repo_url,
    stargazers_url,
    status_url,
)

UNASSERTED_LICENSE = "NOASSERTION"


# ---------------------------------------------------------------------------
# Per-field precedence
# ---------------------------------------------------------------------------


def resolve_license(
    manifest: Manifest | None,
    repo: FullRepository | WorkspaceRepository,
) -> str | None:
    """Manifest license first, then the repository's SPDX id."""
    repo_license = None
    if isinstance(repo, FullRepository) and repo.license is not None:
        repo_license = repo.license.spdx_id

    for candidate in (manifest.license if manifest else None, repo_license):
        if candidate and candidate != UNASSERTED_LICENSE:
            return candidate
    return None


def resolve_version(package: PackageSource) -> str | None:
    if isinstance(package, RegistryPackage):
        return package.manifest.version
    return None


def resolve_last_published(package: PackageSource, version: str | None) -> str | None:
    if not isinstance(package, RegistryPackage) or version is None:
        return None
    published = package.packument.time.get(version)
    return published if isinstance(published, str) else None


def resolve_stars(repo: FullRepository | WorkspaceRepository, base_url: str) -> Stars | None:
    count = getattr(repo, "stargazers_count", None)
    if not isinstance(count, int) or isinstance(count, bool):
        return None
    return Stars(count=count, url=stargazers_url(base_url))


def resolve_status(status: CommitStatus | None, base_url: str) -> StatusLink | None:
    if status is None:
        return None
    return StatusLink(url=status_url(base_url, status.url), conclusion=status.conclusion)


def resolve_template_version(manifest: Manifest | None) -> str | None:
    if manifest is None or not manifest.template_oss:
        return None
    version = manifest.template_oss.get("version")
    return str(version) if version is not None else None


def resolve_node(manifest: Manifest | None) -> str | None:
    if manifest is None or not manifest.engines:
        return None
    node = manifest.engines.get("node")
    return node if isinstance(node, str) else None


def resolve_registry_fields(package: PackageSource) -> dict:
    """size / pkg_url / deprecated / downloads, only meaningful when published."""
    if not isinstance(package, RegistryPackage):
        return {"size": None, "pkg_url": None, "deprecated": False, "downloads": None}

    manifest = package.manifest
    return {
        "size": manifest.dist.unpacked_size if manifest.dist else None,
        "pkg_url": package_url(manifest.name),
        "deprecated": manifest.deprecated if manifest.deprecated is not None else False,
        "downloads": package.downloads,
    }


# ---------------------------------------------------------------------------
# Record assembly
# ---------------------------------------------------------------------------


def resolve_record(
    project: ProjectDescriptor,
    sources: ProjectSources,
    history: Sequence[HistoryEntry] | None = None,
    backlog: ClassifiedBacklog | None = None,
) -> NormalizedRecord:
    """Build the NormalizedRecord for ``project`` from its fetched sources.

    Args:
        project: The catalog descriptor (authority for identity fields)
        sources: Batch results plus the CI status for the head commit
        history: Prior snapshots, newest first
        backlog: Pre-classified issues/PRs; classified here when omitted

    Returns:
        The merged record. Deterministic for identical inputs.
    """
    batch = sources.batch
    repo = batch.repo
    manifest = batch.package.manifest
    if backlog is None:
        backlog = classify(batch.issues_and_prs)
    base_url = repo_url(project)
    version = resolve_version(batch.package)

    return NormalizedRecord(
        id=project.id,
        name=project.name,
        owner=project.owner,
        path=project.path,
        default_branch=repo.default_branch,
        url=full_url(project, repo.default_branch),
        last_push=LastPush(date=batch.commit.date, url=batch.commit.html_url),
        archived=repo.archived,
        status=resolve_status(sources.status, base_url),
        stars=resolve_stars(repo, base_url),
        pkg_private=bool(manifest.private) if manifest else False,
        pkg_name=manifest.name if manifest else None,
        coverage=get_coverage(manifest),
        template_version=resolve_template_version(manifest),
        license=resolve_license(manifest, repo),
        node=resolve_node(manifest),
        version=version,
        last_published=resolve_last_published(batch.package, version),
        **resolve_registry_fields(batch.package),
        pending_release=find_pending_release(backlog.prs),
        prs=project_prs(
            backlog.prs,
            repo.html_url,
            [entry.prs for entry in history] if history is not None else None,
        ),
        issues=project_issues(
            backlog.issues,
            repo.html_url,
            [entry.issues for entry in history] if history is not None else None,
        ),
    )
