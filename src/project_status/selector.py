"""Decide which lookups a project needs and type the batch that comes back.

Two independent axes pick the lookups:

    path set    -> restricted repository lookup, no issue/PR backlog
    path unset  -> full repository lookup + open issues and PRs
    pkg set     -> registry manifest, packument and download count
    pkg unset   -> package.json from the repository (may be absent)

``commit`` is always fetched. The CI status lookup is not part of the
batch because it needs the commit SHA the batch produces.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Union

from project_status.context.github import GitHubClientProtocol
from project_status.context.registry import RegistryClientProtocol
from project_status.fanout import Producer
from project_status.schemas import (
    Commit,
    CommitStatus,
    FullRepository,
    Manifest,
    Packument,
    ProjectDescriptor,
    WorkspaceRepository,
)

COMMIT = "commit"
REPO = "repo"
ISSUES_AND_PRS = "issues_and_prs"
MANIFEST = "manifest"
PACKUMENT = "packument"
DOWNLOADS = "downloads"


@dataclass(frozen=True)
class RegistryPackage:
    """Package data for a project published to the registry."""

    manifest: Manifest
    packument: Packument
    downloads: int | None
    kind: Literal["registry"] = "registry"


@dataclass(frozen=True)
class RepoPackage:
    """Package data for an unpublished project, read from the repository."""

    manifest: Manifest | None
    kind: Literal["repo"] = "repo"


PackageSource = Union[RegistryPackage, RepoPackage]


@dataclass(frozen=True)
class SourceBatch:
    """Typed result of the concurrent lookup batch.

    ``issues_and_prs`` is None when the backlog was never requested
    (workspace projects), which is different from an empty backlog.
    """

    commit: Commit
    repo: FullRepository | WorkspaceRepository
    package: PackageSource
    issues_and_prs: list[dict[str, Any]] | None = None

    @property
    def sha(self) -> str:
        return self.commit.sha


def build_tasks(
    project: ProjectDescriptor,
    github: GitHubClientProtocol,
    registry: RegistryClientProtocol,
) -> dict[str, Producer]:
    """Build the name -> producer mapping for one project."""
    owner, name, path = project.owner, project.name, project.path

    tasks: dict[str, Producer] = {
        COMMIT: lambda: github.get_commit(owner, name, path),
    }

    if project.is_workspace:
        async def workspace_repo() -> WorkspaceRepository:
            return WorkspaceRepository.from_repository(await github.get_repo(owner, name))

        tasks[REPO] = workspace_repo
    else:
        tasks[REPO] = lambda: github.get_repo(owner, name)
        tasks[ISSUES_AND_PRS] = lambda: github.get_open_issues(owner, name)

    pkg = project.pkg
    if pkg is not None:
        tasks[MANIFEST] = lambda: registry.get_manifest(pkg, full_metadata=True)
        tasks[PACKUMENT] = lambda: registry.get_packument(pkg, full_metadata=True)
        tasks[DOWNLOADS] = lambda: registry.get_downloads(pkg)
    else:
        tasks[MANIFEST] = lambda: github.get_package_json(owner, name, path)

    return tasks


def assemble_batch(project: ProjectDescriptor, results: dict[str, Any]) -> SourceBatch:
    """Turn the resolved mapping into a SourceBatch.

    Every key ``build_tasks`` selected for this project must be present;
    a missing one is a programming error, not an absent source.
    """
    package: PackageSource
    if project.is_published:
        package = RegistryPackage(
            manifest=results[MANIFEST],
            packument=results[PACKUMENT],
            downloads=results[DOWNLOADS],
        )
    else:
        package = RepoPackage(manifest=results[MANIFEST])

    return SourceBatch(
        commit=results[COMMIT],
        repo=results[REPO],
        package=package,
        issues_and_prs=None if project.is_workspace else results[ISSUES_AND_PRS],
    )


@dataclass(frozen=True)
class ProjectSources:
    """Everything fetched for one project: the batch plus the dependent CI status."""

    batch: SourceBatch
    status: CommitStatus | None
