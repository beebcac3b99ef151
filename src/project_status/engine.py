"""Fetch-and-merge pipeline for project status records.

This module ties together all the components:
- Source selection (selector.py)
- Concurrent lookups (fanout.py)
- The dependent CI status lookup
- Field precedence and record assembly (resolver.py)

The pipeline for one project runs in two stages:
1. Fan out the selected lookups concurrently and wait for all of them
2. Look up CI status for the commit SHA that stage 1 produced

Any failed lookup in either stage aborts the project with
``SourceUnavailable``; no partially-filled record is ever returned.
Each run is independent, so any number of projects can be built
concurrently with ``build_records``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from project_status.classify import classify
from project_status.context.github import GitHubClientProtocol
from project_status.context.registry import RegistryClientProtocol
from project_status.errors import SourceUnavailable
from project_status.fanout import resolve_all
from project_status.logging_config import get_logger
from project_status.resolver import resolve_record
from project_status.schemas import HistoryEntry, NormalizedRecord, ProjectDescriptor
from project_status.selector import ProjectSources, assemble_batch, build_tasks

logger = get_logger(__name__)


async def fetch_project_sources(
    project: ProjectDescriptor,
    github: GitHubClientProtocol,
    registry: RegistryClientProtocol,
) -> ProjectSources:
    """Run both fetch stages for one project.

    Raises:
        SourceUnavailable: If any selected lookup or the status lookup fails
    """
    tasks = build_tasks(project, github, registry)
    results = await resolve_all(tasks, project_id=project.id)
    batch = assemble_batch(project, results)
    logger.debug("source_batch_resolved", project=project.id, sources=sorted(results))

    try:
        status = await github.get_status(project.owner, project.name, batch.sha)
    except Exception as exc:
        logger.warning("source_failed", project=project.id, source="status", error=str(exc))
        raise SourceUnavailable("status", project.id, detail=str(exc)) from exc

    return ProjectSources(batch=batch, status=status)


async def build_project_record(
    project: ProjectDescriptor,
    github: GitHubClientProtocol,
    registry: RegistryClientProtocol,
    history: Sequence[HistoryEntry] | None = None,
) -> NormalizedRecord:
    """Fetch every source for ``project`` and merge them into one record.

    Args:
        project: Catalog entry to build
        github: Repository host client
        registry: Package registry client
        history: Prior snapshots of this project, newest first

    Returns:
        The project's NormalizedRecord

    Raises:
        SourceUnavailable: If a required lookup failed
    """
    logger.info(
        "project_fetch_started",
        project=project.id,
        workspace=project.is_workspace,
        published=project.is_published,
    )
    sources = await fetch_project_sources(project, github, registry)
    backlog = classify(sources.batch.issues_and_prs)
    record = resolve_record(project, sources, history, backlog)
    logger.info(
        "record_built",
        project=project.id,
        status=record.status.conclusion if record.status else None,
        version=record.version,
    )
    return record


@dataclass
class BuildReport:
    """Outcome of building many projects.

    Attributes:
        records: Successfully built records, in catalog order
        failures: Project id -> the failure that aborted it
    """

    records: list[NormalizedRecord] = field(default_factory=list)
    failures: dict[str, SourceUnavailable] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


async def build_records(
    projects: Sequence[ProjectDescriptor],
    github: GitHubClientProtocol,
    registry: RegistryClientProtocol,
    history: Mapping[str, Sequence[HistoryEntry]] | None = None,
    fail_fast: bool = False,
) -> BuildReport:
    """Build records for many projects concurrently.

    A failing project never affects the others. By default failures are
    logged and collected in the report; with ``fail_fast`` the first
    failure is raised instead.
    """
    history = history or {}
    report = BuildReport()

    async def build_one(project: ProjectDescriptor) -> NormalizedRecord | None:
        try:
            return await build_project_record(
                project, github, registry, history.get(project.id)
            )
        except SourceUnavailable as exc:
            if fail_fast:
                raise
            logger.warning(
                "project_skipped",
                project=project.id,
                source=exc.source,
                error=str(exc),
            )
            report.failures[project.id] = exc
            return None

    results = await asyncio.gather(*(build_one(project) for project in projects))
    report.records = [record for record in results if record is not None]
    return report
