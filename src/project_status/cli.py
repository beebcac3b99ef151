"""Command line entry point.

Usage:
    project-status --projects maintained.yaml
    project-status --projects maintained.yaml --history history.json --id cli
    project-status --projects maintained.yaml --mock

Prints the built records as a JSON list on stdout. Projects that could
not be built are reported on stderr and make the exit code 1.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from project_status.config import Settings, load_history, load_projects, load_settings
from project_status.context.github import GitHubClient, MockGitHubClient
from project_status.context.registry import MockRegistryClient, RegistryClient
from project_status.engine import BuildReport, build_records
from project_status.errors import ConfigError, SourceUnavailable
from project_status.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="project-status",
        description="Build dashboard status records for tracked projects",
    )
    parser.add_argument(
        "--projects", "-p",
        required=True,
        help="Project catalog (YAML or JSON)",
    )
    parser.add_argument(
        "--history",
        help="Prior snapshots (JSON or YAML list, newest first)",
    )
    parser.add_argument(
        "--config", "-c",
        help="Settings file (YAML)",
    )
    parser.add_argument(
        "--id",
        action="append",
        dest="ids",
        metavar="ID",
        help="Only build this project (repeatable)",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop at the first project that fails",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use canned data instead of calling GitHub and the registry",
    )
    return parser


def make_clients(settings: Settings, mock: bool = False):
    """Return the (github, registry) client pair for a run."""
    if mock:
        return MockGitHubClient(), MockRegistryClient()
    github = GitHubClient(
        token=settings.github_token,
        base_url=settings.github_api_url,
        timeout=settings.timeout,
    )
    registry = RegistryClient(
        registry_url=settings.registry_url,
        downloads_url=settings.downloads_url,
        timeout=settings.timeout,
    )
    return github, registry


def render_report(report: BuildReport) -> str:
    return json.dumps(
        [record.model_dump(mode="json", by_alias=True) for record in report.records],
        indent=2,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
        setup_logging(environment=settings.environment, log_level=settings.log_level)
        projects = load_projects(args.projects)
        history = load_history(args.history) if args.history else {}
    except ConfigError as exc:
        print(f"project-status: {exc}", file=sys.stderr)
        return 2

    if args.ids:
        wanted = set(args.ids)
        unknown = wanted - {project.id for project in projects}
        if unknown:
            print(f"project-status: unknown project id(s): {', '.join(sorted(unknown))}", file=sys.stderr)
            return 2
        projects = [project for project in projects if project.id in wanted]

    github, registry = make_clients(settings, mock=args.mock)

    try:
        report = asyncio.run(
            build_records(projects, github, registry, history, fail_fast=args.fail_fast)
        )
    except SourceUnavailable as exc:
        print(f"project-status: {exc}", file=sys.stderr)
        return 1

    print(render_report(report))
    for project_id, failure in report.failures.items():
        print(f"project-status: skipped {project_id}: {failure}", file=sys.stderr)
    return 0 if report.ok else 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
