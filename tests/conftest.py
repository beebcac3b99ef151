"""Shared fixtures: canned GitHub and registry payloads for one project."""

from __future__ import annotations

from typing import Any

import pytest
from structlog.testing import capture_logs

from project_status.schemas import ProjectDescriptor


@pytest.fixture(autouse=True)
def captured_logs():
    """Keep structlog quiet during tests and expose what was logged."""
    with capture_logs() as logs:
        yield logs


@pytest.fixture
def commit_payload() -> dict[str, Any]:
    return {
        "sha": "abc123",
        "html_url": "https://github.com/npm/cli/commit/abc123",
        "commit": {"author": {"date": "2026-10-01T12:00:00Z"}},
    }


@pytest.fixture
def repo_payload() -> dict[str, Any]:
    return {
        "default_branch": "latest",
        "html_url": "https://github.com/npm/cli",
        "archived": False,
        "stargazers_count": 8000,
        "license": {"spdx_id": "NOASSERTION"},
    }


@pytest.fixture
def issues_payload() -> list[dict[str, Any]]:
    return [
        {
            "number": 10,
            "title": "npm install hangs",
            "labels": [{"name": "Bug"}],
            "url": "https://api.github.com/repos/npm/cli/issues/10",
            "html_url": "https://github.com/npm/cli/issues/10",
        },
        {
            "number": 11,
            "title": "chore: release 10.9.1",
            "labels": [{"name": "autorelease: pending"}],
            "url": "https://api.github.com/repos/npm/cli/issues/11",
            "html_url": "https://github.com/npm/cli/pull/11",
            "pull_request": {"url": "https://api.github.com/repos/npm/cli/pulls/11"},
        },
        {
            "number": 12,
            "title": "docs typo",
            "labels": [],
            "html_url": "https://github.com/npm/cli/issues/12",
        },
    ]


@pytest.fixture
def package_json() -> dict[str, Any]:
    return {
        "name": "npm",
        "version": "0.0.0-dev",
        "license": "Artistic-2.0",
        "engines": {"node": "^18.17.0 || >=20.5.0"},
        "templateOSS": {"version": "4.23.3"},
        "tap": {"statements": 95, "branches": 90},
    }


@pytest.fixture
def github_data(
    commit_payload: dict[str, Any],
    repo_payload: dict[str, Any],
    issues_payload: list[dict[str, Any]],
    package_json: dict[str, Any],
) -> dict[str, dict[str, Any]]:
    return {
        "npm/cli": {
            "commit": commit_payload,
            "repo": repo_payload,
            "status": {"url": None, "conclusion": "success"},
            "issues": issues_payload,
            "package_json": package_json,
        }
    }


@pytest.fixture
def registry_data() -> dict[str, dict[str, Any]]:
    return {
        "npm": {
            "manifest": {
                "name": "npm",
                "version": "10.9.0",
                "license": "Artistic-2.0",
                "engines": {"node": "^18.17.0 || >=20.5.0"},
                "dist": {"unpackedSize": 11500000},
            },
            "packument": {
                "name": "npm",
                "time": {
                    "10.8.3": "2024-09-03T18:00:00.000Z",
                    "10.9.0": "2024-10-03T18:00:00.000Z",
                },
            },
            "downloads": 5000000,
        }
    }


@pytest.fixture
def top_level() -> ProjectDescriptor:
    return ProjectDescriptor(id="cli", owner="npm", name="cli")


@pytest.fixture
def published() -> ProjectDescriptor:
    return ProjectDescriptor(id="npm", owner="npm", name="cli", pkg="npm")


@pytest.fixture
def workspace() -> ProjectDescriptor:
    return ProjectDescriptor(
        id="arborist",
        owner="npm",
        name="cli",
        path="workspaces/arborist",
        pkg="@npmcli/arborist",
    )
