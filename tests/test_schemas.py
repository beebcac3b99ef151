"""Tests for the pydantic models.

Run with: pytest tests/test_schemas.py -v
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from project_status.schemas import (
    Commit,
    FullRepository,
    LastPush,
    Manifest,
    NormalizedRecord,
    ProjectDescriptor,
    WorkspaceRepository,
)


class TestProjectDescriptor:
    def test_minimal(self) -> None:
        project = ProjectDescriptor(id="cli", owner="npm", name="cli")
        assert project.path is None and project.pkg is None
        assert not project.is_workspace
        assert not project.is_published

    def test_blank_optionals_are_unset(self) -> None:
        project = ProjectDescriptor(id="cli", owner="npm", name="cli", path="  ", pkg="")
        assert project.path is None
        assert project.pkg is None

    def test_workspace_and_published(self) -> None:
        project = ProjectDescriptor(
            id="arborist", owner="npm", name="cli", path="workspaces/arborist", pkg="@npmcli/arborist"
        )
        assert project.is_workspace
        assert project.is_published

    def test_is_immutable(self) -> None:
        project = ProjectDescriptor(id="cli", owner="npm", name="cli")
        with pytest.raises(ValidationError):
            project.name = "other"

    @pytest.mark.parametrize("missing", ["id", "owner", "name"])
    def test_required_fields(self, missing: str) -> None:
        data = {"id": "cli", "owner": "npm", "name": "cli"}
        del data[missing]
        with pytest.raises(ValidationError):
            ProjectDescriptor.model_validate(data)


class TestSourceModels:
    def test_commit_from_api(self, commit_payload) -> None:
        commit = Commit.from_api(commit_payload)
        assert commit.sha == "abc123"
        assert commit.html_url.endswith("/commit/abc123")

    def test_workspace_projection_drops_display_fields(self, repo_payload) -> None:
        workspace = WorkspaceRepository.from_repository(FullRepository.model_validate(repo_payload))
        assert workspace.kind == "workspace"
        assert set(workspace.model_dump()) == {"kind", "default_branch", "html_url", "archived"}

    def test_manifest_keeps_unknown_fields(self) -> None:
        manifest = Manifest.model_validate({"name": "x", "workspaces": ["a"], "engines": "bogus"})
        assert manifest.model_extra == {"workspaces": ["a"]}
        assert manifest.engines is None

    def test_manifest_reads_odd_values_as_unset(self) -> None:
        manifest = Manifest.model_validate(
            {
                "name": ["npm"],
                "version": 7,
                "private": "yes",
                "license": {"type": 3},
                "engines": {"node": ">=18", "npm": 7},
                "scripts": {"test": ["tap"], "lint": "eslint"},
                "tap": "strict",
                "c8": True,
                "deprecated": 1,
                "dist": {"unpackedSize": "big"},
            }
        )
        assert manifest.name is None
        assert manifest.version is None
        assert manifest.private is None
        assert manifest.license is None
        assert manifest.engines == {"node": ">=18", "npm": 7}
        assert manifest.scripts == {"test": ["tap"], "lint": "eslint"}
        assert manifest.tap is None
        assert manifest.c8 is None
        assert manifest.deprecated is None
        assert manifest.dist.unpacked_size is None

    def test_star_count_is_kept_raw(self, repo_payload) -> None:
        repo = FullRepository.model_validate({**repo_payload, "stargazers_count": "12"})
        assert repo.stargazers_count == "12"


class TestNormalizedRecord:
    def test_serializes_camel_case(self) -> None:
        record = NormalizedRecord(
            id="cli",
            name="cli",
            owner="npm",
            default_branch="latest",
            url="https://github.com/npm/cli",
            last_push=LastPush(date="2026-10-01T12:00:00Z", url="https://github.com/npm/cli/commit/abc"),
        )
        data = json.loads(record.to_json())

        assert data["defaultBranch"] == "latest"
        assert data["lastPush"]["date"] == "2026-10-01T12:00:00Z"
        assert data["pkgPrivate"] is False
        assert data["deprecated"] is False
        assert data["pendingRelease"] is None
        assert data["prs"] is None and data["issues"] is None
