"""End-to-end tests for the fetch-and-merge pipeline.

These tests drive build_project_record() with the mock clients, so
they cover selection, the concurrent batch, the dependent status
lookup and the merge together.

Run with: pytest tests/test_engine.py -v
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from project_status.context.github import MockGitHubClient
from project_status.context.registry import MockRegistryClient
from project_status.engine import build_project_record, build_records, fetch_project_sources
from project_status.errors import SourceUnavailable
from project_status.schemas import BacklogSummary, HistoryEntry, ProjectDescriptor

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def github(github_data) -> MockGitHubClient:
    return MockGitHubClient(mock_data=github_data)


@pytest.fixture
def registry(registry_data) -> MockRegistryClient:
    return MockRegistryClient(mock_data=registry_data)


# ---------------------------------------------------------------------------
# Project shapes
# ---------------------------------------------------------------------------


class TestProjectShapes:
    """One test per (path, pkg) combination."""

    @pytest.mark.asyncio
    async def test_unpublished_top_level(self, top_level, github, registry) -> None:
        record = await build_project_record(top_level, github, registry)

        assert record.stars is not None and record.stars.count == 8000
        assert record.prs is not None and record.issues is not None
        # package fields come from the repository's package.json only
        assert record.pkg_name == "npm"
        assert record.version is None
        assert record.downloads is None
        assert record.pkg_url is None
        assert registry.calls == []

    @pytest.mark.asyncio
    async def test_published_top_level(self, published, github, registry) -> None:
        record = await build_project_record(published, github, registry)

        assert record.version == "10.9.0"
        assert record.last_published == "2024-10-03T18:00:00.000Z"
        assert record.downloads == 5000000
        assert record.size == 11500000
        assert record.pkg_url == "https://www.npmjs.com/package/npm"
        assert record.pending_release.version == "10.9.1"
        assert record.pending_release.url == "https://github.com/npm/cli/pull/11"
        assert all(call[0] != "package_json" for call in github.calls)

    @pytest.mark.asyncio
    async def test_unpublished_workspace(self, workspace, github, registry) -> None:
        project = workspace.model_copy(update={"pkg": None})
        record = await build_project_record(project, github, registry)

        assert record.issues is None and record.prs is None
        assert record.url.endswith("/tree/latest/workspaces/arborist")
        assert record.stars is None
        assert record.path == "workspaces/arborist"
        assert all(call[0] != "issues" for call in github.calls)

    @pytest.mark.asyncio
    async def test_published_workspace(self, workspace, github) -> None:
        registry = MockRegistryClient(
            mock_data={
                "@npmcli/arborist": {
                    "manifest": {"name": "@npmcli/arborist", "version": "8.0.0"},
                    "packument": {"time": {"8.0.0": "2024-10-01T00:00:00.000Z"}},
                    "downloads": 42,
                }
            }
        )
        record = await build_project_record(workspace, github, registry)

        assert record.issues is None and record.prs is None
        assert record.pending_release is None
        assert record.version == "8.0.0"
        assert record.last_published == "2024-10-01T00:00:00.000Z"
        assert record.pkg_url == "https://www.npmjs.com/package/@npmcli/arborist"
        assert record.url == "https://github.com/npm/cli/tree/latest/workspaces/arborist"


# ---------------------------------------------------------------------------
# Dependent status lookup
# ---------------------------------------------------------------------------


class TestStatusStage:
    @pytest.mark.asyncio
    async def test_status_uses_batch_commit_sha_after_batch(self, published, github, registry) -> None:
        await fetch_project_sources(published, github, registry)

        lookups = [call[0] for call in github.calls]
        assert lookups[-1] == "status"
        assert github.calls[-1][1] == ("npm", "cli", "abc123")
        assert lookups.count("status") == 1

    @pytest.mark.asyncio
    async def test_no_status_result(self, top_level, github_data, registry) -> None:
        github_data["npm/cli"]["status"] = None
        record = await build_project_record(top_level, MockGitHubClient(github_data), registry)
        assert record.status is None

    @pytest.mark.asyncio
    async def test_status_failure_aborts(self, top_level, github_data, registry) -> None:
        github = MockGitHubClient(github_data, fail_on={"status"})

        with pytest.raises(SourceUnavailable) as exc_info:
            await build_project_record(top_level, github, registry)

        assert exc_info.value.source == "status"
        assert exc_info.value.project_id == "cli"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("lookup", ["commit", "repo", "issues", "package_json"])
    async def test_github_failure_returns_no_record(
        self, top_level, github_data, registry, lookup
    ) -> None:
        github = MockGitHubClient(github_data, fail_on={lookup})

        with pytest.raises(SourceUnavailable):
            await build_project_record(top_level, github, registry)

        # the dependent lookup never runs once the batch has failed
        assert all(call[0] != "status" for call in github.calls)

    @pytest.mark.asyncio
    async def test_commit_failure_names_commit(self, top_level, github_data, registry) -> None:
        github = MockGitHubClient(github_data, fail_on={"commit"})

        with pytest.raises(SourceUnavailable) as exc_info:
            await build_project_record(top_level, github, registry)

        assert exc_info.value.source == "commit"

    @pytest.mark.asyncio
    async def test_registry_failure(self, published, github, registry_data) -> None:
        registry = MockRegistryClient(registry_data, fail_on={"downloads"})

        with pytest.raises(SourceUnavailable) as exc_info:
            await build_project_record(published, github, registry)

        assert exc_info.value.source == "downloads"

    @pytest.mark.asyncio
    async def test_unselected_lookup_cannot_fail(self, top_level, github, registry_data) -> None:
        """Registry lookups are never requested for unpublished projects."""
        registry = MockRegistryClient(registry_data, fail_on={"manifest", "packument", "downloads"})
        record = await build_project_record(top_level, github, registry)
        assert record.downloads is None

    @pytest.mark.asyncio
    async def test_unusual_package_json_values_still_build(
        self, top_level, github_data, package_json, registry
    ) -> None:
        github_data["npm/cli"]["package_json"] = {
            **package_json,
            "engines": {"node": ">=18", "npm": 7},
            "scripts": {"test": ["tap"]},
            "c8": "off",
        }
        github = MockGitHubClient(github_data)

        record = await build_project_record(top_level, github, registry)

        assert record.node == ">=18"
        assert record.pkg_name == "npm"
        assert record.coverage == 90

    @pytest.mark.asyncio
    async def test_protocol_implementations_can_be_async_mocks(self, top_level, registry) -> None:
        github = AsyncMock()
        github.get_commit.side_effect = PermissionError("bad credentials")

        with pytest.raises(SourceUnavailable) as exc_info:
            await build_project_record(top_level, github, registry)

        assert isinstance(exc_info.value.__cause__, PermissionError)
        github.get_status.assert_not_called()


# ---------------------------------------------------------------------------
# Determinism
# ---------------------------------------------------------------------------


class TestIdempotence:
    @pytest.mark.asyncio
    async def test_identical_sources_give_identical_output(
        self, published, github_data, registry_data
    ) -> None:
        history = [HistoryEntry(prs=BacklogSummary(count=2), issues=None)]
        first = await build_project_record(
            published, MockGitHubClient(github_data), MockRegistryClient(registry_data), history
        )
        second = await build_project_record(
            published, MockGitHubClient(github_data), MockRegistryClient(registry_data), history
        )

        assert first.to_json() == second.to_json()

    @pytest.mark.asyncio
    async def test_output_field_names(self, published, github, registry) -> None:
        record = await build_project_record(published, github, registry)
        data = record.model_dump(by_alias=True)

        assert list(data) == [
            "id", "name", "owner", "path", "defaultBranch", "url", "lastPush",
            "archived", "status", "stars", "pkgPrivate", "pkgName", "coverage",
            "templateVersion", "license", "node", "version", "lastPublished",
            "size", "pkgUrl", "deprecated", "downloads", "pendingRelease",
            "prs", "issues",
        ]


# ---------------------------------------------------------------------------
# Many projects
# ---------------------------------------------------------------------------


class TestBuildRecords:
    @pytest.fixture
    def projects(self) -> list[ProjectDescriptor]:
        return [
            ProjectDescriptor(id="cli", owner="npm", name="cli"),
            ProjectDescriptor(id="broken", owner="npm", name="gone"),
            ProjectDescriptor(id="pacote", owner="npm", name="pacote", pkg="pacote"),
        ]

    @pytest.fixture
    def flaky_github(self, github_data) -> MockGitHubClient:
        class FlakyGitHub(MockGitHubClient):
            async def get_repo(self, owner, name):
                if name == "gone":
                    raise LookupError("404 Not Found")
                return await super().get_repo(owner, name)

        return FlakyGitHub(github_data)

    @pytest.mark.asyncio
    async def test_skip_and_report(self, projects, flaky_github, registry, captured_logs) -> None:
        report = await build_records(projects, flaky_github, registry)

        assert [record.id for record in report.records] == ["cli", "pacote"]
        assert list(report.failures) == ["broken"]
        assert report.failures["broken"].source == "repo"
        assert not report.ok
        assert any(log["event"] == "project_skipped" for log in captured_logs)

    @pytest.mark.asyncio
    async def test_fail_fast(self, projects, flaky_github, registry) -> None:
        with pytest.raises(SourceUnavailable):
            await build_records(projects, flaky_github, registry, fail_fast=True)

    @pytest.mark.asyncio
    async def test_history_is_routed_by_project_id(self, projects, github, registry) -> None:
        history = {"cli": [HistoryEntry(issues=BacklogSummary(count=10))]}
        report = await build_records(projects[:1], github, registry, history)

        assert report.ok
        assert report.records[0].issues.delta == 2 - 10
