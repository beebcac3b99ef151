"""GitHub API client for the repository-side lookups.

The status engine needs five things from the repository host:
- The latest commit touching the project (optionally scoped to a path)
- Repository metadata (default branch, archived flag, stars, license)
- The aggregated CI result for a commit
- All open issues and pull requests
- The package.json checked into the repository

Design notes:
- Uses httpx for async HTTP requests, one client per lookup so
  concurrent lookups never share connection state
- Transport errors are retried with tenacity; HTTP error statuses are
  raised straight away for the engine to report
- Uses a Protocol so the engine doesn't depend on the concrete client
  (tests and --mock runs use MockGitHubClient)

GitHub API docs: https://docs.github.com/en/rest
"""

from __future__ import annotations

import json
import os
from typing import Any, Protocol

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from project_status.schemas import Commit, CommitStatus, FullRepository, Manifest

# Check run conclusions that make the whole commit red
FAILED_CONCLUSIONS = frozenset(
    {"failure", "cancelled", "timed_out", "action_required", "startup_failure"}
)

_MISSING: Any = object()


# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class GitHubClientProtocol(Protocol):
    """Interface for repository-host lookups used by the status engine."""

    async def get_commit(self, owner: str, name: str, path: str | None = None) -> Commit:
        """Latest commit on the default branch, scoped to ``path`` if given."""
        ...

    async def get_repo(self, owner: str, name: str) -> FullRepository:
        """Repository metadata."""
        ...

    async def get_status(self, owner: str, name: str, sha: str) -> CommitStatus | None:
        """Aggregated CI result for ``sha``, None when nothing ran."""
        ...

    async def get_open_issues(self, owner: str, name: str) -> list[dict[str, Any]]:
        """Raw open issues and pull requests, all pages."""
        ...

    async def get_package_json(
        self, owner: str, name: str, path: str | None = None
    ) -> Manifest | None:
        """package.json at the repository root or ``path``, None if absent."""
        ...


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class GitHubClient:
    """Real GitHub API client using httpx.

    Usage:
        client = GitHubClient(token="ghp_...")
        repo = await client.get_repo("npm", "cli")
    """

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub token. Falls back to the GITHUB_TOKEN env var.
            base_url: API root, for GitHub Enterprise installs
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self._token = token or os.environ.get("GITHUB_TOKEN", "")
        self._base_url = base_url or self.BASE_URL
        self._timeout = timeout
        self._transport = transport
        self._headers: dict[str, str] = {
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            self._headers["Authorization"] = f"Bearer {self._token}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        reraise=True,
    )
    async def _get(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        resp = await client.get(url, params=params, headers=headers)
        resp.raise_for_status()
        return resp

    async def get_commit(self, owner: str, name: str, path: str | None = None) -> Commit:
        """Fetch the newest commit, restricted to ``path`` for workspaces.

        Raises:
            httpx.HTTPStatusError: If the API call fails
            LookupError: If the repository (or path) has no commits
        """
        params: dict[str, Any] = {"per_page": 1}
        if path:
            params["path"] = path
        async with self._client() as client:
            resp = await self._get(client, f"/repos/{owner}/{name}/commits", params=params)
        commits = resp.json()
        if not commits:
            raise LookupError(f"no commits found for {owner}/{name}/{path or ''}")
        return Commit.from_api(commits[0])

    async def get_repo(self, owner: str, name: str) -> FullRepository:
        async with self._client() as client:
            resp = await self._get(client, f"/repos/{owner}/{name}")
        return FullRepository.model_validate(resp.json())

    async def get_status(self, owner: str, name: str, sha: str) -> CommitStatus | None:
        """Summarize the check runs for a commit.

        Any failed run makes the commit "failure" (linking to that run),
        otherwise an unfinished run makes it "pending", otherwise "success".
        """
        async with self._client() as client:
            runs = await self._handle_pagination(
                client,
                f"/repos/{owner}/{name}/commits/{sha}/check-runs",
                params={"per_page": 100},
                items_key="check_runs",
            )
        return summarize_check_runs(runs)

    async def get_open_issues(self, owner: str, name: str) -> list[dict[str, Any]]:
        async with self._client() as client:
            return await self._handle_pagination(
                client,
                f"/repos/{owner}/{name}/issues",
                params={"state": "open", "per_page": 100},
            )

    async def get_package_json(
        self, owner: str, name: str, path: str | None = None
    ) -> Manifest | None:
        file_path = f"{path}/package.json" if path else "package.json"
        async with self._client() as client:
            try:
                resp = await self._get(
                    client,
                    f"/repos/{owner}/{name}/contents/{file_path}",
                    headers={"Accept": "application/vnd.github.raw+json"},
                )
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code == 404:
                    return None
                raise
        return Manifest.model_validate(json.loads(resp.text))

    async def _handle_pagination(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, Any] | None = None,
        items_key: str | None = None,
    ) -> list[dict[str, Any]]:
        """Follow GitHub's ``Link: rel="next"`` headers and collect every page.

        Args:
            items_key: Key holding the items when pages are objects
                (e.g. "check_runs") rather than bare lists
        """
        all_items: list[dict[str, Any]] = []
        next_url: str | None = url
        next_params = params

        while next_url:
            resp = await self._get(client, next_url, params=next_params)
            page = resp.json()
            all_items.extend(page.get(items_key, []) if items_key else page)
            next_url = self._parse_next_link(resp.headers.get("link", ""))
            # the next link already carries the query string
            next_params = None

        return all_items

    @staticmethod
    def _parse_next_link(link_header: str) -> str | None:
        """Extract the 'next' URL from a GitHub Link header."""
        if not link_header:
            return None
        for part in link_header.split(","):
            if 'rel="next"' in part:
                return part.split(";")[0].strip().strip("<>")
        return None


def summarize_check_runs(runs: list[dict[str, Any]]) -> CommitStatus | None:
    """Collapse a list of check runs into a single CommitStatus."""
    if not runs:
        return None

    failed = [run for run in runs if run.get("conclusion") in FAILED_CONCLUSIONS]
    if failed:
        return CommitStatus(url=failed[0].get("html_url"), conclusion="failure")

    if any(run.get("status") != "completed" for run in runs):
        return CommitStatus(conclusion="pending")

    return CommitStatus(conclusion="success")


# ---------------------------------------------------------------------------
# Mock Implementation (for testing)
# ---------------------------------------------------------------------------


class MockGitHubClient:
    """Mock GitHub client that returns predefined data.

    Use this in tests and for ``--mock`` runs when you don't want to hit
    the real GitHub API. Every call is recorded in ``calls``.

    Usage:
        client = MockGitHubClient(mock_data={"npm/cli": {"repo": {...}}})
        repo = await client.get_repo("npm", "cli")

    Per-repository keys: "commit", "repo", "status", "issues" and
    "package_json", each holding the raw API payload. Missing keys get
    neutral defaults.
    """

    def __init__(
        self,
        mock_data: dict[str, dict[str, Any]] | None = None,
        fail_on: set[str] | None = None,
    ) -> None:
        """Initialize with optional predefined data.

        Args:
            mock_data: Mapping of "owner/name" -> lookup name -> payload
            fail_on: Lookup names ("commit", "repo", ...) that should raise
        """
        self._mock_data = mock_data or {}
        self._fail_on = fail_on or set()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def _lookup(self, lookup: str, owner: str, name: str, *args: Any) -> Any:
        self.calls.append((lookup, (owner, name, *args)))
        if lookup in self._fail_on:
            raise httpx.ConnectError(f"mock {lookup} lookup unavailable")
        return self._mock_data.get(f"{owner}/{name}", {}).get(lookup, _MISSING)

    async def get_commit(self, owner: str, name: str, path: str | None = None) -> Commit:
        data = self._lookup("commit", owner, name, path)
        if data is _MISSING:
            data = {
                "sha": "0" * 40,
                "html_url": f"https://github.com/{owner}/{name}/commit/{'0' * 40}",
                "commit": {"author": {"date": "2026-01-01T00:00:00Z"}},
            }
        return Commit.from_api(data)

    async def get_repo(self, owner: str, name: str) -> FullRepository:
        data = self._lookup("repo", owner, name)
        if data is _MISSING:
            data = {
                "default_branch": "main",
                "html_url": f"https://github.com/{owner}/{name}",
                "archived": False,
                "stargazers_count": 0,
            }
        return FullRepository.model_validate(data)

    async def get_status(self, owner: str, name: str, sha: str) -> CommitStatus | None:
        data = self._lookup("status", owner, name, sha)
        if data is _MISSING:
            data = {"conclusion": "success"}
        return None if data is None else CommitStatus.model_validate(data)

    async def get_open_issues(self, owner: str, name: str) -> list[dict[str, Any]]:
        data = self._lookup("issues", owner, name)
        return [] if data is _MISSING else list(data)

    async def get_package_json(
        self, owner: str, name: str, path: str | None = None
    ) -> Manifest | None:
        data = self._lookup("package_json", owner, name, path)
        if data is _MISSING or data is None:
            return None
        return Manifest.model_validate(data)

