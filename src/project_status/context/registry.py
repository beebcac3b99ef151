"""npm registry client for publication data.

Published projects get three registry lookups:
- The manifest of the version tagged ``latest``
- The packument (all versions plus their publish times)
- The last-week download count from the downloads API

Design notes:
- Same Protocol + real + mock layout as the GitHub client
- ``full_metadata`` toggles between the full JSON document and the
  abbreviated install document the registry serves by default to
  package managers; the dashboard needs the full one for fields like
  ``deprecated`` and ``time``
- Scoped names keep the ``@`` but encode the slash (``@npmcli%2Farborist``)

Registry API docs: https://github.com/npm/registry/blob/main/docs/REGISTRY-API.md
"""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from project_status.schemas import Manifest, Packument

FULL_DOC = "application/json"
CORGI_DOC = "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*"


def escape_name(pkg: str) -> str:
    """URL path segment for a package name."""
    return quote(pkg, safe="@")


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class RegistryClientProtocol(Protocol):
    """Interface for package registry lookups."""

    async def get_manifest(self, pkg: str, full_metadata: bool = True) -> Manifest:
        """Manifest of the latest published version."""
        ...

    async def get_packument(self, pkg: str, full_metadata: bool = True) -> Packument:
        """Publication metadata for every version."""
        ...

    async def get_downloads(self, pkg: str) -> int:
        """Downloads over the last week."""
        ...


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class RegistryClient:
    """Real registry client using httpx.

    Usage:
        client = RegistryClient()
        manifest = await client.get_manifest("@npmcli/arborist")
    """

    REGISTRY_URL = "https://registry.npmjs.org"
    DOWNLOADS_URL = "https://api.npmjs.org"

    def __init__(
        self,
        registry_url: str | None = None,
        downloads_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._registry_url = (registry_url or self.REGISTRY_URL).rstrip("/")
        self._downloads_url = (downloads_url or self.DOWNLOADS_URL).rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        reraise=True,
    )
    async def _get_json(self, url: str, accept: str = FULL_DOC) -> dict[str, Any]:
        async with httpx.AsyncClient(
            headers={"Accept": accept},
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.json()

    async def _get_document(self, pkg: str, full_metadata: bool) -> dict[str, Any]:
        return await self._get_json(
            f"{self._registry_url}/{escape_name(pkg)}",
            accept=FULL_DOC if full_metadata else CORGI_DOC,
        )

    async def get_manifest(self, pkg: str, full_metadata: bool = True) -> Manifest:
        """Resolve ``dist-tags.latest`` and return that version's manifest.

        Raises:
            httpx.HTTPStatusError: If the registry call fails
            LookupError: If the package has no ``latest`` version
        """
        doc = await self._get_document(pkg, full_metadata)
        latest = doc.get("dist-tags", {}).get("latest")
        versions = doc.get("versions", {})
        if latest not in versions:
            raise LookupError(f"{pkg} has no latest version")
        return Manifest.model_validate(versions[latest])

    async def get_packument(self, pkg: str, full_metadata: bool = True) -> Packument:
        return Packument.model_validate(await self._get_document(pkg, full_metadata))

    async def get_downloads(self, pkg: str) -> int:
        data = await self._get_json(
            f"{self._downloads_url}/downloads/point/last-week/{escape_name(pkg)}"
        )
        return int(data["downloads"])


# ---------------------------------------------------------------------------
# Mock Implementation
# ---------------------------------------------------------------------------


class MockRegistryClient:
    """Mock registry client for testing and local development.

    ``mock_data`` maps a package name to "manifest", "packument" and
    "downloads" payloads. Unknown packages get a 1.0.0 manifest published
    at a fixed time.
    """

    def __init__(
        self,
        mock_data: dict[str, dict[str, Any]] | None = None,
        fail_on: set[str] | None = None,
    ) -> None:
        self._mock_data = mock_data or {}
        self._fail_on = fail_on or set()
        self.calls: list[tuple[str, str]] = []

    def _lookup(self, lookup: str, pkg: str) -> Any:
        self.calls.append((lookup, pkg))
        if lookup in self._fail_on:
            raise httpx.ConnectError(f"mock {lookup} lookup unavailable")
        return self._mock_data.get(pkg, {}).get(lookup)

    async def get_manifest(self, pkg: str, full_metadata: bool = True) -> Manifest:
        data = self._lookup("manifest", pkg)
        return Manifest.model_validate(data or {"name": pkg, "version": "1.0.0"})

    async def get_packument(self, pkg: str, full_metadata: bool = True) -> Packument:
        data = self._lookup("packument", pkg)
        return Packument.model_validate(
            data or {"name": pkg, "time": {"1.0.0": "2026-01-01T00:00:00.000Z"}}
        )

    async def get_downloads(self, pkg: str) -> int:
        data = self._lookup("downloads", pkg)
        return 0 if data is None else int(data)
