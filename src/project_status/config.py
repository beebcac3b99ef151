"""Settings, project catalog and history loading.

Settings come from an optional YAML file overlaid with environment
variables:

    GITHUB_TOKEN                    github_token
    PROJECT_STATUS_GITHUB_API_URL   github_api_url
    PROJECT_STATUS_REGISTRY_URL     registry_url
    PROJECT_STATUS_DOWNLOADS_URL    downloads_url
    PROJECT_STATUS_TIMEOUT          timeout
    ENVIRONMENT                     environment
    LOG_LEVEL                       log_level

The project catalog is a YAML (or JSON) list of descriptors, optionally
nested under a ``projects`` key:

    projects:
      - id: cli
        owner: npm
        name: cli
        pkg: npm
      - id: arborist
        owner: npm
        name: cli
        path: workspaces/arborist
        pkg: "@npmcli/arborist"

History is a list of prior snapshots, newest first, where each snapshot
is the list of records written by a previous run.
"""

from __future__ import annotations

import os
from collections import defaultdict
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from project_status.errors import ConfigError
from project_status.schemas import HistoryEntry, ProjectDescriptor

ENV_VARS = {
    "github_token": "GITHUB_TOKEN",
    "github_api_url": "PROJECT_STATUS_GITHUB_API_URL",
    "registry_url": "PROJECT_STATUS_REGISTRY_URL",
    "downloads_url": "PROJECT_STATUS_DOWNLOADS_URL",
    "timeout": "PROJECT_STATUS_TIMEOUT",
    "environment": "ENVIRONMENT",
    "log_level": "LOG_LEVEL",
}


class Settings(BaseModel):
    """Runtime settings for the clients and logging."""

    github_token: str | None = None
    github_api_url: str = "https://api.github.com"
    registry_url: str = "https://registry.npmjs.org"
    downloads_url: str = "https://api.npmjs.org"
    timeout: float = 30.0
    environment: str = "development"
    log_level: str = "INFO"


def _read_yaml(path: str | Path) -> Any:
    try:
        return yaml.safe_load(Path(path).read_text())
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from ``path`` (if it exists) and the environment.

    Raises:
        ConfigError: If the file is not valid YAML or fails validation
    """
    raw: dict[str, Any] = {}
    if path is not None and Path(path).exists():
        raw = _read_yaml(path) or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Settings in {path} must be a mapping")

    for field_name, env_var in ENV_VARS.items():
        value = os.environ.get(env_var)
        if value:
            raw[field_name] = value

    try:
        return Settings.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc


def load_projects(path: str | Path) -> list[ProjectDescriptor]:
    """Load and validate the project catalog.

    Raises:
        ConfigError: On unreadable content, invalid entries or duplicate ids
    """
    raw = _read_yaml(path)
    if isinstance(raw, dict):
        raw = raw.get("projects")
    if not isinstance(raw, list):
        raise ConfigError(f"Project catalog {path} must be a list of projects")

    try:
        projects = [ProjectDescriptor.model_validate(item) for item in raw]
    except ValidationError as exc:
        raise ConfigError(f"Invalid project in {path}: {exc}") from exc

    seen: set[str] = set()
    for project in projects:
        if project.id in seen:
            raise ConfigError(f"Duplicate project id '{project.id}' in {path}")
        seen.add(project.id)
    return projects


def load_history(path: str | Path) -> dict[str, list[HistoryEntry]]:
    """Load prior snapshots and index them by project id, newest first.

    A missing file means no history.

    Raises:
        ConfigError: If the file is not a list of snapshots
    """
    if not Path(path).exists():
        return {}

    snapshots = _read_yaml(path) or []
    if not isinstance(snapshots, list):
        raise ConfigError(f"History in {path} must be a list of snapshots")

    history: dict[str, list[HistoryEntry]] = defaultdict(list)
    for snapshot in snapshots:
        if not isinstance(snapshot, list):
            raise ConfigError(f"Each snapshot in {path} must be a list of records")
        for record in snapshot:
            if not isinstance(record, dict) or "id" not in record:
                continue
            try:
                history[str(record["id"])].append(HistoryEntry.model_validate(record))
            except ValidationError as exc:
                raise ConfigError(f"Invalid history record in {path}: {exc}") from exc
    return dict(history)
