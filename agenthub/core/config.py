# -*- coding: utf-8 -*-
"""
Configuration Module - Settings store for Agent Hub.

Provides a HubConfig dataclass holding the subscribed repositories, the
auto-update flag and interval, the install root and the HTTP/worker
tuning knobs. Loads from ~/.agenthub/agenthub_config.json if it exists,
otherwise uses sensible defaults.

Everything Agent Hub keeps per user lives under ~/.agenthub: the settings
file, the catalog database (unless relocated) and the file-backed secret
store.

Author
------
Agent Hub contributors

License
-------
MIT License
Copyright (c) 2026 Agent Hub contributors
See LICENSE file for full text.

Created
-------
2026-09-14

Modified
--------
2026-10-18
"""

# Standard library
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

# Agent Hub internal
from agenthub.catalog.models import RepoConfig

CATALOG_PATH_ENV = "AGENTHUB_CATALOG_PATH"


def config_dir() -> Path:
    """The per-user ~/.agenthub directory."""
    return Path.home() / ".agenthub"


def secrets_path() -> Path:
    """Location of the file-backed secret store."""
    return config_dir() / "secrets.json"


def _default_config_file() -> Path:
    return config_dir() / "agenthub_config.json"


@dataclass
class HubConfig:
    """Global Agent Hub configuration with defaults.

    Attributes
    ----------
    repositories : List[RepoConfig]
        Subscribed catalogs, in display order.
    auto_update : bool
        Refresh catalogs periodically while a session is open.
    update_interval : int
        Seconds between periodic refreshes.
    install_root : str
        Where artifacts are installed, relative to the workspace.
    request_timeout : float
        Per-attempt HTTP timeout in seconds.
    max_workers : int
        Maximum worker threads for background operations.
    workspace : Optional[str]
        Project directory; the current directory when unset.
    catalog_path : Optional[str]
        Catalog database file; ~/.agenthub/catalog.db when unset.
    """

    repositories: List[RepoConfig] = field(default_factory=list)
    auto_update: bool = True
    update_interval: int = 3600
    install_root: str = ".github"
    request_timeout: float = 30.0
    max_workers: int = 4
    workspace: Optional[str] = None
    catalog_path: Optional[str] = None

    def get_repository(self, repo_id: str) -> Optional[RepoConfig]:
        for repo in self.repositories:
            if repo.id == repo_id:
                return repo
        return None

    def find_repository_by_url(self, url: str) -> Optional[RepoConfig]:
        for repo in self.repositories:
            if repo.url == url:
                return repo
        return None

    def set_repository(self, repo: RepoConfig) -> None:
        """Replace the repository with the same id, or append it."""
        for i, existing in enumerate(self.repositories):
            if existing.id == repo.id:
                self.repositories[i] = repo
                return
        self.repositories.append(repo)

    def remove_repository(self, repo_id: str) -> bool:
        before = len(self.repositories)
        self.repositories = [r for r in self.repositories if r.id != repo_id]
        return len(self.repositories) < before

    def catalog_db_path(self) -> Path:
        """Resolve the catalog database location.

        The ``AGENTHUB_CATALOG_PATH`` environment variable wins over the
        ``catalog_path`` setting; with neither set the database lives in
        ~/.agenthub/catalog.db.
        """
        env_path = os.environ.get(CATALOG_PATH_ENV)
        if env_path:
            return Path(env_path)
        if self.catalog_path:
            return Path(self.catalog_path).expanduser()
        return config_dir() / "catalog.db"

    def to_dict(self) -> dict:
        return {
            'repositories': [r.to_dict() for r in self.repositories],
            'auto_update': self.auto_update,
            'update_interval': self.update_interval,
            'install_root': self.install_root,
            'request_timeout': self.request_timeout,
            'max_workers': self.max_workers,
            'workspace': self.workspace,
            'catalog_path': self.catalog_path,
        }

    def save(self, path: Optional[Path] = None) -> None:
        """Save config to JSON file."""
        path = path or _default_config_file()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(path: Optional[Path] = None) -> HubConfig:
    """Load configuration from file, or return defaults.

    Parameters
    ----------
    path : Optional[Path]
        Config file path. Defaults to ~/.agenthub/agenthub_config.json.

    Returns
    -------
    HubConfig
        Loaded or default configuration.
    """
    path = path or _default_config_file()
    if path.exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            values = {
                k: v for k, v in data.items()
                if k in HubConfig.__dataclass_fields__
            }
            values['repositories'] = [
                RepoConfig.from_dict(r) for r in values.get('repositories', [])
            ]
            return HubConfig(**values)
        except Exception as e:
            logger.warning("Failed to load config from %s: %s", path, e)

    return HubConfig()
