# -*- coding: utf-8 -*-
"""
Agent Hub Session - Wires the catalog engines together.

An AgentHub owns the catalog store, the HTTP fetcher, the worker pool and
the periodic refresh timer for the lifetime of a session. Settings are
re-read from disk after every mutating call so that other processes'
changes are picked up.

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
2026-09-22

Modified
--------
2026-10-18
"""

# Standard library
import logging
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

# Agent Hub internal
from agenthub.catalog.auth import AuthResolver, JsonFileSecretStore
from agenthub.catalog.database import CatalogStore
from agenthub.catalog.errors import NotFoundError, ValidationError
from agenthub.catalog.http import ResilientFetcher
from agenthub.catalog.installer import ArtifactInstaller
from agenthub.catalog.models import AuthConfig, Catalog, InstallResult, RepoConfig
from agenthub.catalog.pool import RefreshTimer, ThreadExecutorPool
from agenthub.catalog.search import SearchEngine
from agenthub.catalog.sync import CatalogSyncEngine
from agenthub.catalog.updater import UpdateEngine
from agenthub.catalog.urls import generate_catalog_id, get_catalog_url_type
from agenthub.core.config import HubConfig, load_config, secrets_path


class AgentHub:
    """A session over the local catalog store.

    Parameters
    ----------
    config_path : Optional[Path]
        Settings file. Defaults to ~/.agenthub/agenthub_config.json.
    db_path : Optional[Path]
        Catalog database. ``HubConfig.catalog_db_path()`` when None.
    secret_store
        Secret store for ``${secret:...}`` references. A JSON file store
        beside the config is used when None.
    fetcher : Optional[ResilientFetcher]
        HTTP client. Built from the settings when None.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        db_path: Optional[Path] = None,
        secret_store=None,
        fetcher: Optional[ResilientFetcher] = None,
    ) -> None:
        self._config_path = config_path
        self.config: HubConfig = load_config(config_path)

        self.store = CatalogStore(db_path or self.config.catalog_db_path())
        self.fetcher = fetcher or ResilientFetcher(timeout=self.config.request_timeout)
        self.auth = AuthResolver(secret_store or JsonFileSecretStore(secrets_path()))
        self.pool = ThreadExecutorPool(max_workers=self.config.max_workers)

        self.sync = CatalogSyncEngine(self.store, self.fetcher, self.auth, pool=self.pool)
        self.search = SearchEngine(self.store)
        self.updates = UpdateEngine(self.store, self.fetcher, self.auth)
        self.installer = ArtifactInstaller(
            self.store, self.fetcher, self.auth, workspace=self.workspace
        )
        self._timer: Optional[RefreshTimer] = None

    @property
    def workspace(self) -> Path:
        return Path(self.config.workspace) if self.config.workspace else Path.cwd()

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start periodic refresh if auto-update is enabled."""
        if not self.config.auto_update or self._timer is not None:
            return
        self._timer = RefreshTimer(self.config.update_interval, self._scheduled_refresh)
        self._timer.start()

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def close(self) -> None:
        """Stop the timer and release the pool, HTTP session and store."""
        self.stop()
        self.pool.shutdown(wait=True)
        self.fetcher.close()
        self.store.close()

    def __enter__(self) -> 'AgentHub':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def _scheduled_refresh(self) -> None:
        self.reload_config()
        catalogs = self.refresh_all()
        failed = [c.id for c in catalogs if not c.is_healthy]
        if failed:
            logger.warning("Scheduled refresh: %d catalog(s) in error: %s",
                           len(failed), ", ".join(failed))
        updates = self.updates.check_for_updates(self.config.repositories)
        logger.info("Scheduled refresh: %d catalog(s), %d update(s) available",
                    len(catalogs), len(updates))

    # ------------------------------------------------------------------
    # Settings-backed operations
    # ------------------------------------------------------------------

    def reload_config(self) -> HubConfig:
        self.config = load_config(self._config_path)
        return self.config

    def save_config(self) -> None:
        self.config.save(self._config_path)
        self.reload_config()

    def repo_config(self, catalog_id: str) -> Optional[RepoConfig]:
        return self.config.get_repository(catalog_id)

    def add_repository(
        self,
        url: str,
        repo_id: Optional[str] = None,
        token: Optional[str] = None,
    ) -> Catalog:
        """Subscribe to a catalog, persist it, and run the first sync.

        Parameters
        ----------
        url : str
            Manifest URL.
        repo_id : Optional[str]
            Catalog id; derived from the URL when None.
        token : Optional[str]
            Bearer token. Stored in the secret store and referenced from
            the settings as ``${secret:<id>}``.

        Returns
        -------
        Catalog
            The catalog after its initial refresh (possibly in error).

        Raises
        ------
        ValidationError
            If the URL is malformed or already subscribed under another id.
        """
        get_catalog_url_type(url)  # rejects malformed URLs
        repo_id = repo_id or generate_catalog_id(url)
        existing = (
            self.config.find_repository_by_url(url)
            or self.store.get_catalog_by_url(url)
        )
        if existing is not None and existing.id != repo_id:
            raise ValidationError(
                f"Catalog URL already subscribed as {existing.id!r}: {url}"
            )

        auth = None
        if token:
            self.auth.store_token(repo_id, token)
            auth = AuthConfig(type='bearer', token=f"${{secret:{repo_id}}}")

        repo = RepoConfig(id=repo_id, url=url, enabled=True, auth=auth)
        catalog = self.sync.add_catalog(repo)
        self.config.set_repository(repo)
        self.save_config()
        return catalog

    def remove_repository(self, repo_id: str) -> None:
        """Unsubscribe and forget the catalog's stored token.

        Raises
        ------
        NotFoundError
            If neither the settings nor the store know the catalog.
        """
        in_settings = self.config.remove_repository(repo_id)
        try:
            self.sync.remove_catalog(repo_id)
        except NotFoundError:
            if not in_settings:
                raise
        self.auth.delete_token(repo_id)
        self.save_config()

    def refresh(self, repo_id: str) -> Catalog:
        repo = self.repo_config(repo_id)
        if repo is None:
            raise NotFoundError(f"Repository not configured: {repo_id}")
        return self.sync.refresh(repo)

    def refresh_all(self) -> List[Catalog]:
        return self.sync.refresh_all(self.config.repositories)

    def install(self, catalog_id: str, artifact_id: str) -> InstallResult:
        artifact = self.search.get_artifact(catalog_id, artifact_id)
        if artifact is None:
            return InstallResult(
                success=False,
                error=f"Artifact not found: {catalog_id}/{artifact_id}",
            )
        return self.installer.install(
            artifact, self.config.install_root, self.repo_config(catalog_id)
        )

    def uninstall(self, catalog_id: str, artifact_id: str) -> InstallResult:
        return self.installer.uninstall(catalog_id, artifact_id)

    def update(self, catalog_id: str, artifact_id: str) -> InstallResult:
        return self.installer.update(
            catalog_id, artifact_id, self.config.install_root,
            self.repo_config(catalog_id),
        )
