# -*- coding: utf-8 -*-
"""
Catalog Sync Engine - Fetch catalog manifests into the local store.

A refresh fetches the manifest, validates it, resolves every artifact's
raw-content URL, then replaces the catalog's artifact set in a single
store transaction. Any failure is recorded on the catalog as an error
status; the previously indexed artifacts stay in place so search keeps
serving the last good snapshot.

Refreshes of the same catalog never overlap. A caller that arrives while
a refresh of that catalog is in flight waits for it and shares its
result.

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
2026-09-17

Modified
--------
2026-10-18
"""

# Standard library
import logging
import threading
from concurrent.futures import Future
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Agent Hub internal
from agenthub.catalog.auth import AuthResolver
from agenthub.catalog.database import CatalogStore
from agenthub.catalog.errors import CatalogError, NotFoundError, ValidationError
from agenthub.catalog.http import ResilientFetcher
from agenthub.catalog.models import (
    STATUS_ERROR,
    Artifact,
    Catalog,
    CatalogMetadata,
    RepoConfig,
)
from agenthub.catalog.pool import ThreadExecutorPool
from agenthub.catalog.urls import resolve_artifact_url

CATALOG_SCHEMA_VERSION = "1.0.0"


def parse_manifest(
    data: Any,
    catalog_id: str,
) -> Tuple[CatalogMetadata, List[Artifact]]:
    """Validate a manifest document and build its artifacts.

    Parameters
    ----------
    data : Any
        Decoded manifest JSON.
    catalog_id : str
        Id of the subscribing catalog; set on every artifact.

    Returns
    -------
    Tuple[CatalogMetadata, List[Artifact]]
        Manifest metadata and artifacts with resolved ``source_url``.

    Raises
    ------
    ValidationError
        On an unsupported schema version or a malformed document.
    """
    if not isinstance(data, dict):
        raise ValidationError("Manifest must be a JSON object")

    schema_version = data.get('schemaVersion')
    if schema_version != CATALOG_SCHEMA_VERSION:
        raise ValidationError(
            f"Unsupported catalog schema version {schema_version!r} "
            f"(expected {CATALOG_SCHEMA_VERSION})"
        )

    metadata = CatalogMetadata.from_dict(data.get('metadata'))

    entries = data.get('artifacts')
    if not isinstance(entries, list):
        raise ValidationError("Manifest: 'artifacts' must be a list")

    by_id: Dict[str, Artifact] = {}
    for entry in entries:
        artifact = Artifact.from_manifest(entry, catalog_id)
        artifact.source_url = resolve_artifact_url(metadata.repository, artifact.path)
        if artifact.id in by_id:
            logger.warning(
                "Catalog %r lists artifact %r more than once; keeping the last entry",
                catalog_id, artifact.id,
            )
        by_id[artifact.id] = artifact
    return metadata, list(by_id.values())


def _error_catalog(config: RepoConfig, message: str) -> Catalog:
    """Error record for a catalog whose failure could not be stored."""
    return Catalog(
        id=config.id,
        url=config.url,
        metadata=CatalogMetadata.placeholder(config.id, config.url),
        enabled=config.enabled,
        status=STATUS_ERROR,
        error=message,
    )


class CatalogSyncEngine:
    """Keeps the catalog store in step with subscribed manifests.

    Parameters
    ----------
    store : CatalogStore
    fetcher : ResilientFetcher
    auth : AuthResolver
    pool : Optional[ThreadExecutorPool]
        Pool used by ``refresh_all`` to fan out. Refreshes run inline
        when None.
    """

    def __init__(
        self,
        store: CatalogStore,
        fetcher: ResilientFetcher,
        auth: AuthResolver,
        pool: Optional[ThreadExecutorPool] = None,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._auth = auth
        self._pool = pool
        self._guard = threading.Lock()
        self._in_flight: Dict[str, Future] = {}

    def refresh(self, config: RepoConfig) -> Catalog:
        """Refresh one catalog, coalescing with an in-flight refresh.

        Parameters
        ----------
        config : RepoConfig

        Returns
        -------
        Catalog
            The catalog record after the refresh, healthy or in error.
        """
        with self._guard:
            pending = self._in_flight.get(config.id)
            owner = pending is None
            if owner:
                pending = Future()
                self._in_flight[config.id] = pending

        if not owner:
            logger.debug("Refresh of %r already running; waiting for it", config.id)
            return pending.result()

        try:
            catalog = self._refresh(config)
        except BaseException as e:
            pending.set_exception(e)
            raise
        else:
            pending.set_result(catalog)
            return catalog
        finally:
            with self._guard:
                self._in_flight.pop(config.id, None)

    def _refresh(self, config: RepoConfig) -> Catalog:
        logger.info("Refreshing catalog %r from %s", config.id, config.url)
        try:
            auth = self._auth.resolve(config.id, config.auth)
            data = self._fetcher.fetch_json(config.url, auth=auth)
            metadata, artifacts = parse_manifest(data, config.id)
            count = self._store.replace_catalog_snapshot(
                config.id, config.url, config.enabled, metadata, artifacts
            )
        except CatalogError as e:
            message = str(e) or type(e).__name__
            logger.warning("Refresh of catalog %r failed: %s", config.id, message)
            try:
                self._store.mark_catalog_error(
                    config.id, config.url, message, config.enabled
                )
            except CatalogError as store_error:
                logger.error("Could not record failed refresh of %r: %s",
                             config.id, store_error)
                return _error_catalog(config, message)
        else:
            logger.info("Catalog %r synced: %d artifacts", config.id, count)
        return self._store.get_catalog(config.id)

    def refresh_all(self, configs: List[RepoConfig]) -> List[Catalog]:
        """Refresh every enabled catalog.

        Runs concurrently on the pool when one is configured. Results are
        returned in the order of ``configs``; disabled configs are
        skipped. A catalog whose refresh raises is reported in error
        without affecting the others.
        """
        enabled = [c for c in configs if c.enabled]
        futures = None
        if self._pool is not None:
            futures = [self._pool.submit_refresh(self, c) for c in enabled]

        catalogs = []
        for i, config in enumerate(enabled):
            try:
                if futures is None:
                    catalog = self.refresh(config)
                else:
                    catalog = futures[i].result()
            except CatalogError as e:
                logger.warning("Refresh of catalog %r failed: %s", config.id, e)
                catalog = _error_catalog(config, str(e) or type(e).__name__)
            catalogs.append(catalog)
        return catalogs

    def add_catalog(self, config: RepoConfig) -> Catalog:
        """Subscribe to a catalog and run its initial refresh."""
        return self.refresh(config)

    def remove_catalog(self, catalog_id: str) -> None:
        """Unsubscribe; artifacts and installations cascade.

        Raises
        ------
        NotFoundError
            If the catalog is not subscribed.
        """
        if not self._store.remove_catalog(catalog_id):
            raise NotFoundError(f"Catalog not found: {catalog_id}")
        logger.info("Removed catalog %r", catalog_id)

    def set_enabled(self, catalog_id: str, enabled: bool) -> None:
        self._store.set_catalog_enabled(catalog_id, enabled)
