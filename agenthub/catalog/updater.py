# -*- coding: utf-8 -*-
"""
Artifact Update Engine - Compare installed artifacts with catalog versions.

For each installation, looks up the artifact currently advertised by its
catalog and reports an update when the catalog version is newer. Versions
are compared by semantic-version precedence (semver.org 2.0.0); when
either side is not a valid semantic version, plain string comparison is
used instead. That fallback is an approximation: it orders '1.10' before
'1.9'.

Dependencies
------------
semver

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
2026-09-19

Modified
--------
2026-10-18
"""

# Standard library
import logging
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Third-party
import semver

# Agent Hub internal
from agenthub.catalog.auth import AuthResolver
from agenthub.catalog.database import CatalogStore
from agenthub.catalog.errors import CatalogError
from agenthub.catalog.http import ResilientFetcher
from agenthub.catalog.models import (
    InstallationWithUpdate,
    RepoConfig,
    UpdateInfo,
)
from agenthub.catalog.urls import changelog_url

CHANGELOG_MAX_LINES = 20


def _parse_semver(value: str) -> Optional[semver.Version]:
    try:
        return semver.Version.parse(value)
    except (TypeError, ValueError):
        return None


def is_newer(candidate: str, current: str) -> bool:
    """Compare version strings by semantic-version precedence.

    Build metadata does not take part in the comparison. When either
    side is not a valid semantic version, plain string comparison is
    used instead.

    Parameters
    ----------
    candidate : str
        Version advertised by the catalog.
    current : str
        Installed version.

    Returns
    -------
    bool
        True if candidate is newer than current.
    """
    new, old = _parse_semver(candidate), _parse_semver(current)
    if new is None or old is None:
        return candidate > current
    return new.compare(old) > 0


class UpdateEngine:
    """Finds installations that have newer catalog versions.

    Parameters
    ----------
    store : CatalogStore
        The catalog store to check.
    fetcher : ResilientFetcher
        Used for changelog fetches.
    auth : AuthResolver
        Resolves repository auth for changelog fetches.
    """

    def __init__(
        self,
        store: CatalogStore,
        fetcher: ResilientFetcher,
        auth: AuthResolver,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._auth = auth

    def fetch_changelog(
        self,
        source_url: str,
        config: Optional[RepoConfig] = None,
    ) -> Optional[str]:
        """First lines of the CHANGELOG.md next to an artifact.

        Parameters
        ----------
        source_url : str
            The artifact's raw-content URL.
        config : Optional[RepoConfig]
            Repository config supplying auth.

        Returns
        -------
        Optional[str]
            Up to 20 lines, or None if the changelog could not be fetched.
        """
        url = changelog_url(source_url)
        try:
            auth = self._auth.resolve(config.id, config.auth) if config else None
            text = self._fetcher.fetch_text(url, auth=auth)
        except CatalogError as e:
            logger.warning("Changelog fetch failed for %s: %s", url, e)
            return None
        return "\n".join(text.split("\n")[:CHANGELOG_MAX_LINES])

    def check_for_updates(self, configs: List[RepoConfig]) -> List[UpdateInfo]:
        """Check every installation for a newer catalog version.

        Parameters
        ----------
        configs : List[RepoConfig]
            Subscribed repositories, for changelog auth.

        Returns
        -------
        List[UpdateInfo]
            Available updates, ordered by catalog id then artifact id.
        """
        by_id = {c.id: c for c in configs}
        updates: List[UpdateInfo] = []

        for installation, artifact in self._store.list_installations_with_artifacts():
            if artifact is None:
                continue
            if not is_newer(artifact.version, installation.version):
                continue
            changelog = self.fetch_changelog(
                artifact.source_url, by_id.get(installation.catalog_id)
            )
            updates.append(UpdateInfo(
                installation=installation,
                latest_version=artifact.version,
                changelog=changelog,
            ))

        updates.sort(key=lambda u: u.installation.key)
        return updates

    def get_installations_with_updates(
        self,
        updates: List[UpdateInfo],
    ) -> List[InstallationWithUpdate]:
        """All installations annotated with update availability.

        Installations whose artifact has left its catalog are included
        with ``artifact=None``.
        """
        update_map: Dict[Tuple[str, str], UpdateInfo] = {
            u.installation.key: u for u in updates
        }
        results: List[InstallationWithUpdate] = []
        for installation, artifact in self._store.list_installations_with_artifacts():
            update = update_map.get(installation.key)
            results.append(InstallationWithUpdate(
                installation=installation,
                artifact=artifact,
                update_available=update is not None,
                new_version=update.latest_version if update else None,
            ))
        return results
