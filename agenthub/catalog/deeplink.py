# -*- coding: utf-8 -*-
"""
Deep Links - Install requests arriving from outside the application.

A link such as::

    agenthub://agent-hub/installArtifact?artifactType=prompt
        &artifactId=code-review&catalogRepoUrl=https://github.com/org/repo

asks for one artifact to be installed. When the link names a catalog the
user has not subscribed to, the user must confirm adding it first.

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
2026-09-25

Modified
--------
2026-10-07
"""

# Standard library
import logging
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import parse_qs, urlparse

logger = logging.getLogger(__name__)

# Agent Hub internal
from agenthub.catalog.errors import CatalogError, ValidationError
from agenthub.catalog.models import (
    ARTIFACT_TYPES,
    Artifact,
    InstallResult,
    RepositoryDescriptor,
    SearchQuery,
)
from agenthub.catalog.urls import get_catalog_url_type, resolve_artifact_url

INSTALL_ACTION = "/installArtifact"
DEFAULT_CATALOG_PATH = "copilot-catalog.json"


@dataclass
class InstallRequest:
    artifact_type: str
    artifact_id: str
    catalog_repo_url: Optional[str] = None
    catalog_path: str = DEFAULT_CATALOG_PATH
    source: str = "unknown"

    @property
    def manifest_url(self) -> Optional[str]:
        """Manifest URL for the linked catalog, if the link names one."""
        if not self.catalog_repo_url:
            return None
        return catalog_manifest_url(self.catalog_repo_url, self.catalog_path)


def catalog_manifest_url(repo_url: str, catalog_path: str = DEFAULT_CATALOG_PATH) -> str:
    """Manifest URL for a repository URL plus manifest path.

    A URL that already points at a ``.json`` file is returned unchanged.
    """
    if urlparse(repo_url).path.endswith('.json'):
        return repo_url
    kind = get_catalog_url_type(repo_url)
    return resolve_artifact_url(RepositoryDescriptor(kind, repo_url), catalog_path)


def parse_install_link(uri: str) -> InstallRequest:
    """Parse an ``installArtifact`` deep link.

    Raises
    ------
    ValidationError
        For another action, a missing artifact type or id, or an unknown
        artifact type.
    """
    parsed = urlparse(uri)
    if parsed.path.rstrip('/') != INSTALL_ACTION:
        raise ValidationError(f"Unknown deep link action: {parsed.path!r}")

    params = {k: v[0] for k, v in parse_qs(parsed.query).items() if v}
    artifact_type = params.get('artifactType')
    artifact_id = params.get('artifactId')
    if not artifact_type or not artifact_id:
        raise ValidationError("Invalid install link: missing artifactType or artifactId")
    if artifact_type not in ARTIFACT_TYPES:
        raise ValidationError(f"Invalid install link: unknown artifactType {artifact_type!r}")

    return InstallRequest(
        artifact_type=artifact_type,
        artifact_id=artifact_id,
        catalog_repo_url=params.get('catalogRepoUrl'),
        catalog_path=params.get('catalogPath') or DEFAULT_CATALOG_PATH,
        source=params.get('source') or 'unknown',
    )


def _ensure_catalog(request: InstallRequest, hub, confirm: Callable[[str], bool]) -> Optional[str]:
    """Subscribe to the linked catalog if needed; return its id."""
    manifest_url = request.manifest_url
    if manifest_url is None:
        return None

    for url in (manifest_url, request.catalog_repo_url):
        existing = hub.config.find_repository_by_url(url)
        if existing is not None:
            logger.info("Catalog already configured: %s", existing.id)
            return existing.id

    if not confirm(manifest_url):
        raise CatalogError("User declined to add catalog")

    catalog = hub.add_repository(manifest_url)
    logger.info("Added catalog %r for deep link", catalog.id)
    return catalog.id


def _find_artifact(request: InstallRequest, hub, catalog_id: Optional[str]) -> Optional[Artifact]:
    if catalog_id is not None:
        artifact = hub.search.get_artifact(catalog_id, request.artifact_id)
        if artifact is not None and artifact.type == request.artifact_type:
            return artifact
    result = hub.search.search(SearchQuery(
        query=request.artifact_id,
        type=[request.artifact_type],
        page_size=100,
    ))
    for artifact in result.artifacts:
        if artifact.id == request.artifact_id:
            return artifact
    return None


def handle_install_request(
    request: InstallRequest,
    hub,
    confirm: Callable[[str], bool],
) -> InstallResult:
    """Carry out a deep-link install.

    Parameters
    ----------
    request : InstallRequest
    hub : AgentHub
    confirm : Callable[[str], bool]
        Asked with the manifest URL before subscribing to a new catalog.

    Returns
    -------
    InstallResult

    Raises
    ------
    CatalogError
        If the user declines to add the linked catalog.
    """
    logger.info("Install request from %s: %s/%s", request.source,
                request.artifact_type, request.artifact_id)
    catalog_id = _ensure_catalog(request, hub, confirm)

    artifact = _find_artifact(request, hub, catalog_id)
    if artifact is None:
        return InstallResult(
            success=False,
            error=(
                f'Could not find artifact "{request.artifact_id}" of type '
                f'"{request.artifact_type}". Make sure the catalog is loaded.'
            ),
        )
    return hub.installer.install(
        artifact, hub.config.install_root, hub.repo_config(artifact.catalog_id)
    )
