# -*- coding: utf-8 -*-
"""
Artifact Installer - Materialize catalog artifacts into a project tree.

Each artifact type installs to a fixed subdirectory and file extension
under the install root (see ``ARTIFACT_PATHS`` and
``ARTIFACT_EXTENSIONS``); trees installed by other Agent Hub clients use
the same layout. Installs overwrite whatever is at the target path.

Install, uninstall and update return an ``InstallResult`` instead of
raising, so batch installs such as profiles can carry on past individual
failures.

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
2026-09-20

Modified
--------
2026-10-18
"""

# Standard library
import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

# Agent Hub internal
from agenthub.catalog.auth import AuthResolver
from agenthub.catalog.database import CatalogStore
from agenthub.catalog.errors import CatalogError, FilesystemError, NotFoundError
from agenthub.catalog.http import ResilientFetcher
from agenthub.catalog.models import (
    Artifact,
    BatchInstallResult,
    Installation,
    InstallResult,
    Profile,
    ProfileArtifactRef,
    RepoConfig,
)

ARTIFACT_PATHS: Dict[str, str] = {
    'chatmode': 'chatmodes',
    'instructions': 'instructions',
    'prompt': 'prompts',
    'task': 'tasks',
    'profile': '../.vscode/agent-hub/profiles',
    'agent': 'agents',
}

ARTIFACT_EXTENSIONS: Dict[str, str] = {
    'chatmode': '.chatmode.md',
    'instructions': '.md',
    'prompt': '.md',
    'task': '.md',
    'profile': '.json',
    'agent': '.md',
}


def artifact_target_path(artifact: Artifact, install_root: Path) -> Path:
    """Where an artifact is written under an install root.

    Parameters
    ----------
    artifact : Artifact
    install_root : Path
        Absolute install root (e.g. ``<workspace>/.github``).

    Returns
    -------
    Path
        Normalized target file path.
    """
    subdir = ARTIFACT_PATHS[artifact.type]
    filename = f"{artifact.id}{ARTIFACT_EXTENSIONS[artifact.type]}"
    if Path(filename).name != filename or filename.startswith('.'):
        raise FilesystemError(f"Unsafe artifact id for a file name: {artifact.id!r}")
    return Path(os.path.normpath(Path(install_root) / subdir / filename))


class ArtifactInstaller:
    """Installs, uninstalls and updates artifacts in a workspace.

    Parameters
    ----------
    store : CatalogStore
    fetcher : ResilientFetcher
    auth : AuthResolver
    workspace : Path
        Directory that relative install roots are resolved against.
    """

    def __init__(
        self,
        store: CatalogStore,
        fetcher: ResilientFetcher,
        auth: AuthResolver,
        workspace: Path,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._auth = auth
        self._workspace = Path(workspace)

    def _root(self, install_root) -> Path:
        root = Path(install_root)
        return root if root.is_absolute() else self._workspace / root

    def install(
        self,
        artifact: Artifact,
        install_root,
        repo_config: Optional[RepoConfig] = None,
    ) -> InstallResult:
        """Fetch an artifact's content, write it, and record the install.

        Parameters
        ----------
        artifact : Artifact
        install_root : Path or str
            Install root, absolute or relative to the workspace.
        repo_config : Optional[RepoConfig]
            Repository config supplying auth for the fetch.

        Returns
        -------
        InstallResult
        """
        try:
            target = artifact_target_path(artifact, self._root(install_root))
            auth = (
                self._auth.resolve(repo_config.id, repo_config.auth)
                if repo_config else None
            )
            content = self._fetcher.fetch_text(artifact.source_url, auth=auth)

            # File and row land together; a failed write rolls the row back.
            with self._store.transaction():
                self._store.upsert_installation(
                    artifact.catalog_id, artifact.id, artifact.version, str(target)
                )
                try:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_text(content, encoding='utf-8')
                except OSError as e:
                    raise FilesystemError(f"Cannot write {target}: {e}") from e
        except CatalogError as e:
            logger.warning("Install of %s/%s failed: %s",
                           artifact.catalog_id, artifact.id, e)
            return InstallResult(success=False, error=str(e))

        logger.info("Installed %s/%s %s -> %s",
                    artifact.catalog_id, artifact.id, artifact.version, target)
        return InstallResult(success=True, installed_path=str(target))

    def uninstall(self, catalog_id: str, artifact_id: str) -> InstallResult:
        """Remove the installed file and its installation record.

        A file that is already gone is not an error.
        """
        try:
            installation = self._store.get_installation(catalog_id, artifact_id)
            if installation is None:
                raise NotFoundError(
                    f"Artifact is not installed: {catalog_id}/{artifact_id}"
                )
            path = Path(installation.installed_path)
            with self._store.transaction():
                self._store.remove_installation(catalog_id, artifact_id)
                try:
                    path.unlink()
                except FileNotFoundError:
                    logger.debug("Installed file already removed: %s", path)
                except OSError as e:
                    raise FilesystemError(f"Cannot remove {path}: {e}") from e
        except CatalogError as e:
            logger.warning("Uninstall of %s/%s failed: %s", catalog_id, artifact_id, e)
            return InstallResult(success=False, error=str(e))

        logger.info("Uninstalled %s/%s", catalog_id, artifact_id)
        return InstallResult(success=True, installed_path=str(path))

    def update(
        self,
        catalog_id: str,
        artifact_id: str,
        install_root,
        repo_config: Optional[RepoConfig] = None,
    ) -> InstallResult:
        """Re-install the catalog's current version over the installed one."""
        try:
            artifact = self._store.get_artifact(catalog_id, artifact_id)
        except CatalogError as e:
            return InstallResult(success=False, error=str(e))
        if artifact is None:
            return InstallResult(
                success=False,
                error=f"Artifact not found: {catalog_id}/{artifact_id}",
            )
        return self.install(artifact, install_root, repo_config)

    def get_all_installations(self) -> List[Installation]:
        return self._store.list_installations()

    def get_installation(self, catalog_id: str, artifact_id: str) -> Optional[Installation]:
        return self._store.get_installation(catalog_id, artifact_id)

    def mark_used(self, catalog_id: str, artifact_id: str) -> None:
        self._store.touch_installation(catalog_id, artifact_id)

    def install_profile(
        self,
        profile: Profile,
        install_root,
        repo_configs: List[RepoConfig],
    ) -> BatchInstallResult:
        """Install every artifact a profile references.

        Individual failures are counted and described in ``errors``; they
        do not stop the batch.
        """
        configs = {c.id: c for c in repo_configs}
        result = BatchInstallResult()

        for ref in profile.artifacts:
            try:
                artifact = self._store.get_artifact(ref.catalog_id, ref.artifact_id)
            except CatalogError as e:
                result.failed += 1
                result.errors.append(f"{ref.artifact_id}: {e}")
                continue
            if artifact is None:
                result.failed += 1
                result.errors.append(
                    f"{ref.artifact_id}: Artifact not found: "
                    f"{ref.catalog_id}/{ref.artifact_id}"
                )
                continue

            if ref.version and artifact.version != ref.version:
                logger.warning(
                    "Version mismatch for %s: requested %s, found %s",
                    ref.artifact_id, ref.version, artifact.version,
                )

            outcome = self.install(artifact, install_root, configs.get(ref.catalog_id))
            if outcome.success:
                result.success += 1
            else:
                result.failed += 1
                result.errors.append(f"{ref.artifact_id}: {outcome.error}")

        return result


def create_profile(
    name: str,
    description: str,
    installations: List[Installation],
) -> Profile:
    """Snapshot a set of installations as a profile."""
    return Profile(
        id=re.sub(r"\s+", "-", name.lower()),
        name=name,
        description=description,
        version="1.0.0",
        artifacts=[
            ProfileArtifactRef(
                catalog_id=i.catalog_id,
                artifact_id=i.artifact_id,
                version=i.version,
            )
            for i in installations
        ],
    )
