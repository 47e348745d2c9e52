# -*- coding: utf-8 -*-
"""
Catalog URL Resolver - Map repository descriptors to raw content URLs.

Pure helpers, no I/O. Given a catalog's repository descriptor and an
artifact's path inside that repository, produce the URL the raw file can
be fetched from:

- github:  ``https://raw.githubusercontent.com/<org>/<repo>/<branch>/<path>``
- gitlab:  ``<baseUrl>/-/raw/<branch>/<path>``
- generic: ``<baseUrl>/<path>``

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
2026-09-30
"""

# Standard library
import re
from urllib.parse import urlparse

# Agent Hub internal
from agenthub.catalog.errors import InvalidUrl
from agenthub.catalog.models import RepositoryDescriptor

DEFAULT_BRANCH = "main"
CHANGELOG_FILENAME = "CHANGELOG.md"

_GITHUB_RAW_HOST = "https://raw.githubusercontent.com"
_ALLOWED_SCHEMES = ("http", "https")


def _check_url(url: str) -> None:
    parsed = urlparse(url or "")
    if parsed.scheme not in _ALLOWED_SCHEMES or not parsed.netloc:
        raise InvalidUrl(f"Invalid URL: {url!r}")


def _normalize_path(path: str) -> str:
    """Forward slashes, no duplicate separators, no leading './' or '/'."""
    path = path.replace("\\", "/")
    path = re.sub(r"/{2,}", "/", path)
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def get_catalog_url_type(url: str) -> str:
    """Classify a repository or manifest URL by its host.

    Parameters
    ----------
    url : str

    Returns
    -------
    str
        'github', 'gitlab' or 'generic'.

    Raises
    ------
    InvalidUrl
        If the URL has no http(s) scheme or host.
    """
    _check_url(url)
    parsed = urlparse(url)
    host = parsed.hostname or ""
    if "github.com" in host:
        return "github"
    # Self-hosted GitLab: gitlab.<domain> hosts or the '/-/' route marker
    if "gitlab.com" in host or host.startswith("gitlab.") or "/-/" in parsed.path:
        return "gitlab"
    return "generic"


def resolve_artifact_url(repository: RepositoryDescriptor, artifact_path: str) -> str:
    """Resolve an artifact's raw content URL.

    Parameters
    ----------
    repository : RepositoryDescriptor
        Repository descriptor from the catalog manifest.
    artifact_path : str
        Path of the artifact file inside the repository.

    Returns
    -------
    str
        Fetchable raw-content URL.

    Raises
    ------
    InvalidUrl
        If the repository URL is malformed, or a GitHub URL does not name
        an owner and repository.
    """
    _check_url(repository.url)
    branch = repository.branch or DEFAULT_BRANCH
    path = _normalize_path(artifact_path)
    base = repository.url.rstrip("/")

    if repository.kind == "github":
        parts = [p for p in urlparse(base).path.split("/") if p]
        if len(parts) < 2:
            raise InvalidUrl(f"GitHub URL must name owner and repo: {repository.url!r}")
        org, repo = parts[0], parts[1]
        if repo.endswith(".git"):
            repo = repo[:-4]
        return f"{_GITHUB_RAW_HOST}/{org}/{repo}/{branch}/{path}"

    if repository.kind == "gitlab":
        if base.endswith(".git"):
            base = base[:-4]
        return f"{base}/-/raw/{branch}/{path}"

    return f"{base}/{path}"


def changelog_url(source_url: str) -> str:
    """URL of the CHANGELOG.md that sits next to an artifact file."""
    head, sep, _ = source_url.rpartition("/")
    if not sep:
        return CHANGELOG_FILENAME
    return f"{head}/{CHANGELOG_FILENAME}"


def generate_catalog_id(url: str) -> str:
    """Suggest a catalog id from a manifest URL.

    Joins the two path segments preceding the manifest file name, e.g.
    ``https://gitlab.com/org/repo/-/raw/main/catalog.json`` gives
    ``raw-main``; ``https://example.com/team/catalog/catalog.json`` gives
    ``team-catalog``.
    """
    try:
        _check_url(url)
    except InvalidUrl:
        return "custom-catalog"
    parts = [p for p in urlparse(url).path.split("/") if p]
    segment = "-".join(parts[-3:-1]).lower()
    segment = re.sub(r"[^a-z0-9-]+", "-", segment).strip("-")
    return segment or "custom-catalog"
