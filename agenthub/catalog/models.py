# -*- coding: utf-8 -*-
"""
Catalog Models - Data models for catalogs, artifacts and installations.

Defines the domain entities stored by the catalog database, the auth and
repository configuration types read from settings, and the result types
returned by the search, update and install engines. Entities that are
persisted carry an explicit ``from_row`` decode step; malformed JSON in a
stored column raises ``ValidationError`` instead of being coerced.

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
2026-10-11
"""

# Standard library
import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

# Agent Hub internal
from agenthub.catalog.errors import ValidationError


ARTIFACT_TYPES = ('chatmode', 'instructions', 'prompt', 'task', 'profile', 'agent')
DIFFICULTIES = ('beginner', 'intermediate', 'advanced')
REPOSITORY_KINDS = ('github', 'gitlab', 'generic')
AUTH_TYPES = ('none', 'bearer', 'basic')

STATUS_HEALTHY = 'healthy'
STATUS_ERROR = 'error'

# Artifact columns holding JSON-encoded values, with their empty default.
_ARTIFACT_JSON_COLUMNS: Dict[str, Any] = {
    'tags': [],
    'keywords': [],
    'language': [],
    'framework': [],
    'use_case': [],
    'metadata': {},
    'author': None,
    'compatibility': None,
    'dependencies': [],
}


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _load_json(raw: Optional[str], default: Any, entity: str,
               key: str, column: str) -> Any:
    if raw is None or raw == '':
        return default
    try:
        return json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise ValidationError(
            f"Malformed JSON in {entity} {key!r} column {column!r}: {e}"
        ) from e


def _string_list(data: Dict[str, Any], key: str, where: str) -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{where}: '{key}' must be a list of strings")
    return list(value)


def _required_str(data: Dict[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{where}: missing or invalid '{key}'")
    return value


# ---------------------------------------------------------------------------
# Auth and repository configuration
# ---------------------------------------------------------------------------

@dataclass
class AuthConfig:
    """Authentication settings for a catalog repository.

    ``token`` and ``password`` may be literal values, ``${secret:KEY}``
    or ``${env:VAR}`` references.
    """

    type: str = 'none'
    token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self) -> None:
        if self.type not in AUTH_TYPES:
            raise ValidationError(
                f"auth type must be one of {AUTH_TYPES}, got {self.type!r}"
            )

    def copy(self) -> 'AuthConfig':
        return AuthConfig(
            type=self.type, token=self.token,
            username=self.username, password=self.password,
        )

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {'type': self.type}
        if self.token is not None:
            data['token'] = self.token
        if self.username is not None:
            data['username'] = self.username
        if self.password is not None:
            data['password'] = self.password
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional['AuthConfig']:
        if not data:
            return None
        return cls(
            type=data.get('type', 'none'),
            token=data.get('token'),
            username=data.get('username'),
            password=data.get('password'),
        )

    def __repr__(self) -> str:
        # Credentials stay out of reprs and log lines.
        return f"AuthConfig(type={self.type!r})"


@dataclass
class RepoConfig:
    """A subscribed catalog as recorded in the settings store."""

    id: str
    url: str
    enabled: bool = True
    auth: Optional[AuthConfig] = None

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            'id': self.id,
            'url': self.url,
            'enabled': self.enabled,
        }
        if self.auth is not None:
            data['auth'] = self.auth.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'RepoConfig':
        return cls(
            id=data['id'],
            url=data['url'],
            enabled=bool(data.get('enabled', True)),
            auth=AuthConfig.from_dict(data.get('auth')),
        )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class RepositoryDescriptor:
    """Where a catalog's artifact files live.

    Parameters
    ----------
    kind : str
        One of 'github', 'gitlab', 'generic'.
    url : str
        Repository base URL.
    branch : Optional[str]
        Branch name. Resolved URLs use 'main' when absent.
    """

    def __init__(self, kind: str, url: str, branch: Optional[str] = None) -> None:
        if kind not in REPOSITORY_KINDS:
            raise ValidationError(
                f"repository type must be one of {REPOSITORY_KINDS}, got {kind!r}"
            )
        self.kind = kind
        self.url = url
        self.branch = branch

    def to_dict(self) -> dict:
        data = {'type': self.kind, 'url': self.url}
        if self.branch:
            data['branch'] = self.branch
        return data

    @classmethod
    def from_dict(cls, data: Any) -> 'RepositoryDescriptor':
        if not isinstance(data, dict):
            raise ValidationError("metadata: 'repository' must be an object")
        branch = data.get('branch')
        if branch is not None and not isinstance(branch, str):
            raise ValidationError("repository: 'branch' must be a string")
        return cls(
            kind=_required_str(data, 'type', 'repository'),
            url=_required_str(data, 'url', 'repository'),
            branch=branch,
        )

    def __repr__(self) -> str:
        return f"RepositoryDescriptor({self.kind!r}, {self.url!r}, branch={self.branch!r})"


class CatalogMetadata:
    """Descriptive metadata from a catalog manifest."""

    def __init__(
        self,
        id: str,
        name: str,
        repository: RepositoryDescriptor,
        description: str = "",
        author: Any = None,
        license: str = "",
    ) -> None:
        self.id = id
        self.name = name
        self.description = description
        self.author = author
        self.repository = repository
        self.license = license

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'author': self.author,
            'repository': self.repository.to_dict(),
            'license': self.license,
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'CatalogMetadata':
        if not isinstance(data, dict):
            raise ValidationError("manifest: 'metadata' must be an object")
        return cls(
            id=_required_str(data, 'id', 'metadata'),
            name=_required_str(data, 'name', 'metadata'),
            description=data.get('description') or '',
            author=data.get('author'),
            repository=RepositoryDescriptor.from_dict(data.get('repository')),
            license=data.get('license') or '',
        )

    @classmethod
    def placeholder(cls, catalog_id: str, url: str) -> 'CatalogMetadata':
        """Metadata for a catalog whose manifest has never been read."""
        return cls(
            id=catalog_id,
            name=catalog_id,
            repository=RepositoryDescriptor('generic', url),
        )


class Catalog:
    """A subscribed catalog and its sync health.

    Parameters
    ----------
    id : str
        Stable slug, primary key.
    url : str
        Manifest URL.
    metadata : CatalogMetadata
        Manifest metadata from the last successful sync.
    enabled : bool
        Whether the catalog takes part in refresh-all.
    last_fetched : Optional[datetime]
        Time of the last successful sync.
    status : str
        'healthy' or 'error'.
    error : Optional[str]
        Message from the last failed sync.
    """

    def __init__(
        self,
        id: str,
        url: str,
        metadata: CatalogMetadata,
        enabled: bool = True,
        last_fetched: Optional[datetime] = None,
        status: str = STATUS_HEALTHY,
        error: Optional[str] = None,
    ) -> None:
        self.id = id
        self.url = url
        self.metadata = metadata
        self.enabled = enabled
        self.last_fetched = last_fetched
        self.status = status
        self.error = error

    @property
    def is_healthy(self) -> bool:
        return self.status == STATUS_HEALTHY

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Catalog':
        raw = _load_json(row['metadata'], None, 'catalog', row['id'], 'metadata')
        try:
            metadata = CatalogMetadata.from_dict(raw)
        except ValidationError as e:
            raise ValidationError(
                f"Malformed metadata for catalog {row['id']!r}: {e}"
            ) from e
        return cls(
            id=row['id'],
            url=row['url'],
            metadata=metadata,
            enabled=bool(row['enabled']),
            last_fetched=parse_timestamp(row['last_fetched']),
            status=row['status'],
            error=row['error'],
        )

    def __repr__(self) -> str:
        return f"Catalog(id={self.id!r}, status={self.status!r})"


# ---------------------------------------------------------------------------
# Artifact
# ---------------------------------------------------------------------------

class Artifact:
    """One installable unit advertised by a catalog.

    Parameters
    ----------
    id : str
        Artifact id, unique within its catalog.
    catalog_id : str
        Owning catalog.
    type : str
        One of ``ARTIFACT_TYPES``.
    name : str
    description : str
    path : str
        Location inside the source repository.
    version : str
        Free-form version string, usually semantic-version compliant.
    category : str
    source_url : str
        Raw content URL resolved at sync time.
    tags, keywords, language, framework, use_case, dependencies : List[str]
    difficulty : Optional[str]
        One of ``DIFFICULTIES``.
    metadata : Dict[str, Any]
        Popularity data: ``rating``, ``downloads``, ``lastUpdated``.
    author, compatibility : Any
        Free-form manifest values, stored as JSON.
    estimated_time : Optional[str]
    """

    def __init__(
        self,
        id: str,
        catalog_id: str,
        type: str,
        name: str,
        path: str,
        version: str,
        category: str,
        source_url: str = "",
        description: str = "",
        tags: Optional[List[str]] = None,
        keywords: Optional[List[str]] = None,
        language: Optional[List[str]] = None,
        framework: Optional[List[str]] = None,
        use_case: Optional[List[str]] = None,
        difficulty: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        author: Any = None,
        compatibility: Any = None,
        dependencies: Optional[List[str]] = None,
        estimated_time: Optional[str] = None,
    ) -> None:
        if type not in ARTIFACT_TYPES:
            raise ValidationError(
                f"artifact type must be one of {ARTIFACT_TYPES}, got {type!r}"
            )
        if difficulty is not None and difficulty not in DIFFICULTIES:
            raise ValidationError(
                f"difficulty must be one of {DIFFICULTIES}, got {difficulty!r}"
            )
        self.id = id
        self.catalog_id = catalog_id
        self.type = type
        self.name = name
        self.description = description
        self.path = path
        self.version = version
        self.category = category
        self.source_url = source_url
        self.tags = tags or []
        self.keywords = keywords or []
        self.language = language or []
        self.framework = framework or []
        self.use_case = use_case or []
        self.difficulty = difficulty
        self.metadata = metadata or {}
        self.author = author
        self.compatibility = compatibility
        self.dependencies = dependencies or []
        self.estimated_time = estimated_time

    @property
    def key(self) -> Tuple[str, str]:
        return (self.catalog_id, self.id)

    @property
    def rating(self) -> Optional[float]:
        value = self.metadata.get('rating')
        return float(value) if isinstance(value, (int, float)) else None

    @property
    def downloads(self) -> Optional[int]:
        value = self.metadata.get('downloads')
        return int(value) if isinstance(value, (int, float)) else None

    @property
    def last_updated(self) -> Optional[datetime]:
        value = self.metadata.get('lastUpdated')
        return parse_timestamp(value) if isinstance(value, str) else None

    @classmethod
    def from_manifest(cls, entry: Any, catalog_id: str,
                      source_url: str = "") -> 'Artifact':
        """Build an artifact from one manifest ``artifacts[]`` entry.

        Raises
        ------
        ValidationError
            If a required field is missing or a field has the wrong shape.
        """
        if not isinstance(entry, dict):
            raise ValidationError("artifact entries must be objects")
        artifact_id = _required_str(entry, 'id', 'artifact')
        where = f"artifact {artifact_id!r}"
        metadata = entry.get('metadata') or {}
        if not isinstance(metadata, dict):
            raise ValidationError(f"{where}: 'metadata' must be an object")
        description = entry.get('description') or ''
        if not isinstance(description, str):
            raise ValidationError(f"{where}: 'description' must be a string")
        estimated_time = entry.get('estimatedTime')
        if estimated_time is not None:
            estimated_time = str(estimated_time)
        return cls(
            id=artifact_id,
            catalog_id=catalog_id,
            type=_required_str(entry, 'type', where),
            name=_required_str(entry, 'name', where),
            description=description,
            path=_required_str(entry, 'path', where),
            version=_required_str(entry, 'version', where),
            category=_required_str(entry, 'category', where),
            source_url=source_url,
            tags=_string_list(entry, 'tags', where),
            keywords=_string_list(entry, 'keywords', where),
            language=_string_list(entry, 'language', where),
            framework=_string_list(entry, 'framework', where),
            use_case=_string_list(entry, 'useCase', where),
            difficulty=entry.get('difficulty'),
            metadata=metadata,
            author=entry.get('author'),
            compatibility=entry.get('compatibility'),
            dependencies=_string_list(entry, 'dependencies', where),
            estimated_time=estimated_time,
        )

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Artifact':
        key = f"{row['catalog_id']}/{row['id']}"
        decoded = {
            column: _load_json(row[column], default, 'artifact', key, column)
            for column, default in _ARTIFACT_JSON_COLUMNS.items()
        }
        return cls(
            id=row['id'],
            catalog_id=row['catalog_id'],
            type=row['type'],
            name=row['name'],
            description=row['description'] or '',
            path=row['path'],
            version=row['version'],
            category=row['category'],
            source_url=row['source_url'],
            difficulty=row['difficulty'],
            estimated_time=row['estimated_time'],
            **decoded,
        )

    def to_row(self) -> Dict[str, Any]:
        """Column values for an INSERT into the artifacts table."""
        row: Dict[str, Any] = {
            'id': self.id,
            'catalog_id': self.catalog_id,
            'type': self.type,
            'name': self.name,
            'description': self.description,
            'path': self.path,
            'version': self.version,
            'category': self.category,
            'difficulty': self.difficulty,
            'source_url': self.source_url,
            'estimated_time': self.estimated_time,
        }
        for column in _ARTIFACT_JSON_COLUMNS:
            row[column] = json.dumps(getattr(self, column))
        return row

    def __repr__(self) -> str:
        return (
            f"Artifact(catalog_id={self.catalog_id!r}, id={self.id!r}, "
            f"type={self.type!r}, version={self.version!r})"
        )


# ---------------------------------------------------------------------------
# Installation
# ---------------------------------------------------------------------------

class Installation:
    """Local record of an artifact materialized into the project tree."""

    def __init__(
        self,
        artifact_id: str,
        catalog_id: str,
        version: str,
        installed_path: str,
        installed_at: Optional[datetime] = None,
        last_used: Optional[datetime] = None,
        id: Optional[int] = None,
    ) -> None:
        self.id = id
        self.artifact_id = artifact_id
        self.catalog_id = catalog_id
        self.version = version
        self.installed_path = installed_path
        self.installed_at = installed_at
        self.last_used = last_used

    @property
    def key(self) -> Tuple[str, str]:
        return (self.catalog_id, self.artifact_id)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Installation':
        return cls(
            id=row['id'],
            artifact_id=row['artifact_id'],
            catalog_id=row['catalog_id'],
            version=row['version'],
            installed_path=row['installed_path'],
            installed_at=parse_timestamp(row['installed_at']),
            last_used=parse_timestamp(row['last_used']),
        )

    def __repr__(self) -> str:
        return (
            f"Installation({self.catalog_id!r}/{self.artifact_id!r} "
            f"@ {self.version})"
        )


# ---------------------------------------------------------------------------
# Engine results
# ---------------------------------------------------------------------------

@dataclass
class SearchQuery:
    """Filters, sort order and page for a catalog search."""

    query: Optional[str] = None
    type: List[str] = field(default_factory=list)
    category: List[str] = field(default_factory=list)
    difficulty: List[str] = field(default_factory=list)
    catalog: List[str] = field(default_factory=list)
    language: List[str] = field(default_factory=list)
    framework: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    sort_by: str = 'relevance'
    page: int = 1
    page_size: int = 50


@dataclass
class SearchHit:
    """An artifact in a result page with its derived installed state."""

    artifact: Artifact
    installed: bool = False


@dataclass
class SearchResult:
    hits: List[SearchHit]
    total: int
    page: int
    page_size: int
    has_more: bool

    @property
    def artifacts(self) -> List[Artifact]:
        return [hit.artifact for hit in self.hits]


class UpdateInfo:
    """An installation whose catalog artifact has a newer version.

    Parameters
    ----------
    installation : Installation
    latest_version : str
        Version currently advertised by the catalog.
    changelog : Optional[str]
        First lines of the artifact's CHANGELOG.md, or None when not
        available.
    """

    def __init__(
        self,
        installation: Installation,
        latest_version: str,
        changelog: Optional[str] = None,
    ) -> None:
        self.installation = installation
        self.latest_version = latest_version
        self.changelog = changelog

    def __repr__(self) -> str:
        return (
            f"UpdateInfo({self.installation.artifact_id!r}: "
            f"{self.installation.version} -> {self.latest_version})"
        )


@dataclass
class InstallationWithUpdate:
    installation: Installation
    artifact: Optional[Artifact]
    update_available: bool = False
    new_version: Optional[str] = None


@dataclass
class InstallResult:
    success: bool
    error: Optional[str] = None
    installed_path: Optional[str] = None


@dataclass
class BatchInstallResult:
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class ProfileArtifactRef:
    catalog_id: str
    artifact_id: str
    version: Optional[str] = None

    def to_dict(self) -> dict:
        data = {'catalogId': self.catalog_id, 'artifactId': self.artifact_id}
        if self.version:
            data['version'] = self.version
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'ProfileArtifactRef':
        return cls(
            catalog_id=data['catalogId'],
            artifact_id=data['artifactId'],
            version=data.get('version'),
        )


@dataclass
class Profile:
    """A named set of artifacts installed together."""

    id: str
    name: str
    description: str = ""
    version: str = "1.0.0"
    artifacts: List[ProfileArtifactRef] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'version': self.version,
            'artifacts': [ref.to_dict() for ref in self.artifacts],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Profile':
        try:
            return cls(
                id=data['id'],
                name=data['name'],
                description=data.get('description', ''),
                version=data.get('version', '1.0.0'),
                artifacts=[
                    ProfileArtifactRef.from_dict(ref)
                    for ref in data.get('artifacts', [])
                ],
            )
        except (KeyError, TypeError) as e:
            raise ValidationError(f"Malformed profile: {e}") from e
