# -*- coding: utf-8 -*-
"""
Catalog Auth - Resolve credential references for catalog repositories.

Auth settings may hold literal credentials or one of two references:

- ``${secret:KEY}`` is looked up in the secret store when the auth is
  resolved for a repository.
- ``${env:VAR}`` is left in place and read from the process environment
  by the fetch layer, at request time.

A reference that cannot be resolved is treated as "no credential"; the
request goes out unauthenticated and the server decides.

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
2026-09-15

Modified
--------
2026-10-18
"""

# Standard library
import base64
import json
import logging
import os
import re
import threading
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# Agent Hub internal
from agenthub.catalog.errors import AuthResolutionError
from agenthub.catalog.models import AuthConfig

SECRET_KEY_PREFIX = "agent-hub.auth"

_SECRET_REF = re.compile(r"^\$\{secret:(.+)\}$")
_ENV_REF = re.compile(r"^\$\{env:(\w+)\}$")


class MemorySecretStore:
    """Dict-backed secret store. Nothing is written to disk."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._secrets: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._secrets.get(key)

    def set(self, key: str, value: str) -> None:
        self._secrets[key] = value

    def delete(self, key: str) -> None:
        self._secrets.pop(key, None)


class JsonFileSecretStore:
    """Secret store persisted to a JSON file readable only by the owner.

    Parameters
    ----------
    path : Path
        Location of the secrets file. Created on first ``set``.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to read secret store %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self._path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)


class AuthResolver:
    """Resolves ``${secret:...}`` references against a secret store.

    Parameters
    ----------
    secret_store
        Any object with ``get(key)``, ``set(key, value)`` and
        ``delete(key)``.
    """

    def __init__(self, secret_store) -> None:
        self._store = secret_store

    @staticmethod
    def secret_key(repo_id: str) -> str:
        return f"{SECRET_KEY_PREFIX}.{repo_id}"

    def store_token(self, repo_id: str, token: str) -> None:
        self._store.set(self.secret_key(repo_id), token)

    def get_token(self, repo_id: str) -> Optional[str]:
        return self._store.get(self.secret_key(repo_id))

    def delete_token(self, repo_id: str) -> None:
        self._store.delete(self.secret_key(repo_id))

    def lookup_secret(self, repo_id: str, value: str) -> str:
        """Substitute a ``${secret:KEY}`` reference; other values pass through.

        Raises
        ------
        AuthResolutionError
            If the referenced secret is not set.
        """
        match = _SECRET_REF.match(value)
        if match is None:
            return value
        secret = self.get_token(match.group(1))
        if secret is None:
            raise AuthResolutionError(
                f"Secret {match.group(1)!r} referenced by repository "
                f"{repo_id!r} is not set"
            )
        return secret

    def _resolve_value(self, repo_id: str, value: str) -> Optional[str]:
        try:
            return self.lookup_secret(repo_id, value)
        except AuthResolutionError as e:
            logger.debug("%s; sending no credential", e)
            return None

    def resolve(self, repo_id: str, auth: Optional[AuthConfig]) -> Optional[AuthConfig]:
        """Resolve secret references in an auth config.

        Parameters
        ----------
        repo_id : str
            Repository the auth belongs to (used for log context).
        auth : Optional[AuthConfig]

        Returns
        -------
        Optional[AuthConfig]
            A copy with secret references substituted, or None for
            absent/'none' auth. A missing secret leaves the credential
            empty rather than raising.
        """
        if auth is None or auth.type == 'none':
            return None

        resolved = auth.copy()
        if auth.type == 'bearer' and auth.token:
            if not _ENV_REF.match(auth.token):
                resolved.token = self._resolve_value(repo_id, auth.token)
        elif auth.type == 'basic' and auth.password:
            resolved.password = self._resolve_value(repo_id, auth.password)
        return resolved


def read_env_reference(value: str) -> str:
    """Read the variable named by an ``${env:VAR}`` reference.

    Raises
    ------
    AuthResolutionError
        If ``value`` is not an env reference or the variable is unset.
    """
    match = _ENV_REF.match(value)
    if match is None:
        raise AuthResolutionError(f"Not an environment reference: {value!r}")
    resolved = os.environ.get(match.group(1))
    if not resolved:
        raise AuthResolutionError(
            f"Environment variable {match.group(1)!r} is not set"
        )
    return resolved


def resolve_auth_token(auth: Optional[AuthConfig]) -> Optional[str]:
    """Produce the Authorization credential for a request.

    Parameters
    ----------
    auth : Optional[AuthConfig]
        Auth config, secret references already resolved.

    Returns
    -------
    Optional[str]
        The bearer token (``${env:VAR}`` read from the environment) or the
        base64 ``user:pass`` pair for basic auth. None when there is no
        usable credential.
    """
    if auth is None or auth.type == 'none':
        return None

    if auth.type == 'bearer' and auth.token:
        if _ENV_REF.match(auth.token):
            try:
                return read_env_reference(auth.token)
            except AuthResolutionError as e:
                logger.debug("%s; sending no credential", e)
                return None
        if _SECRET_REF.match(auth.token):
            # Unresolved secret reference; never send the placeholder.
            return None
        return auth.token

    if auth.type == 'basic' and auth.username and auth.password:
        if _SECRET_REF.match(auth.password):
            return None
        raw = f"{auth.username}:{auth.password}".encode('utf-8')
        return base64.b64encode(raw).decode('ascii')

    return None
