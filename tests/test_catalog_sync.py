# -*- coding: utf-8 -*-
"""
Tests for agenthub.catalog.sync — manifest parsing and CatalogSyncEngine.

Author
------
Agent Hub contributors

Created
-------
2026-09-19
"""

import sqlite3
import threading
import time
from unittest import mock

import pytest

from agenthub.catalog.auth import AuthResolver, MemorySecretStore
from agenthub.catalog.database import CatalogStore
from agenthub.catalog.errors import (
    HttpClientError,
    NetworkError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from agenthub.catalog.http import ResilientFetcher
from agenthub.catalog.models import AuthConfig, RepoConfig
from agenthub.catalog.pool import ThreadExecutorPool
from agenthub.catalog.sync import CatalogSyncEngine, parse_manifest


def _entry(artifact_id, **kwargs):
    entry = {
        'id': artifact_id,
        'type': 'prompt',
        'name': artifact_id.replace('-', ' ').title(),
        'description': f"The {artifact_id} prompt",
        'path': f"prompts/{artifact_id}.md",
        'version': '1.0.0',
        'category': 'quality',
    }
    entry.update(kwargs)
    return entry


def _manifest(*entries, branch=None):
    repository = {'type': 'github', 'url': 'https://github.com/org/repo'}
    if branch:
        repository['branch'] = branch
    return {
        'schemaVersion': '1.0.0',
        'metadata': {
            'id': 'team',
            'name': 'Team Catalog',
            'repository': repository,
        },
        'artifacts': list(entries),
    }


@pytest.fixture
def store(tmp_path):
    s = CatalogStore(db_path=tmp_path / "sync.db")
    yield s
    s.close()


@pytest.fixture
def fetcher():
    return mock.Mock(spec=ResilientFetcher)


@pytest.fixture
def secrets():
    return MemorySecretStore()


@pytest.fixture
def engine(store, fetcher, secrets):
    return CatalogSyncEngine(store, fetcher, AuthResolver(secrets))


@pytest.fixture
def config():
    return RepoConfig(id='team', url='https://example.com/team/catalog.json')


# ---------------------------------------------------------------------------
# parse_manifest
# ---------------------------------------------------------------------------

class TestParseManifest:

    def test_resolves_source_urls(self):
        metadata, artifacts = parse_manifest(
            _manifest(_entry('code-review'), branch='dev'), 'team'
        )
        assert metadata.name == 'Team Catalog'
        assert len(artifacts) == 1
        assert artifacts[0].catalog_id == 'team'
        assert artifacts[0].source_url == (
            'https://raw.githubusercontent.com/org/repo/dev/prompts/code-review.md'
        )

    def test_camel_case_fields(self):
        _, artifacts = parse_manifest(_manifest(_entry(
            'a', useCase=['review'], estimatedTime='5 min', difficulty='beginner',
        )), 'team')
        assert artifacts[0].use_case == ['review']
        assert artifacts[0].estimated_time == '5 min'
        assert artifacts[0].difficulty == 'beginner'

    def test_wrong_schema_version(self):
        data = _manifest(_entry('a'))
        data['schemaVersion'] = '2.0.0'
        with pytest.raises(ValidationError, match="schema version"):
            parse_manifest(data, 'team')

    def test_not_an_object(self):
        with pytest.raises(ValidationError):
            parse_manifest(['not', 'a', 'manifest'], 'team')

    def test_artifacts_not_a_list(self):
        data = _manifest()
        data['artifacts'] = {'a': 1}
        with pytest.raises(ValidationError):
            parse_manifest(data, 'team')

    def test_missing_required_field(self):
        entry = _entry('a')
        del entry['version']
        with pytest.raises(ValidationError, match="version"):
            parse_manifest(_manifest(entry), 'team')

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            parse_manifest(_manifest(_entry('a', type='plugin')), 'team')

    def test_bad_tags(self):
        with pytest.raises(ValidationError, match="tags"):
            parse_manifest(_manifest(_entry('a', tags='python')), 'team')

    def test_duplicate_ids_last_wins(self):
        _, artifacts = parse_manifest(_manifest(
            _entry('a', version='1.0.0'),
            _entry('a', version='2.0.0'),
        ), 'team')
        assert [(a.id, a.version) for a in artifacts] == [('a', '2.0.0')]


# ---------------------------------------------------------------------------
# CatalogSyncEngine
# ---------------------------------------------------------------------------

class TestRefresh:

    def test_success(self, engine, fetcher, store, config):
        fetcher.fetch_json.return_value = _manifest(_entry('a'), _entry('b'))

        catalog = engine.refresh(config)

        assert catalog.is_healthy
        assert catalog.last_fetched is not None
        assert store.count_artifacts() == 2
        fetcher.fetch_json.assert_called_once_with(config.url, auth=None)

    def test_every_row_has_catalog_and_source_url(self, engine, fetcher, store, config):
        fetcher.fetch_json.return_value = _manifest(
            _entry('a'), _entry('b', type='task', path='tasks/b.md'), _entry('c'),
        )
        engine.refresh(config)

        artifacts = store.list_artifacts()
        assert len(artifacts) == 3
        for artifact in artifacts:
            assert artifact.catalog_id == 'team'
            assert artifact.source_url
            assert artifact.source_url.endswith(artifact.path)

    def test_network_failure_keeps_artifacts(self, engine, fetcher, store, config):
        fetcher.fetch_json.return_value = _manifest(_entry('a'))
        first = engine.refresh(config)

        fetcher.fetch_json.side_effect = NetworkError("HTTP 503: Service Unavailable", 503)
        catalog = engine.refresh(config)

        assert catalog.status == 'error'
        assert "503" in catalog.error
        assert catalog.last_fetched == first.last_fetched
        assert [a.id for a in store.list_artifacts('team')] == ['a']

    def test_invalid_manifest_keeps_artifacts(self, engine, fetcher, store, config):
        fetcher.fetch_json.return_value = _manifest(_entry('a'))
        engine.refresh(config)

        fetcher.fetch_json.return_value = {'schemaVersion': '0.1'}
        catalog = engine.refresh(config)

        assert not catalog.is_healthy
        assert store.count_artifacts() == 1

    def test_first_sync_failure_records_catalog(self, engine, fetcher, config):
        fetcher.fetch_json.side_effect = HttpClientError("HTTP 404: Not Found", 404)
        catalog = engine.refresh(config)
        assert catalog.id == 'team'
        assert catalog.status == 'error'
        assert "404" in catalog.error

    def test_resync_replaces_snapshot(self, engine, fetcher, store, config):
        fetcher.fetch_json.return_value = _manifest(_entry('a'), _entry('b'))
        engine.refresh(config)
        fetcher.fetch_json.return_value = _manifest(_entry('c'))
        engine.refresh(config)
        assert [a.id for a in store.list_artifacts('team')] == ['c']

    def test_url_taken_by_other_catalog(self, engine, fetcher, store, config):
        fetcher.fetch_json.return_value = _manifest(_entry('a'))
        engine.refresh(config)

        catalog = engine.refresh(RepoConfig(id='other', url=config.url))

        assert catalog.id == 'other'
        assert catalog.status == 'error'
        assert "UNIQUE" in catalog.error
        assert store.get_catalog('team').is_healthy
        assert store.get_catalog('other') is None

    def test_busy_store_reported_as_error(self, tmp_path, fetcher, secrets, config):
        db_path = tmp_path / "busy.db"
        store = CatalogStore(db_path=db_path, timeout=0.1)
        engine = CatalogSyncEngine(store, fetcher, AuthResolver(secrets))
        fetcher.fetch_json.return_value = _manifest(_entry('a'))
        other = sqlite3.connect(str(db_path), isolation_level=None)
        try:
            other.execute("BEGIN IMMEDIATE")
            catalog = engine.refresh(config)
        finally:
            other.close()
            store.close()

        assert catalog.status == 'error'
        assert "locked" in catalog.error

    def test_secret_token_resolved(self, engine, fetcher, secrets, config):
        secrets.set('agent-hub.auth.team', 'T0KEN')
        config.auth = AuthConfig(type='bearer', token='${secret:team}')
        fetcher.fetch_json.return_value = _manifest()

        engine.refresh(config)

        auth = fetcher.fetch_json.call_args.kwargs['auth']
        assert auth.token == 'T0KEN'
        # Settings keep the reference, never the secret
        assert config.auth.token == '${secret:team}'

    def test_concurrent_refresh_coalesces(self, engine, fetcher, config):
        entered = threading.Event()
        release = threading.Event()

        def slow_fetch(url, auth=None):
            entered.set()
            release.wait(5)
            return _manifest(_entry('a'))

        fetcher.fetch_json.side_effect = slow_fetch
        results = []
        first = threading.Thread(target=lambda: results.append(engine.refresh(config)))
        second = threading.Thread(target=lambda: results.append(engine.refresh(config)))

        first.start()
        assert entered.wait(5)
        second.start()
        time.sleep(0.2)
        release.set()
        first.join(5)
        second.join(5)

        assert fetcher.fetch_json.call_count == 1
        assert len(results) == 2
        assert all(c.is_healthy for c in results)


class TestRefreshAll:

    def test_skips_disabled_and_keeps_order(self, store, fetcher, secrets):
        pool = ThreadExecutorPool(max_workers=2)
        engine = CatalogSyncEngine(store, fetcher, AuthResolver(secrets), pool=pool)
        fetcher.fetch_json.return_value = _manifest(_entry('a'))
        configs = [
            RepoConfig(id='one', url='https://example.com/one.json'),
            RepoConfig(id='off', url='https://example.com/off.json', enabled=False),
            RepoConfig(id='two', url='https://example.com/two.json'),
        ]
        try:
            catalogs = engine.refresh_all(configs)
        finally:
            pool.shutdown(wait=True)

        assert [c.id for c in catalogs] == ['one', 'two']
        assert store.get_catalog('off') is None

    def test_one_failure_does_not_stop_others(self, engine, fetcher, store):
        def fetch(url, auth=None):
            if 'bad' in url:
                raise NetworkError("connection refused")
            return _manifest(_entry('a'))

        fetcher.fetch_json.side_effect = fetch
        catalogs = engine.refresh_all([
            RepoConfig(id='bad', url='https://example.com/bad.json'),
            RepoConfig(id='good', url='https://example.com/good.json'),
        ])
        assert [c.status for c in catalogs] == ['error', 'healthy']
        assert store.list_artifacts('good')[0].id == 'a'

    def test_store_failure_keeps_other_results(self, store, fetcher, secrets):
        pool = ThreadExecutorPool(max_workers=2)
        engine = CatalogSyncEngine(store, fetcher, AuthResolver(secrets), pool=pool)
        fetcher.fetch_json.return_value = _manifest(_entry('a'))
        refresh = engine.refresh

        def flaky_refresh(config):
            if config.id == 'broken':
                raise StoreError("Commit failed: disk I/O error")
            return refresh(config)

        configs = [
            RepoConfig(id='broken', url='https://example.com/broken.json'),
            RepoConfig(id='good', url='https://example.com/good.json'),
        ]
        try:
            with mock.patch.object(engine, 'refresh', side_effect=flaky_refresh):
                catalogs = engine.refresh_all(configs)
        finally:
            pool.shutdown(wait=True)

        assert [c.id for c in catalogs] == ['broken', 'good']
        assert catalogs[0].status == 'error'
        assert "disk I/O" in catalogs[0].error
        assert catalogs[1].is_healthy


class TestSubscription:

    def test_remove(self, engine, fetcher, store, config):
        fetcher.fetch_json.return_value = _manifest(_entry('a'))
        engine.add_catalog(config)
        engine.remove_catalog('team')
        assert store.get_catalog('team') is None
        assert store.count_artifacts() == 0

    def test_remove_missing(self, engine):
        with pytest.raises(NotFoundError):
            engine.remove_catalog('nope')

    def test_set_enabled(self, engine, fetcher, store, config):
        fetcher.fetch_json.return_value = _manifest()
        engine.add_catalog(config)
        engine.set_enabled('team', False)
        assert store.get_catalog('team').enabled is False
