# -*- coding: utf-8 -*-
"""
Tests for agenthub.core.config — HubConfig and load_config.

Author
------
Agent Hub contributors

Created
-------
2026-09-15
"""

import json
from pathlib import Path
from unittest import mock

from agenthub.catalog.models import AuthConfig, RepoConfig
from agenthub.core.config import HubConfig, load_config, secrets_path


class TestHubConfig:
    def test_defaults(self):
        cfg = HubConfig()
        assert cfg.repositories == []
        assert cfg.auto_update is True
        assert cfg.update_interval == 3600
        assert cfg.install_root == ".github"
        assert cfg.request_timeout == 30.0
        assert cfg.max_workers == 4

    def test_custom_values(self):
        cfg = HubConfig(update_interval=60, max_workers=8)
        assert cfg.update_interval == 60
        assert cfg.max_workers == 8

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "config.json"
        cfg = HubConfig(
            repositories=[RepoConfig(
                id="team", url="https://example.com/c.json",
                auth=AuthConfig(type="bearer", token="${secret:team}"),
            )],
            auto_update=False,
        )
        cfg.save(path)

        loaded = load_config(path)
        assert loaded.auto_update is False
        assert loaded.repositories[0].id == "team"
        assert loaded.repositories[0].auth.token == "${secret:team}"
        # Other fields should be default
        assert loaded.install_root == ".github"

    def test_load_missing_file_returns_defaults(self, tmp_path):
        path = tmp_path / "nonexistent.json"
        cfg = load_config(path)
        assert cfg.update_interval == 3600

    def test_load_corrupted_file_returns_defaults(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not json {{{")
        cfg = load_config(path)
        assert cfg.repositories == []

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'max_workers': 2, 'theme': 'dark'}))
        cfg = load_config(path)
        assert cfg.max_workers == 2


class TestRepositories:
    def test_set_replaces_by_id(self):
        cfg = HubConfig()
        cfg.set_repository(RepoConfig(id="a", url="https://example.com/1.json"))
        cfg.set_repository(RepoConfig(id="b", url="https://example.com/2.json"))
        cfg.set_repository(RepoConfig(id="a", url="https://example.com/3.json"))
        assert [(r.id, r.url) for r in cfg.repositories] == [
            ("a", "https://example.com/3.json"),
            ("b", "https://example.com/2.json"),
        ]

    def test_lookup(self):
        cfg = HubConfig(repositories=[RepoConfig(id="a", url="https://example.com/1.json")])
        assert cfg.get_repository("a").url == "https://example.com/1.json"
        assert cfg.get_repository("z") is None
        assert cfg.find_repository_by_url("https://example.com/1.json").id == "a"

    def test_remove(self):
        cfg = HubConfig(repositories=[RepoConfig(id="a", url="https://example.com/1.json")])
        assert cfg.remove_repository("a") is True
        assert cfg.remove_repository("a") is False
        assert cfg.repositories == []


class TestLocations:

    def test_env_var_wins(self, monkeypatch):
        monkeypatch.setenv('AGENTHUB_CATALOG_PATH', '/custom/path/db.sqlite')
        cfg = HubConfig(catalog_path='/from/settings/catalog.db')
        assert cfg.catalog_db_path() == Path('/custom/path/db.sqlite')

    def test_setting_second(self, monkeypatch, tmp_path):
        monkeypatch.delenv('AGENTHUB_CATALOG_PATH', raising=False)
        cfg = HubConfig(catalog_path=str(tmp_path / "elsewhere.db"))
        assert cfg.catalog_db_path() == tmp_path / "elsewhere.db"

    def test_default_under_config_dir(self, monkeypatch, tmp_path):
        monkeypatch.delenv('AGENTHUB_CATALOG_PATH', raising=False)
        with mock.patch('agenthub.core.config.Path.home', return_value=tmp_path):
            assert HubConfig().catalog_db_path() == tmp_path / ".agenthub" / "catalog.db"
            assert secrets_path() == tmp_path / ".agenthub" / "secrets.json"

    def test_catalog_path_persisted(self, tmp_path):
        path = tmp_path / "agenthub_config.json"
        HubConfig(catalog_path="/data/catalog.db").save(path)
        assert json.loads(path.read_text())['catalog_path'] == "/data/catalog.db"
        assert load_config(path).catalog_path == "/data/catalog.db"

    def test_default_settings_file(self, tmp_path):
        with mock.patch('agenthub.core.config.Path.home', return_value=tmp_path):
            HubConfig(max_workers=2).save()
            assert (tmp_path / ".agenthub" / "agenthub_config.json").exists()
            assert load_config().max_workers == 2
