# -*- coding: utf-8 -*-
"""
Tests for agenthub.catalog.installer — ArtifactInstaller and profiles.

Author
------
Agent Hub contributors

Created
-------
2026-09-24
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from agenthub.catalog.auth import AuthResolver, MemorySecretStore
from agenthub.catalog.database import CatalogStore
from agenthub.catalog.errors import FilesystemError, HttpClientError
from agenthub.catalog.http import ResilientFetcher
from agenthub.catalog.installer import (
    ArtifactInstaller,
    artifact_target_path,
    create_profile,
)
from agenthub.catalog.models import (
    Artifact,
    AuthConfig,
    CatalogMetadata,
    Profile,
    ProfileArtifactRef,
    RepoConfig,
    RepositoryDescriptor,
)


def _make_artifact(artifact_id, type="prompt", version="1.0.0", catalog_id="team"):
    return Artifact(
        id=artifact_id,
        catalog_id=catalog_id,
        type=type,
        name=artifact_id,
        path=f"{type}s/{artifact_id}.md",
        version=version,
        category="quality",
        source_url=f"https://example.com/{artifact_id}.md",
    )


@pytest.fixture
def store(tmp_path):
    s = CatalogStore(db_path=tmp_path / "install.db")
    yield s
    s.close()


@pytest.fixture
def fetcher():
    f = MagicMock(spec=ResilientFetcher)
    f.fetch_text.return_value = "# Prompt body\n"
    return f


@pytest.fixture
def secrets():
    return MemorySecretStore()


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def installer(store, fetcher, secrets, workspace):
    return ArtifactInstaller(store, fetcher, AuthResolver(secrets), workspace=workspace)


def _sync(store, artifacts):
    store.replace_catalog_snapshot(
        "team", "https://example.com/team.json", True,
        CatalogMetadata(
            id="team", name="team",
            repository=RepositoryDescriptor("generic", "https://example.com"),
        ),
        artifacts,
    )


class TestTargetPath:

    @pytest.mark.parametrize("artifact_type, relative", [
        ("chatmode", "chatmodes/x.chatmode.md"),
        ("instructions", "instructions/x.md"),
        ("prompt", "prompts/x.md"),
        ("task", "tasks/x.md"),
        ("agent", "agents/x.md"),
    ])
    def test_type_layout(self, tmp_path, artifact_type, relative):
        root = tmp_path / ".github"
        path = artifact_target_path(_make_artifact("x", type=artifact_type), root)
        assert path == root / relative

    def test_profile_lands_in_vscode_dir(self, tmp_path):
        path = artifact_target_path(_make_artifact("x", type="profile"), tmp_path / ".github")
        assert path == tmp_path / ".vscode" / "agent-hub" / "profiles" / "x.json"

    @pytest.mark.parametrize("artifact_id", ["../evil", "a/b", ".hidden"])
    def test_unsafe_ids(self, tmp_path, artifact_id):
        with pytest.raises(FilesystemError):
            artifact_target_path(_make_artifact(artifact_id), tmp_path)


class TestInstall:

    def test_writes_file_and_row(self, installer, store, workspace):
        artifact = _make_artifact("a")
        _sync(store, [artifact])

        result = installer.install(artifact, ".github")

        target = workspace / ".github" / "prompts" / "a.md"
        assert result.success
        assert result.installed_path == str(target)
        assert target.read_text(encoding="utf-8") == "# Prompt body\n"
        installation = store.get_installation("team", "a")
        assert installation.version == "1.0.0"
        assert installation.installed_path == str(target)

    def test_absolute_root(self, installer, store, tmp_path):
        artifact = _make_artifact("a")
        _sync(store, [artifact])
        result = installer.install(artifact, tmp_path / "elsewhere")
        assert Path(result.installed_path) == tmp_path / "elsewhere" / "prompts" / "a.md"

    def test_overwrites_local_edits(self, installer, store, workspace):
        artifact = _make_artifact("a")
        _sync(store, [artifact])
        target = workspace / ".github" / "prompts" / "a.md"
        target.parent.mkdir(parents=True)
        target.write_text("my edits")

        installer.install(artifact, ".github")
        assert target.read_text() == "# Prompt body\n"

    def test_fetch_failure(self, installer, store, fetcher, workspace):
        artifact = _make_artifact("a")
        _sync(store, [artifact])
        fetcher.fetch_text.side_effect = HttpClientError("HTTP 403: Forbidden", 403)

        result = installer.install(artifact, ".github")

        assert not result.success
        assert "403" in result.error
        assert store.get_installation("team", "a") is None
        assert not (workspace / ".github" / "prompts" / "a.md").exists()

    def test_write_failure_rolls_back_row(self, installer, store, workspace):
        artifact = _make_artifact("a")
        _sync(store, [artifact])
        # A directory where the file should go makes the write fail
        (workspace / ".github" / "prompts" / "a.md").mkdir(parents=True)

        result = installer.install(artifact, ".github")

        assert not result.success
        assert store.get_installation("team", "a") is None

    def test_uses_repository_auth(self, installer, store, fetcher, secrets):
        artifact = _make_artifact("a")
        _sync(store, [artifact])
        secrets.set("agent-hub.auth.team", "T")
        config = RepoConfig(
            id="team", url="https://example.com/team.json",
            auth=AuthConfig(type="bearer", token="${secret:team}"),
        )

        installer.install(artifact, ".github", config)

        fetcher.fetch_text.assert_called_once()
        assert fetcher.fetch_text.call_args.kwargs['auth'].token == "T"


class TestUninstall:

    def test_round_trip(self, installer, store, workspace):
        artifact = _make_artifact("a")
        _sync(store, [artifact])
        installer.install(artifact, ".github")

        result = installer.uninstall("team", "a")

        assert result.success
        assert store.get_installation("team", "a") is None
        assert not (workspace / ".github" / "prompts" / "a.md").exists()

    def test_missing_file_is_not_an_error(self, installer, store, workspace):
        artifact = _make_artifact("a")
        _sync(store, [artifact])
        result = installer.install(artifact, ".github")
        Path(result.installed_path).unlink()

        assert installer.uninstall("team", "a").success
        assert installer.get_all_installations() == []

    def test_not_installed(self, installer):
        result = installer.uninstall("team", "nope")
        assert not result.success
        assert "not installed" in result.error


class TestUpdate:

    def test_idempotent(self, installer, store):
        artifact = _make_artifact("a", version="1.0.0")
        _sync(store, [artifact])
        installer.install(artifact, ".github")

        installer.update("team", "a", ".github")
        installer.update("team", "a", ".github")

        installations = installer.get_all_installations()
        assert len(installations) == 1
        assert installations[0].version == "1.0.0"

    def test_moves_to_catalog_version(self, installer, store, fetcher):
        _sync(store, [_make_artifact("a", version="1.0.0")])
        installer.install(store.get_artifact("team", "a"), ".github")

        _sync(store, [_make_artifact("a", version="1.1.0")])
        fetcher.fetch_text.return_value = "# v1.1\n"
        result = installer.update("team", "a", ".github")

        assert result.success
        assert installer.get_installation("team", "a").version == "1.1.0"
        assert Path(result.installed_path).read_text() == "# v1.1\n"

    def test_artifact_gone(self, installer):
        result = installer.update("team", "gone", ".github")
        assert not result.success
        assert "not found" in result.error


class TestProfiles:

    def test_install_profile(self, installer, store):
        _sync(store, [_make_artifact("a"), _make_artifact("b", version="2.0.0")])
        profile = Profile(
            id="starter", name="Starter",
            artifacts=[
                ProfileArtifactRef("team", "a"),
                ProfileArtifactRef("team", "b", version="1.0.0"),
                ProfileArtifactRef("team", "missing"),
            ],
        )

        result = installer.install_profile(profile, ".github", [])

        assert result.success == 2
        assert result.failed == 1
        assert result.errors[0].startswith("missing:")
        assert {i.artifact_id for i in installer.get_all_installations()} == {"a", "b"}

    def test_unreadable_row_counts_as_failure(self, installer, store):
        _sync(store, [_make_artifact("a"), _make_artifact("b")])
        with store.transaction() as conn:
            conn.execute("UPDATE artifacts SET tags = '[not json' WHERE id = 'a'")
        profile = Profile(
            id="starter", name="Starter",
            artifacts=[ProfileArtifactRef("team", "a"), ProfileArtifactRef("team", "b")],
        )

        result = installer.install_profile(profile, ".github", [])

        assert result.success == 1
        assert result.failed == 1
        assert result.errors[0].startswith("a:")
        assert "tags" in result.errors[0]
        assert [i.artifact_id for i in installer.get_all_installations()] == ["b"]

    def test_create_profile(self, installer, store):
        _sync(store, [_make_artifact("a")])
        installer.install(store.get_artifact("team", "a"), ".github")

        profile = create_profile("My Starter Kit", "desc", installer.get_all_installations())

        assert profile.id == "my-starter-kit"
        assert profile.to_dict()['artifacts'] == [
            {'catalogId': 'team', 'artifactId': 'a', 'version': '1.0.0'}
        ]
        assert Profile.from_dict(profile.to_dict()) == profile

    def test_mark_used(self, installer, store):
        _sync(store, [_make_artifact("a")])
        installer.install(store.get_artifact("team", "a"), ".github")
        installer.mark_used("team", "a")
        assert installer.get_installation("team", "a").last_used is not None
