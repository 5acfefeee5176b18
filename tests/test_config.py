"""Tests for configuration loading."""

import json

import pytest
import yaml

from contox.config import find_project_config, load_config, load_global_config
from contox.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the developer's real credentials."""
    for var in ("CONTOX_API_KEY", "CONTOX_API_URL", "CONTOX_PROJECT_ID"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("CONTOX_CONFIG", str(tmp_path / "missing-rc"))


@pytest.fixture
def rc_file(tmp_path):
    path = tmp_path / ".contoxrc"
    path.write_text(json.dumps({"apiKey": "file-key", "apiUrl": "https://self.hosted/"}))
    return path


@pytest.fixture
def project_dir(tmp_path):
    project = tmp_path / "repo"
    project.mkdir()
    (project / ".contox.json").write_text(
        json.dumps({"teamId": "team-1", "projectId": "proj-1", "projectName": "Repo"})
    )
    return project


class TestLoadGlobalConfig:
    """Tests for credential resolution."""

    def test_env_vars_take_priority(self, monkeypatch, rc_file):
        monkeypatch.setenv("CONTOX_API_KEY", "env-key")

        creds = load_global_config(rc_file)

        assert creds == {"api_key": "env-key", "api_url": "https://contox.dev"}

    def test_env_api_url(self, monkeypatch):
        monkeypatch.setenv("CONTOX_API_KEY", "env-key")
        monkeypatch.setenv("CONTOX_API_URL", "http://localhost:3000")

        assert load_global_config()["api_url"] == "http://localhost:3000"

    def test_reads_json_rc_file(self, rc_file):
        creds = load_global_config(rc_file)

        assert creds == {"api_key": "file-key", "api_url": "https://self.hosted/"}

    def test_reads_yaml_rc_file(self, tmp_path):
        path = tmp_path / "rc.yaml"
        path.write_text(yaml.dump({"apiKey": "yaml-key"}))

        creds = load_global_config(path)

        assert creds == {"api_key": "yaml-key", "api_url": "https://contox.dev"}

    def test_rc_file_from_env_override(self, monkeypatch, rc_file):
        monkeypatch.setenv("CONTOX_CONFIG", str(rc_file))

        assert load_global_config()["api_key"] == "file-key"

    def test_substitutes_env_vars(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MY_CONTOX_KEY", "secret123")
        path = tmp_path / "rc"
        path.write_text(yaml.dump({"apiKey": "${MY_CONTOX_KEY}"}))

        assert load_global_config(path)["api_key"] == "secret123"

    def test_missing_file_returns_none(self, tmp_path):
        assert load_global_config(tmp_path / "nope") is None

    def test_file_without_key_returns_none(self, tmp_path):
        path = tmp_path / "rc"
        path.write_text(yaml.dump({"apiUrl": "https://x"}))

        assert load_global_config(path) is None

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "rc"
        path.write_text("apiKey: [unclosed")

        with pytest.raises(ConfigurationError, match="Invalid config file"):
            load_global_config(path)

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "rc"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_global_config(path)


class TestFindProjectConfig:
    """Tests for walking up to the project config file."""

    def test_finds_in_start_dir(self, project_dir):
        assert find_project_config(project_dir)["projectId"] == "proj-1"

    def test_walks_up_from_subdirectory(self, project_dir):
        nested = project_dir / "src" / "pkg"
        nested.mkdir(parents=True)

        assert find_project_config(nested)["teamId"] == "team-1"

    def test_returns_none_when_absent(self, tmp_path):
        empty = tmp_path / "a" / "b"
        empty.mkdir(parents=True)

        # tmp_path's ancestors are not expected to contain a .contox.json
        assert find_project_config(empty) is None


class TestLoadConfig:
    """Tests for full configuration resolution."""

    def test_combines_credentials_and_project(self, rc_file, project_dir):
        config = load_config(project_dir, global_path=rc_file)

        assert config.api_key == "file-key"
        assert config.api_url == "https://self.hosted"
        assert config.project_id == "proj-1"
        assert config.team_id == "team-1"
        assert config.project_name == "Repo"

    def test_project_id_env_override(self, monkeypatch, rc_file, project_dir):
        monkeypatch.setenv("CONTOX_PROJECT_ID", "proj-env")

        assert load_config(project_dir, global_path=rc_file).project_id == "proj-env"

    def test_project_id_from_env_without_project_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CONTOX_API_KEY", "k")
        monkeypatch.setenv("CONTOX_PROJECT_ID", "p")

        config = load_config(tmp_path)

        assert config.project_id == "p"
        assert config.team_id is None

    def test_not_logged_in(self, project_dir):
        with pytest.raises(ConfigurationError, match="Not logged in"):
            load_config(project_dir)

    def test_no_project(self, rc_file, tmp_path):
        with pytest.raises(ConfigurationError, match="No project configured"):
            load_config(tmp_path, global_path=rc_file)
