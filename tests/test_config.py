"""Tests for repobridge.lib.config and repobridge.lib.validate modules."""

import pytest

from repobridge.lib.config import (
    CONFIG_ENV_VAR,
    Settings,
    get_config_path,
    load_settings,
)
from repobridge.lib.validate import ValidationError, check_connection_refs, validate

FULL_CONFIG = """
git_path: /usr/bin/git
command_timeout: 60
watch:
  debounce_ms: 250
  poll_interval_ms: 3000
limits:
  diff_context_lines: 500
ssh:
  control_persist: 30m
connections:
  - id: devbox
    host: dev.example.com
    user: ada
    port: 2222
    identity_file: ~/.ssh/id_ed25519
remote_projects:
  - name: api
    connection_id: devbox
    path: /srv/api
"""


class TestLoadSettings:
    """Test settings file loading."""

    def test_missing_file_gives_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "absent.yaml")
        assert settings == Settings()
        assert settings.watch.debounce_ms == 500
        assert settings.watch.poll_interval_ms == 5000
        assert settings.limits.untracked_linecount_bytes == 512 * 1024
        assert settings.limits.diff_context_lines == 2000
        assert settings.command_timeout is None

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_settings(path) == Settings()

    def test_full_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(FULL_CONFIG)
        settings = load_settings(path)

        assert settings.git_path == "/usr/bin/git"
        assert settings.command_timeout == 60
        assert settings.watch.debounce_ms == 250
        assert settings.limits.diff_context_lines == 500
        assert settings.limits.untracked_diff_bytes == 512 * 1024
        assert settings.ssh.control_persist == "30m"
        assert settings.ssh.binary == "ssh"

        conn = settings.connections["devbox"]
        assert conn.destination == "ada@dev.example.com"
        assert conn.port == 2222

        (project,) = settings.remote_projects
        assert (project.name, project.connection_id, project.path) == ("api", "devbox", "/srv/api")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("watch: [unclosed\n")
        with pytest.raises(ValidationError, match="Invalid YAML"):
            load_settings(path)

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValidationError, match="mapping"):
            load_settings(path)

    def test_schema_violation_names_field(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("watch:\n  debounce_ms: soon\n")
        with pytest.raises(ValidationError) as exc:
            load_settings(path)
        assert exc.value.path == "watch.debounce_ms"

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("colour: blue\n")
        with pytest.raises(ValidationError):
            load_settings(path)

    def test_unknown_connection_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("remote_projects:\n  - connection_id: ghost\n    path: /srv/x\n")
        with pytest.raises(ValidationError, match="ghost"):
            load_settings(path)


class TestConfigPath:
    """Test settings file location."""

    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "custom.yaml"))
        assert get_config_path() == tmp_path / "custom.yaml"

    def test_default_location(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert get_config_path().parts[-3:] == (".config", "repobridge", "config.yaml")

    def test_load_uses_env_path(self, monkeypatch, tmp_path):
        path = tmp_path / "env.yaml"
        path.write_text("git_path: /opt/git\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert load_settings().git_path == "/opt/git"


class TestValidate:
    """Test schema validation directly."""

    def test_valid_data_passes(self):
        validate({"connections": [{"id": "a", "host": "h"}]}, "config")

    def test_missing_required_field(self):
        with pytest.raises(ValidationError, match="host"):
            validate({"connections": [{"id": "a"}]}, "config")

    def test_relative_remote_path_rejected(self):
        with pytest.raises(ValidationError):
            validate({"remote_projects": [{"connection_id": "a", "path": "srv/x"}]}, "config")

    def test_unknown_schema(self):
        with pytest.raises(ValidationError, match="Schema file not found"):
            validate({}, "nope")

    def test_connection_ref_error_points_at_project(self):
        data = {
            "connections": [{"id": "a", "host": "h"}],
            "remote_projects": [
                {"connection_id": "a", "path": "/srv/x"},
                {"connection_id": "b", "path": "/srv/y"},
            ],
        }
        with pytest.raises(ValidationError) as exc:
            check_connection_refs(data)
        assert exc.value.path == "remote_projects.1.connection_id"
