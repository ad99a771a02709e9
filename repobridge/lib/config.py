"""
Configuration loader for repobridge.

Reads a YAML settings file, validates it against schemas/config.schema.json
and returns dataclasses. A missing file means defaults everywhere.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from . import validate

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "REPOBRIDGE_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/repobridge/config.yaml")


@dataclass
class WatchSettings:
    debounce_ms: int = 500  # quiet period before a local change is broadcast
    poll_interval_ms: int = 5000  # remote status polling period


@dataclass
class Limits:
    untracked_linecount_bytes: int = 512 * 1024  # larger untracked files report 0 additions
    untracked_diff_bytes: int = 512 * 1024  # larger untracked files show no diff
    diff_context_lines: int = 2000  # effectively whole-file diffs


@dataclass
class SshSettings:
    binary: str = "ssh"
    control_dir: str = "~/.ssh/repobridge"
    control_persist: str = "10m"
    connect_timeout: int = 10


@dataclass
class SshHostConfig:
    """One configured SSH connection."""
    id: str
    host: str
    user: str | None = None
    port: int = 22
    identity_file: str | None = None

    @property
    def destination(self) -> str:
        return f"{self.user}@{self.host}" if self.user else self.host


@dataclass
class RemoteProject:
    """A project whose working trees live on a remote host."""
    connection_id: str
    path: str
    name: str = ""


@dataclass
class Settings:
    git_path: str = "git"
    command_timeout: float | None = None
    watch: WatchSettings = field(default_factory=WatchSettings)
    limits: Limits = field(default_factory=Limits)
    ssh: SshSettings = field(default_factory=SshSettings)
    connections: dict[str, SshHostConfig] = field(default_factory=dict)
    remote_projects: list[RemoteProject] = field(default_factory=list)


def get_config_path() -> Path:
    """Settings file location: $REPOBRIDGE_CONFIG or the per-user default."""
    override = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def settings_from_dict(data: dict) -> Settings:
    """Build Settings from already-validated data."""
    connections = {}
    for conn in data.get("connections", []):
        connections[conn["id"]] = SshHostConfig(
            id=conn["id"],
            host=conn["host"],
            user=conn.get("user"),
            port=conn.get("port", 22),
            identity_file=conn.get("identity_file"),
        )

    return Settings(
        git_path=data.get("git_path", "git"),
        command_timeout=data.get("command_timeout"),
        watch=WatchSettings(**data.get("watch", {})),
        limits=Limits(**data.get("limits", {})),
        ssh=SshSettings(**data.get("ssh", {})),
        connections=connections,
        remote_projects=[
            RemoteProject(
                connection_id=p["connection_id"],
                path=p["path"],
                name=p.get("name", ""),
            )
            for p in data.get("remote_projects", [])
        ],
    )


def load_settings(config_path: Path | None = None) -> Settings:
    """Load and validate the settings file.

    Raises:
        validate.ValidationError: if the file is not valid YAML or does not
            match the schema
    """
    path = config_path or get_config_path()
    if not path.exists():
        logger.debug(f"No config at {path}, using defaults")
        return Settings()

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise validate.ValidationError("config", f"Invalid YAML in {path}: {e}") from None

    if not isinstance(data, dict):
        raise validate.ValidationError("config", f"Expected a mapping in {path}")

    validate.validate_settings(data)
    return settings_from_dict(data)
