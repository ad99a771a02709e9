"""
SSH command channel.

Uses the OpenSSH client with connection multiplexing: the first command
opens a master connection (ControlMaster=auto) that stays up for
ControlPersist, and later commands reuse it, so each round trip costs one
channel rather than one full handshake.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from repobridge.errors import RemoteConnectionError
from repobridge.lib.config import SshHostConfig, SshSettings

logger = logging.getLogger(__name__)

# ssh exits 255 when it could not run the command at all
SSH_CONNECTION_FAILURE = 255


@dataclass
class CommandResult:
    """Result of a remote shell command."""
    stdout: str
    stderr: str
    exit_code: int

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class SshConnection:
    """A managed SSH session to one configured host."""

    def __init__(self, host: SshHostConfig, settings: SshSettings | None = None):
        self.host = host
        self.settings = settings or SshSettings()

    @property
    def connection_id(self) -> str:
        return self.host.id

    def _control_path(self) -> str:
        control_dir = Path(self.settings.control_dir).expanduser()
        control_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        # %C is ssh's hash of (local host, remote host, port, user)
        return str(control_dir / "%C")

    def _options(self) -> list[str]:
        args = [
            self.settings.binary,
            "-o", "BatchMode=yes",
            "-o", f"ConnectTimeout={self.settings.connect_timeout}",
            "-o", "ControlMaster=auto",
            "-o", f"ControlPath={self._control_path()}",
            "-o", f"ControlPersist={self.settings.control_persist}",
            "-p", str(self.host.port),
        ]
        if self.host.identity_file:
            args += ["-i", str(Path(self.host.identity_file).expanduser())]
        return args

    def command_line(self, command: str) -> list[str]:
        """Full ssh argv for running a shell command string remotely."""
        return [*self._options(), self.host.destination, command]

    def exec(self, command: str) -> CommandResult:
        """
        Run a shell command on the remote host.

        The command is a single string interpreted by the remote login
        shell; callers must quote arguments themselves (shlex.quote).

        Raises:
            RemoteConnectionError: ssh could not reach the host
        """
        logger.debug(f"[ssh] {self.host.id}: {command}")
        try:
            result = subprocess.run(
                self.command_line(command),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise RemoteConnectionError(f"Failed to run ssh: {e}") from e

        if result.returncode == SSH_CONNECTION_FAILURE:
            detail = result.stderr.strip() or f"SSH connection to {self.host.destination} failed"
            raise RemoteConnectionError(detail)

        return CommandResult(
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.returncode,
        )

    def close(self) -> None:
        """Stop the multiplexing master, if one is running."""
        try:
            subprocess.run(
                [*self._options(), "-O", "exit", self.host.destination],
                capture_output=True,
                text=True,
                timeout=10,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"[ssh] {self.host.id}: close failed: {e}")
