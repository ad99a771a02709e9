"""Shared fixtures: a scripted git and a fake SSH channel.

ScriptedGit answers git/gh invocations from canned responses so the same
scenario can drive LocalGitBackend (through its runner hooks) and
RemoteGitBackend (through FakeConnection). Non-git shell commands sent over
FakeConnection run for real with sh, so remote file primitives are exercised
against tmp_path.
"""

import shlex
import subprocess
from pathlib import Path
from types import SimpleNamespace

import pytest

from repobridge.backends.local import LocalGitBackend
from repobridge.backends.remote import RemoteGitBackend
from repobridge.git.runner import GitResult
from repobridge.lib.config import Settings
from repobridge.ssh.connection import CommandResult


class ScriptedGit:
    """Canned git/gh responses keyed by argument prefix (longest prefix wins)."""

    def __init__(self):
        self._responses: list[tuple[tuple[str, ...], GitResult]] = []
        self.calls: list[list[str]] = []

    def on(self, args, stdout="", stderr="", returncode=0, program="git"):
        key = (program, *args)
        self._responses.append((key, GitResult(
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            args=list(key),
        )))
        return self

    def fail(self, args, stderr="fatal: scripted failure", returncode=128, program="git"):
        return self.on(args, stderr=stderr, returncode=returncode, program=program)

    def run(self, program: str, args: list[str]) -> GitResult:
        call = [program, *args]
        self.calls.append(call)
        best = None
        for key, result in self._responses:
            if tuple(call[:len(key)]) == key and (best is None or len(key) > len(best[0])):
                best = (key, result)
        if best is None:
            return GitResult(returncode=1, stdout="", stderr=f"unscripted: {call}", args=call)
        return best[1]

    def git_calls(self, *prefix: str) -> list[list[str]]:
        """Recorded git invocations (without the program name) starting with prefix."""
        return [
            call[1:] for call in self.calls
            if call[0] == "git" and tuple(call[1:1 + len(prefix)]) == prefix
        ]


class FakeConnection:
    """Stands in for SshConnection; records every command string."""

    connection_id = "fake"

    def __init__(self, script: ScriptedGit):
        self.script = script
        self.commands: list[str] = []

    def exec(self, command: str) -> CommandResult:
        self.commands.append(command)
        tokens = shlex.split(command)
        if len(tokens) >= 4 and tokens[0] == "cd" and tokens[2] == "&&" and tokens[3] in ("git", "gh"):
            result = self.script.run(tokens[3], tokens[4:])
            return CommandResult(stdout=result.stdout, stderr=result.stderr, exit_code=result.returncode)
        proc = subprocess.run(["sh", "-c", command], capture_output=True, text=True)
        return CommandResult(stdout=proc.stdout, stderr=proc.stderr, exit_code=proc.returncode)

    def close(self):
        pass


def make_local_backend(script: ScriptedGit, settings: Settings | None = None) -> LocalGitBackend:
    return LocalGitBackend(
        settings or Settings(),
        runner=lambda args, cwd, timeout=None, git_path="git": script.run("git", args),
        gh_runner=lambda args, cwd, timeout=None: script.run("gh", args),
    )


@pytest.fixture
def script():
    return ScriptedGit()


@pytest.fixture(params=["local", "remote"])
def env(request, tmp_path, script):
    """A backend of each kind over the same scripted git, rooted at tmp_path."""
    if request.param == "local":
        backend = make_local_backend(script)
        connection = None
    else:
        connection = FakeConnection(script)
        backend = RemoteGitBackend(connection, Settings())
    return SimpleNamespace(
        kind=request.param,
        backend=backend,
        script=script,
        connection=connection,
        path=str(tmp_path),
        root=Path(tmp_path),
    )
