"""Tests for repobridge.backends.remote and the backend selector."""

import shlex
from unittest.mock import MagicMock

import pytest

from repobridge.backends.local import LocalGitBackend
from repobridge.backends.remote import RemoteGitBackend, quote_args
from repobridge.backends.selector import BackendSelector
from repobridge.errors import GitCommandError, RemoteConnectionError
from repobridge.lib.config import RemoteProject, Settings, SshHostConfig
from repobridge.lib.projects import RemoteProjectIndex
from repobridge.ssh.connection import CommandResult
from repobridge.ssh.pool import SshConnectionPool


def _connection(stdout="", stderr="", exit_code=0):
    conn = MagicMock()
    conn.exec.return_value = CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code)
    return conn


class TestRemoteCommands:
    """Test shell command construction."""

    def test_git_runs_in_worktree(self):
        conn = _connection(stdout="main\n")
        backend = RemoteGitBackend(conn)

        result = backend.run_git("/srv/my repo", ["branch", "--show-current"])
        assert result.stdout == "main\n"
        assert result.args == ["git", "branch", "--show-current"]
        command = conn.exec.call_args[0][0]
        assert command == "cd '/srv/my repo' && git branch --show-current"

    def test_commit_message_with_quotes_and_newlines(self):
        message = "It's done\n\nSee \"notes\"; $(rm -rf ~)"
        conn = _connection()
        RemoteGitBackend(conn).run_git("/srv/repo", ["commit", "-m", message])

        tokens = shlex.split(conn.exec.call_args[0][0])
        assert tokens[3:] == ["git", "commit", "-m", message]

    def test_nonzero_exit_is_a_result_not_an_exception(self):
        conn = _connection(stderr="fatal: bad\n", exit_code=128)
        result = RemoteGitBackend(conn).run_git("/srv/repo", ["log"])
        assert result.returncode == 128
        with pytest.raises(GitCommandError):
            result.check()

    def test_connection_failure_propagates(self):
        conn = MagicMock()
        conn.exec.side_effect = RemoteConnectionError("host down")
        with pytest.raises(RemoteConnectionError):
            RemoteGitBackend(conn).status("/srv/repo")

    def test_capped_read_failure_is_none(self):
        conn = _connection(exit_code=1)
        assert RemoteGitBackend(conn).read_text_capped("/srv/repo", "big.bin", 10) is None

    def test_capped_read_bounds_size_in_shell(self):
        conn = _connection(stdout="text")
        RemoteGitBackend(conn).read_text_capped("/srv/repo", "a b.txt", 512)
        command = conn.exec.call_args[0][0]
        assert "f='a b.txt'" in command
        assert "-le 512" in command

    def test_newline_count_parses_padded_output(self):
        conn = _connection(stdout="      12\n")
        assert RemoteGitBackend(conn).count_newlines_capped("/srv/repo", "a.txt", 512) == 12

    def test_remove_file_failure_raises(self):
        conn = _connection(stderr="rm: permission denied", exit_code=1)
        with pytest.raises(GitCommandError, match="permission denied"):
            RemoteGitBackend(conn).remove_file("/srv/repo", "locked.txt")

    def test_quote_args(self):
        assert quote_args(["log", "--format=%H %s"]) == "log '--format=%H %s'"


class TestBackendSelector:
    """Test per-path backend selection."""

    @pytest.fixture
    def selector(self):
        settings = Settings(
            connections={"box": SshHostConfig(id="box", host="h")},
            remote_projects=[RemoteProject(connection_id="box", path="/srv/app")],
        )
        pool = SshConnectionPool(settings.connections, settings.ssh)
        return BackendSelector(RemoteProjectIndex(settings.remote_projects), pool, settings=settings)

    def test_local_path_gets_local_backend(self, selector):
        assert isinstance(selector.select("/home/ada/code"), LocalGitBackend)

    def test_remote_project_path_gets_remote_backend(self, selector):
        backend = selector.select("/srv/app/worktrees/task-1")
        assert isinstance(backend, RemoteGitBackend)
        assert backend.connection.connection_id == "box"

    def test_sibling_prefix_is_not_remote(self, selector):
        assert isinstance(selector.select("/srv/application"), LocalGitBackend)
