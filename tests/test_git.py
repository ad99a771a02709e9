"""Tests for repobridge.git.runner module."""

import subprocess
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest

from repobridge.errors import GitCommandError
from repobridge.git.runner import GitResult, resolve_git_binary, run_gh, run_git


class TestGitResult:
    """Test GitResult dataclass."""

    def test_success_when_returncode_zero(self):
        result = GitResult(returncode=0, stdout="ok", stderr="")
        assert result.success is True

    def test_failure_when_returncode_nonzero(self):
        result = GitResult(returncode=1, stdout="", stderr="error")
        assert result.success is False

    def test_failure_when_timed_out(self):
        result = GitResult(returncode=0, stdout="ok", stderr="", timed_out=True)
        assert result.success is False

    def test_check_returns_self_on_success(self):
        result = GitResult(returncode=0, stdout="ok", stderr="")
        assert result.check() is result

    def test_check_raises_with_verbatim_stderr(self):
        result = GitResult(
            returncode=128,
            stdout="",
            stderr="fatal: not a git repository\n",
            args=["git", "status"],
        )
        with pytest.raises(GitCommandError) as exc:
            result.check()
        assert exc.value.stderr == "fatal: not a git repository\n"
        assert exc.value.returncode == 128
        assert exc.value.args_list == ["git", "status"]
        assert str(exc.value) == "fatal: not a git repository"

    def test_check_falls_back_to_stdout(self):
        result = GitResult(returncode=1, stdout="nothing to commit\n", stderr="")
        with pytest.raises(GitCommandError, match="nothing to commit"):
            result.check()


class TestRunGit:
    """Test run_git function."""

    @patch("repobridge.git.runner.subprocess.run")
    def test_returns_result_on_success(self, mock_run):
        mock_run.return_value = MagicMock(
            returncode=0,
            stdout="output",
            stderr="",
        )
        result = run_git(["status"], Path("/tmp"))
        assert result.success
        assert result.stdout == "output"
        mock_run.assert_called_once()

    @patch("repobridge.git.runner.subprocess.run")
    def test_handles_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=30)
        result = run_git(["status"], Path("/tmp"), timeout=30)
        assert not result.success
        assert result.timed_out
        assert "timed out" in result.stderr

    @patch("repobridge.git.runner.subprocess.run")
    def test_passes_cwd_with_C_flag(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_git(["status", "--porcelain"], Path("/my/repo"))
        call_args = mock_run.call_args[0][0]
        assert call_args == ["git", "-C", "/my/repo", "status", "--porcelain"]

    @patch("repobridge.git.runner.subprocess.run")
    def test_uses_configured_binary(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_git(["status"], Path("/my/repo"), git_path="/opt/git/bin/git")
        assert mock_run.call_args[0][0][0] == "/opt/git/bin/git"

    @patch("repobridge.git.runner.subprocess.run")
    def test_no_timeout_by_default(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_git(["status"], Path("/my/repo"))
        assert mock_run.call_args.kwargs["timeout"] is None

    @patch("repobridge.git.runner.subprocess.run")
    def test_missing_binary_is_a_failed_result(self, mock_run):
        mock_run.side_effect = FileNotFoundError("git not found")
        result = run_git(["status"], Path("/my/repo"))
        assert not result.success
        assert result.returncode == 127

    @patch("repobridge.git.runner.subprocess.run")
    def test_result_records_logical_args(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        result = run_git(["log", "-1"], Path("/my/repo"), git_path="/usr/bin/git")
        assert result.args == ["git", "log", "-1"]


class TestRunGh:
    """Test run_gh function."""

    @patch("repobridge.git.runner.subprocess.run")
    def test_runs_in_worktree(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="main\n", stderr="")
        result = run_gh(["repo", "view"], Path("/my/repo"))
        assert result.stdout == "main\n"
        assert mock_run.call_args[0][0] == ["gh", "repo", "view"]
        assert mock_run.call_args.kwargs["cwd"] == "/my/repo"


class TestResolveGitBinary:
    """Test git executable lookup order."""

    def test_env_var_wins(self, monkeypatch, tmp_path):
        fake = tmp_path / "git"
        fake.write_text("")
        monkeypatch.setenv("GIT_PATH", str(fake))
        assert resolve_git_binary("/nonexistent/git") == str(fake)

    def test_configured_path_used_when_present(self, monkeypatch, tmp_path):
        fake = tmp_path / "git"
        fake.write_text("")
        monkeypatch.delenv("GIT_PATH", raising=False)
        assert resolve_git_binary(str(fake)) == str(fake)

    def test_falls_back_to_plain_git(self, monkeypatch):
        monkeypatch.delenv("GIT_PATH", raising=False)
        with patch("repobridge.git.runner.os.path.exists", return_value=False), \
                patch("repobridge.git.runner.shutil.which", return_value=None):
            assert resolve_git_binary("/nonexistent/git") == "git"
