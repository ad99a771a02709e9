"""
Backend contract shared by local and remote git execution.

Every repository operation is written once here in terms of a handful of
transport primitives (run git, run gh, read a file, count its lines, delete
it). LocalGitBackend implements the primitives with child processes and the
local filesystem, RemoteGitBackend with shell commands over SSH, so both
backends expose exactly the same semantics.

Return conventions:
- Operations return parsed values and raise repobridge.errors on failure.
- status() returns [] for a path outside any repository (soft failure);
  get_branch_status() and list_branches() raise NotARepositoryError.
- Fallback chains (ahead counts, default branch, untracked diffs) resolve to
  a default instead of raising.
"""

import logging
import posixpath
import time
from abc import ABC, abstractmethod

from repobridge.errors import (
    GitCommandError,
    GuardViolation,
    InvalidArgumentError,
    NotARepositoryError,
    PathEscapeError,
)
from repobridge.git.diffparse import FileDiff, all_additions, all_deletions, parse_diff_lines
from repobridge.git.fallback import NoResult, first_success
from repobridge.git.log import (
    COMMIT_HASH_PATTERN,
    DIFF_TREE_ARGS,
    log_args,
    parse_commit_files,
    parse_count,
    parse_left_right,
    parse_log,
)
from repobridge.git.runner import GitResult
from repobridge.git.status import STATUS_ARGS, parse_porcelain_z, sum_numstat
from repobridge.lib.config import Settings
from repobridge.models import (
    BranchRef,
    BranchStatus,
    ChangeEntry,
    CommitFileChange,
    CommitRecord,
    LogPage,
)

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"
FALLBACK_DEFAULT_BRANCH = "main"

# stderr fragments meaning "push failed only because no upstream is set"
NO_UPSTREAM_MARKERS = ("has no upstream branch", "no upstream configured")

REVERT_DELETED = "deleted"
REVERT_RESTORED = "restored"


def needs_upstream(stderr: str) -> bool:
    return any(marker in stderr for marker in NO_UPSTREAM_MARKERS)


def _command_output(result: GitResult) -> str:
    # git push/pull report progress on stderr
    return (result.stdout.strip() or result.stderr.strip())


class GitBackend(ABC):
    """Repository operations over an abstract command transport."""

    # Path flavour of the machine the working tree lives on
    pathmod = posixpath

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    # ---------- Transport primitives ----------

    @abstractmethod
    def run_git(self, worktree: str, args: list[str]) -> GitResult:
        """Run git with args inside worktree."""

    @abstractmethod
    def run_gh(self, worktree: str, args: list[str]) -> GitResult:
        """Run the GitHub CLI inside worktree."""

    @abstractmethod
    def read_text_capped(self, worktree: str, file_path: str, max_bytes: int) -> str | None:
        """Return file text, or None if missing, not a file, or over max_bytes."""

    @abstractmethod
    def count_newlines_capped(self, worktree: str, file_path: str, max_bytes: int) -> int | None:
        """Return the newline count, or None if missing or over max_bytes."""

    @abstractmethod
    def remove_file(self, worktree: str, file_path: str) -> None:
        """Delete a file from the working tree if it exists."""

    # ---------- Helpers ----------

    def _git(self, worktree: str, args: list[str]) -> str:
        return self.run_git(worktree, args).check().stdout

    def ensure_within_worktree(self, worktree: str, file_path: str) -> str:
        """Return the absolute path of file_path, refusing anything outside worktree."""
        pm = self.pathmod
        root = pm.normpath(worktree)
        target = pm.normpath(pm.join(root, file_path))
        prefix = root.rstrip(pm.sep) + pm.sep
        if target != root and not target.startswith(prefix):
            raise PathEscapeError(worktree, file_path)
        return target

    @staticmethod
    def validate_commit_hash(commit_hash: str) -> None:
        if not COMMIT_HASH_PATTERN.match(commit_hash or ""):
            raise InvalidArgumentError("Invalid commit hash")

    def is_repository(self, worktree: str) -> bool:
        return self.run_git(worktree, ["rev-parse", "--is-inside-work-tree"]).success

    # ---------- Status / Diff ----------

    def status(self, worktree: str) -> list[ChangeEntry]:
        """List changed paths with per-path line counts.

        Staged and unstaged numstat are queried separately and summed, since
        both can exist for one path at once.
        """
        if not self.is_repository(worktree):
            return []

        output = self._git(worktree, STATUS_ARGS)
        changes = []
        for entry in parse_porcelain_z(output):
            additions = 0
            deletions = 0
            for extra in (["--cached"], []):
                result = self.run_git(worktree, ["diff", "--numstat", *extra, "--", entry.path])
                if result.success and result.stdout.strip():
                    added, deleted = sum_numstat(result.stdout)
                    additions += added
                    deletions += deleted

            if additions == 0 and deletions == 0 and entry.is_untracked:
                count = self.count_newlines_capped(
                    worktree, entry.path, self.settings.limits.untracked_linecount_bytes
                )
                if count is not None:
                    additions = count

            changes.append(ChangeEntry(
                path=entry.path,
                status=entry.status,
                additions=additions,
                deletions=deletions,
                is_staged=entry.is_staged,
            ))
        return changes

    def _current_as_additions(self, worktree: str, file_path: str) -> FileDiff:
        text = self.read_text_capped(worktree, file_path, self.settings.limits.untracked_diff_bytes)
        if text is None:
            raise NoResult(f"{file_path} is not readable")
        return all_additions(text)

    def _head_as_deletions(self, worktree: str, file_path: str) -> FileDiff:
        return all_deletions(self._git(worktree, ["show", f"HEAD:{file_path}"]))

    def file_diff(self, worktree: str, file_path: str) -> FileDiff:
        """Whole-file diff of file_path against HEAD.

        Untracked files have no diff against HEAD; they are shown as their
        current content (all additions) or, when unreadable, as the last
        committed content (all deletions).
        """
        self.ensure_within_worktree(worktree, file_path)
        context = self.settings.limits.diff_context_lines
        result = self.run_git(
            worktree, ["diff", "--no-color", f"--unified={context}", "HEAD", "--", file_path]
        )
        if result.success:
            diff = parse_diff_lines(result.stdout)
            if diff.is_binary or diff.lines:
                return diff

        return first_success([
            lambda: self._current_as_additions(worktree, file_path),
            lambda: self._head_as_deletions(worktree, file_path),
        ], default=FileDiff())

    # ---------- Index / Working tree ----------

    def stage(self, worktree: str, file_path: str) -> None:
        self._git(worktree, ["add", "--", file_path])

    def stage_all(self, worktree: str) -> None:
        self._git(worktree, ["add", "-A"])

    def unstage(self, worktree: str, file_path: str) -> None:
        """Unstage a path; without any commit there is no HEAD to reset from."""
        first_success([
            lambda: self._git(worktree, ["reset", "-q", "HEAD", "--", file_path]),
            lambda: self._git(worktree, ["rm", "--cached", "--", file_path]),
        ])

    def revert(self, worktree: str, file_path: str) -> str:
        """Discard changes to a file.

        Files absent from HEAD are deleted from disk. Files present in HEAD
        are checked out; if that fails the file is left as is.

        Returns:
            REVERT_DELETED or REVERT_RESTORED
        """
        self.ensure_within_worktree(worktree, file_path)

        in_head = self.run_git(worktree, ["cat-file", "-e", f"HEAD:{file_path}"]).success
        if not in_head:
            self.remove_file(worktree, file_path)
            self.run_git(worktree, ["rm", "--cached", "-q", "--ignore-unmatch", "--", file_path])
            logger.info(f"Deleted new file {file_path} in {worktree}")
            return REVERT_DELETED

        result = self.run_git(worktree, ["checkout", "HEAD", "--", file_path])
        if not result.success:
            raise GitCommandError(
                result.args,
                result.returncode,
                f"Failed to revert file: {result.stderr.strip()}",
            )
        logger.info(f"Restored {file_path} from HEAD in {worktree}")
        return REVERT_RESTORED

    # ---------- Commit / Push / Pull ----------

    def commit(self, worktree: str, message: str) -> str:
        """Commit staged changes. Returns the new commit hash."""
        if not message or not message.strip():
            raise InvalidArgumentError("Commit message cannot be empty")
        self._git(worktree, ["commit", "-m", message])
        commit_hash = self._git(worktree, ["rev-parse", "HEAD"]).strip()
        logger.info(f"Committed {commit_hash[:10]} in {worktree}")
        return commit_hash

    def push(self, worktree: str) -> str:
        """Push the current branch.

        Retries once with --set-upstream when, and only when, git reports a
        missing upstream. Any other failure is raised unchanged.
        """
        result = self.run_git(worktree, ["push"])
        if result.success:
            return _command_output(result)
        if not needs_upstream(result.stderr):
            result.check()

        branch = self.get_current_branch(worktree)
        if not branch:
            result.check()
        logger.info(f"No upstream for {branch}, pushing with --set-upstream")
        retry = self.run_git(worktree, ["push", "--set-upstream", DEFAULT_REMOTE, branch]).check()
        return _command_output(retry)

    def pull(self, worktree: str) -> str:
        return _command_output(self.run_git(worktree, ["pull"]).check())

    def commit_and_push(
        self,
        worktree: str,
        message: str,
        create_branch_if_on_default: bool = False,
        branch_prefix: str = "repobridge",
    ) -> tuple[str, str]:
        """Stage everything if nothing is staged, commit, then push.

        Returns:
            (branch, push output)
        """
        if not self.is_repository(worktree):
            raise NotARepositoryError(worktree)

        branch = self.get_current_branch(worktree) or ""
        if create_branch_if_on_default:
            default_branch = self.get_default_branch(worktree)
            if not branch or branch == default_branch:
                branch = f"{branch_prefix}/{int(time.time()):x}"
                self.create_branch(worktree, branch)

        has_changes = bool(self._git(worktree, ["status", "--porcelain", "--untracked-files=all"]).strip())
        staged = self._staged_files(worktree)
        if has_changes and not staged:
            self.stage_all(worktree)
            staged = self._staged_files(worktree)
        if staged:
            self.commit(worktree, message)

        return branch, self.push(worktree)

    def _staged_files(self, worktree: str) -> list[str]:
        out = self._git(worktree, ["diff", "--cached", "--name-only"])
        return [f.strip() for f in out.splitlines() if f.strip()]

    # ---------- Branches ----------

    def get_current_branch(self, worktree: str) -> str | None:
        """Current branch name, or None if detached."""
        result = self.run_git(worktree, ["branch", "--show-current"])
        if result.success:
            return result.stdout.strip() or None
        return None

    def create_branch(self, worktree: str, branch: str) -> None:
        self._git(worktree, ["checkout", "-b", branch])

    def _gh_default_branch(self, worktree: str) -> str:
        result = self.run_gh(
            worktree,
            ["repo", "view", "--json", "defaultBranchRef", "-q", ".defaultBranchRef.name"],
        ).check()
        name = result.stdout.strip()
        if not name:
            raise NoResult("gh returned no default branch")
        return name

    def _remote_default_ref(self, worktree: str) -> str:
        """origin/HEAD target, e.g. "origin/main"."""
        ref = self._git(
            worktree, ["symbolic-ref", "--short", f"refs/remotes/{DEFAULT_REMOTE}/HEAD"]
        ).strip()
        if not ref:
            raise NoResult("origin/HEAD is not set")
        return ref

    def get_default_branch(self, worktree: str) -> str:
        """Default branch: GitHub CLI, then origin/HEAD, then "main"."""
        return first_success([
            lambda: self._gh_default_branch(worktree),
            lambda: self._remote_default_ref(worktree).rsplit("/", 1)[-1],
        ], default=FALLBACK_DEFAULT_BRANCH)

    def _head_branch_ref(self, worktree: str) -> str:
        branch = self._git(worktree, ["rev-parse", "--abbrev-ref", "HEAD"]).strip()
        if not branch or branch == "HEAD":
            raise NoResult("HEAD is detached")
        return f"{DEFAULT_REMOTE}/{branch}"

    def _compare_with_remote(self, worktree: str, compare, default):
        """Run compare(ref) against the first remote ref that works.

        Tiers: the configured upstream, the same-named branch on origin, the
        remote's default branch. When none exists the default is returned,
        never an error.
        """
        return first_success([
            lambda: compare("@{upstream}"),
            lambda: compare(self._head_branch_ref(worktree)),
            lambda: compare(self._remote_default_ref(worktree)),
        ], default=default)

    def compute_ahead_count(self, worktree: str) -> int:
        """Number of local commits the remote side does not have."""
        return self._compare_with_remote(
            worktree,
            lambda ref: parse_count(self._git(worktree, ["rev-list", "--count", f"{ref}..HEAD"])),
            default=0,
        )

    def get_ahead_behind(self, worktree: str) -> tuple[int, int]:
        """(ahead, behind) against the remote; (0, 0) when unknown."""
        def compare(ref: str) -> tuple[int, int]:
            out = self._git(worktree, ["rev-list", "--left-right", "--count", f"{ref}...HEAD"])
            behind, ahead = parse_left_right(out)
            return ahead, behind

        return self._compare_with_remote(worktree, compare, default=(0, 0))

    def get_branch_status(self, worktree: str) -> BranchStatus:
        if not self.is_repository(worktree):
            raise NotARepositoryError(worktree)

        branch = self.get_current_branch(worktree) or ""
        default_branch = self.get_default_branch(worktree)
        ahead, behind = self.get_ahead_behind(worktree)

        ahead_of_default = 0
        if branch != default_branch:
            ahead_of_default = first_success([
                lambda: parse_count(self._git(
                    worktree, ["rev-list", "--count", f"{DEFAULT_REMOTE}/{default_branch}..HEAD"]
                )),
            ], default=0)

        return BranchStatus(
            branch=branch,
            default_branch=default_branch,
            ahead=ahead,
            behind=behind,
            ahead_of_default=ahead_of_default,
        )

    def _local_branches(self, worktree: str) -> list[str]:
        out = self._git(worktree, ["for-each-ref", "--format=%(refname:short)", "refs/heads/"])
        return [line.strip() for line in out.splitlines() if line.strip()]

    def list_branches(self, worktree: str, remote: str = DEFAULT_REMOTE) -> list[BranchRef]:
        """Remote branches plus local-only ones; local branches if no remote exists."""
        if not self.is_repository(worktree):
            raise NotARepositoryError(worktree)

        has_remote = self.run_git(worktree, ["remote", "get-url", remote]).success
        if not has_remote:
            logger.debug(f"Remote '{remote}' not found, listing local branches")
            return [BranchRef(ref=b, remote="", branch=b, label=b) for b in self._local_branches(worktree)]

        fetch = self.run_git(worktree, ["fetch", "--prune", remote])
        if not fetch.success:
            logger.warning(f"Failed to fetch {remote} before listing branches: {fetch.stderr.strip()}")

        out = self._git(
            worktree, ["for-each-ref", "--format=%(refname:short)", f"refs/remotes/{remote}"]
        )
        branches = []
        for ref in (line.strip() for line in out.splitlines()):
            # origin/HEAD shortens to "origin/HEAD" or just "origin"
            if not ref or ref.endswith("/HEAD") or "/" not in ref:
                continue
            remote_alias, _, name = ref.partition("/")
            branches.append(BranchRef(ref=ref, remote=remote_alias, branch=name, label=ref))

        remote_names = {b.branch for b in branches}
        for name in self._local_branches(worktree):
            if name not in remote_names:
                branches.append(BranchRef(ref=name, remote="", branch=name, label=name))
        return branches

    def _remote_for_branch(self, worktree: str, branch: str) -> str | None:
        """Remote a branch was pushed to, judged from local config and refs only."""
        tracked = self.run_git(worktree, ["config", "--get", f"branch.{branch}.remote"])
        if tracked.success and tracked.stdout.strip():
            return tracked.stdout.strip()
        ref = f"refs/remotes/{DEFAULT_REMOTE}/{branch}"
        if self.run_git(worktree, ["show-ref", "--verify", "--quiet", ref]).success:
            return DEFAULT_REMOTE
        return None

    def rename_branch(self, worktree: str, old_branch: str, new_branch: str) -> bool:
        """Rename a branch, moving its remote counterpart if it had one.

        Tracking is read before the rename because `git branch -m` moves the
        branch's config section.

        Returns:
            True if the remote was updated
        """
        remote = self._remote_for_branch(worktree, old_branch)

        self._git(worktree, ["branch", "-m", old_branch, new_branch])
        logger.info(f"Renamed branch {old_branch} -> {new_branch} in {worktree}")

        if remote is None:
            return False

        delete = self.run_git(worktree, ["push", remote, "--delete", old_branch])
        if not delete.success:
            logger.warning(f"Could not delete remote branch {remote}/{old_branch}: {delete.stderr.strip()}")
        self._git(worktree, ["push", "-u", remote, new_branch])
        logger.info(f"Pushed {new_branch} to {remote}")
        return True

    # ---------- History ----------

    def get_log(
        self,
        worktree: str,
        max_count: int = 50,
        skip: int = 0,
        known_ahead_count: int | None = None,
    ) -> LogPage:
        """One page of history.

        is_pushed is positional: with N unpushed commits the first N entries
        are unpushed. Pass the returned ahead_count back when loading the
        next page; the flags of earlier pages can go stale if the remote
        moves in between.
        """
        if known_ahead_count is not None and known_ahead_count >= 0:
            ahead_count = known_ahead_count
        else:
            ahead_count = self.compute_ahead_count(worktree)

        result = self.run_git(worktree, log_args(max_count, skip))
        if not result.success:
            if "does not have any commits" in result.stderr:
                return LogPage(commits=[], ahead_count=ahead_count)
            result.check()
        if not result.stdout.strip():
            return LogPage(commits=[], ahead_count=ahead_count)
        return LogPage(commits=parse_log(result.stdout, skip, ahead_count), ahead_count=ahead_count)

    def get_latest_commit(self, worktree: str) -> CommitRecord | None:
        commits = self.get_log(worktree, max_count=1).commits
        return commits[0] if commits else None

    def get_commit_files(self, worktree: str, commit_hash: str) -> list[CommitFileChange]:
        self.validate_commit_hash(commit_hash)
        numstat = self._git(worktree, [*DIFF_TREE_ARGS, "--numstat", commit_hash])
        name_status = self._git(worktree, [*DIFF_TREE_ARGS, "--name-status", commit_hash])
        return parse_commit_files(numstat, name_status)

    def get_commit_file_diff(self, worktree: str, commit_hash: str, file_path: str) -> FileDiff:
        """Diff of one file in one commit.

        Merge commits are compared with their first parent; a root commit
        shows the file's content at that commit as all additions.
        """
        self.validate_commit_hash(commit_hash)
        self.ensure_within_worktree(worktree, file_path)

        has_parent = self.run_git(worktree, ["rev-parse", "--verify", f"{commit_hash}~1"]).success
        if not has_parent:
            return first_success([
                lambda: all_additions(self._git(worktree, ["show", f"{commit_hash}:{file_path}"])),
            ], default=FileDiff())

        context = self.settings.limits.diff_context_lines
        out = self._git(worktree, [
            "diff", "--no-color", f"--unified={context}",
            f"{commit_hash}~1", commit_hash, "--", file_path,
        ])
        return parse_diff_lines(out)

    def soft_reset_last_commit(self, worktree: str) -> tuple[str, str]:
        """Undo the latest commit, keeping its changes staged.

        Refuses the initial commit and any commit already pushed.

        Returns:
            (subject, body) of the undone commit
        """
        if not self.run_git(worktree, ["rev-parse", "--verify", "HEAD~1"]).success:
            raise GuardViolation("Cannot undo the initial commit")

        latest = self.get_latest_commit(worktree)
        if latest is None:
            raise GuardViolation("Cannot undo the initial commit")
        if latest.is_pushed:
            raise GuardViolation("Cannot undo a commit that has already been pushed")

        self._git(worktree, ["reset", "--soft", "HEAD~1"])
        logger.info(f"Soft reset {latest.hash[:10]} in {worktree}")
        return latest.subject.strip(), latest.body.strip()
