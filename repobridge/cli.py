#!/usr/bin/env python3
"""repobridge CLI entrypoint."""

import sys
import os
import time
import logging
import argparse
from pathlib import Path

from repobridge.git.diffparse import LINE_ADD, LINE_DEL
from repobridge.lib.config import load_settings
from repobridge.lib.validate import ValidationError
from repobridge.service import GitService, OperationResult, create_service

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def get_service(args) -> GitService:
    """Build the service from --config or the default settings file."""
    config_path = Path(args.config).expanduser() if args.config else None
    try:
        settings = load_settings(config_path)
    except ValidationError as e:
        print(f"ERROR: {e}")
        sys.exit(EXIT_CONFIG)
    return create_service(settings)


def resolve_path(args) -> str:
    return os.path.abspath(args.path) if args.path else os.getcwd()


def report(result: OperationResult, on_success=None) -> int:
    """Print a failed result or hand the value to on_success."""
    if not result.success:
        print(f"ERROR: {result.error} ({result.kind})")
        return EXIT_FAILED
    if on_success is not None:
        on_success(result.value)
    return EXIT_OK


def _print_output(output):
    if output:
        print(output)


def _print_changes(changes):
    if not changes:
        print("No changes")
        return
    for c in changes:
        staged = 'S' if c.is_staged else ' '
        print(f"{staged} {c.status:<9} +{c.additions:<5} -{c.deletions:<5} {c.path}")


def _print_diff(diff):
    if diff.is_binary:
        print("Binary file")
        return
    for line in diff.lines:
        if line.type == LINE_ADD:
            print(f"+{line.right}")
        elif line.type == LINE_DEL:
            print(f"-{line.left}")
        else:
            print(f" {line.left}")


def _print_commits(page):
    for c in page.commits:
        pushed = ' ' if c.is_pushed else '*'
        tags = f" ({', '.join(c.tags)})" if c.tags else ""
        print(f"{pushed} {c.hash[:10]} {c.date}  {c.author}: {c.subject}{tags}")
    print(f"{page.ahead_count} unpushed")


def cmd_status(args):
    return report(args.service.status(args.resolved_path), _print_changes)


def cmd_diff(args):
    service, path = args.service, args.resolved_path
    if args.commit:
        result = service.commit_file_diff(path, args.commit, args.file)
    else:
        result = service.file_diff(path, args.file)
    return report(result, _print_diff)


def cmd_stage(args):
    service, path = args.service, args.resolved_path
    if args.all:
        return report(service.stage_all(path))
    if not args.files:
        print("ERROR: Give files to stage or --all")
        return EXIT_FAILED
    for f in args.files:
        code = report(service.stage(path, f))
        if code != EXIT_OK:
            return code
    return EXIT_OK


def cmd_unstage(args):
    for f in args.files:
        code = report(args.service.unstage(args.resolved_path, f))
        if code != EXIT_OK:
            return code
    return EXIT_OK


def cmd_revert(args):
    return report(
        args.service.revert(args.resolved_path, args.file),
        lambda action: print(f"{args.file}: {action}"),
    )


def cmd_commit(args):
    service, path = args.service, args.resolved_path
    if args.push:
        return report(
            service.commit_and_push(path, args.message, args.new_branch),
            lambda value: print(f"Pushed {value[0]}\n{value[1]}".rstrip()),
        )
    return report(service.commit(path, args.message), print)


def cmd_push(args):
    return report(args.service.push(args.resolved_path), _print_output)


def cmd_pull(args):
    return report(args.service.pull(args.resolved_path), _print_output)


def cmd_log(args):
    return report(
        args.service.log(args.resolved_path, args.max_count, args.skip, args.ahead_count),
        _print_commits,
    )


def cmd_show(args):
    def print_files(files):
        for f in files:
            print(f"{f.status:<9} +{f.additions:<5} -{f.deletions:<5} {f.path}")

    return report(args.service.commit_files(args.resolved_path, args.commit), print_files)


def cmd_branch(args):
    def print_status(s):
        print(f"On {s.branch or '(detached)'} (default: {s.default_branch})")
        print(f"  ahead {s.ahead}, behind {s.behind}, {s.ahead_of_default} ahead of {s.default_branch}")

    return report(args.service.branch_status(args.resolved_path), print_status)


def cmd_branches(args):
    def print_branches(branches):
        for b in branches:
            print(b.label)

    return report(args.service.list_branches(args.resolved_path, args.remote), print_branches)


def cmd_rename_branch(args):
    def print_renamed(moved_remote):
        where = " (remote updated)" if moved_remote else ""
        print(f"Renamed {args.old} -> {args.new}{where}")

    return report(
        args.service.rename_branch(args.resolved_path, args.old, args.new),
        print_renamed,
    )


def cmd_undo(args):
    def print_undone(value):
        subject, body = value
        print(f"Undid: {subject}")
        if body:
            print(body)

    return report(args.service.soft_reset_last_commit(args.resolved_path), print_undone)


def cmd_watch(args):
    service, path = args.service, args.resolved_path

    def on_change(event):
        if event.path != path:
            return
        if event.error:
            print(f"{event.path}: {event.error}", flush=True)
        else:
            print(f"{event.path}: changed", flush=True)

    service.add_listener(on_change)
    result = service.watch(path)
    if not result.success:
        return report(result)

    print(f"Watching {path} (Ctrl-C to stop)", flush=True)
    try:
        while service.watches.is_watching(path):
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    service.unwatch(path, result.value)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='repobridge', description='Git operations on local and SSH working trees')
    parser.add_argument('--config', help='Settings file (default: $REPOBRIDGE_CONFIG or ~/.config/repobridge/config.yaml)')
    parser.add_argument('--path', '-C', help='Working tree (default: current directory)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # repobridge status
    p_status = subparsers.add_parser('status', help='List changed files with line counts')
    p_status.set_defaults(func=cmd_status)

    # repobridge diff
    p_diff = subparsers.add_parser('diff', help='Whole-file diff against HEAD, or within a commit')
    p_diff.add_argument('file', help='File path relative to the working tree')
    p_diff.add_argument('--commit', help='Show the change made by this commit')
    p_diff.set_defaults(func=cmd_diff)

    # repobridge stage
    p_stage = subparsers.add_parser('stage', help='Stage files')
    p_stage.add_argument('files', nargs='*', help='Files to stage')
    p_stage.add_argument('--all', '-a', action='store_true', help='Stage everything')
    p_stage.set_defaults(func=cmd_stage)

    # repobridge unstage
    p_unstage = subparsers.add_parser('unstage', help='Unstage files')
    p_unstage.add_argument('files', nargs='+', help='Files to unstage')
    p_unstage.set_defaults(func=cmd_unstage)

    # repobridge revert
    p_revert = subparsers.add_parser('revert', help='Discard changes to a file (deletes new files)')
    p_revert.add_argument('file', help='File to revert')
    p_revert.set_defaults(func=cmd_revert)

    # repobridge commit
    p_commit = subparsers.add_parser('commit', help='Commit staged changes')
    p_commit.add_argument('--message', '-m', required=True, help='Commit message')
    p_commit.add_argument('--push', action='store_true', help='Stage all if nothing is staged, commit, then push')
    p_commit.add_argument('--new-branch', action='store_true', help='With --push: branch off first when on the default branch')
    p_commit.set_defaults(func=cmd_commit)

    # repobridge push
    p_push = subparsers.add_parser('push', help='Push the current branch')
    p_push.set_defaults(func=cmd_push)

    # repobridge pull
    p_pull = subparsers.add_parser('pull', help='Pull the current branch')
    p_pull.set_defaults(func=cmd_pull)

    # repobridge log
    p_log = subparsers.add_parser('log', help='Show history (* marks unpushed commits)')
    p_log.add_argument('--max-count', '-n', type=int, default=50, help='Commits per page')
    p_log.add_argument('--skip', type=int, default=0, help='Commits to skip')
    p_log.add_argument('--ahead-count', type=int, help='Unpushed count from the previous page')
    p_log.set_defaults(func=cmd_log)

    # repobridge show
    p_show = subparsers.add_parser('show', help='Files changed by a commit')
    p_show.add_argument('commit', help='Commit hash')
    p_show.set_defaults(func=cmd_show)

    # repobridge branch
    p_branch = subparsers.add_parser('branch', help='Current branch, ahead/behind counts')
    p_branch.set_defaults(func=cmd_branch)

    # repobridge branches
    p_branches = subparsers.add_parser('branches', help='List remote and local-only branches')
    p_branches.add_argument('--remote', default='origin', help='Remote name')
    p_branches.set_defaults(func=cmd_branches)

    # repobridge rename-branch
    p_rename = subparsers.add_parser('rename-branch', help='Rename a branch, moving its remote copy')
    p_rename.add_argument('old', help='Current branch name')
    p_rename.add_argument('new', help='New branch name')
    p_rename.set_defaults(func=cmd_rename_branch)

    # repobridge undo
    p_undo = subparsers.add_parser('undo', help='Undo the latest unpushed commit, keeping changes staged')
    p_undo.set_defaults(func=cmd_undo)

    # repobridge watch
    p_watch = subparsers.add_parser('watch', help='Print a line whenever the working tree changes')
    p_watch.set_defaults(func=cmd_watch)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    args.service = get_service(args)
    args.resolved_path = resolve_path(args)
    try:
        return args.func(args)
    finally:
        args.service.shutdown()


if __name__ == '__main__':
    sys.exit(main())
