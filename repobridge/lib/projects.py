"""Lookup of remote projects by working-tree path."""

import posixpath

from repobridge.lib.config import RemoteProject


class RemoteProjectIndex:
    """Answers "does this path belong to a remote project?".

    A path matches a project when it is the project path or lies beneath
    it (task worktrees are usually created inside the project checkout).
    The longest matching project path wins.
    """

    def __init__(self, projects: list[RemoteProject]):
        self._projects = sorted(
            projects,
            key=lambda p: len(posixpath.normpath(p.path)),
            reverse=True,
        )

    def resolve(self, path: str) -> RemoteProject | None:
        if not path:
            return None
        target = posixpath.normpath(path)
        for project in self._projects:
            root = posixpath.normpath(project.path)
            if target == root or target.startswith(root.rstrip("/") + "/"):
                return project
        return None

    __call__ = resolve
