"""Ordered fallback attempts.

Several queries have no single reliable git command (ahead counts without an
upstream, diffs of untracked files). They are written as a list of thunks;
the first one that succeeds wins and the rest never run, which matters when
every attempt is a network round trip.
"""

import logging
from typing import Callable, Iterable, TypeVar

from repobridge.errors import GitCommandError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RAISE = object()

# An attempt "misses" by raising one of these; anything else propagates.
MISS_ERRORS = (GitCommandError, ValueError)


class NoResult(Exception):
    """Raised by an attempt that ran fine but produced nothing usable."""


def first_success(attempts: Iterable[Callable[[], T]], default=_RAISE) -> T:
    """
    Run attempts in order and return the first value produced.

    Args:
        attempts: Zero-argument callables
        default: Returned when every attempt misses. If omitted, the last
            miss is re-raised.
    """
    last_error: Exception | None = None
    for attempt in attempts:
        try:
            return attempt()
        except (NoResult, *MISS_ERRORS) as e:
            logger.debug(f"[fallback] {getattr(attempt, '__name__', 'attempt')} missed: {e}")
            last_error = e
    if default is _RAISE:
        if last_error is None:
            raise NoResult("no attempts given")
        raise last_error
    return default
