from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Iterator

from .errors import GitCommandError, HistoryWalkFailure, NoCommonAncestor
from .models import Commit
from .repository import Repository

logger = logging.getLogger(__name__)


def _load(repo: Repository, sha: str) -> Commit:
    c = repo.commit(sha)
    if c is None:
        raise HistoryWalkFailure(f"commit {sha} is referenced by history but missing from the object store")
    return c


def ancestors(repo: Repository, starts: Iterable[Commit]) -> set[str]:
    """Hashes of every commit reachable from `starts`, the starts included."""
    seen: set[str] = set()
    stack: list[str] = []
    for c in starts:
        if c.hash not in seen:
            seen.add(c.hash)
            stack.append(c.hash)
    while stack:
        for parent in _load(repo, stack.pop()).parents:
            if parent not in seen:
                seen.add(parent)
                stack.append(parent)
    return seen


def _independents(repo: Repository, candidates: list[Commit]) -> list[Commit]:
    # drop every candidate reachable from another one
    keep: list[Commit] = []
    for c in candidates:
        others = [_load(repo, p) for o in candidates if o.hash != c.hash for p in o.parents]
        if c.hash not in ancestors(repo, others):
            keep.append(c)
    keep.sort(key=lambda c: (-c.committer.timestamp, c.hash))
    return keep


def merge_bases(repo: Repository, a: Commit, b: Commit) -> list[Commit]:
    """
    Best common ancestors of `a` and `b`, most recent first.

    Everything reachable from the newer commit is indexed, then the older
    commit's history is walked breadth-first, stopping at the first indexed
    commit on every path. Candidates reachable from another candidate are
    discarded. An empty list means the histories are unrelated.
    """
    if a.hash == b.hash:
        return [a]
    try:
        repo.load_history(a.hash, b.hash)
    except (GitCommandError, ValueError) as e:
        raise HistoryWalkFailure(f"cannot load history of {a.short()} and {b.short()}: {e}") from e

    newer, older = (a, b) if b.committer.when < a.committer.when else (b, a)
    newer_history = ancestors(repo, [newer])

    candidates: list[Commit] = []
    seen = {older.hash}
    queue = deque([older.hash])
    while queue:
        c = _load(repo, queue.popleft())
        if c.hash in newer_history:
            candidates.append(c)
            continue
        for parent in c.parents:
            if parent not in seen:
                seen.add(parent)
                queue.append(parent)

    return _independents(repo, candidates)


def walk_since(repo: Repository, head: Commit, base: Commit) -> Iterator[Commit]:
    """
    Commits reachable from `head` committed at or after `base` was authored.

    `base` itself is a boundary and is never yielded nor expanded. Commits
    older than the bound are not yielded but their parents are still visited,
    so a clock-skewed or rebased commit does not hide newer work behind it.
    """
    bound = base.author.when
    seen = {head.hash}
    queue = deque([head.hash])
    while queue:
        c = _load(repo, queue.popleft())
        if c.hash == base.hash:
            continue
        if c.committer.when >= bound:
            yield c
        for parent in c.parents:
            if parent not in seen:
                seen.add(parent)
                queue.append(parent)


def committers(repo: Repository, head: Commit, target: Commit) -> tuple[set[str], set[str]]:
    """Author and committer emails of the commits on `head` since it diverged from `target`."""
    bases = merge_bases(repo, head, target)
    if not bases:
        raise NoCommonAncestor(f"no common ancestor between HEAD {head.short()} and target {target.short()}")
    base = bases[0]
    if len(bases) > 1:
        logger.debug("%d merge bases, using %s", len(bases), base.short())

    authors: set[str] = set()
    committer_emails: set[str] = set()
    for c in walk_since(repo, head, base):
        authors.add(c.author.email)
        committer_emails.add(c.committer.email)
    return authors, committer_emails
