from __future__ import annotations

from collections.abc import Iterable

from .errors import DiffComputationFailure, GitCommandError, MissingTree
from .models import Commit, Diffstat, FileStat
from .repository import Repository


def parse_numstat(output: str) -> list[FileStat]:
    """Parse `--numstat` records (NUL- or newline-terminated). Binary entries report `-` and count as 0/0."""
    records = output.split("\0") if "\0" in output else output.splitlines()
    stats: list[FileStat] = []
    for record in records:
        line = record.strip("\n")
        if not line:
            continue
        parts = line.split("\t", 2)
        if len(parts) < 3:
            continue
        added_s, deleted_s, path = parts
        if added_s == "-" or deleted_s == "-":
            stats.append(FileStat(path=path, binary=True))
            continue
        try:
            added = int(added_s)
            deleted = int(deleted_s)
        except ValueError:
            continue
        stats.append(FileStat(path=path, additions=added, deletions=deleted))
    return stats


def aggregate(stats: Iterable[FileStat]) -> Diffstat:
    files = 0
    additions = 0
    deletions = 0
    for s in stats:
        files += 1
        additions += s.additions
        deletions += s.deletions
    return Diffstat(files_changed=files, additions=additions, deletions=deletions)


def file_stats(repo: Repository, head: Commit, target: Commit) -> list[FileStat]:
    """Per-file changes going from the target tree to the head tree."""
    if not repo.has_tree(head.tree):
        raise MissingTree(f"HEAD commit {head.short()} has no readable tree {head.tree}")
    if not repo.has_tree(target.tree):
        raise MissingTree(f"target commit {target.short()} has no readable tree {target.tree}")
    if head.tree == target.tree:
        return []
    try:
        output = repo.diff_numstat(target.tree, head.tree)
    except GitCommandError as e:
        raise DiffComputationFailure(f"cannot diff {target.short()}..{head.short()}: {e}") from e
    return parse_numstat(output)


def diffstat(repo: Repository, head: Commit, target: Commit) -> Diffstat:
    return aggregate(file_stats(repo, head, target))
