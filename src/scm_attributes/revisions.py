from __future__ import annotations

import logging

from .errors import MissingHeadCommit, MissingTargetCommit, NoHeadRef, UnknownTargetBranch, UnresolvableTargetRef
from .models import Commit
from .repository import Repository, is_full_hash

logger = logging.getLogger(__name__)


def resolve_target(repo: Repository, target_branch: str) -> Commit:
    """
    Resolve a configured branch to the commit its upstream merge ref names.

    The branch must have a `[branch "<name>"]` section; its `merge` entry
    (e.g. refs/heads/main) is what gets dereferenced.
    """
    branch = repo.branch_config(target_branch)
    if branch is None:
        raise UnknownTargetBranch(f"target branch {target_branch!r} is not configured in {repo.path}")

    merge_ref = branch.get("merge", "")
    target_sha = repo.resolve_revision(merge_ref)
    if target_sha is None:
        raise UnresolvableTargetRef(f"cannot resolve {merge_ref!r} (merge ref of {target_branch!r})")

    commit = repo.commit(target_sha)
    if commit is None:
        raise MissingTargetCommit(f"target commit {target_sha} is not in the object store")
    return commit


def resolve_head(repo: Repository, head_sha: str = "") -> Commit:
    sha = (head_sha or "").strip().lower()
    if sha:
        if not is_full_hash(sha):
            raise MissingHeadCommit(f"head revision {head_sha!r} is not a full commit hash")
    else:
        head = repo.head()
        if head is None:
            raise NoHeadRef(f"repository {repo.path} has no HEAD commit")
        sha = head

    commit = repo.commit(sha)
    if commit is None:
        raise MissingHeadCommit(f"head commit {sha} is not in the object store")
    return commit


def resolve(repo: Repository, target_branch: str, head_sha: str = "") -> tuple[Commit, Commit]:
    target = resolve_target(repo, target_branch)
    head = resolve_head(repo, head_sha)
    logger.debug("HEAD commit: %s (%s)", head.hash, head.author.email)
    logger.debug("TARGET commit: %s (%s)", target.hash, target.author.email)
    return head, target
