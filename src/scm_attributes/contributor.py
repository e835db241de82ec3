from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from typing import Optional

from .attributes import (
    GIT_ADDITIONS,
    GIT_DELETIONS,
    GIT_MODIFIED_FILES,
    SCM_AUTHORS,
    SCM_BRANCH,
    SCM_COMMITTERS,
    SCM_PROVIDER,
    SCM_REPOSITORY,
    SCM_TYPE,
    Attribute,
    string_list,
)
from .changeset import diffstat
from .config import Settings
from .errors import ScmError
from .history import committers
from .models import Commit
from .repository import Repository
from .revisions import resolve

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class StageResult:
    name: str
    attributes: list[Attribute] = dataclasses.field(default_factory=list)
    error: Optional[ScmError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def committer_attributes(repo: Repository, head: Commit, target: Commit) -> list[Attribute]:
    authors, committer_emails = committers(repo, head, target)
    out: list[Attribute] = []
    for attr in (string_list(SCM_AUTHORS, authors), string_list(SCM_COMMITTERS, committer_emails)):
        if attr is not None:
            out.append(attr)
    return out


def diffstat_attributes(repo: Repository, head: Commit, target: Commit) -> list[Attribute]:
    stat = diffstat(repo, head, target)
    return [
        (GIT_ADDITIONS, stat.additions),
        (GIT_DELETIONS, stat.deletions),
        (GIT_MODIFIED_FILES, stat.files_changed),
    ]


def repository_attributes(repo: Repository, remote_name: str) -> list[Attribute]:
    urls = repo.remote_urls(remote_name)
    return [(SCM_REPOSITORY, urls)] if urls else []


def branch_attributes(repo: Repository) -> list[Attribute]:
    ref = repo.head_ref_name()
    return [(SCM_BRANCH, ref)] if ref else []


# committers before diffstat keeps the output order stable
CHANGE_STAGES: tuple[tuple[str, Callable[[Repository, Commit, Commit], list[Attribute]]], ...] = (
    ("committers", committer_attributes),
    ("diffstat", diffstat_attributes),
)


def run_stage(name: str, stage: Callable[..., list[Attribute]], *args: object) -> StageResult:
    try:
        return StageResult(name=name, attributes=stage(*args))
    except ScmError as e:
        return StageResult(name=name, error=e)


def _absorb(bag: list[Attribute], result: StageResult) -> None:
    if result.error is not None:
        logger.warning("not contributing %s attributes: %s: %s", result.name, type(result.error).__name__, result.error)
        return
    bag.extend(result.attributes)


def run_contribution(settings: Settings) -> tuple[list[Attribute], list[StageResult]]:
    """
    Collect scm attributes for one build, never raising.

    Returns the attribute bag in its final state together with every stage
    outcome, failed ones included.
    """
    bag: list[Attribute] = []
    results: list[StageResult] = []

    try:
        repo = Repository.open(settings.repository_path, timeout_s=settings.git_timeout_s)
    except ScmError as e:
        results.append(StageResult(name="open", error=e))
        logger.warning("not contributing scm attributes: %s", e)
        return bag, results

    bag.append((SCM_TYPE, "git"))
    if settings.provider:
        bag.append((SCM_PROVIDER, settings.provider))

    for result in (
        run_stage("repository", repository_attributes, repo, settings.remote_name),
        run_stage("branch", branch_attributes, repo),
    ):
        results.append(result)
        _absorb(bag, result)

    try:
        head, target = resolve(repo, settings.target_branch, settings.head_sha)
    except ScmError as e:
        results.append(StageResult(name="resolve", error=e))
        logger.warning("not contributing change attributes: %s: %s", type(e).__name__, e)
        return bag, results

    for name, stage in CHANGE_STAGES:
        result = run_stage(name, stage, repo, head, target)
        results.append(result)
        _absorb(bag, result)

    return bag, results


def contribute_attributes(settings: Settings) -> list[Attribute]:
    bag, _ = run_contribution(settings)
    return bag
