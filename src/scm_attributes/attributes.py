from __future__ import annotations

from collections.abc import Iterable
from typing import Optional, Union

from opentelemetry import trace

SCM_TYPE = "scm.type"
SCM_PROVIDER = "scm.provider"
SCM_REPOSITORY = "scm.repository"
SCM_BRANCH = "scm.branch"
SCM_AUTHORS = "scm.authors"
SCM_COMMITTERS = "scm.committers"
GIT_ADDITIONS = "scm.git.additions"
GIT_DELETIONS = "scm.git.deletions"
GIT_MODIFIED_FILES = "scm.git.files.modified"

ALL_KEYS = (
    SCM_TYPE,
    SCM_PROVIDER,
    SCM_REPOSITORY,
    SCM_BRANCH,
    SCM_AUTHORS,
    SCM_COMMITTERS,
    GIT_ADDITIONS,
    GIT_DELETIONS,
    GIT_MODIFIED_FILES,
)

AttributeValue = Union[str, int, list[str]]
Attribute = tuple[str, AttributeValue]


def string_list(key: str, values: Iterable[str]) -> Optional[Attribute]:
    """A sorted list attribute, or None when there is nothing to report."""
    items = sorted(set(values))
    if not items:
        return None
    return key, items


def as_dict(bag: Iterable[Attribute]) -> dict[str, AttributeValue]:
    return {key: value for key, value in bag}


def to_span(bag: Iterable[Attribute], span: Optional[trace.Span] = None) -> None:
    if span is None:
        span = trace.get_current_span()
    for key, value in bag:
        span.set_attribute(key, value)
