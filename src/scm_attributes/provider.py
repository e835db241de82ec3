from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping

GITHUB = "Github"
GITLAB = "Gitlab"

# (provider, head sha variable, target branch variable), checked in order
_PROVIDERS: tuple[tuple[str, str, str], ...] = (
    (GITHUB, "GITHUB_SHA", "GITHUB_BASE_REF"),
    (GITLAB, "CI_MERGE_REQUEST_SOURCE_BRANCH_SHA", "CI_MERGE_REQUEST_TARGET_BRANCH_NAME"),
)
FALLBACK_TARGET_BRANCH_VAR = "TARGET_BRANCH"


@dataclasses.dataclass(frozen=True)
class CIContext:
    head_sha: str = ""
    target_branch: str = ""
    provider: str = ""


def detect_ci(environ: Mapping[str, str] | None = None) -> CIContext:
    """
    Pick the head sha and target branch from CI provider conventions.

    A provider only counts when both of its variables are set. Otherwise the
    target branch falls back to TARGET_BRANCH and HEAD is used as is.
    """
    env = os.environ if environ is None else environ
    for provider, sha_var, base_var in _PROVIDERS:
        sha = (env.get(sha_var) or "").strip()
        base = (env.get(base_var) or "").strip()
        if sha and base:
            return CIContext(head_sha=sha, target_branch=base, provider=provider)
    return CIContext(target_branch=(env.get(FALLBACK_TARGET_BRANCH_VAR) or "").strip())
