from __future__ import annotations

import dataclasses
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from .provider import detect_ci

logger = logging.getLogger(__name__)

REPOSITORY_VAR = "SCM_ATTRIBUTES_REPOSITORY"
GIT_TIMEOUT_VAR = "SCM_ATTRIBUTES_GIT_TIMEOUT"
DEFAULT_GIT_TIMEOUT_S = 60


@dataclasses.dataclass(frozen=True)
class Settings:
    repository_path: Path = Path(".")
    target_branch: str = ""
    head_sha: str = ""
    provider: str = ""
    remote_name: str = "origin"
    git_timeout_s: int = DEFAULT_GIT_TIMEOUT_S


def load_config(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    data = json.loads(config_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"config {config_path} must be a JSON object, got {type(data).__name__}")
    return data


def _timeout(value: object) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        t = int(str(value).strip())
    except ValueError:
        logger.warning("ignoring invalid git timeout %r", value)
        return None
    if t <= 0:
        logger.warning("ignoring non-positive git timeout %r", value)
        return None
    return t


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    *,
    repository_path: Optional[Path] = None,
    target_branch: str = "",
    head_sha: str = "",
    remote_name: str = "",
) -> Settings:
    """
    Layer settings: config file, then environment (CI conventions included),
    then the explicit keyword overrides. Later layers win when non-empty.
    """
    env = os.environ if environ is None else environ
    config = load_config(config_path) if config_path is not None else {}
    ci = detect_ci(env)

    repo = repository_path or env.get(REPOSITORY_VAR) or config.get("repository_path") or "."
    timeout = _timeout(env.get(GIT_TIMEOUT_VAR)) or _timeout(config.get("git_timeout_s")) or DEFAULT_GIT_TIMEOUT_S

    return Settings(
        repository_path=Path(repo),
        target_branch=target_branch or ci.target_branch or str(config.get("target_branch", "") or ""),
        head_sha=head_sha or ci.head_sha or str(config.get("head_sha", "") or ""),
        provider=ci.provider or str(config.get("provider", "") or ""),
        remote_name=remote_name or str(config.get("remote_name", "") or "") or "origin",
        git_timeout_s=timeout,
    )
