from __future__ import annotations

import datetime as dt
import logging
import re
from pathlib import Path
from typing import Optional

from .errors import GitCommandError, RepositoryNotFound
from .git import run_git, stream_git
from .models import Commit, Signature

logger = logging.getLogger(__name__)

_SIGNATURE_RE = re.compile(r"^(?P<name>.*?)\s*<(?P<email>[^>]*)>\s+(?P<ts>-?\d+)\s+(?P<tz>[+-]\d{4})$")
_HEX_RE = re.compile(r"^[0-9a-f]+$")

# one record per commit: hash, tree, parents, author and committer identities
_LOG_FIELDS = ["%H", "%T", "%P", "%an", "%ae", "%aI", "%cn", "%ce", "%cI"]
_LOG_FORMAT = "%x1f".join(_LOG_FIELDS) + "%x1e"


def is_full_hash(value: str) -> bool:
    v = (value or "").strip().lower()
    return len(v) in (40, 64) and bool(_HEX_RE.match(v))


def _parse_tz(tz: str) -> dt.timezone:
    sign = -1 if tz.startswith("-") else 1
    hours = int(tz[1:3])
    minutes = int(tz[3:5])
    return dt.timezone(sign * dt.timedelta(hours=hours, minutes=minutes))


def parse_signature(raw: str) -> Signature:
    m = _SIGNATURE_RE.match(raw.strip())
    if m is None:
        raise ValueError(f"malformed signature: {raw!r}")
    try:
        when = dt.datetime.fromtimestamp(int(m.group("ts")), tz=_parse_tz(m.group("tz")))
    except (OverflowError, OSError) as e:
        raise ValueError(f"timestamp out of range in signature: {raw!r}") from e
    return Signature(name=m.group("name"), email=m.group("email"), when=when)


def parse_commit_object(sha: str, raw: str) -> Commit:
    """
    Parse the output of `git cat-file commit <sha>`.

    Only the header block is read; continuation lines (gpgsig, mergetag) start
    with a space and are skipped.
    """
    tree = ""
    parents: list[str] = []
    author: Signature | None = None
    committer: Signature | None = None
    for line in raw.split("\n"):
        if not line:
            break
        if line.startswith(" "):
            continue
        key, _, value = line.partition(" ")
        if key == "tree":
            tree = value.strip()
        elif key == "parent":
            parents.append(value.strip())
        elif key == "author":
            author = parse_signature(value)
        elif key == "committer":
            committer = parse_signature(value)
    if not tree or author is None or committer is None:
        raise ValueError(f"incomplete commit object {sha}")
    return Commit(hash=sha, tree=tree, parents=tuple(parents), author=author, committer=committer)


def parse_log_record(record: str) -> Commit:
    parts = record.strip("\n").split("\x1f")
    if len(parts) != len(_LOG_FIELDS):
        raise ValueError(f"unexpected git log record: {record[:200]!r}")
    sha, tree, parents, an, ae, a_iso, cn, ce, c_iso = parts
    return Commit(
        hash=sha,
        tree=tree,
        parents=tuple(parents.split()),
        author=Signature(name=an, email=ae, when=dt.datetime.fromisoformat(a_iso)),
        committer=Signature(name=cn, email=ce, when=dt.datetime.fromisoformat(c_iso)),
    )


class Repository:
    """Read-only handle on a local git checkout.

    Commits are materialized on demand and cached for the lifetime of the
    handle. Nothing here writes to the repository.
    """

    def __init__(self, path: Path, timeout_s: int = 60) -> None:
        self.path = path
        self.timeout_s = timeout_s
        self._commits: dict[str, Commit] = {}
        self._walked: set[str] = set()

    @classmethod
    def open(cls, path: Path | str, timeout_s: int = 60) -> "Repository":
        p = Path(path)
        if not p.is_dir():
            raise RepositoryNotFound(f"path does not exist: {p}")
        try:
            code, out, err = run_git(["rev-parse", "--show-toplevel"], cwd=p, timeout_s=timeout_s)
        except GitCommandError as e:
            raise RepositoryNotFound(f"not a git repository: {p} ({e})") from e
        if code != 0:
            raise RepositoryNotFound(f"not a git repository: {p} ({err.strip()[:200]})")
        toplevel = Path(out.strip()).resolve()
        if toplevel != p.resolve():
            raise RepositoryNotFound(f"{p} is inside {toplevel} but is not its root")
        return cls(toplevel, timeout_s=timeout_s)

    def git(self, args: list[str]) -> tuple[int, str, str]:
        return run_git(args, cwd=self.path, timeout_s=self.timeout_s)

    def head(self) -> Optional[str]:
        code, out, _ = self.git(["rev-parse", "--verify", "--quiet", "HEAD"])
        if code != 0 or not out.strip():
            return None
        return out.strip()

    def head_ref_name(self) -> Optional[str]:
        """Full ref name HEAD points at, "HEAD" when detached, None when unborn."""
        if self.head() is None:
            return None
        code, out, _ = self.git(["symbolic-ref", "-q", "HEAD"])
        if code == 0 and out.strip():
            return out.strip()
        return "HEAD"

    def remote_urls(self, name: str = "origin") -> list[str]:
        code, out, _ = self.git(["config", "--get-all", f"remote.{name}.url"])
        if code != 0:
            return []
        return [line.strip() for line in out.splitlines() if line.strip()]

    def branch_config(self, name: str) -> Optional[dict[str, str]]:
        """Entries of the `[branch "<name>"]` section, or None if there is none."""
        if not name:
            return None
        code, out, _ = self.git(["config", "--get-regexp", rf"^branch\.{re.escape(name)}\."])
        if code != 0:
            return None
        prefix = f"branch.{name}."
        entries: dict[str, str] = {}
        for line in out.splitlines():
            key, _, value = line.partition(" ")
            if key.startswith(prefix):
                entries[key[len(prefix) :]] = value.strip()
        return entries or None

    def resolve_revision(self, rev: str) -> Optional[str]:
        if not rev or rev.startswith("-"):
            return None
        code, out, _ = self.git(["rev-parse", "--verify", "--quiet", rev])
        if code != 0 or not out.strip():
            return None
        return out.strip()

    def commit(self, sha: str) -> Optional[Commit]:
        cached = self._commits.get(sha)
        if cached is not None:
            return cached
        if not is_full_hash(sha):
            return None
        code, out, _ = self.git(["cat-file", "commit", sha])
        if code != 0:
            return None
        try:
            c = parse_commit_object(sha, out)
        except ValueError as e:
            logger.debug("could not parse commit %s: %s", sha, e)
            return None
        self._commits[sha] = c
        return c

    def load_history(self, *shas: str) -> int:
        """Bulk-load every commit reachable from `shas` into the cache."""
        wanted = [s for s in dict.fromkeys(shas) if s and s not in self._walked]
        if not wanted:
            return 0
        loaded = 0
        args = ["log", f"--format={_LOG_FORMAT}", *wanted, "--"]
        for record in stream_git(args, cwd=self.path, separator="\x1e", timeout_s=self.timeout_s):
            if not record.strip():
                continue
            c = parse_log_record(record)
            if c.hash not in self._commits:
                self._commits[c.hash] = c
                loaded += 1
        self._walked.update(wanted)
        logger.debug("loaded %d commits reachable from %s", loaded, ", ".join(s[:12] for s in wanted))
        return loaded

    def has_tree(self, tree: str) -> bool:
        if not tree:
            return False
        code, _, _ = self.git(["cat-file", "-e", f"{tree}^{{tree}}"])
        return code == 0

    def diff_numstat(self, old_tree: str, new_tree: str) -> str:
        code, out, err = self.git(["diff-tree", "-r", "-z", "--numstat", "--no-renames", old_tree, new_tree])
        if code != 0:
            raise GitCommandError(f"git diff-tree exited {code}: {err.strip()[:500]}")
        return out
