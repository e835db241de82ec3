from __future__ import annotations

import dataclasses
import datetime as dt


@dataclasses.dataclass(frozen=True)
class Signature:
    name: str
    email: str
    when: dt.datetime

    @property
    def timestamp(self) -> int:
        return int(self.when.timestamp())


@dataclasses.dataclass(frozen=True)
class Commit:
    hash: str
    tree: str
    parents: tuple[str, ...]
    author: Signature
    committer: Signature

    def short(self) -> str:
        return self.hash[:12]


@dataclasses.dataclass(frozen=True)
class FileStat:
    path: str
    additions: int = 0
    deletions: int = 0
    binary: bool = False


@dataclasses.dataclass(frozen=True)
class Diffstat:
    files_changed: int = 0
    additions: int = 0
    deletions: int = 0
