from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path

import pytest

BASE_TS = 1_735_689_600  # 2025-01-01T00:00:00Z

ALICE = ("Alice", "alice@example.com")
BOB = ("Bob", "bob@example.com")
CAROL = ("Carol", "carol@example.com")
DAVE = ("Dave", "dave@example.com")
ERIN = ("Erin", "erin@example.com")
ROOT = ("Root", "root@example.com")


class GitRepo:
    """Throwaway repository whose commits get strictly increasing one-minute-apart dates."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.tick = 0

    def git(self, *args: str, env: dict[str, str] | None = None) -> str:
        full_env = os.environ.copy()
        full_env.update(env or {})
        proc = subprocess.run(["git", *args], cwd=str(self.path), env=full_env, text=True, capture_output=True)
        assert proc.returncode == 0, f"git {' '.join(args)} failed: {proc.stderr}"
        return proc.stdout.strip()

    def write(self, name: str, text: str) -> None:
        p = self.path / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")

    def write_bytes(self, name: str, data: bytes) -> None:
        p = self.path / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)

    def _identity_env(
        self,
        author: tuple[str, str],
        committer: tuple[str, str] | None,
        author_ts: int | None,
        committer_ts: int | None,
    ) -> dict[str, str]:
        self.tick += 1
        ts = BASE_TS + self.tick * 60
        committer = committer or author
        return {
            "GIT_AUTHOR_NAME": author[0],
            "GIT_AUTHOR_EMAIL": author[1],
            "GIT_AUTHOR_DATE": f"@{author_ts if author_ts is not None else ts} +0000",
            "GIT_COMMITTER_NAME": committer[0],
            "GIT_COMMITTER_EMAIL": committer[1],
            "GIT_COMMITTER_DATE": f"@{committer_ts if committer_ts is not None else ts} +0000",
        }

    def commit(
        self,
        message: str,
        *,
        author: tuple[str, str] = ALICE,
        committer: tuple[str, str] | None = None,
        author_ts: int | None = None,
        committer_ts: int | None = None,
    ) -> str:
        self.git("add", "-A")
        env = self._identity_env(author, committer, author_ts, committer_ts)
        self.git("commit", "-q", "--allow-empty", "-m", message, env=env)
        return self.git("rev-parse", "HEAD")

    def merge(self, rev: str, message: str, *, author: tuple[str, str] = ALICE) -> str:
        env = self._identity_env(author, None, None, None)
        self.git("merge", "-q", "--no-ff", "--no-edit", "-m", message, rev, env=env)
        return self.git("rev-parse", "HEAD")

    def checkout(self, *args: str) -> None:
        self.git("checkout", "-q", *args)

    def configure_branch(self, name: str, merge: str | None = None) -> None:
        self.git("config", f"branch.{name}.remote", ".")
        self.git("config", f"branch.{name}.merge", merge or f"refs/heads/{name}")


def install_fake_git(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, subcommand: str, behaviour: str = "fail") -> None:
    """Put a `git` on PATH that runs the real one except for `subcommand`, which fails or hangs."""
    real_git = shutil.which("git")
    assert real_git is not None
    if behaviour == "hang":
        action = ["        time.sleep(60)", "        return 0"]
    else:
        action = ["        sys.stderr.write('fatal: simulated failure\\n')", "        return 128"]
    fake_git_dir = tmp_path / "bin"
    fake_git_dir.mkdir(exist_ok=True)
    fake_git = fake_git_dir / "git"
    fake_git.write_text(
        "\n".join(
            [
                f"#!{sys.executable}",
                "import os",
                "import sys",
                "import time",
                "",
                "def main() -> int:",
                f"    if len(sys.argv) > 1 and sys.argv[1] == {subcommand!r}:",
                *action,
                f"    os.execv({real_git!r}, [{real_git!r}, *sys.argv[1:]])",
                "    return 0",
                "",
                "if __name__ == '__main__':",
                "    raise SystemExit(main())",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    fake_git.chmod(0o755)
    monkeypatch.setenv("PATH", str(fake_git_dir) + os.pathsep + os.environ.get("PATH", ""))


@pytest.fixture
def git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in (
        "GIT_DIR",
        "GIT_WORK_TREE",
        "GIT_INDEX_FILE",
        "GITHUB_SHA",
        "GITHUB_BASE_REF",
        "CI_MERGE_REQUEST_SOURCE_BRANCH_SHA",
        "CI_MERGE_REQUEST_TARGET_BRANCH_NAME",
        "TARGET_BRANCH",
        "SCM_ATTRIBUTES_REPOSITORY",
        "SCM_ATTRIBUTES_GIT_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_repo(tmp_path: Path, git_env: None):
    counter = 0

    def factory(name: str = "") -> GitRepo:
        nonlocal counter
        counter += 1
        path = tmp_path / (name or f"repo{counter}")
        path.mkdir()
        repo = GitRepo(path)
        repo.git("init", "-q")
        repo.git("symbolic-ref", "HEAD", "refs/heads/main")
        repo.git("config", "user.name", "Test")
        repo.git("config", "user.email", "test@example.com")
        repo.git("config", "commit.gpgsign", "false")
        return repo

    return factory


@pytest.fixture
def linear_repo(make_repo) -> tuple[GitRepo, dict[str, str]]:
    """
    main:    C1 (root)
    feature: C1 -> C2 (adds a.txt, 3 lines) -> C3 (rewrites one line of a.txt)

    HEAD is on feature at C3; `main` is configured with merge ref refs/heads/main.
    """
    repo = make_repo("linear")
    repo.write("README.md", "root\n")
    c1 = repo.commit("C1", author=ROOT)
    repo.checkout("-b", "feature")
    repo.write("a.txt", "one\ntwo\nthree\n")
    c2 = repo.commit("C2", author=ALICE)
    repo.write("a.txt", "one\nTWO\nthree\n")
    c3 = repo.commit("C3", author=BOB, committer=CAROL)
    repo.configure_branch("main")
    return repo, {"c1": c1, "c2": c2, "c3": c3}
