from __future__ import annotations

import os
import subprocess
import threading
from collections.abc import Iterator
from pathlib import Path

from .errors import GitCommandError

MAX_STDERR_CHARS = 50_000


def _git_env() -> dict[str, str]:
    env = os.environ.copy()
    # read-only: never refresh the index as a side effect
    env["GIT_OPTIONAL_LOCKS"] = "0"
    # never fetch missing objects from a promisor remote
    env["GIT_NO_LAZY_FETCH"] = "1"
    return env


def run_git(args: list[str], cwd: Path, timeout_s: int = 60) -> tuple[int, str, str]:
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout_s,
            env=_git_env(),
        )
    except subprocess.TimeoutExpired as e:
        raise GitCommandError(f"git {args[0]} timed out after {timeout_s}s") from e
    except OSError as e:
        raise GitCommandError(f"failed to start git {args[0]}: {e}") from e
    return proc.returncode, proc.stdout, proc.stderr


def stream_git(args: list[str], cwd: Path, separator: str = "\n", timeout_s: int = 60) -> Iterator[str]:
    """
    Yield `separator`-terminated records from a long-running git command.

    stderr is drained on a background thread so a chatty git cannot fill the
    pipe and stall stdout. git is killed once `timeout_s` has elapsed. Raises
    GitCommandError once the stream is exhausted if git timed out or exited
    non-zero.
    """
    try:
        proc = subprocess.Popen(
            ["git", *args],
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            env=_git_env(),
        )
    except OSError as e:
        raise GitCommandError(f"failed to start git {args[0]}: {e}") from e

    stderr_chunks: list[str] = []
    stderr_chars = 0

    def drain_stderr() -> None:
        nonlocal stderr_chars
        if proc.stderr is None:
            return
        while True:
            chunk = proc.stderr.read(8192)
            if not chunk:
                return
            if stderr_chars >= MAX_STDERR_CHARS:
                continue
            take = chunk[: MAX_STDERR_CHARS - stderr_chars]
            stderr_chunks.append(take)
            stderr_chars += len(take)

    stderr_thread = threading.Thread(target=drain_stderr, daemon=True)
    stderr_thread.start()

    timed_out = threading.Event()

    def kill() -> None:
        timed_out.set()
        proc.kill()

    timer = threading.Timer(timeout_s, kill)
    timer.daemon = True
    timer.start()

    assert proc.stdout is not None
    try:
        pending = ""
        while True:
            chunk = proc.stdout.read(8192)
            if not chunk:
                break
            pending += chunk
            *records, pending = pending.split(separator)
            yield from records
        if pending.strip() and not timed_out.is_set():
            yield pending
    finally:
        proc.stdout.close()
        code = proc.wait()
        timer.cancel()
        stderr_thread.join()

    if timed_out.is_set():
        raise GitCommandError(f"git {args[0]} timed out after {timeout_s}s")
    if code != 0:
        stderr = "".join(stderr_chunks)
        raise GitCommandError(f"git {args[0]} exited {code}: {stderr.strip()[:500]}")
