"""Git-backed status and diff providers.

Reads working-tree status from ``git status --porcelain`` and line changes
from zero-context unified diffs. Failures surface as ``RepositoryUnavailable``
(status) or ``ChangeFetchFailed`` (diffs); nothing here retries.
"""

from __future__ import annotations

import hashlib
import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .errors import ChangeFetchFailed, RepositoryUnavailable, StagingFailed
from .highlight import read_text, sanitize_terminal_text
from .status_model import ChangeKind, ChangeRecord, SectionKind, StatusEntry

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 5.0
_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_WATCHED_GIT_FILES = ("index", "HEAD", "MERGE_HEAD", "CHERRY_PICK_HEAD")


@dataclass(frozen=True)
class GitRepository:
    """Resolved work-tree root and git directory of one repository."""

    root: Path
    git_dir: Path

    def head_ref(self) -> str | None:
        """Branch ref HEAD points at, e.g. ``refs/heads/main``; ``None`` when detached."""
        try:
            head = (self.git_dir / "HEAD").read_text(encoding="utf-8", errors="replace").strip()
        except OSError:
            return None
        if not head.startswith("ref: "):
            return None
        return head[5:].strip() or None

    def watch_signature(self) -> str:
        """Digest of the control files whose change can alter status output.

        Covers the index, HEAD and its branch ref, plus in-progress merge
        markers.
        """
        names = list(_WATCHED_GIT_FILES)
        ref = self.head_ref()
        if ref is not None:
            names.append(ref)
        digest = hashlib.blake2b(digest_size=20)
        for name in names:
            digest.update(repr((name, _stat_fingerprint(self.git_dir / name))).encode("utf-8", errors="surrogateescape"))
        return digest.hexdigest()


def _stat_fingerprint(path: Path) -> tuple[int, int] | str:
    try:
        st = path.stat()
    except FileNotFoundError:
        return "missing"
    except OSError:
        return "unreadable"
    return (st.st_mtime_ns, st.st_size)


def _run_git(repo_root: Path, args: list[str], timeout_seconds: float) -> subprocess.CompletedProcess[str]:
    """Run git in ``repo_root``; ``OSError``/``TimeoutExpired`` propagate."""
    return subprocess.run(
        ["git", "-C", str(repo_root), *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=False,
        timeout=timeout_seconds,
    )


def _stderr_summary(proc: subprocess.CompletedProcess[str]) -> str:
    lines = [line.strip() for line in (proc.stderr or "").splitlines() if line.strip()]
    return lines[0] if lines else f"git exited with status {proc.returncode}"


def open_repository(path: Path, timeout_seconds: float = GIT_TIMEOUT_SECONDS) -> GitRepository:
    """Resolve the repository containing ``path``.

    Raises ``RepositoryUnavailable`` when git is missing, times out, or
    ``path`` is not inside a work tree.
    """
    path = path.resolve()
    try:
        proc = _run_git(path, ["rev-parse", "--show-toplevel", "--git-dir"], timeout_seconds)
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise RepositoryUnavailable(f"cannot run git: {exc}", path=str(path)) from exc
    if proc.returncode != 0:
        raise RepositoryUnavailable(_stderr_summary(proc), path=str(path))

    lines = [line.strip() for line in proc.stdout.splitlines() if line.strip()]
    if len(lines) < 2:
        raise RepositoryUnavailable("not a git work tree", path=str(path))

    repo_root = Path(lines[0]).resolve()
    git_dir_raw = Path(lines[1])
    git_dir = git_dir_raw if git_dir_raw.is_absolute() else (repo_root / git_dir_raw)
    return GitRepository(root=repo_root, git_dir=git_dir.resolve())


def iter_porcelain_records(output: str) -> list[tuple[str, str]]:
    """Split ``--porcelain=v1 -z`` output into ``(XY, path)`` pairs."""
    records: list[tuple[str, str]] = []
    tokens = output.split("\0")
    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if not token:
            continue
        if len(token) < 4 or token[2] != " ":
            continue

        status = token[:2]
        path_text = token[3:]
        records.append((status, path_text))

        # For renamed/copied entries, porcelain -z appends an extra token
        # containing the source path; the first path token is the destination.
        if "R" in status or "C" in status:
            index += 1

    return records


def status_entry_for(status: str, path: str) -> StatusEntry | None:
    """Map a porcelain ``XY`` code to a ``StatusEntry``; ``None`` for ignored."""
    if status == "!!":
        return None
    if status == "??":
        return StatusEntry(path=path, untracked=True)
    index_flag, worktree_flag = status[0], status[1]
    return StatusEntry(
        path=path,
        staged=index_flag not in " ?!",
        unstaged=worktree_flag not in " ?!",
    )


def parse_diff_changes(diff_text: str) -> tuple[ChangeRecord, ...]:
    """Extract added/deleted lines from unified diff hunks.

    Deletions are numbered in the old file and additions in the new file,
    counting from each hunk header.
    """
    changes: list[ChangeRecord] = []
    old_line = 0
    new_line = 0
    in_hunk = False

    for raw_line in diff_text.splitlines():
        match = _HUNK_RE.match(raw_line)
        if match:
            old_line = int(match.group(1))
            new_line = int(match.group(3))
            in_hunk = True
            continue
        if not in_hunk:
            continue
        if raw_line.startswith("-"):
            changes.append(ChangeRecord(old_line, raw_line[1:], ChangeKind.DELETION))
            old_line += 1
        elif raw_line.startswith("+"):
            changes.append(ChangeRecord(new_line, raw_line[1:], ChangeKind.ADDITION))
            new_line += 1
        elif raw_line.startswith(" "):
            old_line += 1
            new_line += 1
        elif raw_line.startswith("diff "):
            in_hunk = False

    return tuple(changes)


class GitStatusProvider:
    """Enumerate working-tree entries for one repository."""

    def __init__(self, repo: GitRepository, timeout_seconds: float = GIT_TIMEOUT_SECONDS) -> None:
        self.repo = repo
        self.timeout_seconds = timeout_seconds

    def fetch_status(self) -> list[StatusEntry]:
        """Return entries in porcelain order; raises ``RepositoryUnavailable``."""
        try:
            proc = _run_git(
                self.repo.root,
                ["status", "--porcelain=v1", "-z", "--untracked-files=all"],
                self.timeout_seconds,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise RepositoryUnavailable(f"git status failed: {exc}", path=str(self.repo.root)) from exc
        if proc.returncode != 0:
            raise RepositoryUnavailable(_stderr_summary(proc), path=str(self.repo.root))

        entries: list[StatusEntry] = []
        for status, rel_path in iter_porcelain_records(proc.stdout):
            entry = status_entry_for(status, rel_path)
            if entry is not None:
                entries.append(entry)
        logger.debug("git status reported %d entries in %s", len(entries), self.repo.root)
        return entries


class GitDiffProvider:
    """Load line changes for one file and stage/unstage files."""

    def __init__(self, repo: GitRepository, timeout_seconds: float = GIT_TIMEOUT_SECONDS) -> None:
        self.repo = repo
        self.timeout_seconds = timeout_seconds

    def _git(self, args: list[str], path: str, error_type: type[Exception]) -> subprocess.CompletedProcess[str]:
        try:
            return _run_git(self.repo.root, args, self.timeout_seconds)
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise error_type(f"git {args[0]} failed: {exc}", path=path) from exc

    def _untracked_changes(self, path: str) -> tuple[ChangeRecord, ...]:
        try:
            source = read_text(self.repo.root / path)
        except OSError as exc:
            raise ChangeFetchFailed(f"cannot read file: {exc.strerror or exc}", path=path) from exc
        return tuple(
            ChangeRecord(line_no, sanitize_terminal_text(line), ChangeKind.ADDITION)
            for line_no, line in enumerate(source.splitlines(), start=1)
        )

    def fetch_changes(self, path: str, kind: SectionKind = SectionKind.UNSTAGED) -> tuple[ChangeRecord, ...]:
        """Return the changes of ``path`` as seen by section ``kind``.

        Staged changes compare the index with HEAD, unstaged changes compare
        the work tree with the index, and untracked files report every line
        as an addition.
        """
        if kind is SectionKind.UNTRACKED:
            return self._untracked_changes(path)

        args = ["diff", "--no-color", "--no-ext-diff", "-U0"]
        if kind is SectionKind.STAGED:
            args.append("--cached")
        args.extend(["--", path])
        proc = self._git(args, path, ChangeFetchFailed)
        if proc.returncode != 0:
            raise ChangeFetchFailed(_stderr_summary(proc), path=path)
        changes = parse_diff_changes(sanitize_terminal_text(proc.stdout))
        logger.debug("loaded %d %s changes for %s", len(changes), kind.value, path)
        return changes

    def stage(self, path: str) -> None:
        proc = self._git(["add", "--", path], path, StagingFailed)
        if proc.returncode != 0:
            raise StagingFailed(_stderr_summary(proc), path=path)

    def unstage(self, path: str) -> None:
        """Remove ``path`` from the index, falling back for an unborn HEAD."""
        proc = self._git(["restore", "--staged", "--", path], path, StagingFailed)
        if proc.returncode == 0:
            return
        fallback = self._git(["rm", "--cached", "-q", "--", path], path, StagingFailed)
        if fallback.returncode != 0:
            raise StagingFailed(_stderr_summary(fallback), path=path)
