"""Git versioning of the per-user note store."""

from __future__ import annotations

import logging
from pathlib import Path

from dulwich import porcelain
from dulwich.repo import Repo

from tasksync.errors import TaskSyncError
from tasksync.fs_utils import _atomic_write

logger = logging.getLogger(__name__)


def _ensure_git_repo(store_root: Path) -> Repo:
    git_dir = store_root / ".git"
    try:
        if git_dir.exists():
            return Repo(str(store_root))
        return porcelain.init(str(store_root))
    except Exception as exc:
        raise TaskSyncError(
            "GIT_ERROR",
            "Git repository could not be initialized.",
            {"path": str(store_root)},
        ) from exc


def _commit_store_change(repo: Repo, relative_path: Path, operation: str) -> str:
    repo.get_worktree().stage([str(relative_path)])
    commit_message = f"{operation}: {relative_path.as_posix()}"
    commit_sha = porcelain.commit(repo, message=commit_message)
    if isinstance(commit_sha, bytes):
        return commit_sha.decode("ascii")
    return str(commit_sha)


def _rollback_store_change(
    repo: Repo | None,
    target_path: Path,
    relative_path: Path,
    original_content: str | None,
) -> None:
    if original_content is None:
        try:
            if target_path.exists():
                target_path.unlink()
        except OSError:
            logger.warning("Could not remove %s during rollback", target_path)
    else:
        _atomic_write(target_path, original_content)
    if repo is None:
        return
    try:
        repo.get_worktree().stage([str(relative_path)])
    except Exception:
        logger.warning("Could not restage %s during rollback", relative_path)
