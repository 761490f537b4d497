"""Load, lock, persist and version a user's note store."""

from __future__ import annotations

import fcntl
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from tasksync.activity import _append_activity_log, _build_activity_entry
from tasksync.errors import TaskSyncError
from tasksync.fs_utils import _atomic_write
from tasksync.git_store import (
    _commit_store_change,
    _ensure_git_repo,
    _rollback_store_change,
)
from tasksync.notes import NoteStore

logger = logging.getLogger(__name__)

STORE_FILENAME = "notes.json"
LOCK_FILENAME = ".notes.lock"


@contextmanager
def _store_lock(store_root: Path) -> Iterator[None]:
    """Hold an exclusive lock on the store, shared by all threads and processes."""
    store_root.mkdir(parents=True, exist_ok=True)
    with (store_root / LOCK_FILENAME).open("a+", encoding="utf-8") as handle:
        fcntl.flock(handle, fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(handle, fcntl.LOCK_UN)


def _store_path(store_root: Path) -> Path:
    return store_root / STORE_FILENAME


def _serialize(store: NoteStore) -> str:
    return json.dumps(store.to_dict(), indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def load_store(store_root: Path) -> NoteStore:
    store_path = _store_path(store_root)
    if not store_path.exists():
        return NoteStore()
    try:
        data = json.loads(store_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise TaskSyncError(
            "STORE_CORRUPT",
            "Note store could not be read.",
            {"path": STORE_FILENAME, "error": str(exc)},
        ) from exc
    if not isinstance(data, dict):
        raise TaskSyncError(
            "STORE_CORRUPT",
            "Note store document must be an object.",
            {"path": STORE_FILENAME},
        )
    return NoteStore.from_dict(data)


def save_store(store_root: Path, store: NoteStore, operation: str) -> str:
    """Write the store atomically and commit it; returns the commit sha."""
    store_path = _store_path(store_root)
    relative_path = Path(STORE_FILENAME)
    original = store_path.read_text(encoding="utf-8") if store_path.exists() else None

    repo = _ensure_git_repo(store_root)
    _atomic_write(store_path, _serialize(store))
    try:
        commit_sha = _commit_store_change(repo, relative_path, operation)
    except Exception as exc:
        _rollback_store_change(repo, store_path, relative_path, original)
        raise TaskSyncError(
            "GIT_ERROR",
            "Git commit failed; mutation rolled back.",
            {"path": STORE_FILENAME, "operation": operation},
        ) from exc
    store.dirty = False
    return commit_sha


@dataclass
class StoreSession:
    store_root: Path
    operation: str
    store: NoteStore
    summary: str = ""
    commit_sha: str | None = None


@contextmanager
def store_session(
    store_root: Path, operation: str, *, persist: bool = True
) -> Iterator[StoreSession]:
    """Hold the store lock while the caller reads or mutates the store.

    Changes are written and committed on exit, including when the body
    raises, so steps applied before a failure stay visible. Sessions opened
    with ``persist=False`` never write, commit or log.
    """
    with _store_lock(store_root):
        session = StoreSession(
            store_root=store_root,
            operation=operation,
            store=load_store(store_root),
            summary=operation.replace("_", " "),
        )
        try:
            yield session
        finally:
            if persist and session.store.dirty:
                session.commit_sha = save_store(store_root, session.store, operation)
                entry = _build_activity_entry(
                    operation, Path(STORE_FILENAME), session.summary, session.commit_sha
                )
                _append_activity_log(store_root, entry)
                logger.debug("Committed %s as %s", operation, session.commit_sha)
