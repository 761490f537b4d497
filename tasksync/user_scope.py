"""Request-scoped user identity and note store root helpers."""

from __future__ import annotations

import re
from pathlib import Path

from fastapi import Request

from tasksync.errors import TaskSyncError

USER_ID_HEADER = "X-TaskSync-User-Id"
SERVICE_TOKEN_HEADER = "X-TaskSync-Service-Token"
AUTH_EXEMPT_PATHS = {"/health"}
DEFAULT_USER_ID = "default"

_VALID_USER_ID = re.compile(r"^[A-Za-z0-9_]{3,128}$")


def normalize_user_id(raw_user_id: str) -> str:
    """Normalize and validate a user id from request context."""
    if not isinstance(raw_user_id, str):
        raise TaskSyncError(
            "INVALID_USER_ID",
            "User id must be a string.",
            {"type": type(raw_user_id).__name__},
        )

    normalized = raw_user_id.strip().replace("-", "")
    if not normalized:
        raise TaskSyncError(
            "AUTH_REQUIRED",
            "Missing required user identity header.",
            {"header": USER_ID_HEADER},
        )

    if not _VALID_USER_ID.fullmatch(normalized):
        raise TaskSyncError(
            "INVALID_USER_ID",
            "User id contains invalid characters.",
            {"user_id": raw_user_id},
        )
    return normalized


def resolve_user_store_root(base_root: Path, user_id: str) -> Path:
    """Resolve the scoped note store directory for a user."""
    return base_root / "users" / normalize_user_id(user_id)


def get_request_user_id(request: Request) -> str:
    """Read and cache the normalized user id from request state or headers.

    When the service runs without the identity requirement a shared
    ``default`` user store is used for requests that carry no header.
    """
    cached = getattr(request.state, "user_id", None)
    if isinstance(cached, str) and cached.strip():
        normalized = normalize_user_id(cached)
        request.state.user_id = normalized
        return normalized

    raw_user_id = request.headers.get(USER_ID_HEADER)
    if raw_user_id is None:
        config = getattr(request.app.state, "config", None)
        if not getattr(config, "require_user_header", True):
            request.state.user_id = DEFAULT_USER_ID
            return DEFAULT_USER_ID
        raise TaskSyncError(
            "AUTH_REQUIRED",
            "Missing required user identity header.",
            {"header": USER_ID_HEADER},
        )

    normalized = normalize_user_id(raw_user_id)
    request.state.user_id = normalized
    return normalized


def get_request_store_root(request: Request) -> Path:
    """Resolve and create the user-scoped note store directory for a request."""
    config = getattr(request.app.state, "config", None)
    if config is not None and hasattr(config, "store_path"):
        base_root = Path(config.store_path)
    else:
        base_root = Path(request.app.state.store_path)

    scoped_root = resolve_user_store_root(base_root, get_request_user_id(request))
    scoped_root.mkdir(parents=True, exist_ok=True)
    return scoped_root
