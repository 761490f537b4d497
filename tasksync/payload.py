"""Payload validation helpers for tool endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from tasksync.errors import TaskSyncError


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise TaskSyncError(
            "INVALID_TYPE",
            "Payload must be an object.",
            {"type": type(payload).__name__},
        )
    return payload


def _reject_unknown_fields(payload: dict[str, Any], allowed_fields: set[str]) -> None:
    unknown_fields = sorted(set(payload) - allowed_fields)
    if unknown_fields:
        raise TaskSyncError(
            "UNKNOWN_FIELD",
            "Unknown fields are not allowed.",
            {"fields": unknown_fields},
        )


def _require_fields(payload: dict[str, Any], required_fields: list[str]) -> None:
    missing = [name for name in required_fields if name not in payload]
    if missing:
        raise TaskSyncError(
            "MISSING_FIELDS",
            f"{', '.join(required_fields)} are required.",
            {"fields": missing},
        )


def _require_string(payload: dict[str, Any], name: str, *, allow_empty: bool = False) -> str:
    value = payload.get(name)
    if not isinstance(value, str):
        raise TaskSyncError(
            "INVALID_TYPE",
            f"{name} must be a string.",
            {name: str(value)},
        )
    if not allow_empty and not value.strip():
        raise TaskSyncError(
            "INVALID_VALUE",
            f"{name} must not be empty.",
            {name: value},
        )
    return value


def _optional_string(payload: dict[str, Any], name: str) -> str:
    if payload.get(name) is None:
        return ""
    return _require_string(payload, name, allow_empty=True)


def _parse_datetime(raw_value: Any, field_name: str) -> datetime:
    """Parse an ISO 8601 date-time into naive local time."""
    if not isinstance(raw_value, str) or not raw_value.strip():
        raise TaskSyncError(
            "INVALID_DATE",
            f"{field_name} must be an ISO date-time.",
            {field_name: str(raw_value)},
        )
    normalized = raw_value.strip()
    if normalized.endswith(("Z", "z")):
        normalized = normalized[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        raise TaskSyncError(
            "INVALID_DATE",
            f"{field_name} must be an ISO date-time.",
            {field_name: raw_value},
        )
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _parse_date(raw_value: Any, field_name: str) -> date:
    if not isinstance(raw_value, str):
        raise TaskSyncError(
            "INVALID_DATE",
            f"{field_name} must be a YYYY-MM-DD date.",
            {field_name: str(raw_value)},
        )
    try:
        return date.fromisoformat(raw_value.strip())
    except ValueError:
        raise TaskSyncError(
            "INVALID_DATE",
            f"{field_name} must be a YYYY-MM-DD date.",
            {field_name: raw_value},
        )


def _format_date_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%S")
