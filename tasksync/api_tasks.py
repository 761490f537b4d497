"""Task listing, creation and manual sync endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import Request

from tasksync.api_notes import _full_note_record, _note_record, _state_dict
from tasksync.errors import TaskSyncError, success_response
from tasksync.handlers import template_target
from tasksync.notes import LABEL, AttributeSpec, NoteStore
from tasksync.payload import (
    _ensure_payload_dict,
    _parse_date,
    _reject_unknown_fields,
    _require_fields,
    _require_string,
)
from tasksync.reconcile import TODO_ROOT_LABEL, TaskService
from tasksync.router import api_router
from tasksync.store import store_session
from tasksync.user_scope import get_request_store_root


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _due_from(store: NoteStore, note_id: str, today: str) -> bool:
    todo_date = store.get_label_value(note_id, "todoDate")
    return bool(todo_date) and todo_date >= today


def _collect_task_records(
    store: NoteStore, due_from_today: bool
) -> list[dict[str, Any]]:
    today = _today()
    template_ids = [
        template_target(store, "task_alerts", "targetTemplate"),
        template_target(store, "task_alerts", "targetTemplateReminder", required=False),
    ]
    records: list[dict[str, Any]] = []
    for template_id in template_ids:
        if template_id is None:
            continue
        for note in store.get_notes_with_relation("template", template_id):
            if due_from_today and not _due_from(store, note.note_id, today):
                continue
            records.append(_note_record(note, store.get_attributes(note.note_id)))

    if not due_from_today:
        return records

    daily_id = template_target(
        store, "task_alerts", "targetTemplateReminderDaily", required=False
    )
    if daily_id is None:
        return records
    for note in store.get_notes_with_relation("template", daily_id):
        attributes = [attr.to_dict() for attr in store.get_attributes(note.note_id)]
        attributes.append(
            {
                "attributeId": "",
                "noteId": note.note_id,
                "type": LABEL,
                "name": "todoDate",
                "value": today,
                "position": 0,
                "isInheritable": False,
            }
        )
        records.append(_note_record(note, attributes))
    return records


@api_router.post("/tool:task_alerts")
def task_alerts(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """List task and reminder notes with their attributes."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"dueFromToday"})
    due_from_today = payload.get("dueFromToday", False)
    if not isinstance(due_from_today, bool):
        raise TaskSyncError(
            "INVALID_TYPE",
            "dueFromToday must be a boolean.",
            {"dueFromToday": str(due_from_today)},
        )

    store_root = get_request_store_root(request)
    with store_session(store_root, "task_alerts", persist=False) as session:
        records = _collect_task_records(session.store, due_from_today)
    return success_response({"tasks": records})


@api_router.post("/tool:create_task")
def create_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Create a task under the Todo root and file it."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"title", "todoDate", "location", "tags"})
    _require_fields(payload, ["title"])
    title = _require_string(payload, "title")

    attributes: list[AttributeSpec] = []
    if payload.get("todoDate") is not None:
        todo_date = _parse_date(payload["todoDate"], "todoDate")
        attributes.append(AttributeSpec.label("todoDate", todo_date.isoformat()))
    if payload.get("location") is not None:
        location = _require_string(payload, "location")
        attributes.append(AttributeSpec.label("location", location.strip()))
    tags = payload.get("tags", [])
    if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
        raise TaskSyncError(
            "INVALID_TYPE",
            "tags must be a list of strings.",
            {"tags": str(tags)},
        )
    attributes.extend(AttributeSpec.label("tag", tag.strip()) for tag in tags if tag.strip())

    store_root = get_request_store_root(request)
    with store_session(store_root, "create_task") as session:
        store = session.store
        todo_root = store.get_note_with_label(TODO_ROOT_LABEL)
        template_id = template_target(
            store, "create_task", "targetTemplate", required=False
        )
        if template_id is not None:
            attributes.insert(0, AttributeSpec.relation("template", template_id))
        note = store.create_note(todo_root.note_id, title, "", attributes=attributes)
        session.summary = f"create task {note.note_id}"
        state = TaskService(store).sync_task(note.note_id)
        record = _full_note_record(store, note.note_id)
    return success_response(
        {"task": record, "state": _state_dict(state), "commitSha": session.commit_sha}
    )


@api_router.post("/tool:sync_task")
def sync_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Re-run the full filing of one task on demand."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"noteId"})
    _require_fields(payload, ["noteId"])
    note_id = _require_string(payload, "noteId")

    store_root = get_request_store_root(request)
    with store_session(store_root, "sync_task") as session:
        session.summary = f"sync task {note_id}"
        state = TaskService(session.store).sync_task(note_id)
        record = _full_note_record(session.store, note_id)
    return success_response(
        {
            "task": record,
            "reconciled": state is not None,
            "state": _state_dict(state),
            "commitSha": session.commit_sha,
        }
    )
