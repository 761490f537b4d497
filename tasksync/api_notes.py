"""Note inspection and attribute mutation endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from tasksync.bootstrap import init_task_tree as _init_task_tree
from tasksync.classifier import TaskState
from tasksync.errors import TaskSyncError, success_response
from tasksync.notes import ATTRIBUTE_TYPES, LABEL, Attribute, Note, NoteStore
from tasksync.payload import (
    _ensure_payload_dict,
    _reject_unknown_fields,
    _require_fields,
    _require_string,
)
from tasksync.reconcile import TaskService
from tasksync.router import api_router
from tasksync.store import store_session
from tasksync.user_scope import get_request_store_root


def _note_record(
    note: Note, attributes: list[Attribute] | list[dict[str, Any]]
) -> dict[str, Any]:
    record = note.to_dict()
    record["attributes"] = [
        attr.to_dict() if isinstance(attr, Attribute) else attr for attr in attributes
    ]
    return record


def _full_note_record(store: NoteStore, note_id: str) -> dict[str, Any]:
    note = store.get_note(note_id)
    record = _note_record(note, store.get_attributes(note_id))
    record["parents"] = [
        {
            "parentNoteId": branch.parent_note_id,
            "title": store.get_note(branch.parent_note_id).title,
            "prefix": branch.prefix,
        }
        for branch in store.get_branches(note_id)
        if store.has_note(branch.parent_note_id)
    ]
    record["childNoteIds"] = [child.note_id for child in store.get_child_notes(note_id)]
    return record


def _state_dict(state: TaskState | None) -> dict[str, Any] | None:
    if state is None:
        return None
    return {
        "isDone": state.is_done,
        "isCanceled": state.is_canceled,
        "isTodo": state.is_todo,
        "doneDate": state.done_date,
        "todoDate": state.todo_date,
        "location": state.location,
        "tags": list(state.tags),
    }


def _attribute_type(payload: dict[str, Any]) -> str:
    attribute_type = payload.get("type", LABEL)
    if attribute_type not in ATTRIBUTE_TYPES:
        raise TaskSyncError(
            "INVALID_ATTRIBUTE_TYPE",
            "type must be 'label' or 'relation'.",
            {"type": str(attribute_type)},
        )
    return attribute_type


@api_router.post("/tool:read_note")
def read_note(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Return a note with its attributes and parent links."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"noteId"})
    _require_fields(payload, ["noteId"])
    note_id = _require_string(payload, "noteId")

    store_root = get_request_store_root(request)
    with store_session(store_root, "read_note", persist=False) as session:
        record = _full_note_record(session.store, note_id)
    return success_response({"note": record})


@api_router.post("/tool:set_attribute")
def set_attribute(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Set (or with ``multi`` add) an attribute, then refile the task."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"noteId", "name", "value", "type", "multi"})
    _require_fields(payload, ["noteId", "name"])
    note_id = _require_string(payload, "noteId")
    name = _require_string(payload, "name")
    attribute_type = _attribute_type(payload)
    value = payload.get("value", "")
    if not isinstance(value, str):
        raise TaskSyncError(
            "INVALID_TYPE",
            "value must be a string.",
            {"value": str(value)},
        )
    multi = payload.get("multi", False)
    if not isinstance(multi, bool):
        raise TaskSyncError(
            "INVALID_TYPE",
            "multi must be a boolean.",
            {"multi": str(multi)},
        )

    store_root = get_request_store_root(request)
    with store_session(store_root, "set_attribute") as session:
        store = session.store
        store.get_note(note_id)
        if multi:
            store.add_attribute(note_id, attribute_type, name, value)
        else:
            store.set_attribute(note_id, attribute_type, name, value)
        session.summary = f"set {name} on {note_id}"
        state = TaskService(store).on_attribute_changed(note_id, name)
        record = _full_note_record(store, note_id)
    return success_response(
        {
            "note": record,
            "reconciled": state is not None,
            "state": _state_dict(state),
            "commitSha": session.commit_sha,
        }
    )


@api_router.post("/tool:remove_attribute")
def remove_attribute(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Remove matching owned attributes, then refile the task."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"noteId", "name", "value", "type"})
    _require_fields(payload, ["noteId", "name"])
    note_id = _require_string(payload, "noteId")
    name = _require_string(payload, "name")
    attribute_type = _attribute_type(payload)
    value = payload.get("value")
    if value is not None and not isinstance(value, str):
        raise TaskSyncError(
            "INVALID_TYPE",
            "value must be a string.",
            {"value": str(value)},
        )

    store_root = get_request_store_root(request)
    with store_session(store_root, "remove_attribute") as session:
        store = session.store
        removed = store.remove_attributes(note_id, attribute_type, name, value)
        session.summary = f"remove {name} from {note_id}"
        state = TaskService(store).on_attribute_changed(note_id, name) if removed else None
        record = _full_note_record(store, note_id)
    return success_response(
        {
            "note": record,
            "removed": removed,
            "reconciled": state is not None,
            "state": _state_dict(state),
            "commitSha": session.commit_sha,
        }
    )


@api_router.post("/tool:init_task_tree")
def init_task_tree(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Create the task roots, templates, handler notes and calendar root."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, set())

    store_root = get_request_store_root(request)
    with store_session(store_root, "init_task_tree") as session:
        ids = _init_task_tree(session.store)
    return success_response({"noteIds": ids, "commitSha": session.commit_sha})
