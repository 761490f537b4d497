"""Reminder creation endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from tasksync.api_notes import _full_note_record
from tasksync.calendar_notes import get_date_note
from tasksync.errors import success_response
from tasksync.handlers import template_target
from tasksync.notes import AttributeSpec
from tasksync.payload import (
    _ensure_payload_dict,
    _parse_datetime,
    _reject_unknown_fields,
    _require_fields,
    _require_string,
)
from tasksync.router import api_router
from tasksync.store import store_session
from tasksync.user_scope import get_request_store_root


@api_router.post("/tool:new_reminder")
def new_reminder(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """File a reminder under the day note of ``time``."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"time", "task"})
    _require_fields(payload, ["time", "task"])
    task = _require_string(payload, "task")
    time = _parse_datetime(payload["time"], "time")
    todo_date = time.date().isoformat()

    store_root = get_request_store_root(request)
    with store_session(store_root, "new_reminder") as session:
        store = session.store
        template_id = template_target(store, "new_reminder", "targetTemplate")
        day_note = get_date_note(store, todo_date)
        note = store.create_note(
            day_note.note_id,
            task,
            "",
            attributes=[
                AttributeSpec.relation("template", template_id),
                AttributeSpec.label("todoDate", todo_date),
                AttributeSpec.label("todoTime", time.strftime("%H:%M:%S")),
            ],
        )
        session.summary = f"new reminder {note.note_id}"
        record = _full_note_record(store, note.note_id)
    return success_response({"reminder": record, "commitSha": session.commit_sha})
