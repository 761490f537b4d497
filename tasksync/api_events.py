"""Calendar event endpoints."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from fastapi import Request

from tasksync.api_notes import _full_note_record
from tasksync.calendar_notes import get_date_note
from tasksync.errors import success_response
from tasksync.handlers import template_target
from tasksync.notes import AttributeSpec
from tasksync.payload import (
    _ensure_payload_dict,
    _format_date_time,
    _optional_string,
    _parse_datetime,
    _reject_unknown_fields,
    _require_fields,
    _require_string,
)
from tasksync.router import api_router
from tasksync.store import store_session
from tasksync.user_scope import get_request_store_root

EVENT_FIELDS = {
    "uid",
    "name",
    "summary",
    "summaryHtml",
    "location",
    "fileName",
    "fileData",
    "startTime",
    "endTime",
}


@api_router.post("/tool:event_alerts")
def event_alerts(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """List events with their start times."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, set())

    store_root = get_request_store_root(request)
    with store_session(store_root, "event_alerts", persist=False) as session:
        store = session.store
        template_id = template_target(store, "event_alerts", "targetTemplateEvent")
        events = [
            {
                "name": note.title,
                "startTime": store.get_label_value(note.note_id, "startTime"),
            }
            for note in store.get_notes_with_relation("template", template_id)
        ]
    return success_response({"events": events})


@api_router.post("/tool:new_event")
def new_event(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """File a calendar event under its day note with an attached .ics file."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, EVENT_FIELDS)
    _require_fields(payload, ["uid", "name", "startTime", "endTime"])

    uid = _require_string(payload, "uid")
    name = _require_string(payload, "name")
    summary = _optional_string(payload, "summary")
    summary_html = _optional_string(payload, "summaryHtml")
    location = _optional_string(payload, "location")
    file_name = _optional_string(payload, "fileName")
    file_data = _optional_string(payload, "fileData")
    start_time = _parse_datetime(payload["startTime"], "startTime")
    end_time = _parse_datetime(payload["endTime"], "endTime")

    store_root = get_request_store_root(request)
    with store_session(store_root, "new_event") as session:
        store = session.store
        template_id = template_target(store, "new_event", "targetTemplate")
        day_note = get_date_note(store, start_time.date().isoformat())
        note = store.create_note(
            day_note.note_id,
            name,
            summary_html if summary_html else summary,
            mime="text/html" if summary_html else "text/plain",
            attributes=[
                AttributeSpec.relation("template", template_id),
                AttributeSpec.label("uid", uid),
                AttributeSpec.label("location", location),
                AttributeSpec.label("startTime", _format_date_time(start_time)),
                AttributeSpec.label("endTime", _format_date_time(end_time)),
            ],
        )
        if file_name or file_data:
            store.create_note(
                note.note_id,
                file_name or f"{uid}.ics",
                file_data,
                type="file",
                mime="text/calendar",
            )
        session.summary = f"new event {uid}"
        record = _full_note_record(store, note.note_id)
    return success_response({"event": record, "commitSha": session.commit_sha})


@api_router.post("/tool:duplicate_event_next_week")
def duplicate_event_next_week(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Copy an event to the same time one week later."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"noteId"})
    _require_fields(payload, ["noteId"])
    note_id = _require_string(payload, "noteId")

    store_root = get_request_store_root(request)
    with store_session(store_root, "duplicate_event_next_week") as session:
        store = session.store
        source = store.get_note(note_id)
        start_time = _parse_datetime(
            store.get_label_value(note_id, "startTime"), "startTime"
        ) + timedelta(days=7)
        attributes = [
            AttributeSpec.label("startTime", _format_date_time(start_time)),
        ]
        template_id = store.get_relation_value(note_id, "template")
        if template_id is not None:
            attributes.insert(0, AttributeSpec.relation("template", template_id))
        end_value = store.get_label_value(note_id, "endTime")
        if end_value:
            end_time = _parse_datetime(end_value, "endTime") + timedelta(days=7)
            attributes.append(AttributeSpec.label("endTime", _format_date_time(end_time)))
        location = store.get_label_value(note_id, "location")
        if location:
            attributes.append(AttributeSpec.label("location", location))

        day_note = get_date_note(store, start_time.date().isoformat())
        copy = store.create_note(
            day_note.note_id, source.title, "", attributes=attributes
        )
        session.summary = f"duplicate event {note_id}"
        record = _full_note_record(store, copy.note_id)
    return success_response({"event": record, "commitSha": session.commit_sha})
