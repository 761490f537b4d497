"""Create the notes the task tools expect: roots, templates and handlers."""

from __future__ import annotations

from typing import Iterable

from tasksync.calendar_notes import get_calendar_root
from tasksync.handlers import HANDLER_LABEL
from tasksync.notes import LABEL, ROOT_NOTE_ID, AttributeSpec, Note, NoteStore
from tasksync.reconcile import (
    CANCELED_ROOT_LABEL,
    DONE_ROOT_LABEL,
    LOCATION_ROOT_LABEL,
    REMINDER_LABEL,
    TAG_ROOT_LABEL,
    TODO_ROOT_LABEL,
)

TASKS_LABEL = "taskRoot"
TEMPLATES_LABEL = "templateRoot"
HANDLERS_LABEL = "handlerRoot"

TASK_TEMPLATE_LABEL = "taskTemplate"
REMINDER_TEMPLATE_LABEL = "reminderTemplate"
DAILY_REMINDER_TEMPLATE_LABEL = "dailyReminderTemplate"
EVENT_TEMPLATE_LABEL = "eventTemplate"


def _ensure_labeled_note(
    store: NoteStore,
    parent_note_id: str,
    title: str,
    label_name: str,
    label_value: str | None = None,
    extra: Iterable[AttributeSpec] = (),
) -> Note:
    matches = store.get_notes_with_label(label_name, label_value)
    if matches:
        return matches[0]
    attributes = [AttributeSpec.label(label_name, label_value or ""), *extra]
    return store.create_note(parent_note_id, title, attributes=attributes)


def _ensure_relation(
    store: NoteStore, note_id: str, name: str, target_note_id: str
) -> None:
    if store.get_relation_value(note_id, name) is None:
        store.set_attribute(note_id, "relation", name, target_note_id)


def init_task_tree(store: NoteStore) -> dict[str, str]:
    """Idempotently create the task tree; returns note ids by role."""
    tasks = _ensure_labeled_note(store, ROOT_NOTE_ID, "Tasks", TASKS_LABEL)
    roots = {
        "todoRoot": _ensure_labeled_note(store, tasks.note_id, "Todo", TODO_ROOT_LABEL),
        "doneRoot": _ensure_labeled_note(store, tasks.note_id, "Done", DONE_ROOT_LABEL),
        "canceledRoot": _ensure_labeled_note(
            store, tasks.note_id, "Canceled", CANCELED_ROOT_LABEL
        ),
        "locationRoot": _ensure_labeled_note(
            store, tasks.note_id, "Locations", LOCATION_ROOT_LABEL
        ),
        "tagRoot": _ensure_labeled_note(store, tasks.note_id, "Tags", TAG_ROOT_LABEL),
    }

    templates = _ensure_labeled_note(store, ROOT_NOTE_ID, "Templates", TEMPLATES_LABEL)
    template_marker = AttributeSpec(LABEL, "template")
    reminder_marker = AttributeSpec.label(REMINDER_LABEL, "true")
    task_template = _ensure_labeled_note(
        store,
        templates.note_id,
        "task template",
        TASK_TEMPLATE_LABEL,
        extra=[template_marker, AttributeSpec.label("task")],
    )
    reminder_template = _ensure_labeled_note(
        store,
        templates.note_id,
        "reminder template",
        REMINDER_TEMPLATE_LABEL,
        extra=[template_marker, reminder_marker],
    )
    daily_template = _ensure_labeled_note(
        store,
        templates.note_id,
        "daily reminder template",
        DAILY_REMINDER_TEMPLATE_LABEL,
        extra=[template_marker, reminder_marker],
    )
    event_template = _ensure_labeled_note(
        store,
        templates.note_id,
        "event template",
        EVENT_TEMPLATE_LABEL,
        extra=[template_marker],
    )

    handlers = _ensure_labeled_note(store, ROOT_NOTE_ID, "Handlers", HANDLERS_LABEL)
    handler_relations = {
        "task_alerts": {
            "targetTemplate": task_template.note_id,
            "targetTemplateReminder": reminder_template.note_id,
            "targetTemplateReminderDaily": daily_template.note_id,
        },
        "event_alerts": {"targetTemplateEvent": event_template.note_id},
        "new_event": {"targetTemplate": event_template.note_id},
        "new_reminder": {"targetTemplate": reminder_template.note_id},
        "create_task": {"targetTemplate": task_template.note_id},
    }
    for handler_name, relations in handler_relations.items():
        handler = _ensure_labeled_note(
            store, handlers.note_id, handler_name, HANDLER_LABEL, handler_name
        )
        for relation_name, target in relations.items():
            _ensure_relation(store, handler.note_id, relation_name, target)

    ids = {key: note.note_id for key, note in roots.items()}
    ids.update(
        {
            "taskTemplate": task_template.note_id,
            "reminderTemplate": reminder_template.note_id,
            "dailyReminderTemplate": daily_template.note_id,
            "eventTemplate": event_template.note_id,
            "calendarRoot": get_calendar_root(store).note_id,
        }
    )
    return ids
