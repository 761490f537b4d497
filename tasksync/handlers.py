"""Lookup of request-handler notes and the template targets they configure.

A handler note carries ``#customRequestHandler=<tool name>`` and one relation
per template it works with, for example ``~targetTemplate``.
"""

from __future__ import annotations

from tasksync.errors import TaskSyncError
from tasksync.notes import Note, NoteStore

HANDLER_LABEL = "customRequestHandler"


def find_handler_note(store: NoteStore, handler_name: str) -> Note | None:
    matches = store.get_notes_with_label(HANDLER_LABEL, handler_name)
    if len(matches) > 1:
        raise TaskSyncError(
            "AMBIGUOUS_ROOT",
            f"More than one note handles {handler_name}.",
            {"handler": handler_name, "noteIds": [note.note_id for note in matches]},
        )
    return matches[0] if matches else None


def template_target(
    store: NoteStore, handler_name: str, relation_name: str, *, required: bool = True
) -> str | None:
    """Return the template note id configured on a handler, if any."""
    handler = find_handler_note(store, handler_name)
    target = None
    if handler is not None:
        target = store.get_relation_value(handler.note_id, relation_name)
    if target is not None and store.has_note(target):
        return target
    if required:
        raise TaskSyncError(
            "TEMPLATE_NOT_CONFIGURED",
            f"{handler_name} has no ~{relation_name} template.",
            {"handler": handler_name, "relation": relation_name},
        )
    return None
