"""Get-or-create calendar day notes under the ``#calendarRoot`` note."""

from __future__ import annotations

from datetime import date

from tasksync.errors import TaskSyncError
from tasksync.notes import ROOT_NOTE_ID, AttributeSpec, Note, NoteStore

CALENDAR_ROOT_LABEL = "calendarRoot"
YEAR_LABEL = "yearNote"
MONTH_LABEL = "monthNote"
DATE_LABEL = "dateNote"


def parse_date_string(date_string: str) -> date:
    if not isinstance(date_string, str):
        raise TaskSyncError(
            "INVALID_DATE",
            "Date must be a YYYY-MM-DD string.",
            {"date": str(date_string)},
        )
    try:
        return date.fromisoformat(date_string.strip()[:10])
    except ValueError:
        raise TaskSyncError(
            "INVALID_DATE",
            "Date must be a YYYY-MM-DD string.",
            {"date": date_string},
        )


def get_calendar_root(store: NoteStore) -> Note:
    matches = store.get_notes_with_label(CALENDAR_ROOT_LABEL)
    if matches:
        return store.get_note_with_label(CALENDAR_ROOT_LABEL)
    return store.create_note(
        ROOT_NOTE_ID,
        "Calendar",
        attributes=[AttributeSpec.label(CALENDAR_ROOT_LABEL)],
    )


def _get_or_create_child(
    store: NoteStore, parent: Note, label_name: str, label_value: str, title: str
) -> Note:
    for child in store.get_child_notes(parent.note_id):
        if store.get_label_value(child.note_id, label_name) == label_value:
            return child
    return store.create_note(
        parent.note_id,
        title,
        attributes=[AttributeSpec.label(label_name, label_value)],
    )


def get_date_note(store: NoteStore, date_string: str) -> Note:
    """Return the day note for ``date_string``, creating year/month/day as needed."""
    day = parse_date_string(date_string)
    calendar_root = get_calendar_root(store)
    year_note = _get_or_create_child(
        store, calendar_root, YEAR_LABEL, f"{day:%Y}", f"{day:%Y}"
    )
    month_note = _get_or_create_child(
        store, year_note, MONTH_LABEL, f"{day:%Y-%m}", f"{day:%m - %B}"
    )
    return _get_or_create_child(
        store, month_note, DATE_LABEL, day.isoformat(), f"{day:%d - %A}"
    )
