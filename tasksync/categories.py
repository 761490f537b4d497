"""Category containers for tag and location values.

Each category root holds one child note per distinct value. The child carries
a single label (``taskTagNote`` or ``taskLocationNote``) whose value is the
category it represents.
"""

from __future__ import annotations

import logging
from typing import Iterable

from tasksync.notes import AttributeSpec, Note, NoteStore

logger = logging.getLogger(__name__)

TAG_LABEL = "taskTagNote"
LOCATION_LABEL = "taskLocationNote"


class CategoryIndex:
    """Maps category values to their notes under one root and label name."""

    def __init__(self, store: NoteStore, root_note_id: str, label_name: str) -> None:
        self.store = store
        self.root_note_id = root_note_id
        self.label_name = label_name

    def category_notes(self) -> list[tuple[str, Note]]:
        """Existing ``(value, note)`` pairs, in child order.

        Children without the label are unrelated data and are skipped.
        """
        pairs: list[tuple[str, Note]] = []
        for child in self.store.get_child_notes(self.root_note_id):
            value = self.store.get_label_value(child.note_id, self.label_name)
            if value is not None:
                pairs.append((value, child))
        return pairs

    def find(self, value: str) -> Note | None:
        for existing_value, note in self.category_notes():
            if existing_value == value:
                return note
        return None

    def create(self, value: str) -> Note:
        note = self.store.create_note(
            self.root_note_id,
            value,
            attributes=[AttributeSpec.label(self.label_name, value)],
        )
        logger.info(
            "Created category note %s for %s=%r", note.note_id, self.label_name, value
        )
        return note

    def resolve_or_create(self, value: str) -> Note:
        return self.find(value) or self.create(value)

    def reconcile_assignments(
        self, note_id: str, assigned_values: Iterable[str], is_done: bool
    ) -> None:
        """File ``note_id`` under exactly the category notes in ``assigned_values``.

        Membership is recomputed from scratch: the note is removed from every
        other category note, and from all of them when the task is done.
        Missing category notes are created for unmatched values.
        """
        assigned = list(dict.fromkeys(assigned_values))
        matched: set[str] = set()

        for value, category_note in self.category_notes():
            member = not is_done and value in assigned
            if member:
                matched.add(value)
            self.store.toggle_note_in_parent(member, note_id, category_note.note_id)

        if is_done:
            return

        for value in assigned:
            if value in matched:
                continue
            category_note = self.create(value)
            self.store.ensure_note_is_present_in_parent(note_id, category_note.note_id)
