"""In-memory note graph: notes, typed attributes, and parent links.

A note may be filed under several parents at once. Each parent link is a
``Branch``; a branch may carry a ``prefix`` naming the role it plays for
single-slot placement (for example ``DONE`` or ``TODO``). Plain filings under
category containers carry no prefix.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from tasksync.errors import TaskSyncError

ROOT_NOTE_ID = "root"
LABEL = "label"
RELATION = "relation"
ATTRIBUTE_TYPES = {LABEL, RELATION}

# Attributes a note never inherits from its template.
_NON_INHERITABLE_NAMES = {"template"}


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Note:
    note_id: str
    title: str
    type: str = "text"
    mime: str = "text/html"
    content: str = ""
    date_created: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "noteId": self.note_id,
            "title": self.title,
            "type": self.type,
            "mime": self.mime,
            "content": self.content,
            "dateCreated": self.date_created,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Note":
        return cls(
            note_id=data["noteId"],
            title=data.get("title", ""),
            type=data.get("type", "text"),
            mime=data.get("mime", "text/html"),
            content=data.get("content", ""),
            date_created=data.get("dateCreated") or _utc_now(),
        )


@dataclass
class Attribute:
    attribute_id: str
    note_id: str
    type: str
    name: str
    value: str
    position: int = 0
    is_inheritable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "attributeId": self.attribute_id,
            "noteId": self.note_id,
            "type": self.type,
            "name": self.name,
            "value": self.value,
            "position": self.position,
            "isInheritable": self.is_inheritable,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Attribute":
        return cls(
            attribute_id=data["attributeId"],
            note_id=data["noteId"],
            type=data["type"],
            name=data["name"],
            value=str(data.get("value", "")),
            position=int(data.get("position", 0)),
            is_inheritable=bool(data.get("isInheritable", False)),
        )


@dataclass
class Branch:
    branch_id: str
    note_id: str
    parent_note_id: str
    prefix: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "branchId": self.branch_id,
            "noteId": self.note_id,
            "parentNoteId": self.parent_note_id,
            "prefix": self.prefix,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Branch":
        return cls(
            branch_id=data["branchId"],
            note_id=data["noteId"],
            parent_note_id=data["parentNoteId"],
            prefix=data.get("prefix"),
        )


@dataclass(frozen=True)
class AttributeSpec:
    """Attribute to attach when creating a note."""

    type: str
    name: str
    value: str = ""

    @classmethod
    def label(cls, name: str, value: str = "") -> "AttributeSpec":
        return cls(LABEL, name, value)

    @classmethod
    def relation(cls, name: str, target_note_id: str) -> "AttributeSpec":
        return cls(RELATION, name, target_note_id)


def _validate_attribute_type(attribute_type: str) -> None:
    if attribute_type not in ATTRIBUTE_TYPES:
        raise TaskSyncError(
            "INVALID_ATTRIBUTE_TYPE",
            "Attribute type must be 'label' or 'relation'.",
            {"type": attribute_type},
        )


class NoteStore:
    """Note graph with attribute access and idempotent parent-link updates."""

    def __init__(
        self,
        notes: Iterable[Note] = (),
        attributes: Iterable[Attribute] = (),
        branches: Iterable[Branch] = (),
    ) -> None:
        self._notes: dict[str, Note] = {note.note_id: note for note in notes}
        self._attributes: list[Attribute] = list(attributes)
        self._branches: list[Branch] = list(branches)
        self.dirty = False
        if ROOT_NOTE_ID not in self._notes:
            self._notes[ROOT_NOTE_ID] = Note(note_id=ROOT_NOTE_ID, title="root")
            self.dirty = True

    # -- serialization -----------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "notes": [note.to_dict() for note in self._notes.values()],
            "attributes": [attribute.to_dict() for attribute in self._attributes],
            "branches": [branch.to_dict() for branch in self._branches],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NoteStore":
        try:
            store = cls(
                notes=[Note.from_dict(item) for item in data.get("notes", [])],
                attributes=[
                    Attribute.from_dict(item) for item in data.get("attributes", [])
                ],
                branches=[Branch.from_dict(item) for item in data.get("branches", [])],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TaskSyncError(
                "STORE_CORRUPT",
                "Note store document is malformed.",
                {"error": str(exc)},
            ) from exc
        return store

    # -- notes -------------------------------------------------------------

    def has_note(self, note_id: str) -> bool:
        return note_id in self._notes

    def get_note(self, note_id: str) -> Note:
        note = self._notes.get(note_id)
        if note is None:
            raise TaskSyncError(
                "NOTE_NOT_FOUND",
                "Note does not exist.",
                {"noteId": note_id},
            )
        return note

    def create_note(
        self,
        parent_note_id: str,
        title: str,
        content: str = "",
        *,
        type: str = "text",
        mime: str = "text/html",
        attributes: Iterable[AttributeSpec] = (),
    ) -> Note:
        self.get_note(parent_note_id)
        note = Note(
            note_id=_new_id(), title=title, type=type, mime=mime, content=content
        )
        self._notes[note.note_id] = note
        self._branches.append(
            Branch(branch_id=_new_id(), note_id=note.note_id, parent_note_id=parent_note_id)
        )
        for spec in attributes:
            self.add_attribute(note.note_id, spec.type, spec.name, spec.value)
        self.dirty = True
        return note

    # -- attributes --------------------------------------------------------

    def get_owned_attributes(self, note_id: str) -> list[Attribute]:
        self.get_note(note_id)
        owned = [attr for attr in self._attributes if attr.note_id == note_id]
        return sorted(owned, key=lambda attr: attr.position)

    def get_attributes(self, note_id: str) -> list[Attribute]:
        """Owned attributes followed by those inherited from the template."""
        owned = self.get_owned_attributes(note_id)
        template_ids = [
            attr.value
            for attr in owned
            if attr.type == RELATION
            and attr.name == "template"
            and attr.value != note_id
            and attr.value in self._notes
        ]
        inherited: list[Attribute] = []
        for template_id in template_ids:
            inherited.extend(
                attr
                for attr in self.get_owned_attributes(template_id)
                if attr.name not in _NON_INHERITABLE_NAMES
            )
        return owned + inherited

    def get_attribute(
        self, note_id: str, attribute_type: str, name: str
    ) -> Attribute | None:
        for attr in self.get_attributes(note_id):
            if attr.type == attribute_type and attr.name == name:
                return attr
        return None

    def get_label_value(self, note_id: str, name: str) -> str | None:
        attr = self.get_attribute(note_id, LABEL, name)
        return attr.value if attr is not None else None

    def get_label_values(self, note_id: str, name: str) -> list[str]:
        return [
            attr.value
            for attr in self.get_attributes(note_id)
            if attr.type == LABEL and attr.name == name
        ]

    def get_relation_value(self, note_id: str, name: str) -> str | None:
        attr = self.get_attribute(note_id, RELATION, name)
        return attr.value if attr is not None else None

    def add_attribute(
        self, note_id: str, attribute_type: str, name: str, value: str = ""
    ) -> Attribute:
        _validate_attribute_type(attribute_type)
        owned = self.get_owned_attributes(note_id)
        position = (owned[-1].position + 10) if owned else 10
        attribute = Attribute(
            attribute_id=_new_id(),
            note_id=note_id,
            type=attribute_type,
            name=name,
            value=value,
            position=position,
        )
        self._attributes.append(attribute)
        self.dirty = True
        return attribute

    def set_attribute(
        self, note_id: str, attribute_type: str, name: str, value: str = ""
    ) -> Attribute:
        """Replace the first owned attribute of this type and name, or add one."""
        _validate_attribute_type(attribute_type)
        for attr in self.get_owned_attributes(note_id):
            if attr.type == attribute_type and attr.name == name:
                if attr.value != value:
                    attr.value = value
                    self.dirty = True
                return attr
        return self.add_attribute(note_id, attribute_type, name, value)

    def remove_attributes(
        self,
        note_id: str,
        attribute_type: str,
        name: str,
        value: str | None = None,
    ) -> int:
        """Remove owned attributes matching type, name and optionally value."""
        self.get_note(note_id)
        kept: list[Attribute] = []
        removed = 0
        for attr in self._attributes:
            if (
                attr.note_id == note_id
                and attr.type == attribute_type
                and attr.name == name
                and (value is None or attr.value == value)
            ):
                removed += 1
                continue
            kept.append(attr)
        if removed:
            self._attributes = kept
            self.dirty = True
        return removed

    def toggle_label(self, note_id: str, enabled: bool, name: str, value: str = "") -> None:
        has_label = any(
            attr.type == LABEL and attr.name == name and attr.value == value
            for attr in self.get_owned_attributes(note_id)
        )
        if enabled and not has_label:
            self.add_attribute(note_id, LABEL, name, value)
        elif not enabled and has_label:
            self.remove_attributes(note_id, LABEL, name, value)

    # -- lookups -----------------------------------------------------------

    def get_notes_with_label(self, name: str, value: str | None = None) -> list[Note]:
        return self._notes_with_attribute(LABEL, name, value)

    def get_notes_with_relation(self, name: str, target_note_id: str) -> list[Note]:
        return self._notes_with_attribute(RELATION, name, target_note_id)

    def _notes_with_attribute(
        self, attribute_type: str, name: str, value: str | None
    ) -> list[Note]:
        seen: set[str] = set()
        matches: list[Note] = []
        for attr in self._attributes:
            if attr.type != attribute_type or attr.name != name:
                continue
            if value is not None and attr.value != value:
                continue
            if attr.note_id in seen or attr.note_id not in self._notes:
                continue
            seen.add(attr.note_id)
            matches.append(self._notes[attr.note_id])
        return matches

    def get_note_with_label(self, name: str, value: str | None = None) -> Note:
        """Return the single note carrying this label.

        Zero or several matches are configuration errors.
        """
        matches = self.get_notes_with_label(name, value)
        if not matches:
            raise TaskSyncError(
                "ROOT_NOT_FOUND",
                f"No note is labeled #{name}.",
                {"label": name, "value": value},
            )
        if len(matches) > 1:
            raise TaskSyncError(
                "AMBIGUOUS_ROOT",
                f"More than one note is labeled #{name}.",
                {"label": name, "noteIds": [note.note_id for note in matches]},
            )
        return matches[0]

    # -- containment -------------------------------------------------------

    def get_branches(self, note_id: str) -> list[Branch]:
        return [branch for branch in self._branches if branch.note_id == note_id]

    def get_parent_ids(self, note_id: str) -> list[str]:
        return [branch.parent_note_id for branch in self.get_branches(note_id)]

    def get_child_notes(self, parent_note_id: str) -> list[Note]:
        self.get_note(parent_note_id)
        child_ids: list[str] = []
        for branch in self._branches:
            if branch.parent_note_id == parent_note_id and branch.note_id not in child_ids:
                child_ids.append(branch.note_id)
        return [self._notes[child_id] for child_id in child_ids if child_id in self._notes]

    def _is_ancestor(self, ancestor_id: str, note_id: str) -> bool:
        seen: set[str] = set()
        pending = [note_id]
        while pending:
            current = pending.pop()
            if current == ancestor_id:
                return True
            if current in seen:
                continue
            seen.add(current)
            pending.extend(self.get_parent_ids(current))
        return False

    def _check_parent_link(self, note_id: str, parent_note_id: str) -> None:
        """Refuse a link that would make a note contain itself."""
        if self._is_ancestor(note_id, parent_note_id):
            raise TaskSyncError(
                "INVALID_PARENT",
                "Note cannot be placed under itself or one of its descendants.",
                {"noteId": note_id, "parentNoteId": parent_note_id},
            )

    def ensure_note_is_present_in_parent(self, note_id: str, parent_note_id: str) -> None:
        self.get_note(note_id)
        self.get_note(parent_note_id)
        if parent_note_id in self.get_parent_ids(note_id):
            return
        self._check_parent_link(note_id, parent_note_id)
        self._branches.append(
            Branch(branch_id=_new_id(), note_id=note_id, parent_note_id=parent_note_id)
        )
        self.dirty = True

    def ensure_note_is_absent_from_parent(self, note_id: str, parent_note_id: str) -> None:
        kept = [
            branch
            for branch in self._branches
            if not (branch.note_id == note_id and branch.parent_note_id == parent_note_id)
        ]
        if len(kept) != len(self._branches):
            self._branches = kept
            self.dirty = True

    def toggle_note_in_parent(self, present: bool, note_id: str, parent_note_id: str) -> None:
        if present:
            self.ensure_note_is_present_in_parent(note_id, parent_note_id)
        else:
            self.ensure_note_is_absent_from_parent(note_id, parent_note_id)

    def get_role_parent_id(self, note_id: str, role: str) -> str | None:
        for branch in self.get_branches(note_id):
            if branch.prefix == role:
                return branch.parent_note_id
        return None

    def set_note_to_parent(
        self, note_id: str, role: str, parent_note_id: str | None
    ) -> None:
        """Keep at most one parent link for ``role``, pointing at ``parent_note_id``.

        ``None`` clears the role. An unchanged target is left alone.
        """
        self.get_note(note_id)
        current = [
            branch
            for branch in self._branches
            if branch.note_id == note_id and branch.prefix == role
        ]
        if (
            parent_note_id is not None
            and len(current) == 1
            and current[0].parent_note_id == parent_note_id
        ):
            return
        if parent_note_id is not None:
            self.get_note(parent_note_id)
            self._check_parent_link(note_id, parent_note_id)

        if current:
            self._branches = [branch for branch in self._branches if branch not in current]
            self.dirty = True

        if parent_note_id is None:
            return

        for branch in self._branches:
            if branch.note_id == note_id and branch.parent_note_id == parent_note_id:
                branch.prefix = role
                self.dirty = True
                return
        self._branches.append(
            Branch(
                branch_id=_new_id(),
                note_id=note_id,
                parent_note_id=parent_note_id,
                prefix=role,
            )
        )
        self.dirty = True
