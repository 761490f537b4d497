"""Keep a task note filed under the containers its attributes call for."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from tasksync.calendar_notes import get_date_note
from tasksync.categories import LOCATION_LABEL, TAG_LABEL, CategoryIndex
from tasksync.classifier import TaskState, classify_task
from tasksync.notes import NoteStore

logger = logging.getLogger(__name__)

CANCELED_ROOT_LABEL = "taskCanceledRoot"
DONE_ROOT_LABEL = "taskDoneRoot"
TODO_ROOT_LABEL = "taskTodoRoot"
LOCATION_ROOT_LABEL = "taskLocationRoot"
TAG_ROOT_LABEL = "taskTagRoot"

DONE_ROLE = "DONE"
TODO_ROLE = "TODO"
REMINDER_LABEL = "reminder"

# Attribute names whose change makes a task's filing stale.
TRIGGER_ATTRIBUTES = frozenset(
    {"task", "location", "tag", "todoDate", "doneDate", "canceled"}
)


@dataclass(frozen=True)
class TaskRoots:
    canceled: str
    done: str
    todo: str
    location: str
    tag: str

    @classmethod
    def lookup(cls, store: NoteStore) -> "TaskRoots":
        """Resolve each root by its marker label; a missing root raises."""
        return cls(
            canceled=store.get_note_with_label(CANCELED_ROOT_LABEL).note_id,
            done=store.get_note_with_label(DONE_ROOT_LABEL).note_id,
            todo=store.get_note_with_label(TODO_ROOT_LABEL).note_id,
            location=store.get_note_with_label(LOCATION_ROOT_LABEL).note_id,
            tag=store.get_note_with_label(TAG_ROOT_LABEL).note_id,
        )


class ReconciliationEngine:
    """Applies the filing a task's current attributes call for.

    Every step is an idempotent toggle, so running ``reconcile`` again without
    an attribute change leaves the store untouched.
    """

    def __init__(
        self,
        store: NoteStore,
        roots: TaskRoots,
        *,
        on_refresh: Callable[[str], None] | None = None,
    ) -> None:
        self.store = store
        self.roots = roots
        self.on_refresh = on_refresh
        self.locations = CategoryIndex(store, roots.location, LOCATION_LABEL)
        self.tags = CategoryIndex(store, roots.tag, TAG_LABEL)

    def reconcile(self, note_id: str) -> TaskState:
        store = self.store
        state = classify_task(store.get_attributes(note_id))

        store.toggle_note_in_parent(state.is_canceled, note_id, self.roots.canceled)
        store.toggle_note_in_parent(
            state.is_done and not state.is_canceled, note_id, self.roots.done
        )
        store.toggle_note_in_parent(state.is_todo, note_id, self.roots.todo)

        self.locations.reconcile_assignments(
            note_id, [state.location] if state.location else [], state.is_done
        )
        self.tags.reconcile_assignments(note_id, state.tags, state.is_done)

        store.toggle_label(note_id, state.is_done or state.is_canceled, "cssClass", "done")
        store.toggle_label(note_id, state.is_todo, "cssClass", "todo")

        done_target = None
        if state.is_done and not state.is_canceled:
            done_target = get_date_note(store, state.done_date).note_id
        store.set_note_to_parent(note_id, DONE_ROLE, done_target)

        todo_target = None
        if state.is_todo and state.todo_date:
            todo_target = get_date_note(store, state.todo_date).note_id
        store.set_note_to_parent(note_id, TODO_ROLE, todo_target)

        if self.on_refresh is not None:
            self.on_refresh(note_id)
        return state


def is_reminder(store: NoteStore, note_id: str) -> bool:
    return store.get_label_value(note_id, REMINDER_LABEL) is not None


class TaskService:
    """Event-driven and manual entry points into task reconciliation."""

    def __init__(
        self,
        store: NoteStore,
        *,
        on_refresh: Callable[[str], None] | None = None,
    ) -> None:
        self.store = store
        self.on_refresh = on_refresh

    def on_attribute_changed(self, note_id: str, attribute_name: str) -> TaskState | None:
        if attribute_name not in TRIGGER_ATTRIBUTES:
            logger.debug("Ignoring change of %s on %s", attribute_name, note_id)
            return None
        return self._run(note_id, trigger=f"attribute:{attribute_name}")

    def sync_task(self, note_id: str) -> TaskState | None:
        return self._run(note_id, trigger="manual")

    def _run(self, note_id: str, *, trigger: str) -> TaskState | None:
        self.store.get_note(note_id)
        if is_reminder(self.store, note_id):
            logger.debug("Skipping reminder %s (%s)", note_id, trigger)
            return None
        try:
            engine = ReconciliationEngine(
                self.store, TaskRoots.lookup(self.store), on_refresh=self.on_refresh
            )
            state = engine.reconcile(note_id)
        except Exception:
            logger.exception("Reconciliation of %s failed (%s)", note_id, trigger)
            raise
        logger.info(
            "Reconciled %s (%s): done=%s canceled=%s todo=%s",
            note_id,
            trigger,
            state.is_done,
            state.is_canceled,
            state.is_todo,
        )
        return state
