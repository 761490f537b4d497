"""Lifecycle classification of task notes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from tasksync.notes import LABEL, Attribute


@dataclass(frozen=True)
class TaskState:
    is_done: bool
    is_canceled: bool
    is_todo: bool
    done_date: str | None = None
    todo_date: str | None = None
    location: str | None = None
    tags: list[str] = field(default_factory=list)


def _label_values(attributes: Iterable[Attribute], name: str) -> list[str]:
    return [
        attr.value.strip()
        for attr in attributes
        if attr.type == LABEL and attr.name == name and attr.value and attr.value.strip()
    ]


def _first(values: list[str]) -> str | None:
    return values[0] if values else None


def classify_task(attributes: Iterable[Attribute]) -> TaskState:
    """Derive done/todo/canceled state from a task's attributes.

    A label counts as present when it carries a non-blank value; empty labels
    promoted from a template are treated as absent. Cancellation wins over
    completion.
    """
    attributes = list(attributes)
    done_date = _first(_label_values(attributes, "doneDate"))
    is_canceled = bool(_label_values(attributes, "canceled"))
    is_done = done_date is not None
    tags = list(dict.fromkeys(_label_values(attributes, "tag")))
    return TaskState(
        is_done=is_done,
        is_canceled=is_canceled,
        is_todo=not is_done and not is_canceled,
        done_date=done_date,
        todo_date=_first(_label_values(attributes, "todoDate")),
        location=_first(_label_values(attributes, "location")),
        tags=tags,
    )
