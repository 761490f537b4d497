"""Tool handler registration."""

# ruff: noqa: F401

from __future__ import annotations

from fastapi import FastAPI

from tasksync.router import api_router

# Import modules to register routes with the shared router.
from tasksync import (
    activity,
    api_events,
    api_notes,
    api_reminders,
    api_tasks,
    api_tools,
)

# Re-export endpoints for tests and direct imports.
from tasksync.activity import ACTIVITY_LOG_FILENAME, read_activity_log
from tasksync.api_events import duplicate_event_next_week, event_alerts, new_event
from tasksync.api_notes import (
    init_task_tree,
    read_note,
    remove_attribute,
    set_attribute,
)
from tasksync.api_reminders import new_reminder
from tasksync.api_tasks import create_task, sync_task, task_alerts
from tasksync.api_tools import list_tool_schemas


def register_tool_handlers(app: FastAPI) -> None:
    """Attach tool routes to the FastAPI application."""
    app.include_router(api_router)
