"""Tool definition endpoint."""

from __future__ import annotations

from typing import Any

from tasksync.errors import TaskSyncError, success_response
from tasksync.router import api_router
from tools.task_tools import ToolSchemaError, load_tool_definitions


@api_router.get("/tools")
def list_tool_schemas() -> dict[str, Any]:
    """Return the current tool definitions."""
    try:
        tools = load_tool_definitions()
    except ToolSchemaError as exc:
        raise TaskSyncError(
            "TOOL_SCHEMA_ERROR",
            "Tool definitions could not be loaded.",
            {"error": str(exc)},
        ) from exc
    return success_response({"tools": tools})
