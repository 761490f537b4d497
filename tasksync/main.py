"""FastAPI entrypoint for the task sync service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tasksync.api import register_tool_handlers
from tasksync.config import load_config
from tasksync.errors import ErrorResponse, TaskSyncError, error_response
from tasksync.user_scope import (
    AUTH_EXEMPT_PATHS,
    SERVICE_TOKEN_HEADER,
    USER_ID_HEADER,
    normalize_user_id,
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = load_config()
        logging.basicConfig(
            level=config.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        logging.getLogger("tasksync").setLevel(config.log_level)
        app.state.config = config
        app.state.store_path = config.store_path
        logger.info("Serving note stores from %s", config.store_path)
        yield

    app = FastAPI(lifespan=lifespan)

    @app.middleware("http")
    async def enforce_request_identity(request: Request, call_next):
        path = request.url.path
        if path in AUTH_EXEMPT_PATHS:
            return await call_next(request)

        config = getattr(request.app.state, "config", None)
        require_user_header = bool(
            getattr(config, "require_user_header", True)
        )
        service_token = getattr(config, "service_token", None)

        raw_user_id = request.headers.get(USER_ID_HEADER)
        if require_user_header and raw_user_id is None:
            error = ErrorResponse(
                code="AUTH_REQUIRED",
                message="Missing required user identity header.",
                details={"header": USER_ID_HEADER},
            )
            return JSONResponse(status_code=401, content=error_response(error))
        if raw_user_id is not None:
            try:
                request.state.user_id = normalize_user_id(raw_user_id)
            except TaskSyncError as exc:
                return JSONResponse(
                    status_code=401, content=error_response(exc.error)
                )

        if service_token:
            supplied_token = request.headers.get(SERVICE_TOKEN_HEADER)
            if supplied_token != service_token:
                error = ErrorResponse(
                    code="AUTH_FORBIDDEN",
                    message="Invalid service token.",
                    details={"header": SERVICE_TOKEN_HEADER},
                )
                return JSONResponse(
                    status_code=403, content=error_response(error)
                )

        return await call_next(request)

    @app.exception_handler(TaskSyncError)
    def handle_task_sync_error(request: Request, exc: TaskSyncError) -> JSONResponse:
        return JSONResponse(status_code=400, content=error_response(exc.error))

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    register_tool_handlers(app)
    return app


app = create_app()
