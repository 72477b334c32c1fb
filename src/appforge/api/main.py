"""FastAPI app entrypoint for appforge."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse

from appforge.api.ui import render_homepage
from appforge.config.settings import Settings, get_settings
from appforge.errors import AuthorizationError, RequestValidationFailure
from appforge.generation.llm import TextGenerator, build_generator
from appforge.models import TaskAccepted, TaskStatusResponse
from appforge.notifier import HttpNotifier, Notifier
from appforge.orchestrator import Clock, RoundDispatcher, RoundOrchestrator
from appforge.publishing.base import PublishBackend
from appforge.publishing.github import GitHubPublisher
from appforge.storage.base import TaskStateStore
from appforge.storage.memory import InMemoryTaskStateStore

logger = logging.getLogger(__name__)


def _build_publisher(settings: Settings) -> PublishBackend:
    token = settings.github_token
    username = settings.github_username
    if not token or not username:
        raise RuntimeError(
            "Missing GitHub credentials. Set GITHUB_TOKEN and GITHUB_USERNAME "
            "(or APPFORGE_GITHUB_TOKEN / APPFORGE_GITHUB_USERNAME) before starting the app."
        )
    return GitHubPublisher(
        token=token,
        owner=username,
        api_url=settings.github_api_url,
        pages_branch=settings.pages_branch,
        timeout_s=settings.github_timeout_s,
    )


def _ensure_runtime_state(
    app: FastAPI,
    *,
    settings: Settings,
    store: TaskStateStore | None,
    generator: TextGenerator | None,
    publisher: PublishBackend | None,
    notifier: Notifier | None,
    clock: Clock | None,
) -> None:
    if not hasattr(app.state, "settings"):
        app.state.settings = settings

    if not hasattr(app.state, "orchestrator"):
        # Real backends fail fast here when their credentials are missing.
        app.state.orchestrator = RoundOrchestrator(
            store=store or InMemoryTaskStateStore(),
            generator=generator or build_generator(settings),
            publisher=publisher or _build_publisher(settings),
            notifier=notifier or HttpNotifier(timeout_s=settings.notify_timeout_s),
            secret=settings.secret_key,
            clock=clock,
        )

    if not hasattr(app.state, "dispatcher"):
        app.state.dispatcher = RoundDispatcher()


def create_app(
    *,
    store: TaskStateStore | None = None,
    generator: TextGenerator | None = None,
    publisher: PublishBackend | None = None,
    notifier: Notifier | None = None,
    settings_override: Settings | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    settings = settings_override or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    def ensure(app: FastAPI) -> None:
        _ensure_runtime_state(
            app,
            settings=settings,
            store=store,
            generator=generator,
            publisher=publisher,
            notifier=notifier,
            clock=clock,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure(app)
        logger.info(
            "app event=startup service=%s llm_provider=%s github_username=%s auth=%s",
            settings.app_name,
            settings.llm_provider,
            settings.github_username,
            "secret" if settings.secret_key else "none",
        )
        yield
        dispatcher: RoundDispatcher = app.state.dispatcher
        if dispatcher.in_flight:
            logger.info("app event=shutdown_drain in_flight=%d", dispatcher.in_flight)
        await dispatcher.drain()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    # Keep test paths reliable when lifespan is not executed by the client.
    if generator is not None and publisher is not None:
        ensure(app)

    def _get_orchestrator(request: Request) -> RoundOrchestrator:
        if not hasattr(request.app.state, "orchestrator"):
            ensure(request.app)
        return request.app.state.orchestrator

    @app.get("/", response_class=HTMLResponse)
    def home() -> str:
        return render_homepage(app_name=settings.app_name)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {
            "status": "ok",
            "service": settings.app_name,
            "llm_provider": settings.llm_provider,
            "github_username": settings.github_username,
            "timestamp": datetime.now(tz=UTC).isoformat(),
        }

    # Validation runs on the event loop without awaiting any I/O; the round
    # itself is handed to the dispatcher and outlives this request.
    @app.post("/tasks", status_code=status.HTTP_202_ACCEPTED, response_model=TaskAccepted)
    @app.post(
        "/api-endpoint",
        status_code=status.HTTP_202_ACCEPTED,
        response_model=TaskAccepted,
        include_in_schema=False,
    )
    async def submit_task(request: Request, body: Any = Body(default=None)):
        orchestrator = _get_orchestrator(request)
        try:
            payload = orchestrator.accept(body)
        except AuthorizationError as exc:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "Unauthorized", "message": str(exc)},
            )
        except RequestValidationFailure as exc:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Bad Request", "message": str(exc)},
            )

        request.app.state.dispatcher.spawn(
            orchestrator.run_round(payload),
            name=f"round:{payload.task_id}:{payload.round}",
        )
        return TaskAccepted(task_id=payload.task_id, round=payload.round)

    @app.get("/tasks/{task_id}", response_model=TaskStatusResponse)
    @app.get("/task/{task_id}", response_model=TaskStatusResponse, include_in_schema=False)
    def get_task(task_id: str, request: Request) -> TaskStatusResponse:
        state = _get_orchestrator(request).store.get(task_id)
        if state is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return TaskStatusResponse(task_id=task_id, **state.model_dump())

    return app


# Module-level app for `uvicorn appforge.api.main:app`.
app = create_app()
