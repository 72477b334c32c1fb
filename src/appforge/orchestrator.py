"""Round orchestration: accept a task, run generate -> publish, report once.

Beginner terms used in this file:
- Round: one generate-and-publish cycle. Round 1 creates, later rounds update.
- Update mode: round > 1 and something to update (stored state or an
  explicit repository name). Anything else runs as a fresh creation.
- Detached task: an asyncio.Task that outlives the HTTP request that
  spawned it. Its result is only visible through the store and notifier.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
import re
import time
from collections.abc import Callable, Coroutine, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from appforge.errors import AuthorizationError, PublishError, RequestValidationFailure
from appforge.generation.extract import extract_html
from appforge.generation.llm import TextGenerator
from appforge.generation.prompts import build_prompt, parse_attachments
from appforge.models import OutcomePayload, TaskRequest, TaskState
from appforge.notifier import Notifier
from appforge.publishing.base import PublishBackend
from appforge.storage.base import TaskStateStore

logger = logging.getLogger(__name__)

DOCUMENT_PATH = "index.html"
# GitHub rejects repository names longer than 100 characters.
_MAX_REPO_NAME = 100
_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9]")
_REPO_NAME = re.compile(r"[A-Za-z0-9._-]{1,100}")

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def generate_repo_name(task_id: str, now: datetime) -> str:
    """Derive a fresh repository name from the task id and a timestamp."""
    suffix = str(int(now.timestamp() * 1000))
    budget = _MAX_REPO_NAME - len("app--") - len(suffix)
    slug = _UNSAFE_NAME_CHARS.sub("-", task_id)[:budget]
    return f"app-{slug}-{suffix}"


def is_valid_repo_name(name: str) -> bool:
    """True for names GitHub accepts verbatim as a single path segment."""
    return bool(_REPO_NAME.fullmatch(name)) and name not in {".", ".."}


class RoundOrchestrator:
    """Validates task submissions and runs one round pipeline per submission."""

    def __init__(
        self,
        *,
        store: TaskStateStore,
        generator: TextGenerator,
        publisher: PublishBackend,
        notifier: Notifier,
        secret: str = "",
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.generator = generator
        self.publisher = publisher
        self.notifier = notifier
        self._secret = secret
        self._clock = clock or _utc_now

    def accept(self, payload: Any) -> TaskRequest:
        """Synchronous front-door checks. Raises before any work is scheduled.

        Takes a validated TaskRequest or the raw JSON body; the secret is
        compared before the body is validated.
        """
        provided = payload.secret if isinstance(payload, TaskRequest) else _raw_secret(payload)
        if self._secret and not _secrets_match(provided, self._secret):
            logger.warning(
                "task_round event=rejected reason=unauthorized task_id=%s",
                _raw_task_id(payload),
            )
            raise AuthorizationError("Invalid or missing secret")

        request = payload if isinstance(payload, TaskRequest) else _parse_request(payload)

        missing = [
            name
            for name, value in (
                ("task_id", request.task_id),
                ("brief", request.brief),
                ("evaluation_url", request.evaluation_url),
            )
            if not value.strip()
        ]
        if missing:
            logger.warning(
                "task_round event=rejected reason=missing_fields fields=%s task_id=%s",
                ",".join(missing),
                request.task_id,
            )
            raise RequestValidationFailure(f"Missing required fields: {', '.join(missing)}")
        if request.round < 1:
            raise RequestValidationFailure("round must be a positive integer")
        if request.repo_name and not is_valid_repo_name(request.repo_name):
            logger.warning(
                "task_round event=rejected reason=invalid_repo_name task_id=%s",
                request.task_id,
            )
            raise RequestValidationFailure(
                "repo_name may only contain letters, digits, '.', '-' and '_' "
                f"(at most {_MAX_REPO_NAME} characters)"
            )

        logger.info(
            "task_round event=accepted task_id=%s round=%d", request.task_id, request.round
        )
        return request

    async def run_round(self, request: TaskRequest) -> OutcomePayload:
        """Run the pipeline and notify the caller exactly once."""
        started = time.monotonic()
        try:
            state = await self._execute(request)
        except Exception as exc:  # noqa: BLE001
            error_text = str(exc) or exc.__class__.__name__
            logger.warning(
                "task_round event=failed task_id=%s round=%d error=%s",
                request.task_id,
                request.round,
                error_text,
            )
            payload = OutcomePayload(
                task_id=request.task_id,
                round=request.round,
                status="failed",
                error=error_text,
                processing_time_ms=_elapsed_ms(started),
                timestamp=self._clock(),
            )
        else:
            payload = OutcomePayload(
                task_id=request.task_id,
                round=request.round,
                status="completed",
                repo_url=state.repo_url,
                deployment_url=state.deployment_url,
                processing_time_ms=_elapsed_ms(started),
                timestamp=self._clock(),
            )
            logger.info(
                "task_round event=completed task_id=%s round=%d repo=%s processing_time_ms=%d",
                request.task_id,
                request.round,
                state.repo_name,
                payload.processing_time_ms,
            )

        await self.notifier.notify(request.evaluation_url, payload.to_wire())
        return payload

    async def _execute(self, request: TaskRequest) -> TaskState:
        previous = self.store.get(request.task_id)
        update_mode = request.round > 1 and (previous is not None or bool(request.repo_name))
        if request.round > 1 and not update_mode:
            logger.warning(
                "task_round event=update_without_state task_id=%s round=%d action=create",
                request.task_id,
                request.round,
            )

        repo_name = (
            request.repo_name
            or (previous.repo_name if previous else None)
            or generate_repo_name(request.task_id, self._clock())
        )
        prior_document = previous.last_document if update_mode and previous else None

        attachments = parse_attachments(request.attachments)
        prompt = build_prompt(request.brief, attachments, request.round, prior_document)
        logger.info(
            "task_round event=generate task_id=%s round=%d mode=%s attachments=%d provider=%s",
            request.task_id,
            request.round,
            "update" if update_mode else "create",
            len(attachments),
            getattr(self.generator, "provider", "custom"),
        )
        raw = await self.generator.generate(prompt)
        document = extract_html(raw)
        logger.info(
            "task_round event=generated task_id=%s document_chars=%d",
            request.task_id,
            len(document),
        )

        content = document.encode("utf-8")
        if update_mode:
            target = await self.publisher.get_target(repo_name)
            if target is None:
                raise PublishError(f"Repository {repo_name} not found", status_code=404)
            version = await self.publisher.get_content_version(repo_name, DOCUMENT_PATH)
            await self.publisher.put_content(
                repo_name,
                DOCUMENT_PATH,
                content,
                f"Update: Round {request.round}",
                version,
            )
        else:
            target = await self.publisher.create_target(
                repo_name, f"Auto-generated app: {request.brief[:100]}"
            )
            await self.publisher.put_content(
                repo_name, DOCUMENT_PATH, content, "Initial commit: Generated app"
            )

        try:
            deployment_url = await self.publisher.enable_public_serving(repo_name)
        except PublishError as exc:
            deployment_url = self.publisher.public_url(repo_name)
            logger.warning(
                "task_round event=pages_fallback task_id=%s repo=%s reason=%s",
                request.task_id,
                repo_name,
                exc,
            )

        state = TaskState(
            repo_name=repo_name,
            last_document=document,
            repo_url=target.url,
            deployment_url=deployment_url,
            round=request.round,
            updated_at=self._clock(),
        )
        self.store.set(request.task_id, state)
        return state


class RoundDispatcher:
    """Spawns round pipelines as detached tasks and keeps them referenced."""

    def __init__(self) -> None:
        self._pending: set[asyncio.Task[Any]] = set()

    def spawn(
        self, work: Coroutine[Any, Any, Any], *, name: str | None = None
    ) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(work, name=name)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every spawned round, including ones spawned meanwhile."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def _secrets_match(provided: str | None, expected: str) -> bool:
    return hmac.compare_digest((provided or "").encode("utf-8"), expected.encode("utf-8"))


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _raw_secret(payload: Any) -> str | None:
    secret = payload.get("secret") if isinstance(payload, Mapping) else None
    return secret if isinstance(secret, str) else None


def _raw_task_id(payload: Any) -> str:
    if isinstance(payload, TaskRequest):
        return payload.task_id
    if isinstance(payload, Mapping):
        return str(payload.get("task_id") or payload.get("taskId") or "")
    return ""


def _parse_request(payload: Any) -> TaskRequest:
    try:
        return TaskRequest.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in exc.errors()
        )
        raise RequestValidationFailure(f"Invalid request body: {problems}") from exc
