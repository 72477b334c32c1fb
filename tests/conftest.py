from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Any

import pytest
from fastapi.testclient import TestClient

from appforge.api.main import create_app
from appforge.config.settings import Settings
from appforge.errors import GenerationError, PublishError
from appforge.orchestrator import RoundOrchestrator
from appforge.publishing.base import PublishTarget
from appforge.storage.memory import InMemoryTaskStateStore

FIXED_NOW = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)
TEST_SECRET = "s3cret"

ROUND1_HTML = "<!DOCTYPE html>\n<html><body><h1>Todo</h1></body></html>"
ROUND2_HTML = '<!DOCTYPE html>\n<html><body class="dark"><h1>Todo</h1></body></html>'


class FakeGenerator:
    """Test double for TextGenerator: canned replies, recorded prompts."""

    provider = "fake"

    def __init__(self, replies: list[str] | None = None) -> None:
        self.replies = list(replies or [ROUND1_HTML, ROUND2_HTML])
        self.prompts: list[str] = []
        self.error: Exception | None = None

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


class FakePublisher:
    """In-memory stand-in for GitHub: repositories, file versions, Pages flag."""

    def __init__(self, owner: str = "octo") -> None:
        self.owner = owner
        self.repos: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, ...]] = []
        self.fail_on: set[str] = set()
        self.pages_error = False
        self._next_sha = 1

    async def create_target(self, name: str, description: str) -> PublishTarget:
        self.calls.append(("create_target", name, description))
        self._maybe_fail("create_target")
        if name in self.repos:
            raise PublishError(f"name already exists: {name}", status_code=422)
        self.repos[name] = {"files": {}, "pages": False, "commits": []}
        return PublishTarget(name=name, url=f"https://github.com/{self.owner}/{name}")

    async def get_target(self, name: str) -> PublishTarget | None:
        self.calls.append(("get_target", name))
        self._maybe_fail("get_target")
        if name not in self.repos:
            return None
        return PublishTarget(name=name, url=f"https://github.com/{self.owner}/{name}")

    async def get_content_version(self, name: str, path: str) -> str | None:
        self.calls.append(("get_content_version", name, path))
        entry = self.repos[name]["files"].get(path)
        return entry[1] if entry else None

    async def put_content(
        self,
        name: str,
        path: str,
        content: bytes,
        message: str,
        previous_version: str | None = None,
    ) -> str:
        self.calls.append(("put_content", name, path, message, previous_version or ""))
        self._maybe_fail("put_content")
        files = self.repos[name]["files"]
        current = files.get(path)
        if current is not None and current[1] != previous_version:
            raise PublishError("sha does not match", status_code=409)
        sha = f"sha{self._next_sha}"
        self._next_sha += 1
        files[path] = (content, sha)
        self.repos[name]["commits"].append(message)
        return sha

    async def enable_public_serving(self, name: str) -> str:
        self.calls.append(("enable_public_serving", name))
        if self.pages_error:
            raise PublishError("Pages unavailable", status_code=500)
        self.repos[name]["pages"] = True
        return self.public_url(name)

    def public_url(self, name: str) -> str:
        return f"https://{self.owner}.github.io/{name}"

    def document(self, name: str, path: str = "index.html") -> str:
        return self.repos[name]["files"][path][0].decode("utf-8")

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise PublishError(
                f"GitHub operation failed ({operation}): status 500", status_code=500
            )


class RecordingNotifier:
    def __init__(self, delivered: bool = True) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.delivered = delivered

    async def notify(self, url: str, payload: dict[str, Any]) -> bool:
        self.calls.append((url, payload))
        return self.delivered


@pytest.fixture
def store() -> InMemoryTaskStateStore:
    return InMemoryTaskStateStore()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def settings() -> Settings:
    return Settings(
        secret_key=TEST_SECRET,
        llm_provider="openai",
        github_username="octo",
        github_token="ghp_test",
    )


@pytest.fixture
def orchestrator(
    store: InMemoryTaskStateStore,
    generator: FakeGenerator,
    publisher: FakePublisher,
    notifier: RecordingNotifier,
    clock: Callable[[], datetime],
) -> RoundOrchestrator:
    return RoundOrchestrator(
        store=store,
        generator=generator,
        publisher=publisher,
        notifier=notifier,
        secret=TEST_SECRET,
        clock=clock,
    )


@pytest.fixture
def client(
    store: InMemoryTaskStateStore,
    generator: FakeGenerator,
    publisher: FakePublisher,
    notifier: RecordingNotifier,
    settings: Settings,
    clock: Callable[[], datetime],
) -> Iterator[TestClient]:
    app = create_app(
        store=store,
        generator=generator,
        publisher=publisher,
        notifier=notifier,
        settings_override=settings,
        clock=clock,
    )
    with TestClient(app) as test_client:
        yield test_client


def wait_for_rounds(client: TestClient) -> None:
    """Block until every round spawned by the app has finished."""
    client.portal.call(client.app.state.dispatcher.drain)


def generation_failure() -> GenerationError:
    return GenerationError("openai request timed out after 120.0s")
