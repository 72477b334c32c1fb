"""Publish backend interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class PublishTarget:
    name: str
    url: str


class PublishBackend(Protocol):
    async def create_target(self, name: str, description: str) -> PublishTarget: ...

    async def get_target(self, name: str) -> PublishTarget | None: ...

    async def get_content_version(self, name: str, path: str) -> str | None: ...

    async def put_content(
        self,
        name: str,
        path: str,
        content: bytes,
        message: str,
        previous_version: str | None = None,
    ) -> str: ...

    async def enable_public_serving(self, name: str) -> str: ...

    def public_url(self, name: str) -> str: ...
