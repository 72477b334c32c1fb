"""GitHub REST backend: repositories, file contents, and Pages.

Beginner terms:
- sha: GitHub's version token for a file; required when replacing one.
- Pages: GitHub's static hosting, served from a branch of the repository.
"""

from __future__ import annotations

import base64
import logging
from typing import Any
from urllib.parse import quote

import httpx

from appforge.errors import PublishError
from appforge.publishing.base import PublishTarget

logger = logging.getLogger(__name__)


class GitHubPublisher:
    """Publishes generated documents to repositories owned by one account."""

    def __init__(
        self,
        *,
        token: str,
        owner: str,
        api_url: str = "https://api.github.com",
        pages_branch: str = "main",
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required")
        if not owner:
            raise ValueError("GitHub owner is required")
        self.owner = owner
        self.api_url = api_url.rstrip("/")
        self.pages_branch = pages_branch
        self.timeout_s = timeout_s
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self._transport = transport

    async def create_target(self, name: str, description: str) -> PublishTarget:
        logger.info("github event=create_repo repo=%s", name)
        response = await self._request(
            "POST",
            "/user/repos",
            json={
                "name": name,
                "description": description,
                "auto_init": False,
                "private": False,
            },
        )
        self._raise_for_status(response, action=f"create repository {name}")
        return self._target_from(name, response.json())

    async def get_target(self, name: str) -> PublishTarget | None:
        response = await self._request("GET", self._repo_path(name))
        if response.status_code == 404:
            return None
        self._raise_for_status(response, action=f"fetch repository {name}")
        return self._target_from(name, response.json())

    async def get_content_version(self, name: str, path: str) -> str | None:
        response = await self._request("GET", self._contents_path(name, path))
        if response.status_code == 404:
            return None
        self._raise_for_status(response, action=f"read {path} in {name}")
        body = response.json()
        sha = body.get("sha") if isinstance(body, dict) else None
        return sha if isinstance(sha, str) else None

    async def put_content(
        self,
        name: str,
        path: str,
        content: bytes,
        message: str,
        previous_version: str | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
        }
        if previous_version:
            payload["sha"] = previous_version
        logger.info(
            "github event=put_content repo=%s path=%s bytes=%d replace=%s",
            name,
            path,
            len(content),
            bool(previous_version),
        )
        response = await self._request(
            "PUT", self._contents_path(name, path), json=payload
        )
        self._raise_for_status(response, action=f"write {path} in {name}")
        body = response.json()
        sha = (body.get("content") or {}).get("sha") if isinstance(body, dict) else None
        if not isinstance(sha, str):
            raise PublishError(f"GitHub did not return a content sha for {path} in {name}")
        return sha

    async def enable_public_serving(self, name: str) -> str:
        """Turn on Pages for the repository; a no-op when already enabled."""
        pages_path = f"{self._repo_path(name)}/pages"
        response = await self._request("GET", pages_path)
        if response.status_code == 200:
            logger.info("github event=pages_already_enabled repo=%s", name)
            return self.public_url(name)
        if response.status_code != 404:
            self._raise_for_status(response, action=f"read Pages settings for {name}")

        response = await self._request(
            "POST",
            pages_path,
            json={"source": {"branch": self.pages_branch, "path": "/"}},
        )
        # 409: Pages got enabled between the check and the create.
        if response.status_code != 409:
            self._raise_for_status(response, action=f"enable Pages for {name}")
        logger.info("github event=pages_enabled repo=%s", name)
        return self.public_url(name)

    def public_url(self, name: str) -> str:
        return f"https://{self.owner}.github.io/{name}"

    def _repo_path(self, name: str) -> str:
        # Owner and name are single path segments.
        return f"/repos/{quote(self.owner, safe='')}/{quote(name, safe='')}"

    def _contents_path(self, name: str, path: str) -> str:
        return f"{self._repo_path(name)}/contents/{quote(path.lstrip('/'), safe='/')}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self.api_url,
                headers=self._headers,
                timeout=self.timeout_s,
                transport=self._transport,
            ) as client:
                return await client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            raise PublishError(
                f"GitHub {method} {path} timed out after {self.timeout_s:.1f}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise PublishError(f"GitHub {method} {path} failed: {exc}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response, *, action: str) -> None:
        if response.is_success:
            return
        raise PublishError(
            f"GitHub operation failed ({action}): status {response.status_code}: "
            f"{response.text[:400]}",
            status_code=response.status_code,
        )

    def _target_from(self, name: str, body: Any) -> PublishTarget:
        html_url = body.get("html_url") if isinstance(body, dict) else None
        if not isinstance(html_url, str) or not html_url:
            html_url = f"https://github.com/{self.owner}/{name}"
        return PublishTarget(name=name, url=html_url)
