"""GitHub-backed skill source and the async httpx client it reads through."""

from __future__ import annotations

import logging
from typing import Literal, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError

from skillsmanager.config import DEFAULT_GITHUB_API_URL, DEFAULT_GITHUB_RAW_URL
from skillsmanager.skills.models import MANIFEST_FILENAME, RemoteSource, Skill, sort_by_name
from skillsmanager.skills.parser import SkillParseError, parse_skill
from skillsmanager.sources.base import FetchError, FetchErrorKind

logger = logging.getLogger(__name__)

SKILLS_DIR = "skills"


def parse_github_url(url: str) -> tuple[str, str]:
    """Extract ``(owner, repo)`` from a GitHub URL. Returns ``("", "")`` when invalid."""
    clean = url.strip()
    for prefix in ("https://github.com/", "http://github.com/", "github.com/"):
        if clean.startswith(prefix):
            clean = clean[len(prefix) :]
            break
    clean = clean.rstrip("/")
    if clean.endswith(".git"):
        clean = clean[: -len(".git")]
    parts = [p for p in clean.split("/") if p]
    if len(parts) < 2:
        return "", ""
    return parts[0], parts[1]


class GitHubContent(BaseModel):
    name: str
    type: Literal["file", "dir", "symlink", "submodule"]
    path: str = ""
    download_url: str | None = Field(default=None)


class RepositoryClient(Protocol):
    async def get_contents(self, owner: str, repo: str, path: str) -> list[GitHubContent]: ...

    async def get_file_content(self, owner: str, repo: str, path: str) -> str: ...

    async def get_file_bytes(self, owner: str, repo: str, path: str) -> bytes: ...


class GitHubClient:
    """Thin async wrapper over the GitHub contents API and raw file host."""

    def __init__(
        self,
        *,
        token: str | None = None,
        api_url: str = DEFAULT_GITHUB_API_URL,
        raw_url: str = DEFAULT_GITHUB_RAW_URL,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._api_url = api_url.rstrip("/")
        self._raw_url = raw_url.rstrip("/")
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def get_contents(self, owner: str, repo: str, path: str) -> list[GitHubContent]:
        url = f"{self._api_url}/repos/{owner}/{repo}/contents/{path}".rstrip("/")
        resp = await self._get(url)
        data = resp.json()
        items = data if isinstance(data, list) else [data]
        try:
            return [GitHubContent.model_validate(item) for item in items]
        except ValidationError as e:
            raise FetchError(FetchErrorKind.TRANSPORT, f"Unexpected contents payload: {e}")

    async def get_file_content(self, owner: str, repo: str, path: str) -> str:
        return (await self._get_raw(owner, repo, path)).text

    async def get_file_bytes(self, owner: str, repo: str, path: str) -> bytes:
        return (await self._get_raw(owner, repo, path)).content

    async def _get_raw(self, owner: str, repo: str, path: str) -> httpx.Response:
        """Fetch a file from the raw host, trying ``main`` before ``master``."""
        for branch in ("main", "master"):
            try:
                resp = await self._get(f"{self._raw_url}/{owner}/{repo}/{branch}/{path}")
            except FetchError as e:
                if e.kind is FetchErrorKind.NOT_FOUND:
                    continue
                raise
            return resp
        raise FetchError(FetchErrorKind.NOT_FOUND, f"File not found: {owner}/{repo}/{path}")

    async def _get(self, url: str) -> httpx.Response:
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(FetchErrorKind.TRANSPORT, f"GET {url} failed: {e}")
        if resp.status_code == 404:
            raise FetchError(FetchErrorKind.NOT_FOUND, f"Not found: {url}")
        if resp.status_code in (401, 403):
            raise FetchError(
                FetchErrorKind.PERMISSION,
                f"Access denied or rate limited ({resp.status_code}): {url}",
            )
        if resp.is_error:
            raise FetchError(FetchErrorKind.TRANSPORT, f"GET {url} returned {resp.status_code}")
        return resp


class GitHubSkillRepository:
    """Skills in a GitHub repo, found by probing the root or a top-level ``skills/`` dir.

    Only one directory level below the search root is probed.
    """

    def __init__(self, repo_url: str, client: RepositoryClient) -> None:
        self.repo_url = repo_url
        self.owner, self.repo = parse_github_url(repo_url)
        self._client = client

    def _source(self) -> RemoteSource:
        return RemoteSource(repo_url=self.repo_url)

    async def fetch_all(self) -> list[Skill]:
        if not self.owner:
            raise FetchError(FetchErrorKind.NOT_FOUND, f"Invalid GitHub URL: {self.repo_url}")

        root = await self._client.get_contents(self.owner, self.repo, "")
        if any(item.name == SKILLS_DIR and item.type == "dir" for item in root):
            search_path = SKILLS_DIR
            candidates = await self._client.get_contents(self.owner, self.repo, SKILLS_DIR)
        else:
            search_path = ""
            candidates = root

        skills: list[Skill] = []
        for item in candidates:
            if item.type != "dir":
                continue
            skill = await self._probe(search_path, item.name)
            if skill is not None:
                skills.append(skill)
        return sort_by_name(skills)

    async def fetch(self, id: str) -> Skill | None:
        if not self.owner:
            return None
        for base in ("", SKILLS_DIR):
            skill = await self._probe(base, id)
            if skill is not None:
                return skill
        return None

    async def _probe(self, base: str, skill_id: str) -> Skill | None:
        skill_path = f"{base}/{skill_id}" if base else skill_id
        try:
            content = await self._client.get_file_content(
                self.owner, self.repo, f"{skill_path}/{MANIFEST_FILENAME}"
            )
            return parse_skill(content, skill_id, self._source())
        except (FetchError, SkillParseError) as e:
            logger.debug(f"Skipping {self.owner}/{self.repo}:{skill_path}: {e}")
            return None
