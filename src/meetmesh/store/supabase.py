"""Supabase-backed chat and artifact stores over the REST and Storage APIs."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, SecretStr

from meetmesh.core.errors import StorageError
from meetmesh.models.chat import ChatMessage
from meetmesh.store.base import ArtifactStore, ChatStore

logger = logging.getLogger(__name__)


class SupabaseConfig(BaseModel):
    """Connection settings for a Supabase project."""

    url: str
    api_key: SecretStr
    bucket: str = "chat-files"
    cache_control: str = "3600"
    timeout: float = 30.0


def _headers(config: SupabaseConfig) -> dict[str, str]:
    key = config.api_key.get_secret_value()
    return {"apikey": key, "Authorization": f"Bearer {key}"}


class SupabaseChatStore(ChatStore):
    """Chat store backed by the ``chats`` and ``messages`` tables."""

    def __init__(self, config: SupabaseConfig) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=f"{config.url.rstrip('/')}/rest/v1",
            headers=_headers(config),
            timeout=config.timeout,
        )

    async def find_department_chat(self, department_id: str) -> str | None:
        params = {
            "select": "id",
            "department_id": f"eq.{department_id}",
            "type": "eq.department",
            "name": "eq.general",
            "order": "created_at.asc",
            "limit": "1",
        }
        try:
            resp = await self._client.get("/chats", params=params)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise StorageError(f"chat lookup failed: {exc}") from exc
        rows: list[dict[str, Any]] = resp.json()
        return str(rows[0]["id"]) if rows else None

    async def add_message(self, message: ChatMessage) -> ChatMessage:
        row = message.model_dump(mode="json", exclude={"id", "created_at"})
        try:
            resp = await self._client.post(
                "/messages",
                json=row,
                headers={"Prefer": "return=representation"},
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                f"message insert failed (HTTP {exc.response.status_code}): {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise StorageError(f"message insert failed: {exc}") from exc

        data = resp.json()
        if isinstance(data, list) and data:
            return ChatMessage.model_validate(data[0])
        return message

    async def close(self) -> None:
        await self._client.aclose()


class SupabaseArtifactStore(ArtifactStore):
    """Artifact store backed by a Supabase Storage bucket."""

    def __init__(self, config: SupabaseConfig) -> None:
        self._config = config
        self._base_url = f"{config.url.rstrip('/')}/storage/v1"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=_headers(config),
            timeout=config.timeout,
        )

    def public_url(self, path: str) -> str:
        return f"{self._base_url}/object/public/{self._config.bucket}/{quote(path)}"

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        try:
            resp = await self._client.post(
                f"/object/{self._config.bucket}/{quote(path)}",
                content=data,
                headers={
                    "Content-Type": content_type,
                    "Cache-Control": f"max-age={self._config.cache_control}",
                    "x-upsert": "false",
                },
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                f"upload of {path} failed (HTTP {exc.response.status_code}): {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise StorageError(f"upload of {path} failed: {exc}") from exc

        logger.debug("Uploaded %s to bucket %s", path, self._config.bucket)
        return self.public_url(path)

    async def delete(self, path: str) -> None:
        try:
            resp = await self._client.request(
                "DELETE", f"/object/{self._config.bucket}", json={"prefixes": [path]}
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise StorageError(f"removal of {path} failed: {exc}") from exc
        logger.debug("Removed %s from bucket %s", path, self._config.bucket)

    async def close(self) -> None:
        await self._client.aclose()
