"""In-memory chat and artifact stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from meetmesh.core.errors import StorageError
from meetmesh.models.chat import ChatMessage
from meetmesh.store.base import ArtifactStore, ChatStore


@dataclass
class ChatRecord:
    """A chat row as the chat store sees it."""

    id: str
    department_id: str | None = None
    type: str = "department"
    name: str = "general"
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class InMemoryChatStore(ChatStore):
    """Dict-based chat store for development and testing."""

    def __init__(self, chats: list[ChatRecord] | None = None) -> None:
        self._chats: dict[str, ChatRecord] = {c.id: c for c in chats or ()}
        self._messages: list[ChatMessage] = []
        self.fail_writes = False

    def add_chat(self, chat: ChatRecord) -> ChatRecord:
        self._chats[chat.id] = chat
        return chat

    async def find_department_chat(self, department_id: str) -> str | None:
        matches = [
            c
            for c in self._chats.values()
            if c.department_id == department_id and c.type == "department" and c.name == "general"
        ]
        if not matches:
            return None
        return min(matches, key=lambda c: c.created_at).id

    async def add_message(self, message: ChatMessage) -> ChatMessage:
        if self.fail_writes:
            raise StorageError("chat store rejected the message")
        if message.chat_id not in self._chats:
            raise StorageError(f"chat {message.chat_id} does not exist")
        stored = message.model_copy(update={"id": message.id or uuid4().hex})
        self._messages.append(stored)
        return stored

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)


class InMemoryArtifactStore(ArtifactStore):
    """Dict-based object store for development and testing."""

    def __init__(self, base_url: str = "memory://chat-files") -> None:
        self._base_url = base_url.rstrip("/")
        self._objects: dict[str, tuple[bytes, str]] = {}
        self.fail_uploads = False

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail_uploads:
            raise StorageError("artifact store rejected the upload")
        if path in self._objects:
            raise StorageError(f"object {path} already exists")
        self._objects[path] = (data, content_type)
        return f"{self._base_url}/{path}"

    async def delete(self, path: str) -> None:
        self._objects.pop(path, None)

    def get(self, path: str) -> bytes | None:
        entry = self._objects.get(path)
        return entry[0] if entry is not None else None

    @property
    def paths(self) -> list[str]:
        return list(self._objects)
