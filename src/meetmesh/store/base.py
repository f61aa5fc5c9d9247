"""Abstract base classes for the external chat and artifact stores."""

from __future__ import annotations

from abc import ABC, abstractmethod

from meetmesh.models.chat import ChatMessage


class ChatStore(ABC):
    """The relational store holding department chats and their messages.

    Implement this ABC to plug in a backend.  The library ships with
    ``InMemoryChatStore`` for tests and ``SupabaseChatStore`` for the
    hosted deployment.
    """

    @abstractmethod
    async def find_department_chat(self, department_id: str) -> str | None:
        """Return the id of the department's ``general`` chat, or ``None``.

        When several match, the oldest wins.
        """
        ...

    @abstractmethod
    async def add_message(self, message: ChatMessage) -> ChatMessage:
        """Insert a chat message.

        Raises:
            StorageError: If the write is rejected.
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release resources. Override in subclasses if needed."""


class ArtifactStore(ABC):
    """Object storage for uploaded meeting artifacts."""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store *data* at *path* and return its public URL.

        Existing objects are never overwritten.

        Raises:
            StorageError: If the path is taken or the upload fails.
        """
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove the object at *path*. Missing objects are ignored.

        Raises:
            StorageError: If the store rejects the removal.
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release resources. Override in subclasses if needed."""
