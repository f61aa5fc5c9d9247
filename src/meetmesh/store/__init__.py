"""External chat and artifact store adapters."""

from meetmesh.store.base import ArtifactStore, ChatStore
from meetmesh.store.memory import ChatRecord, InMemoryArtifactStore, InMemoryChatStore
from meetmesh.store.supabase import SupabaseArtifactStore, SupabaseChatStore, SupabaseConfig

__all__ = [
    "ArtifactStore",
    "ChatRecord",
    "ChatStore",
    "InMemoryArtifactStore",
    "InMemoryChatStore",
    "SupabaseArtifactStore",
    "SupabaseChatStore",
    "SupabaseConfig",
]
