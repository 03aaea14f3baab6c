# Infrastructure Store Adapters Package
from .memory_store import InMemoryStore
from .supabase_store import SupabaseStore

__all__ = ["InMemoryStore", "SupabaseStore"]
