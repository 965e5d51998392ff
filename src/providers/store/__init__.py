"""Act store providers.

MongoActStore is the production backend (pymongo async client).
MemoryActStore keeps acts in a cachetools LRU cache -- fast but not shared
across processes, so it is only used when MONGODB_URI is unset.
"""

from src.providers.store.memory_act_store import MemoryActStore
from src.providers.store.mongo_act_store import MongoActStore

__all__ = ["MemoryActStore", "MongoActStore"]
