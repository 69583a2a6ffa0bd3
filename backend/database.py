from dotenv import load_dotenv

from config.env import STORE_BACKEND, MONGO_URI
from utils.broadcast import EventBroadcaster
from utils.mongo_store import MongoLedgerStore
from utils.store import LedgerStore, MemoryLedgerStore

load_dotenv()

_store: LedgerStore | None = None
_broadcaster = EventBroadcaster()


def build_store(backend: str = STORE_BACKEND) -> LedgerStore:
    if backend == "memory":
        return MemoryLedgerStore()
    if backend == "mongo":
        if not MONGO_URI:
            raise RuntimeError("MONGODB_URI not set")
        return MongoLedgerStore(MONGO_URI)
    raise RuntimeError(f"Unsupported STORE_BACKEND: {backend}")


def get_store() -> LedgerStore:
    global _store
    if _store is None:
        _store = build_store()
    return _store


def get_broadcaster() -> EventBroadcaster:
    return _broadcaster
