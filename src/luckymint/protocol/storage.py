"""
luckymint/protocol/storage.py

Record storage for rounds, participants and ledger balances.

Provides:
1. Storage backends - memory (tests, ephemeral engines) and local disk
2. RecordStore - namespaced JSON records on top of a backend
3. KeyedLock - per-record mutual exclusion for read-modify-write cycles

Used by:
- RoundLedger / ParticipantLedger - durable engine state
- StoreAssetLedger - token balances and issued supply
"""

import os
import json
import logging
import hashlib
from abc import ABC, abstractmethod
from contextlib import AsyncExitStack, asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import trio

logger = logging.getLogger("luckymint.protocol.storage")


# ============================================================================
# CONSTANTS
# ============================================================================

STORAGE_KEY_PREFIX = "luckymint:"

INDEX_FILENAME = "index.json"


# ============================================================================
# STORAGE BACKENDS
# ============================================================================

class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Get a value by key."""
        pass

    @abstractmethod
    async def put(self, key: str, value: bytes) -> None:
        """Store a value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a value. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> List[str]:
        """List keys with optional prefix filter."""
        pass


class MemoryBackend(StorageBackend):
    """In-memory storage backend."""

    def __init__(self):
        self._data: Dict[str, bytes] = {}

    async def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def put(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def list_keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


class FileBackend(StorageBackend):
    """
    Local file storage backend.

    Each value lives in its own file named by a hash of the key; an index
    file maps keys back to files so prefixes can be listed. Writes go to a
    temporary file first and are moved into place, so a crash never leaves
    a half-written record.
    """

    def __init__(self, storage_dir: Path):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._index_file = self.storage_dir / INDEX_FILENAME
        self._index: Dict[str, str] = self._load_index()

    def _load_index(self) -> Dict[str, str]:
        if not self._index_file.exists():
            return {}
        with open(self._index_file, "r", encoding="utf-8") as f:
            return json.load(f)

    def _save_index(self) -> None:
        self._write_atomic(self._index_file, json.dumps(self._index, sort_keys=True).encode())

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)

    def _key_to_path(self, key: str) -> Path:
        # Hash keys to avoid filesystem issues with special chars
        hash_name = hashlib.sha256(key.encode()).hexdigest()[:32]
        return self.storage_dir / f"{hash_name}.json"

    async def get(self, key: str) -> Optional[bytes]:
        if key not in self._index:
            return None
        path = self._key_to_path(key)
        if not path.exists():
            logger.warning(f"Index entry for {key} has no data file")
            return None
        return path.read_bytes()

    async def put(self, key: str, value: bytes) -> None:
        path = self._key_to_path(key)
        self._write_atomic(path, value)
        if key not in self._index:
            self._index[key] = path.name
            self._save_index()

    async def delete(self, key: str) -> bool:
        if key not in self._index:
            return False
        path = self._key_to_path(key)
        if path.exists():
            path.unlink()
        del self._index[key]
        self._save_index()
        return True

    async def list_keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._index if k.startswith(prefix))


# ============================================================================
# RECORD STORE
# ============================================================================

class RecordStore:
    """
    Namespaced JSON records on top of a storage backend.

    Values are dicts, or objects exposing to_dict(). Reads return plain
    dicts; typed ledgers rebuild their records with from_dict().
    """

    def __init__(
        self,
        namespace: str,
        backend: StorageBackend,
        serializer: Callable[[Any], bytes] = None,
        deserializer: Callable[[bytes], Any] = None,
    ):
        self.namespace = namespace
        self.backend = backend
        self._serialize = serializer or self._default_serialize
        self._deserialize = deserializer or self._default_deserialize

    def _default_serialize(self, obj: Any) -> bytes:
        if hasattr(obj, "to_dict"):
            obj = obj.to_dict()
        return json.dumps(obj, sort_keys=True).encode()

    def _default_deserialize(self, data: bytes) -> Any:
        return json.loads(data.decode())

    def _make_key(self, key: str) -> str:
        return f"{STORAGE_KEY_PREFIX}{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        data = await self.backend.get(self._make_key(key))
        if data is None:
            return None
        return self._deserialize(data)

    async def put(self, key: str, value: Any) -> None:
        await self.backend.put(self._make_key(key), self._serialize(value))

    async def delete(self, key: str) -> bool:
        return await self.backend.delete(self._make_key(key))

    async def exists(self, key: str) -> bool:
        return await self.backend.get(self._make_key(key)) is not None

    async def list_keys(self) -> List[str]:
        """List keys in this namespace (without the namespace prefix)."""
        prefix = self._make_key("")
        return [k[len(prefix):] for k in await self.backend.list_keys(prefix)]


# ============================================================================
# LOCKING
# ============================================================================

class KeyedLock:
    """
    One trio.Lock per record key, kept only while some task holds or waits on it.

    hold() takes several keys at once and always acquires them in sorted
    order, so two callers locking the same pair cannot deadlock.
    """

    def __init__(self):
        self._locks: Dict[str, trio.Lock] = {}
        self._users: Dict[str, int] = {}

    def _checkout(self, key: str) -> trio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = trio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: str) -> None:
        self._users[key] -= 1
        if self._users[key] == 0:
            del self._users[key]
            del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)

    def locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        ordered = sorted(set(keys))
        locks = [self._checkout(key) for key in ordered]
        try:
            async with AsyncExitStack() as stack:
                for lock in locks:
                    await stack.enter_async_context(lock)
                yield
        finally:
            for key in ordered:
                self._checkin(key)
