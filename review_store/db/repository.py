import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from review_store.config import Config

logger = logging.getLogger(__name__)

STORAGE_ID = "_id"


@dataclass(frozen=True)
class SharedConnection:
    store: Any
    client: Any
    collection: Any


class ConnectionRegistry:
    """Connections keyed by ``<region>::<collection>``, shared by every repository
    that resolves to the same key for the lifetime of the registry."""

    def __init__(self):
        self._connections: Dict[str, SharedConnection] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> Optional[SharedConnection]:
        return self._connections.get(key)

    def set(self, key: str, connection: SharedConnection) -> None:
        self._connections[key] = connection

    def lock(self, key: str) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    def evict_client(self, client: Any) -> None:
        for key, shared in list(self._connections.items()):
            if shared.client is client:
                del self._connections[key]

    def __contains__(self, key: str) -> bool:
        return key in self._connections

    def __len__(self) -> int:
        return len(self._connections)


@dataclass(frozen=True)
class Decoded:
    value: Any


@dataclass(frozen=True)
class Raw:
    text: str


def decode_document(value: Any) -> Union[Decoded, Raw]:
    """JSON text is decoded; text that is not JSON comes back as ``Raw``."""
    if not isinstance(value, str):
        return Decoded(value)
    try:
        return Decoded(json.loads(value))
    except ValueError:
        return Raw(value)


class ReviewRepository:
    """
    Key/document access to the reviews collection.

    Every public call connects lazily through ``init``. With ``keep_alive``
    (the default) the connection is taken from, and left in, the shared
    registry. Exclusive repositories own a private connection that ``close``
    tears down.
    """

    def __init__(
        self,
        driver,
        registry: Optional[ConnectionRegistry] = None,
        region: Optional[str] = None,
        collection: Optional[str] = None,
        keep_alive: bool = True,
    ):
        self.driver = driver
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.region = region
        self.collection_name = collection
        self.keep_alive = keep_alive
        self._store = None
        self._client = None
        self._collection = None

    def _resolve(self):
        return (
            self.region or Config.DB_REGION,
            self.collection_name or Config.DB_COLLECTION,
        )

    @property
    def connection_key(self) -> str:
        return "::".join(self._resolve())

    async def init(self) -> "ReviewRepository":
        if self._collection is not None:
            return self

        region, collection_name = self._resolve()
        key = self.connection_key

        if not self.keep_alive:
            self._bind(await self._connect(region, collection_name))
            return self

        shared = self.registry.get(key)
        if shared is None:
            async with self.registry.lock(key):
                shared = self.registry.get(key)
                if shared is None:
                    shared = await self._connect(region, collection_name)
                    self.registry.set(key, shared)
        self._bind(shared)
        return self

    async def _connect(self, region: str, collection_name: str) -> SharedConnection:
        logger.info(f"Opening store connection for {region}::{collection_name}")
        store = await self.driver.init(region=region)
        client = await store.connect()
        collection = await client.collection(collection_name)
        return SharedConnection(store=store, client=client, collection=collection)

    def _bind(self, shared: SharedConnection) -> None:
        self._store = shared.store
        self._client = shared.client
        self._collection = shared.collection

    async def get(self, key: str) -> Optional[dict]:
        await self.init()
        document = await self._collection.find_one({STORAGE_ID: key})
        return self.normalize(document)

    async def put(self, key: str, value: Any) -> str:
        await self.init()
        decoded = decode_document(value)
        if isinstance(decoded, Raw):
            logger.warning(f"Storing undecodable value for {key} verbatim")
            document = {"value": decoded.text}
        elif isinstance(decoded.value, dict):
            document = {k: v for k, v in decoded.value.items() if k != STORAGE_ID}
        else:
            document = {"value": decoded.value}

        document["id"] = document.get("id") or key
        await self._collection.update_one(
            {STORAGE_ID: key},
            {"$set": document},
            upsert=True
        )
        return key

    async def delete(self, key: str) -> Any:
        await self.init()
        return await self._collection.delete_one({STORAGE_ID: key})

    async def find(self, filter: Optional[dict] = None):
        await self.init()
        return self._collection.find(filter or {})

    async def count(self, filter: Optional[dict] = None) -> int:
        await self.init()
        return await self._collection.count_documents(filter or {})

    def normalize(self, document: Optional[dict]) -> Optional[dict]:
        if document is None:
            return None
        return {k: v for k, v in document.items() if k != STORAGE_ID}

    async def close(self) -> None:
        if self.keep_alive:
            return
        client = self._client
        self._store = None
        self._client = None
        self._collection = None
        if client is None:
            return
        self.registry.evict_client(client)
        await client.close()
