import logging
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from review_store.config import Config, Settings
from review_store.errors import StoreError
from .repository import ConnectionRegistry, ReviewRepository

logger = logging.getLogger(__name__)


class MongoClientHandle:
    """Connected client scoped to the configured database."""

    def __init__(self, client: AsyncMongoClient, database: str):
        self._client = client
        self._database = client[database]

    async def collection(self, name: str):
        return self._database[name]

    async def close(self) -> None:
        await self._client.close()


class MongoStore:
    def __init__(self, url: str, database: str, region: str):
        self.url = url
        self.database = database
        self.region = region

    async def connect(self) -> MongoClientHandle:
        client = AsyncMongoClient(self.url, appname=f"review-store-{self.region}")
        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"Store connection failed for region {self.region}: {str(e)}")
            await client.close()
            raise StoreError(f"Could not connect to the document store in region {self.region}.") from e
        except BaseException:
            await client.close()
            raise
        return MongoClientHandle(client, self.database)


class MongoDriver:
    """Document store driver backed by pymongo's asyncio client."""

    def __init__(self, settings: Settings = Config):
        self.settings = settings

    async def init(self, region: str) -> MongoStore:
        return MongoStore(
            url=self.settings.url_for_region(region),
            database=self.settings.MONGODB_DATABASE,
            region=region
        )


driver = MongoDriver()
connection_registry = ConnectionRegistry()


async def get_repository() -> ReviewRepository: # type: ignore
    repository = ReviewRepository(
        driver,
        registry=connection_registry,
        keep_alive=Config.DB_KEEP_ALIVE
    )
    try:
        yield repository
    finally:
        await repository.close()
