"""MongoDB connection lifecycle."""

import logging
from dataclasses import dataclass, field

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from calorie_ledger.domain.errors import StorageError

logger = logging.getLogger(__name__)

DAY_KEY_INDEX = "user_date_unique"


@dataclass
class MongoConnection:
    """Explicitly opened and closed handle to the ledger database."""

    uri: str
    database: str
    days_collection: str = "days"
    timeout_ms: int = 5000
    _client: MongoClient | None = field(default=None, init=False, repr=False)

    def connect(self) -> None:
        """Open the client, verify connectivity and ensure indexes."""
        if self._client is not None:
            return
        client: MongoClient = MongoClient(
            self.uri,
            tz_aware=True,
            serverSelectionTimeoutMS=self.timeout_ms,
            connectTimeoutMS=self.timeout_ms,
            socketTimeoutMS=self.timeout_ms,
        )
        try:
            client.admin.command("ping")
            ensure_day_indexes(client[self.database][self.days_collection])
        except PyMongoError as exc:
            client.close()
            raise StorageError("Could not connect to MongoDB") from exc
        self._client = client
        logger.info("Connected to MongoDB", extra={"database": self.database})

    def close(self) -> None:
        """Close the client if it is open."""
        if self._client is None:
            return
        self._client.close()
        self._client = None
        logger.info("Closed MongoDB connection")

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def days(self) -> Collection:
        """Return the days collection of the open client."""
        if self._client is None:
            raise StorageError("MongoDB connection is not open")
        return self._client[self.database][self.days_collection]


def ensure_day_indexes(collection: Collection) -> None:
    """Create the unique (user, date) index backing lazy day creation."""
    collection.create_index(
        [("user", ASCENDING), ("date", ASCENDING)],
        unique=True,
        name=DAY_KEY_INDEX,
    )
