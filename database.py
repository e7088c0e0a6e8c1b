"""
MongoDB access for the storefront.

A single DocumentStore wraps one MongoClient for the lifetime of the
process. It is built in the application lifespan and handed to the route
handlers through the get_store dependency.
"""
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from fastapi import HTTPException, Request
from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

from config import Settings

logger = structlog.get_logger(__name__)

PRODUCTS = "products"
REVIEWS = "review"
ORDERS = "orders"
USERS = "users"


def serialize_doc(value: Any) -> Any:
    """Render ObjectIds as hex strings, recursing into lists and dicts."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize_doc(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_doc(v) for v in value]
    return value


def parse_object_id(value: str) -> Optional[ObjectId]:
    """Return the ObjectId for a 24-char hex string, or None if malformed."""
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


class DocumentStore:
    """Thin wrapper over a pymongo database handle."""

    def __init__(self, client: MongoClient, name: str):
        self.client = client
        self.db = client[name]

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["DocumentStore"]:
        uri = settings.mongo_uri()
        if uri is None:
            return None
        client = MongoClient(
            uri,
            serverSelectionTimeoutMS=settings.mongo_timeout_ms,
            tz_aware=True,
        )
        return cls(client, settings.database_name)

    @property
    def name(self) -> str:
        return self.db.name

    def ping(self) -> bool:
        try:
            self.client.admin.command("ping")
        except PyMongoError as e:
            logger.error("database_ping_failed", error=str(e))
            return False
        return True

    def ensure_indexes(self) -> None:
        self.db[USERS].create_index([("email", ASCENDING)], unique=True)

    def list_collection_names(self) -> List[str]:
        return self.db.list_collection_names()

    def create_document(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document and return it with its generated _id."""
        doc = dict(data)
        result = self.db[collection].insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    def get_documents(
        self, collection: str, filter_dict: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        return list(self.db[collection].find(filter_dict or {}))

    def find_one(self, collection: str, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.db[collection].find_one(filter_dict)

    def close(self) -> None:
        self.client.close()


def get_store(request: Request) -> DocumentStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return store
