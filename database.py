"""
MongoDB access.

One Database per application, built from Settings (or around an injected
client). Collections: user, item, cart.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient

from logger import get_logger
from settings import Settings

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize(doc: Optional[dict]) -> Optional[dict]:
    """Make a stored document JSON friendly: `_id` becomes `id`."""
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if key == "_id":
            key = "id"
        out[key] = _to_json(value)
    return out


def _to_json(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _to_json(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_json(v) for v in value]
    return value


class Database:
    def __init__(self, settings: Settings, client: Optional[MongoClient] = None):
        self.client = client or MongoClient(settings.database_url)
        self.db = self.client[settings.database_name]

    @property
    def users(self):
        return self.db["user"]

    @property
    def items(self):
        return self.db["item"]

    @property
    def carts(self):
        return self.db["cart"]

    def ensure_indexes(self) -> None:
        self.users.create_index([("email", ASCENDING)], unique=True)
        self.carts.create_index([("owner", ASCENDING)], unique=True)
        logger.info("indexes ensured", database=self.db.name)

    def create_document(self, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
        if isinstance(data, BaseModel):
            data_dict = data.model_dump()
        else:
            data_dict = dict(data)
        now = utcnow()
        data_dict["created_at"] = now
        data_dict["updated_at"] = now
        result = self.db[collection_name].insert_one(data_dict)
        return str(result.inserted_id)

    def get_documents(self, collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
        cursor = self.db[collection_name].find(filter_dict or {})
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def ping(self) -> dict:
        response = {"database": "Not Available", "collections": []}
        try:
            response["collections"] = self.db.list_collection_names()
            response["database"] = "Connected"
        except Exception as e:
            logger.warning("database ping failed", error=str(e)[:80])
            response["database"] = f"Error: {str(e)[:80]}"
        return response
