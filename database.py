"""
Record store adapter over MongoDB.

One ``RecordStore`` wraps a pymongo ``Database`` and exposes the club's
collections by name. The store enforces no referential integrity between
collections; engines own any coupling between them.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import DESCENDING, MongoClient
from pymongo.database import Database

from config import Settings
from errors import ClientError

logger = logging.getLogger(__name__)

COLLECTIONS = ("courts", "bookings", "users", "coupons", "announcements", "payments")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_object_id(value: Any, label: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ClientError(f"Invalid {label}")


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Make a document JSON friendly (ObjectIds become strings)."""
    if doc is None:
        return None
    out = {}
    for k, v in doc.items():
        out[k] = str(v) if isinstance(v, ObjectId) else v
    return out


class RecordStore:
    def __init__(self, db: Database):
        self.db = db
        self.courts = db["courts"]
        self.bookings = db["bookings"]
        self.users = db["users"]
        self.coupons = db["coupons"]
        self.announcements = db["announcements"]
        self.payments = db["payments"]

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecordStore":
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is not configured")
        # MongoClient connects lazily; no I/O happens here.
        client = MongoClient(settings.database_url)
        logger.info("Record store bound to database %s", settings.database_name)
        return cls(client[settings.database_name])

    def collection(self, name: str):
        if name not in COLLECTIONS:
            raise KeyError(name)
        return getattr(self, name)

    def create_document(self, collection_name: str, data: Union[BaseModel, Mapping[str, Any]]) -> str:
        if isinstance(data, BaseModel):
            doc = data.model_dump(exclude_none=True)
        else:
            doc = dict(data)
        doc.setdefault("createdAt", now_iso())
        result = self.collection(collection_name).insert_one(doc)
        return str(result.inserted_id)

    def get_documents(
        self,
        collection_name: str,
        filter_dict: Optional[Dict[str, Any]] = None,
        newest_first: bool = False,
    ) -> List[Dict[str, Any]]:
        cursor = self.collection(collection_name).find(filter_dict or {})
        if newest_first:
            cursor = cursor.sort("createdAt", DESCENDING)
        return [serialize(d) for d in cursor]

    def update_document(self, collection_name: str, doc_id: str, fields: Dict[str, Any]) -> int:
        """Apply a ``$set``; returns the matched count."""
        result = self.collection(collection_name).update_one(
            {"_id": to_object_id(doc_id)}, {"$set": fields}
        )
        return result.matched_count

    def delete_document(self, collection_name: str, doc_id: str) -> int:
        result = self.collection(collection_name).delete_one({"_id": to_object_id(doc_id)})
        return result.deleted_count

    def describe(self) -> Dict[str, Any]:
        return {"name": self.db.name, "collections": self.db.list_collection_names()}
