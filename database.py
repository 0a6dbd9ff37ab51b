"""
MongoDB access helpers.

Collection names are the lowercase of the schema class name:
- Admin -> "admin"
- Blog -> "blog"
- Appointment -> "appointment"
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings

ADMIN = "admin"
BLOG = "blog"
APPOINTMENT = "appointment"


def connect(settings: Settings) -> Database:
    client = MongoClient(settings.database_url, serverSelectionTimeoutMS=5000, tz_aware=False)
    return client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    db[ADMIN].create_index("email", unique=True)
    # One appointment per counselor slot; authoritative under concurrent creates
    db[APPOINTMENT].create_index(
        [("counselor", ASCENDING), ("date", ASCENDING), ("time", ASCENDING)],
        unique=True,
        name="counselor_slot_unique",
    )


def ping(db: Database) -> bool:
    try:
        db.command("ping")
        return True
    except PyMongoError:
        return False


def utcnow() -> datetime:
    """Naive UTC timestamp, the form pymongo hands back from the store"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def create_document(db: Database, collection_name: str, data: Union[BaseModel, dict]) -> dict:
    """Insert a document, stamping createdAt/updatedAt; returns the stored doc"""
    if isinstance(data, BaseModel):
        doc = data.model_dump(by_alias=True, exclude_none=True)
    else:
        doc = dict(data)
    now = utcnow()
    doc.setdefault("createdAt", now)
    doc.setdefault("updatedAt", now)
    result = db[collection_name].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[dict] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def find_by_id(db: Database, collection_name: str, doc_id: Any, projection: Optional[dict] = None) -> Optional[dict]:
    oid = to_object_id(doc_id)
    if oid is None:
        return None
    return db[collection_name].find_one({"_id": oid}, projection)


def serialize(doc: Optional[dict], exclude: Iterable[str] = ()) -> Optional[Dict[str, Any]]:
    """Turn a stored document into a JSON-ready dict with a string `id`"""
    if doc is None:
        return None
    out: Dict[str, Any] = {}
    for key, value in doc.items():
        if key in exclude:
            continue
        if key == "_id":
            out["id"] = str(value)
        elif isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, dict):
            out[key] = serialize(value)
        else:
            out[key] = value
    return out
