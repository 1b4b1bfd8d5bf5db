"""
MongoDB access helpers.

A single process-wide client and database handle, plus the small set of
document helpers the routers use. Collections are named after the
documents they hold: users, signals, feedposts.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument

from config import Settings

logger = logging.getLogger(__name__)

_datetime_adapter = TypeAdapter(datetime)

USERS = "users"
SIGNALS = "signals"
FEEDPOSTS = "feedposts"

_client: Optional[MongoClient] = None
db = None


def connect(settings: Settings) -> None:
    """Open the client and select the configured database."""
    global _client, db
    _client = MongoClient(settings.database_url)
    db = _client[settings.database_name]
    logger.info("MongoDB client created for database %s", settings.database_name)


def close() -> None:
    global _client, db
    if _client is not None:
        _client.close()
    _client = None
    db = None


def get_db():
    if db is None:
        raise RuntimeError("Database not available. Call connect() first.")
    return db


def ensure_indexes() -> None:
    """Create the unique email index and the creation-time indexes."""
    database = get_db()
    database[USERS].create_index([("email", ASCENDING)], unique=True)
    for name in (USERS, SIGNALS, FEEDPOSTS):
        database[name].create_index([("created_at", ASCENDING)])
    logger.info("Indexes ensured on %s, %s, %s", USERS, SIGNALS, FEEDPOSTS)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse a document id, returning None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def created_after(since: Optional[str]) -> Dict[str, Any]:
    """Build the created_at filter for a ``since`` cursor.

    Accepts ISO-8601 strings and Unix timestamps; naive values are UTC.

    Raises:
        ValueError: since is not a parsable date.
    """
    if not since:
        return {}
    try:
        value = _datetime_adapter.validate_python(since)
    except PydanticValidationError as e:
        raise ValueError(f"Unparsable since value: {since!r}") from e
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return {"created_at": {"$gt": value}}


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document, stamping created_at, and return its id as a string."""
    database = get_db()
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    data_dict.setdefault("created_at", utc_now())
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_document(collection_name: str, document_id: Any) -> Optional[dict]:
    """Fetch one document by id. Unknown and malformed ids both return None."""
    oid = to_object_id(document_id)
    if oid is None:
        return None
    return get_db()[collection_name].find_one({"_id": oid})


def find_one(collection_name: str, filter_dict: Dict[str, Any]) -> Optional[dict]:
    return get_db()[collection_name].find_one(filter_dict)


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    newest_first: bool = False,
    projection: Optional[Dict[str, Any]] = None,
) -> List[dict]:
    """List documents matching a filter.

    With newest_first the results are ordered by created_at descending,
    ties broken by _id (ObjectIds grow with insertion order).
    """
    cursor = get_db()[collection_name].find(filter_dict or {}, projection)
    if newest_first:
        cursor = cursor.sort([("created_at", DESCENDING), ("_id", DESCENDING)])
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def update_document(collection_name: str, document_id: ObjectId, update: Dict[str, Any]) -> Optional[dict]:
    """Apply an update operator document and return the updated document.

    Returns None when no document has that id any more.
    """
    return get_db()[collection_name].find_one_and_update(
        {"_id": document_id}, update, return_document=ReturnDocument.AFTER
    )


def get_emails(user_ids: Iterable[str]) -> Dict[str, str]:
    """Map user id strings to emails, skipping ids with no user."""
    oids = [oid for oid in (to_object_id(uid) for uid in set(user_ids)) if oid is not None]
    if not oids:
        return {}
    users = get_db()[USERS].find({"_id": {"$in": oids}}, {"email": 1})
    return {str(u["_id"]): u["email"] for u in users}
