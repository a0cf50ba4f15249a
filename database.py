"""
MongoDB connection and small collection helpers.

`db` is None when DATABASE_URL is not configured; request handlers get the
database through the `get_db` dependency so tests can swap in mongomock.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from config import DATABASE_NAME, DATABASE_URL

logger = logging.getLogger(__name__)

USERS = "users"
VIDEOS = "videos"
COMMENTS = "comments"
LIKES = "likes"
SUBSCRIPTIONS = "subscriptions"
PLAYLISTS = "playlists"
TWEETS = "tweets"

client: Optional[MongoClient] = None
db: Optional[Database] = None

if DATABASE_URL:
    client = MongoClient(DATABASE_URL, tz_aware=True)
    db = client[DATABASE_NAME]
else:
    logger.warning("DATABASE_URL is not set, database features are disabled")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_db() -> Database:
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db


def create_document(database: Database, collection_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a document stamped with created_at/updated_at and return it with its _id."""
    now = utcnow()
    doc = {**data, "created_at": now, "updated_at": now}
    doc["_id"] = database[collection_name].insert_one(doc).inserted_id
    return doc


def get_documents(database: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {}).sort("created_at", DESCENDING)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_indexes(database: Database) -> None:
    database[USERS].create_index("username", unique=True)
    database[USERS].create_index("email", unique=True)
    # Null targets are stored explicitly so one compound key covers all like kinds
    database[LIKES].create_index(
        [("liked_by", ASCENDING), ("video", ASCENDING), ("comment", ASCENDING), ("tweet", ASCENDING)],
        unique=True,
    )
    database[SUBSCRIPTIONS].create_index([("subscriber", ASCENDING), ("channel", ASCENDING)], unique=True)
    database[VIDEOS].create_index([("owner", ASCENDING), ("created_at", DESCENDING)])
    database[COMMENTS].create_index([("video", ASCENDING), ("created_at", DESCENDING)])
    database[PLAYLISTS].create_index("owner")
    logger.info("Indexes ensured on %s", database.name)
