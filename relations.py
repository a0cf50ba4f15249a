"""
Relationship rows and the ownership guard.

A relationship row is a directed edge (subscriber -> channel, user -> liked
target). Toggling relies on the unique compound indexes created by
`database.ensure_indexes`, so a pair can never end up with two rows.
"""
import logging
from typing import Any, Dict, Tuple

from bson import ObjectId
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from database import utcnow

logger = logging.getLogger(__name__)


def owner_filter(resource_id: ObjectId, acting_user_id: ObjectId, owner_field: str = "owner") -> Dict[str, Any]:
    """Filter that only matches the resource when the acting user owns it.

    Used directly on the write, so a missing resource and a resource owned
    by someone else look the same to the caller.
    """
    return {"_id": resource_id, owner_field: acting_user_id}


def toggle_relation(collection: Collection, key: Dict[str, Any]) -> Tuple[bool, Dict[str, Any]]:
    """Flip the edge identified by `key`.

    Returns (True, row) when the edge now exists and (False, removed_row)
    when it was removed.
    """
    removed = collection.find_one_and_delete(key)
    if removed is not None:
        return False, removed

    now = utcnow()
    doc = {**key, "created_at": now, "updated_at": now}
    try:
        doc["_id"] = collection.insert_one(doc).inserted_id
    except DuplicateKeyError:
        # Another request inserted the same edge between our delete and insert
        logger.info("Concurrent toggle on %s for %s, keeping the existing row", collection.name, key)
        existing = collection.find_one(key)
        if existing is None:
            # ...and a third request removed it again
            existing = {k: v for k, v in doc.items() if k != "_id"}
        return True, existing
    return True, doc
