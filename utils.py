from datetime import datetime
from typing import Any, Optional

from bson import ObjectId

from errors import ApiError


def is_valid_id(value: Any) -> bool:
    if isinstance(value, ObjectId):
        return True
    return isinstance(value, str) and len(value) == 24 and ObjectId.is_valid(value)


def objid(id_str: Any, label: str = "id") -> ObjectId:
    """Parse an ObjectId or raise a 400 ApiError naming the offending id."""
    if not is_valid_id(id_str):
        raise ApiError(400, f"Invalid {label}")
    return ObjectId(id_str)


def serialize_doc(value: Any) -> Any:
    """Recursively convert ObjectIds and datetimes into JSON-friendly values."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: serialize_doc(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_doc(v) for v in value]
    return value


def public_user(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    d = {**doc}
    d.pop("password_hash", None)
    d.pop("refresh_token_hash", None)
    return d


def is_blank(*values: Optional[str]) -> bool:
    return any(v is None or not str(v).strip() for v in values)
