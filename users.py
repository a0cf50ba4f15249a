"""
Accounts, channel profiles and watch history.
"""
import logging
from typing import List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from aggregations import channel_profile_pipeline, owner_summaries, watch_history_pipeline
from auth import hash_password, verify_password
from config import WATCH_HISTORY_LIMIT
from database import USERS, VIDEOS, create_document, utcnow
from errors import ApiError
from schemas import OwnerSummary, User
from utils import is_blank, public_user

logger = logging.getLogger(__name__)


def register_user(db: Database, username: str, email: str, password: str, full_name: str,
                  avatar: str, cover_image: Optional[str] = None) -> dict:
    if is_blank(username, email, password, full_name):
        raise ApiError(400, "Please enter all the fields")
    if is_blank(avatar):
        raise ApiError(400, "Avatar file is required")

    username = username.strip().lower()
    email = email.strip().lower()
    if db[USERS].find_one({"$or": [{"username": username}, {"email": email}]}):
        raise ApiError(409, "User already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        full_name=full_name.strip(),
        avatar=avatar,
        cover_image=cover_image or "",
    )
    try:
        doc = create_document(db, USERS, user.model_dump())
    except DuplicateKeyError:
        raise ApiError(409, "User already exists")
    logger.info("Registered user %s", username)
    return public_user(doc)


def login_user(db: Database, password: str, email: Optional[str] = None, username: Optional[str] = None) -> dict:
    if not email and not username:
        raise ApiError(400, "Please enter username or email")
    clauses = []
    if username:
        clauses.append({"username": username.strip().lower()})
    if email:
        clauses.append({"email": email.strip().lower()})
    user = db[USERS].find_one({"$or": clauses})
    if not user:
        raise ApiError(404, "User does not exist")
    if not verify_password(password, user.get("password_hash", "")):
        raise ApiError(401, "Invalid password")
    return public_user(user)


def logout_user(db: Database, user: dict) -> None:
    db[USERS].update_one({"_id": user["_id"]}, {"$unset": {"refresh_token_hash": 1}})


def change_password(db: Database, user: dict, old_password: str, new_password: str) -> None:
    stored = db[USERS].find_one({"_id": user["_id"]}, {"password_hash": 1})
    if not stored or not verify_password(old_password, stored.get("password_hash", "")):
        raise ApiError(400, "Invalid old password")
    if is_blank(new_password):
        raise ApiError(400, "New password cannot be empty")
    db[USERS].update_one(
        {"_id": user["_id"]},
        {"$set": {"password_hash": hash_password(new_password), "updated_at": utcnow()}},
    )


def update_account(db: Database, user: dict, full_name: Optional[str] = None, email: Optional[str] = None) -> dict:
    updates = {}
    if full_name and full_name.strip():
        updates["full_name"] = full_name.strip()
    if email and email.strip():
        updates["email"] = email.strip().lower()
    if not updates:
        raise ApiError(400, "Nothing to update, provide full_name or email")
    updates["updated_at"] = utcnow()
    try:
        updated = db[USERS].find_one_and_update(
            {"_id": user["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise ApiError(409, "Email already in use")
    return public_user(updated)


def get_channel_profile(db: Database, username: str, viewer_id: Optional[ObjectId] = None) -> List[dict]:
    """Channel view for `username`; an empty list when no such user exists."""
    if is_blank(username):
        raise ApiError(400, "Username is missing")
    return list(db[USERS].aggregate(channel_profile_pipeline(username, viewer_id)))


def add_to_watch_history(db: Database, user_id: ObjectId, video_id: ObjectId) -> None:
    """Move `video_id` to the front of the history, keeping each id once."""
    db[USERS].update_one({"_id": user_id}, {"$pull": {"watch_history": video_id}})
    db[USERS].update_one(
        {"_id": user_id},
        {
            "$push": {"watch_history": {"$each": [video_id], "$position": 0, "$slice": WATCH_HISTORY_LIMIT}},
            "$set": {"updated_at": utcnow()},
        },
    )


def get_watch_history(db: Database, user_id: ObjectId) -> List[dict]:
    """Watched videos, most recent first, each with a minimal owner object."""
    user = db[USERS].find_one({"_id": user_id}, {"watch_history": 1})
    order = user.get("watch_history", []) if user else []
    if not order:
        return []

    by_id = {v["_id"]: v for v in db[VIDEOS].aggregate(watch_history_pipeline(order))}
    owners = owner_summaries(db[USERS], list({v["owner"] for v in by_id.values()}))
    history = []
    for video_id in order:
        video = by_id.get(video_id)
        if video is None:
            continue
        owner = owners.get(video["owner"])
        video["owner"] = OwnerSummary(**owner).model_dump() if owner else None
        history.append(video)
    return history


def get_all_channels(db: Database) -> List[dict]:
    cursor = db[USERS].find({}, {"username": 1, "full_name": 1, "avatar": 1}).sort("username", 1)
    return list(cursor)
