"""
Likes on videos, comments and tweets.

A like row carries all three target fields with exactly one of them set,
which keeps a single unique index over (liked_by, video, comment, tweet).
"""
from typing import List

from bson import ObjectId
from pymongo.database import Database

from aggregations import liked_pipeline
from database import COMMENTS, LIKES, TWEETS, VIDEOS
from errors import ApiError
from relations import toggle_relation
from schemas import Like
from utils import objid

TARGETS = {
    "video": VIDEOS,
    "comment": COMMENTS,
    "tweet": TWEETS,
}


def like_key(user_id: ObjectId, target: str, target_id: ObjectId) -> dict:
    if target not in TARGETS:
        raise ValueError(f"Unknown like target: {target}")
    return Like(liked_by=user_id, **{target: target_id}).model_dump()


def toggle_like(db: Database, user: dict, target: str, target_id: str) -> dict:
    """Like the target if the user has not, unlike it otherwise."""
    oid = objid(target_id, f"{target} id")
    if not db[TARGETS[target]].find_one({"_id": oid}, {"_id": 1}):
        raise ApiError(404, f"The {target} you want to like does not exist")
    liked, row = toggle_relation(db[LIKES], like_key(user["_id"], target, oid))
    return {"liked": liked, "like": row}


def toggle_video_like(db: Database, user: dict, video_id: str) -> dict:
    return toggle_like(db, user, "video", video_id)


def toggle_comment_like(db: Database, user: dict, comment_id: str) -> dict:
    return toggle_like(db, user, "comment", comment_id)


def toggle_tweet_like(db: Database, user: dict, tweet_id: str) -> dict:
    return toggle_like(db, user, "tweet", tweet_id)


def get_liked(db: Database, user: dict, target: str) -> List[dict]:
    return list(db[LIKES].aggregate(liked_pipeline(user["_id"], target, TARGETS[target])))


def count_likes(db: Database, target: str, target_id: ObjectId) -> int:
    return db[LIKES].count_documents({target: target_id})
