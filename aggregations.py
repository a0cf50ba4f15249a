"""
Read-time joins that build the denormalised views.

Each builder returns a plain pipeline list; the services run it with
`collection.aggregate(...)`. An empty `$match` yields an empty result, which
callers report as "not found" by checking the length.
"""
from math import ceil
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo.collection import Collection

from config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from database import SUBSCRIPTIONS, USERS, VIDEOS
from errors import ApiError

NEWEST_FIRST = {"created_at": -1, "_id": -1}
# $skip is a signed 64-bit integer in the store
MAX_SKIP = 2 ** 63 - 1

CHANNEL_FIELDS = [
    "username", "full_name", "avatar", "cover_image", "created_at",
    "subscribersCount", "channelSubscriptionCount", "isSubscribed",
]
PLAYLIST_FIELDS = ["name", "description", "owner", "created_at", "updated_at", "videoCount", "videos", "video_details"]
OWNER_SUMMARY_FIELDS = ["full_name", "username", "avatar"]
VIDEO_CARD_FIELDS = [
    "title", "description", "thumbnail", "video_file", "duration", "views",
    "owner", "owner_name", "created_at",
]


def _project(fields: List[str]) -> Dict[str, Any]:
    return {"$project": {f: 1 for f in fields}}


def channel_profile_pipeline(username: str, viewer_id: Optional[ObjectId] = None) -> List[Dict[str, Any]]:
    """Profile of `username` with subscriber counts.

    An anonymous viewer (None) never matches a subscriber, so isSubscribed is false.
    """
    return [
        {"$match": {"username": username.strip().lower()}},
        {"$lookup": {"from": SUBSCRIPTIONS, "localField": "_id", "foreignField": "channel", "as": "subscribers"}},
        {"$lookup": {"from": SUBSCRIPTIONS, "localField": "_id", "foreignField": "subscriber", "as": "subscribedTo"}},
        {"$addFields": {
            "subscribersCount": {"$size": "$subscribers"},
            "channelSubscriptionCount": {"$size": "$subscribedTo"},
            "isSubscribed": {"$in": [viewer_id, "$subscribers.subscriber"]},
        }},
        _project(CHANNEL_FIELDS),
    ]


def playlist_detail_pipeline(match: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [
        {"$match": match},
        {"$lookup": {"from": VIDEOS, "localField": "videos", "foreignField": "_id", "as": "video_details"}},
        {"$addFields": {"videoCount": {"$size": "$video_details"}}},
        {"$sort": NEWEST_FIRST},
        _project(PLAYLIST_FIELDS),
    ]


def watch_history_pipeline(video_ids: List[ObjectId]) -> List[Dict[str, Any]]:
    """Run against the videos collection; `owner` stays an id, see `owner_summaries`."""
    return [
        {"$match": {"_id": {"$in": video_ids}}},
        _project(VIDEO_CARD_FIELDS),
    ]


def owner_summaries(users: Collection, owner_ids: List[ObjectId]) -> Dict[ObjectId, Dict[str, Any]]:
    """Public owner fields keyed by id; the projection runs in the store."""
    projection = {f: 1 for f in OWNER_SUMMARY_FIELDS}
    return {u["_id"]: u for u in users.find({"_id": {"$in": owner_ids}}, projection)}


def liked_pipeline(user_id: ObjectId, target: str, from_collection: str) -> List[Dict[str, Any]]:
    return [
        {"$match": {"liked_by": user_id, target: {"$ne": None}}},
        {"$sort": NEWEST_FIRST},
        {"$lookup": {"from": from_collection, "localField": target, "foreignField": "_id", "as": target}},
        {"$unwind": {"path": f"${target}"}},
    ]


def subscribed_channels_pipeline(subscriber_id: ObjectId) -> List[Dict[str, Any]]:
    """Run against subscriptions; one row per channel the user subscribes to."""
    return [
        {"$match": {"subscriber": subscriber_id}},
        {"$sort": NEWEST_FIRST},
        {"$lookup": {"from": USERS, "localField": "channel", "foreignField": "_id", "as": "channel"}},
        {"$unwind": "$channel"},
    ]


def channel_subscribers_pipeline(channel_id: ObjectId) -> List[Dict[str, Any]]:
    return [
        {"$match": {"channel": channel_id}},
        {"$sort": NEWEST_FIRST},
        {"$lookup": {"from": USERS, "localField": "subscriber", "foreignField": "_id", "as": "subscriber"}},
        {"$unwind": "$subscriber"},
    ]


# -------------------- Pagination --------------------

def page_params(page: Optional[int], limit: Optional[int]) -> Dict[str, int]:
    page = 1 if page is None else page
    limit = DEFAULT_PAGE_LIMIT if limit is None else limit
    if page < 1:
        raise ApiError(400, "page must be a positive integer")
    if limit < 1:
        raise ApiError(400, "limit must be a positive integer")
    limit = min(limit, MAX_PAGE_LIMIT)
    if (page - 1) * limit > MAX_SKIP:
        raise ApiError(400, "page is out of range")
    return {"page": page, "limit": limit}


def paginate_pipeline(match: Dict[str, Any], page: int, limit: int) -> List[Dict[str, Any]]:
    return [
        {"$match": match},
        {"$sort": NEWEST_FIRST},
        {"$skip": (page - 1) * limit},
        {"$limit": limit},
    ]


def paginate(collection: Collection, match: Dict[str, Any], page: Optional[int] = None,
             limit: Optional[int] = None) -> Dict[str, Any]:
    """Page through `collection` newest first.

    The total is a separate count, so under concurrent writes it may drift
    from the page contents.
    """
    params = page_params(page, limit)
    page, limit = params["page"], params["limit"]
    docs = list(collection.aggregate(paginate_pipeline(match, page, limit)))
    total = collection.count_documents(match)
    total_pages = ceil(total / limit) if total else 0
    return {
        "docs": docs,
        "totalDocs": total,
        "limit": limit,
        "page": page,
        "totalPages": total_pages,
        "hasPrevPage": page > 1,
        "hasNextPage": page < total_pages,
        "prevPage": page - 1 if page > 1 else None,
        "nextPage": page + 1 if page < total_pages else None,
    }
