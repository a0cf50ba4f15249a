from typing import List, Optional

from pymongo.database import Database

from aggregations import channel_subscribers_pipeline, subscribed_channels_pipeline
from database import SUBSCRIPTIONS, USERS
from errors import ApiError
from relations import toggle_relation
from schemas import Subscription
from utils import is_blank, is_valid_id, objid, public_user


def toggle_subscription(db: Database, subscriber: dict, channel_id: str) -> dict:
    channel = objid(channel_id, "channel id")
    if not db[USERS].find_one({"_id": channel}, {"_id": 1}):
        raise ApiError(404, "Channel does not exist")
    if channel == subscriber["_id"]:
        raise ApiError(400, "User cannot subscribe to their own channel")
    key = Subscription(subscriber=subscriber["_id"], channel=channel).model_dump()
    subscribed, row = toggle_relation(db[SUBSCRIPTIONS], key)
    return {"subscribed": subscribed, "subscription": row}


def is_subscribed(db: Database, subscriber: Optional[dict], channel_id: str) -> bool:
    if subscriber is None or not is_valid_id(channel_id):
        return False
    return db[SUBSCRIPTIONS].find_one({"subscriber": subscriber["_id"], "channel": objid(channel_id)}) is not None


def get_subscribed_channels(db: Database, username: str) -> dict:
    """Channels `username` subscribes to, with their count."""
    if is_blank(username):
        raise ApiError(400, "Invalid username")
    user = db[USERS].find_one({"username": username.strip().lower()}, {"username": 1})
    if not user:
        raise ApiError(404, "User does not exist")
    rows = list(db[SUBSCRIPTIONS].aggregate(subscribed_channels_pipeline(user["_id"])))
    channels = [public_user(r["channel"]) for r in rows]
    return {"_id": user["_id"], "username": user["username"], "countOfChannels": len(channels), "channels": channels}


def get_channel_subscribers(db: Database, channel_id: str) -> List[dict]:
    channel = objid(channel_id, "channel id")
    rows = db[SUBSCRIPTIONS].aggregate(channel_subscribers_pipeline(channel))
    return [public_user(r["subscriber"]) for r in rows]
