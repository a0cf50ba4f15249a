from typing import List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database

from database import LIKES, TWEETS, create_document, get_documents, utcnow
from errors import ApiError
from relations import owner_filter
from schemas import Tweet, TweetUpdate
from utils import is_blank, objid


def create_tweet(db: Database, owner: dict, content: Optional[str]) -> dict:
    if is_blank(content):
        raise ApiError(400, "Please enter a tweet")
    tweet = Tweet(owner=owner["_id"], owner_name=owner["username"], content=content.strip())
    return create_document(db, TWEETS, tweet.model_dump())


def get_user_tweets(db: Database, user_id: str) -> List[dict]:
    return get_documents(db, TWEETS, {"owner": objid(user_id, "user id")})


def get_all_tweets(db: Database, limit: Optional[int] = None) -> List[dict]:
    return get_documents(db, TWEETS, {}, limit)


def update_tweet(db: Database, owner: dict, tweet_id: str, content: Optional[str]) -> dict:
    tid = objid(tweet_id, "tweet id")
    if is_blank(content):
        raise ApiError(400, "Please enter content to update")
    fields = TweetUpdate(content=content.strip())
    updated = db[TWEETS].find_one_and_update(
        owner_filter(tid, owner["_id"]),
        {"$set": {"content": fields.content, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise ApiError(404, "Tweet not found or you are not its owner")
    return updated


def delete_tweet(db: Database, owner: dict, tweet_id: str) -> dict:
    tid = objid(tweet_id, "tweet id")
    deleted = db[TWEETS].find_one_and_delete(owner_filter(tid, owner["_id"]))
    if not deleted:
        raise ApiError(404, "Tweet not found or you are not its owner")
    db[LIKES].delete_many({"tweet": tid})
    return deleted
