from typing import Optional

from pymongo import ReturnDocument
from pymongo.database import Database

from aggregations import paginate
from database import COMMENTS, LIKES, create_document, utcnow
from errors import ApiError
from relations import owner_filter
from schemas import Comment, CommentUpdate
from utils import is_blank, objid
from videos import video_exists


def list_video_comments(db: Database, video_id: str, page: Optional[int] = None, limit: Optional[int] = None) -> dict:
    vid = objid(video_id, "video id")
    return paginate(db[COMMENTS], {"video": vid}, page, limit)


def add_comment(db: Database, owner: dict, video_id: str, content: Optional[str]) -> dict:
    vid = objid(video_id, "video id")
    if is_blank(content):
        raise ApiError(400, "Please enter comment, don't keep it blank")
    if not video_exists(db, vid):
        raise ApiError(404, "Video not found")
    comment = Comment(video=vid, owner=owner["_id"], content=content.strip())
    return create_document(db, COMMENTS, comment.model_dump())


def update_comment(db: Database, owner: dict, comment_id: str, content: Optional[str]) -> dict:
    cid = objid(comment_id, "comment id")
    if is_blank(content):
        raise ApiError(400, "Please enter content to update")
    fields = CommentUpdate(content=content.strip())
    if not db[COMMENTS].find_one({"_id": cid}, {"_id": 1}):
        raise ApiError(404, "Comment does not exist")
    updated = db[COMMENTS].find_one_and_update(
        owner_filter(cid, owner["_id"]),
        {"$set": {"content": fields.content, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise ApiError(404, "Comment not updated, either you are not the creator or it does not exist")
    return updated


def delete_comment(db: Database, owner: dict, comment_id: str) -> dict:
    cid = objid(comment_id, "comment id")
    if not db[COMMENTS].find_one({"_id": cid}, {"_id": 1}):
        raise ApiError(404, "Comment does not exist")
    deleted = db[COMMENTS].find_one_and_delete(owner_filter(cid, owner["_id"]))
    if not deleted:
        raise ApiError(404, "Comment not deleted, either you are not the creator or it does not exist")
    db[LIKES].delete_many({"comment": cid})
    return deleted
