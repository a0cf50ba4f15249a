import logging
from typing import Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from aggregations import paginate
from database import COMMENTS, LIKES, PLAYLISTS, USERS, VIDEOS, create_document, utcnow
from errors import ApiError
from media import LocalMediaStorage, format_duration
from relations import owner_filter
from schemas import Video, VideoUpdate
from users import add_to_watch_history
from utils import is_blank, objid

logger = logging.getLogger(__name__)


def create_video(db: Database, owner: dict, title: str, description: str, duration: str,
                 video_file_url: Optional[str], thumbnail_url: Optional[str]) -> dict:
    if is_blank(title, description, duration):
        raise ApiError(400, "Please enter all the fields")
    if not video_file_url:
        raise ApiError(400, "Please check if you have uploaded the video")
    if not thumbnail_url:
        raise ApiError(400, "Please check if you have uploaded the thumbnail image")

    video = Video(
        owner=owner["_id"],
        owner_name=owner["username"],
        title=title.strip(),
        description=description.strip(),
        thumbnail=thumbnail_url,
        video_file=video_file_url,
        duration=format_duration(duration.strip()),
    )
    doc = create_document(db, VIDEOS, video.model_dump())
    logger.info("Video %s uploaded by %s", doc["_id"], owner["username"])
    return doc


def get_video_by_id(db: Database, video_id: str, viewer: Optional[dict] = None) -> dict:
    """Fetch a video; a logged-in viewer counts as a view and lands in watch history."""
    vid = objid(video_id, "video id")
    if viewer is None:
        video = db[VIDEOS].find_one({"_id": vid})
    else:
        video = db[VIDEOS].find_one_and_update(
            {"_id": vid}, {"$inc": {"views": 1}}, return_document=ReturnDocument.AFTER
        )
    if not video:
        raise ApiError(404, "Video not found")
    if viewer is not None:
        add_to_watch_history(db, viewer["_id"], vid)
    return video


def update_video(db: Database, owner: dict, video_id: str, storage: LocalMediaStorage,
                 title: Optional[str] = None, description: Optional[str] = None,
                 thumbnail_url: Optional[str] = None, video_file_url: Optional[str] = None) -> dict:
    vid = objid(video_id, "video id")
    fields = VideoUpdate(
        title=title.strip() if title and title.strip() else None,
        description=description.strip() if description and description.strip() else None,
    )
    updates = fields.model_dump(exclude_none=True)
    if thumbnail_url:
        updates["thumbnail"] = thumbnail_url
    if video_file_url:
        updates["video_file"] = video_file_url
    if not updates:
        raise ApiError(400, "Please provide at least one field to update")
    updates["updated_at"] = utcnow()

    # Returns the pre-update document so replaced media can be cleaned up
    previous = db[VIDEOS].find_one_and_update(owner_filter(vid, owner["_id"]), {"$set": updates})
    if not previous:
        raise ApiError(404, "Video not found or could not be updated")
    if thumbnail_url and previous.get("thumbnail") != thumbnail_url:
        storage.delete(previous.get("thumbnail"))
    if video_file_url and previous.get("video_file") != video_file_url:
        storage.delete(previous.get("video_file"))
    return db[VIDEOS].find_one({"_id": vid})


def delete_video(db: Database, owner: dict, video_id: str, storage: LocalMediaStorage) -> dict:
    vid = objid(video_id, "video id")
    video = db[VIDEOS].find_one_and_delete(owner_filter(vid, owner["_id"]))
    if not video:
        raise ApiError(404, "Either the video was not created by you or it does not exist")

    storage.delete(video.get("video_file"))
    storage.delete(video.get("thumbnail"))
    comment_ids = [c["_id"] for c in db[COMMENTS].find({"video": vid}, {"_id": 1})]
    db[COMMENTS].delete_many({"video": vid})
    db[LIKES].delete_many({"video": vid})
    if comment_ids:
        db[LIKES].delete_many({"comment": {"$in": comment_ids}})
    db[PLAYLISTS].update_many({"videos": vid}, {"$pull": {"videos": vid}})
    db[USERS].update_many({"watch_history": vid}, {"$pull": {"watch_history": vid}})
    logger.info("Video %s deleted by %s", vid, owner["username"])
    return video


def list_all_videos(db: Database, page: Optional[int] = None, limit: Optional[int] = None) -> dict:
    return paginate(db[VIDEOS], {}, page, limit)


def list_user_videos(db: Database, user_id: str, page: Optional[int] = None, limit: Optional[int] = None) -> dict:
    return paginate(db[VIDEOS], {"owner": objid(user_id, "user id")}, page, limit)


def video_exists(db: Database, video_id: ObjectId) -> bool:
    return db[VIDEOS].find_one({"_id": video_id}, {"_id": 1}) is not None
