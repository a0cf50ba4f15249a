"""
Playlists: owner-checked edits and membership changes.

Every write filters on the owner as well as the id, so a request from
someone else fails exactly like a request for a playlist that does not
exist.
"""
import logging
from typing import List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from aggregations import playlist_detail_pipeline
from database import PLAYLISTS, create_document, utcnow
from errors import ApiError
from relations import owner_filter
from schemas import Playlist
from utils import objid
from videos import video_exists

logger = logging.getLogger(__name__)


def _in_playlist_order(playlist: dict) -> dict:
    by_id = {v["_id"]: v for v in playlist.get("video_details", [])}
    playlist["video_details"] = [by_id[v] for v in playlist.get("videos", []) if v in by_id]
    return playlist


def create_playlist(db: Database, owner: dict, name: Optional[str], description: Optional[str],
                    video_id: Optional[str] = None) -> dict:
    name = (name or "").strip()
    description = (description or "").strip()
    if not name and not description:
        raise ApiError(400, "Please enter name and description to create a playlist")
    videos: List[ObjectId] = []
    if video_id:
        vid = objid(video_id, "video id")
        if not video_exists(db, vid):
            raise ApiError(404, "Video does not exist")
        videos.append(vid)
    playlist = Playlist(name=name, description=description, owner=owner["_id"], videos=videos)
    return create_document(db, PLAYLISTS, playlist.model_dump())


def get_user_playlists(db: Database, user_id: str) -> List[dict]:
    rows = db[PLAYLISTS].aggregate(playlist_detail_pipeline({"owner": objid(user_id, "user id")}))
    return [_in_playlist_order(p) for p in rows]


def get_playlist_by_id(db: Database, playlist_id: str) -> List[dict]:
    """Playlist with its joined videos; empty list when the id matches nothing."""
    rows = db[PLAYLISTS].aggregate(playlist_detail_pipeline({"_id": objid(playlist_id, "playlist id")}))
    return [_in_playlist_order(p) for p in rows]


def update_playlist(db: Database, owner: dict, playlist_id: str, name: Optional[str] = None,
                    description: Optional[str] = None) -> dict:
    pid = objid(playlist_id, "playlist id")
    updates = {}
    if name and name.strip():
        updates["name"] = name.strip()
    if description and description.strip():
        updates["description"] = description.strip()
    if not updates:
        raise ApiError(400, "Nothing to update, please enter name or description to update the playlist")
    updates["updated_at"] = utcnow()
    updated = db[PLAYLISTS].find_one_and_update(
        owner_filter(pid, owner["_id"]), {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise ApiError(404, "Playlist not found or you are not its owner")
    return updated


def delete_playlist(db: Database, owner: dict, playlist_id: str) -> dict:
    pid = objid(playlist_id, "playlist id")
    deleted = db[PLAYLISTS].find_one_and_delete(owner_filter(pid, owner["_id"]))
    if not deleted:
        raise ApiError(404, "Playlist not found or you are not its owner")
    return deleted


def add_video_to_playlist(db: Database, owner: dict, video_id: str, playlist_id: str) -> List[ObjectId]:
    vid = objid(video_id, "video id")
    pid = objid(playlist_id, "playlist id")
    if not video_exists(db, vid):
        raise ApiError(404, "Video does not exist")
    playlist = db[PLAYLISTS].find_one({"_id": pid}, {"videos": 1})
    if not playlist:
        raise ApiError(404, "Playlist does not exist")
    if vid in playlist.get("videos", []):
        raise ApiError(400, "Video already exists in the playlist")

    # $ne keeps the add single-shot even if another request added it meanwhile
    query = {**owner_filter(pid, owner["_id"]), "videos": {"$ne": vid}}
    updated = db[PLAYLISTS].find_one_and_update(
        query,
        {"$push": {"videos": vid}, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise ApiError(404, "Video was not added to the playlist")
    logger.info("Video %s added to playlist %s", vid, pid)
    return updated["videos"]


def remove_video_from_playlist(db: Database, owner: dict, video_id: str, playlist_id: str) -> List[ObjectId]:
    vid = objid(video_id, "video id")
    pid = objid(playlist_id, "playlist id")
    playlist = db[PLAYLISTS].find_one({"_id": pid}, {"videos": 1})
    if not playlist:
        raise ApiError(404, "Playlist does not exist")
    if vid not in playlist.get("videos", []):
        raise ApiError(400, "Video does not exist in this playlist")

    updated = db[PLAYLISTS].find_one_and_update(
        owner_filter(pid, owner["_id"]),
        {"$pull": {"videos": vid}, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise ApiError(404, "Video was not removed from the playlist")
    return updated["videos"]
