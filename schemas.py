"""
Database Schemas for VidVerse

Each Pydantic model documents a MongoDB collection. References to other
documents are stored as ObjectIds; `created_at` / `updated_at` are added by
`database.create_document`.

Collections:
- User -> users
- Video -> videos
- Comment -> comments
- Like -> likes
- Subscription -> subscriptions
- Playlist -> playlists
- Tweet -> tweets
"""

from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field


TITLE_MAX_LENGTH = 120
COMMENT_MAX_LENGTH = 1000
TWEET_MAX_LENGTH = 280


class Document(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


class User(Document):
    username: str = Field(..., min_length=3, max_length=30, description="Unique, stored lowercased")
    email: EmailStr
    password_hash: str = Field(..., description="Bcrypt hash")
    full_name: str
    avatar: str = Field(..., description="Avatar URL")
    cover_image: str = ""
    watch_history: List[ObjectId] = Field(default_factory=list, description="Most recent first, each id once")
    refresh_token_hash: Optional[str] = None


class Video(Document):
    owner: ObjectId
    owner_name: str = Field(..., description="Denormalised owner username")
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str
    thumbnail: str
    video_file: str
    duration: str = Field(..., description="Opaque duration string, usually HH:MM:SS")
    views: int = 0


class Comment(Document):
    video: ObjectId
    owner: ObjectId
    content: str = Field(..., min_length=1, max_length=COMMENT_MAX_LENGTH)


class Like(Document):
    """Exactly one of video/comment/tweet is set; the others are stored as null."""
    liked_by: ObjectId
    video: Optional[ObjectId] = None
    comment: Optional[ObjectId] = None
    tweet: Optional[ObjectId] = None


class Subscription(Document):
    subscriber: ObjectId = Field(..., description="The user who subscribes")
    channel: ObjectId = Field(..., description="The user whose channel is subscribed to")


class Playlist(Document):
    name: str
    description: str = ""
    owner: ObjectId
    videos: List[ObjectId] = Field(default_factory=list, description="Ordered, each id at most once")


class Tweet(Document):
    owner: ObjectId
    owner_name: str
    content: str = Field(..., min_length=1, max_length=TWEET_MAX_LENGTH)


# -------------------- Partial updates --------------------
# Same limits as the collection models, checked before a $set

class VideoUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = None


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=COMMENT_MAX_LENGTH)


class TweetUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=TWEET_MAX_LENGTH)


# -------------------- Request bodies --------------------

class LoginRequest(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None
    password: str


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str


class UpdateAccountRequest(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None


class CommentRequest(BaseModel):
    content: Optional[str] = None


class TweetRequest(BaseModel):
    content: Optional[str] = None


class PlaylistRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    video_id: Optional[str] = None


# -------------------- View models --------------------

class OwnerSummary(BaseModel):
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar: Optional[str] = None
