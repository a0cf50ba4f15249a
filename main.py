import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database

import comments
import database
import likes
import playlists
import subscriptions
import tweets
import users
import videos
from auth import get_current_user, get_optional_user
from config import CORS_ORIGINS, LOG_LEVEL, PORT, STATIC_URL
from database import get_db
from errors import ApiError
from media import LocalMediaStorage, get_storage
from responses import ApiResponse, register_error_handlers
from schemas import (
    ChangePasswordRequest,
    CommentRequest,
    LoginRequest,
    PlaylistRequest,
    TweetRequest,
    UpdateAccountRequest,
)

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        database.ensure_indexes(database.db)
    logger.info("VidVerse API started")
    yield


app = FastAPI(title="VidVerse API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount(STATIC_URL, StaticFiles(directory=get_storage().root), name="static")

register_error_handlers(app)


# -------------------- Basic Routes --------------------
@app.get("/")
def read_root():
    return {"message": "VidVerse Backend is running"}


@app.get("/test")
def test_database():
    info = {
        "backend": "running",
        "database_connected": False,
        "collections": []
    }
    try:
        if database.db is not None:
            info["database_connected"] = True
            info["collections"] = database.db.list_collection_names()
    except Exception as e:
        logger.warning("Database check failed: %s", e)
        info["error"] = str(e)
    return info


def _url(saved: Optional[dict]) -> Optional[str]:
    return saved["url"] if saved else None


def _discard(storage: LocalMediaStorage, *saved: Optional[dict]) -> None:
    """Remove files saved for a request that then failed."""
    for item in saved:
        storage.delete(_url(item))


healthcheck_router = APIRouter(prefix="/api/v1/healthcheck", tags=["healthcheck"])


@healthcheck_router.get("/")
def health_check():
    return ApiResponse(200, None, "Server is running")


# -------------------- Users --------------------
users_router = APIRouter(prefix="/api/v1/users", tags=["users"])


@users_router.post("/register")
async def register(
    username: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    full_name: str = Form(...),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    storage: LocalMediaStorage = Depends(get_storage),
):
    saved_avatar = await storage.save(avatar, "avatars")
    saved_cover = await storage.save(cover_image, "covers")
    try:
        user = users.register_user(
            db,
            username=username,
            email=email,
            password=password,
            full_name=full_name,
            avatar=_url(saved_avatar),
            cover_image=_url(saved_cover),
        )
    except Exception:
        _discard(storage, saved_avatar, saved_cover)
        raise
    return ApiResponse(201, user, "User successfully registered")


@users_router.post("/login")
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    user = users.login_user(db, payload.password, email=payload.email, username=payload.username)
    # Clients send this id back in the X-User-Id header
    return ApiResponse(200, {"user": user}, "User logged in successfully")


@users_router.post("/logout")
def logout(user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    users.logout_user(db, user)
    return ApiResponse(200, {}, "User logged out successfully")


@users_router.get("/current-user")
def current_user(user: dict = Depends(get_current_user)):
    return ApiResponse(200, user, "Current user fetched successfully")


@users_router.post("/change-password")
def change_password(payload: ChangePasswordRequest, user: dict = Depends(get_current_user),
                    db: Database = Depends(get_db)):
    users.change_password(db, user, payload.old_password, payload.new_password)
    return ApiResponse(200, {}, "Password changed successfully")


@users_router.patch("/update-account")
def update_account(payload: UpdateAccountRequest, user: dict = Depends(get_current_user),
                   db: Database = Depends(get_db)):
    updated = users.update_account(db, user, full_name=payload.full_name, email=payload.email)
    return ApiResponse(200, updated, "Account details updated successfully")


@users_router.get("/c/{username}")
def channel_profile(username: str, viewer: Optional[dict] = Depends(get_optional_user),
                    db: Database = Depends(get_db)):
    profile = users.get_channel_profile(db, username, viewer["_id"] if viewer else None)
    if not profile:
        return ApiResponse(200, [], "Channel does not exist")
    return ApiResponse(200, profile, "Channel fetched successfully")


@users_router.get("/history")
def watch_history(user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    history = users.get_watch_history(db, user["_id"])
    return ApiResponse(200, history, "Watch history fetched successfully")


# -------------------- Videos --------------------
videos_router = APIRouter(prefix="/api/v1/videos", tags=["videos"])


@videos_router.post("/create-video")
async def create_video(
    title: str = Form(...),
    description: str = Form(...),
    duration: str = Form(...),
    video_file: UploadFile = File(...),
    thumbnail: UploadFile = File(...),
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    storage: LocalMediaStorage = Depends(get_storage),
):
    saved_video = await storage.save(video_file, "videos")
    saved_thumb = await storage.save(thumbnail, "thumbnails")
    try:
        video = videos.create_video(
            db, user, title, description, duration,
            _url(saved_video),
            _url(saved_thumb),
        )
    except Exception:
        _discard(storage, saved_video, saved_thumb)
        raise
    return ApiResponse(201, video, "Video uploaded successfully")


@videos_router.get("/v/{video_id}")
def get_video(video_id: str, viewer: Optional[dict] = Depends(get_optional_user), db: Database = Depends(get_db)):
    video = videos.get_video_by_id(db, video_id, viewer)
    video["likesCount"] = likes.count_likes(db, "video", video["_id"])
    return ApiResponse(200, video, "Video fetched successfully")


@videos_router.patch("/v/{video_id}")
async def update_video(
    video_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    video_file: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    storage: LocalMediaStorage = Depends(get_storage),
):
    saved_video = await storage.save(video_file, "videos")
    saved_thumb = await storage.save(thumbnail, "thumbnails")
    try:
        video = videos.update_video(
            db, user, video_id, storage,
            title=title,
            description=description,
            thumbnail_url=_url(saved_thumb),
            video_file_url=_url(saved_video),
        )
    except Exception:
        _discard(storage, saved_video, saved_thumb)
        raise
    return ApiResponse(200, video, "Video updated successfully")


@videos_router.delete("/v/{video_id}")
def delete_video(video_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db),
                 storage: LocalMediaStorage = Depends(get_storage)):
    video = videos.delete_video(db, user, video_id, storage)
    return ApiResponse(200, video["video_file"], "Video deleted successfully")


@videos_router.get("/u/{user_id}")
def user_videos(user_id: str, page: Optional[int] = None, limit: Optional[int] = None,
                db: Database = Depends(get_db)):
    result = videos.list_user_videos(db, user_id, page, limit)
    return ApiResponse(200, result, "User videos fetched successfully")


dashboard_router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@dashboard_router.get("/all-videos")
def all_videos(page: Optional[int] = None, limit: Optional[int] = None, db: Database = Depends(get_db)):
    result = videos.list_all_videos(db, page, limit)
    return ApiResponse(200, result, "All videos fetched successfully")


# -------------------- Comments --------------------
comments_router = APIRouter(prefix="/api/v1/comments", tags=["comments"])


@comments_router.get("/c/{video_id}")
def video_comments(video_id: str, page: Optional[int] = None, limit: Optional[int] = None,
                   db: Database = Depends(get_db)):
    result = comments.list_video_comments(db, video_id, page, limit)
    return ApiResponse(200, result, "All comments fetched successfully")


@comments_router.post("/c/{video_id}")
def add_comment(video_id: str, payload: CommentRequest, user: dict = Depends(get_current_user),
                db: Database = Depends(get_db)):
    comment = comments.add_comment(db, user, video_id, payload.content)
    return ApiResponse(201, comment, "Comment created successfully")


@comments_router.patch("/u/{comment_id}")
def update_comment(comment_id: str, payload: CommentRequest, user: dict = Depends(get_current_user),
                   db: Database = Depends(get_db)):
    comment = comments.update_comment(db, user, comment_id, payload.content)
    return ApiResponse(200, comment, "Comment updated successfully")


@comments_router.delete("/u/{comment_id}")
def delete_comment(comment_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    comment = comments.delete_comment(db, user, comment_id)
    return ApiResponse(200, comment, "Comment deleted successfully")


# -------------------- Likes --------------------
likes_router = APIRouter(prefix="/api/v1/likes", tags=["likes"])

LIKE_TOGGLES = {
    "v": ("Video", likes.toggle_video_like),
    "c": ("Comment", likes.toggle_comment_like),
    "t": ("Tweet", likes.toggle_tweet_like),
}


@likes_router.post("/toggle/{kind}/{target_id}")
def toggle_like(kind: str, target_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    if kind not in LIKE_TOGGLES:
        raise ApiError(404, "Unknown like target")
    label, toggle = LIKE_TOGGLES[kind]
    result = toggle(db, user, target_id)
    if result["liked"]:
        return ApiResponse(201, result["like"], f"{label} liked successfully")
    return ApiResponse(200, result["like"], f"{label} unliked successfully")


@likes_router.get("/liked-videos")
def liked_videos(user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    return ApiResponse(200, likes.get_liked(db, user, "video"), "Liked videos retrieved")


@likes_router.get("/liked-comments")
def liked_comments(user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    return ApiResponse(200, likes.get_liked(db, user, "comment"), "Liked comments retrieved")


@likes_router.get("/liked-tweets")
def liked_tweets(user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    return ApiResponse(200, likes.get_liked(db, user, "tweet"), "Liked tweets retrieved")


# -------------------- Subscriptions --------------------
subscriptions_router = APIRouter(prefix="/api/v1/subscription", tags=["subscriptions"])


@subscriptions_router.post("/c/{channel_id}")
def toggle_subscription(channel_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    result = subscriptions.toggle_subscription(db, user, channel_id)
    if result["subscribed"]:
        return ApiResponse(201, result["subscription"], "Subscribed successfully")
    return ApiResponse(200, result["subscription"], "Unsubscribed successfully")


@subscriptions_router.get("/check/{channel_id}")
def check_subscription(channel_id: str, viewer: Optional[dict] = Depends(get_optional_user),
                       db: Database = Depends(get_db)):
    subscribed = subscriptions.is_subscribed(db, viewer, channel_id)
    return ApiResponse(200, {"isSubscribed": subscribed}, "Subscription status fetched")


@subscriptions_router.get("/u/{username}")
def subscribed_channels(username: str, db: Database = Depends(get_db)):
    result = subscriptions.get_subscribed_channels(db, username)
    return ApiResponse(200, result, "Subscribed channels fetched successfully")


@subscriptions_router.get("/subscribers/{channel_id}")
def channel_subscribers(channel_id: str, db: Database = Depends(get_db)):
    result = subscriptions.get_channel_subscribers(db, channel_id)
    return ApiResponse(200, result, "Subscribers fetched successfully")


@subscriptions_router.get("/all-channels")
def all_channels(db: Database = Depends(get_db)):
    return ApiResponse(200, users.get_all_channels(db), "Successfully fetched all channels")


# -------------------- Playlists --------------------
playlists_router = APIRouter(prefix="/api/v1/playlist", tags=["playlists"])


@playlists_router.post("/create-playlist")
def create_playlist(payload: PlaylistRequest, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    playlist = playlists.create_playlist(db, user, payload.name, payload.description, payload.video_id)
    return ApiResponse(201, playlist, "Playlist created successfully")


@playlists_router.get("/get-user-playlist")
def user_playlists(user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    return ApiResponse(200, playlists.get_user_playlists(db, str(user["_id"])), "Playlists fetched successfully")


@playlists_router.get("/p/{playlist_id}")
def get_playlist(playlist_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    detail = playlists.get_playlist_by_id(db, playlist_id)
    if not detail:
        return ApiResponse(200, [], "Playlist does not exist")
    return ApiResponse(200, detail, "Playlist details fetched successfully")


@playlists_router.patch("/p/{playlist_id}")
def update_playlist(playlist_id: str, payload: PlaylistRequest, user: dict = Depends(get_current_user),
                    db: Database = Depends(get_db)):
    playlist = playlists.update_playlist(db, user, playlist_id, payload.name, payload.description)
    return ApiResponse(200, playlist, "Playlist details updated successfully")


@playlists_router.delete("/p/{playlist_id}")
def delete_playlist(playlist_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    playlist = playlists.delete_playlist(db, user, playlist_id)
    return ApiResponse(200, playlist["name"], "Playlist deleted successfully")


@playlists_router.patch("/add/{video_id}/{playlist_id}")
def add_video(video_id: str, playlist_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    video_ids = playlists.add_video_to_playlist(db, user, video_id, playlist_id)
    return ApiResponse(200, video_ids, "Video added successfully")


@playlists_router.patch("/remove/{video_id}/{playlist_id}")
def remove_video(video_id: str, playlist_id: str, user: dict = Depends(get_current_user),
                 db: Database = Depends(get_db)):
    video_ids = playlists.remove_video_from_playlist(db, user, video_id, playlist_id)
    return ApiResponse(200, video_ids, "Video removed successfully")


# -------------------- Tweets --------------------
tweets_router = APIRouter(prefix="/api/v1/tweets", tags=["tweets"])


@tweets_router.post("/create-tweets")
def create_tweet(payload: TweetRequest, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    return ApiResponse(201, tweets.create_tweet(db, user, payload.content), "Tweet created successfully")


@tweets_router.get("/user/{user_id}")
def user_tweets(user_id: str, db: Database = Depends(get_db)):
    return ApiResponse(200, tweets.get_user_tweets(db, user_id), "Tweets fetched successfully")


@tweets_router.get("/all-tweets")
def all_tweets(limit: Optional[int] = None, db: Database = Depends(get_db)):
    return ApiResponse(200, tweets.get_all_tweets(db, limit), "Tweets fetched successfully")


@tweets_router.patch("/t/{tweet_id}")
def update_tweet(tweet_id: str, payload: TweetRequest, user: dict = Depends(get_current_user),
                 db: Database = Depends(get_db)):
    return ApiResponse(200, tweets.update_tweet(db, user, tweet_id, payload.content), "Tweet updated successfully")


@tweets_router.delete("/t/{tweet_id}")
def delete_tweet(tweet_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    tweets.delete_tweet(db, user, tweet_id)
    return ApiResponse(200, None, "Tweet deleted successfully")


for router in (
    healthcheck_router,
    users_router,
    videos_router,
    dashboard_router,
    comments_router,
    likes_router,
    subscriptions_router,
    playlists_router,
    tweets_router,
):
    app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
