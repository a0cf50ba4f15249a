import os
import tempfile
from datetime import datetime, timedelta, timezone

os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="vidverse-uploads-"))

import mongomock  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from database import PLAYLISTS, USERS, VIDEOS, create_document, ensure_indexes, get_db  # noqa: E402

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def db():
    database = mongomock.MongoClient()["vidverse_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    from main import app

    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, username, **extra):
    doc = {
        "username": username,
        "email": f"{username}@example.com",
        "password_hash": "not-a-real-hash",
        "full_name": username.title(),
        "avatar": f"/static/avatars/{username}.jpg",
        "cover_image": "",
        "watch_history": [],
    }
    doc.update(extra)
    return create_document(db, USERS, doc)


def make_video(db, owner, title="clip", minutes=0):
    doc = create_document(db, VIDEOS, {
        "owner": owner["_id"],
        "owner_name": owner["username"],
        "title": title,
        "description": f"{title} description",
        "thumbnail": f"/static/thumbnails/{title}.jpg",
        "video_file": f"/static/videos/{title}.mp4",
        "duration": "00:01:00",
        "views": 0,
    })
    created = BASE_TIME + timedelta(minutes=minutes)
    db[VIDEOS].update_one({"_id": doc["_id"]}, {"$set": {"created_at": created}})
    doc["created_at"] = created
    return doc


def make_playlist(db, owner, name="favourites", videos=None):
    return create_document(db, PLAYLISTS, {
        "name": name,
        "description": "",
        "owner": owner["_id"],
        "videos": list(videos or []),
    })


def auth_headers(user):
    return {"X-User-Id": str(user["_id"])}
