"""
Local media storage.

Uploaded files are written under UPLOAD_DIR and served back through the
/static mount; the rest of the app only ever sees the returned URL.
"""
import logging
import os
from typing import Optional, Union

from bson import ObjectId
from fastapi import UploadFile

from config import STATIC_URL, UPLOAD_DIR

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = {"videos": ".mp4", "thumbnails": ".jpg", "avatars": ".jpg", "covers": ".jpg"}


def format_duration(seconds: Union[int, float, str]) -> str:
    """Render a number of seconds as HH:MM:SS; other strings pass through."""
    try:
        total = int(float(seconds))
    except (TypeError, ValueError):
        return str(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class LocalMediaStorage:
    def __init__(self, root: str = UPLOAD_DIR, base_url: str = STATIC_URL):
        self.root = root
        self.base_url = base_url.rstrip("/")
        for kind in DEFAULT_EXTENSIONS:
            os.makedirs(os.path.join(self.root, kind), exist_ok=True)

    async def save(self, upload: Optional[UploadFile], kind: str) -> Optional[dict]:
        if upload is None or not upload.filename:
            return None
        ext = os.path.splitext(upload.filename)[1] or DEFAULT_EXTENSIONS.get(kind, "")
        filename = f"{ObjectId()}{ext}"
        directory = os.path.join(self.root, kind)
        os.makedirs(directory, exist_ok=True)
        with open(os.path.join(directory, filename), "wb") as f:
            f.write(await upload.read())
        return {"url": f"{self.base_url}/{kind}/{filename}"}

    def path_for(self, url: Optional[str]) -> Optional[str]:
        if not url or not url.startswith(self.base_url + "/"):
            return None
        relative = url[len(self.base_url) + 1:]
        path = os.path.normpath(os.path.join(self.root, relative))
        if not path.startswith(os.path.normpath(self.root) + os.sep):
            return None
        return path

    def delete(self, url: Optional[str]) -> bool:
        path = self.path_for(url)
        if path is None or not os.path.exists(path):
            return False
        os.remove(path)
        logger.info("Deleted media %s", url)
        return True


storage = LocalMediaStorage()


def get_storage() -> LocalMediaStorage:
    return storage
