"""
Identity resolution and password helpers.

The caller's identity travels in the X-User-Id header; it is resolved to a
user document here and handed to the core operations as a plain argument.
"""
from typing import Optional

from fastapi import Depends, Header
from passlib.context import CryptContext
from pymongo.database import Database

from database import USERS, get_db
from errors import ApiError
from utils import is_valid_id, objid, public_user

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def resolve_user(db: Database, user_id: Optional[str]) -> Optional[dict]:
    if not user_id or not is_valid_id(user_id):
        return None
    return public_user(db[USERS].find_one({"_id": objid(user_id)}))


def get_current_user(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    db: Database = Depends(get_db),
) -> dict:
    if not x_user_id:
        raise ApiError(401, "Unauthorized request")
    user = resolve_user(db, x_user_id)
    if not user:
        raise ApiError(401, "Invalid user id")
    return user


def get_optional_user(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    db: Database = Depends(get_db),
) -> Optional[dict]:
    return resolve_user(db, x_user_id)
