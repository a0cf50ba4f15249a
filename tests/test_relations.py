import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

import likes
import subscriptions
from database import LIKES, SUBSCRIPTIONS, create_document
from errors import ApiError
from relations import owner_filter, toggle_relation
from tests.conftest import make_user, make_video


class RacingCollection:
    """Collection proxy whose delete always misses, as if another request is mid-toggle."""

    def __init__(self, inner):
        self._inner = inner

    def find_one_and_delete(self, *args, **kwargs):
        return None

    def __getattr__(self, name):
        return getattr(self._inner, name)


def test_owner_filter_matches_id_and_owner():
    rid, uid = ObjectId(), ObjectId()
    assert owner_filter(rid, uid) == {"_id": rid, "owner": uid}


def test_toggle_relation_alternates(db):
    key = likes.like_key(ObjectId(), "video", ObjectId())
    states = [toggle_relation(db[LIKES], key)[0] for _ in range(4)]
    assert states == [True, False, True, False]
    assert db[LIKES].count_documents({}) == 0


def test_duplicate_like_rows_are_rejected_by_the_store(db):
    key = likes.like_key(ObjectId(), "comment", ObjectId())
    db[LIKES].insert_one(dict(key))
    with pytest.raises(DuplicateKeyError):
        db[LIKES].insert_one(dict(key))


def test_concurrent_toggle_keeps_a_single_row(db):
    key = likes.like_key(ObjectId(), "video", ObjectId())
    create_document(db, LIKES, dict(key))

    related, row = toggle_relation(RacingCollection(db[LIKES]), key)

    assert related is True
    assert row["liked_by"] == key["liked_by"]
    assert db[LIKES].count_documents(key) == 1


class VanishingCollection(RacingCollection):
    """Racing proxy where the competing row is gone again by the time it is read back."""

    def find_one(self, *args, **kwargs):
        return None


def test_concurrent_toggle_still_returns_the_edge_when_it_vanishes(db):
    key = likes.like_key(ObjectId(), "video", ObjectId())
    create_document(db, LIKES, dict(key))

    related, row = toggle_relation(VanishingCollection(db[LIKES]), key)

    assert related is True
    assert row is not None
    assert row["liked_by"] == key["liked_by"] and row["video"] == key["video"]
    assert "_id" not in row


def test_like_key_sets_exactly_one_target():
    user, target = ObjectId(), ObjectId()
    key = likes.like_key(user, "tweet", target)
    assert key == {"liked_by": user, "video": None, "comment": None, "tweet": target}
    with pytest.raises(ValueError):
        likes.like_key(user, "playlist", target)


def test_toggle_video_like(db):
    alice = make_user(db, "alice")
    bob = make_user(db, "bob")
    video = make_video(db, alice)

    first = likes.toggle_video_like(db, bob, str(video["_id"]))
    assert first["liked"] is True
    assert likes.count_likes(db, "video", video["_id"]) == 1

    second = likes.toggle_video_like(db, bob, str(video["_id"]))
    assert second["liked"] is False
    assert likes.count_likes(db, "video", video["_id"]) == 0


def test_toggle_like_rejects_bad_and_missing_targets(db):
    bob = make_user(db, "bob")
    with pytest.raises(ApiError) as exc:
        likes.toggle_video_like(db, bob, "not-an-id")
    assert exc.value.status_code == 400

    with pytest.raises(ApiError) as exc:
        likes.toggle_comment_like(db, bob, str(ObjectId()))
    assert exc.value.status_code == 404
    assert db[LIKES].count_documents({}) == 0


def test_liked_videos_join_the_video(db):
    alice = make_user(db, "alice")
    video = make_video(db, alice, title="sunset")
    likes.toggle_video_like(db, alice, str(video["_id"]))

    liked = likes.get_liked(db, alice, "video")
    assert len(liked) == 1
    assert liked[0]["video"]["title"] == "sunset"
    assert likes.get_liked(db, alice, "comment") == []


def test_subscription_toggle_alternates(db):
    alice = make_user(db, "alice")
    bob = make_user(db, "bob")

    assert subscriptions.toggle_subscription(db, bob, str(alice["_id"]))["subscribed"] is True
    assert subscriptions.is_subscribed(db, bob, str(alice["_id"]))
    assert subscriptions.toggle_subscription(db, bob, str(alice["_id"]))["subscribed"] is False
    assert not subscriptions.is_subscribed(db, bob, str(alice["_id"]))
    assert db[SUBSCRIPTIONS].count_documents({}) == 0


@pytest.mark.parametrize("already_subscribed_elsewhere", [False, True])
def test_self_subscription_is_always_rejected(db, already_subscribed_elsewhere):
    alice = make_user(db, "alice")
    if already_subscribed_elsewhere:
        bob = make_user(db, "bob")
        subscriptions.toggle_subscription(db, alice, str(bob["_id"]))
    before = db[SUBSCRIPTIONS].count_documents({})

    for _ in range(2):
        with pytest.raises(ApiError) as exc:
            subscriptions.toggle_subscription(db, alice, str(alice["_id"]))
        assert exc.value.status_code == 400
    assert db[SUBSCRIPTIONS].count_documents({}) == before


def test_subscribe_to_unknown_channel(db):
    alice = make_user(db, "alice")
    with pytest.raises(ApiError) as exc:
        subscriptions.toggle_subscription(db, alice, str(ObjectId()))
    assert exc.value.status_code == 404
    assert exc.value.message == "Channel does not exist"


def test_is_subscribed_for_anonymous_or_bad_id(db):
    alice = make_user(db, "alice")
    assert subscriptions.is_subscribed(db, None, str(alice["_id"])) is False
    assert subscriptions.is_subscribed(db, alice, "nope") is False


def test_subscribed_channels_and_subscribers(db):
    alice = make_user(db, "alice")
    bob = make_user(db, "bob")
    carol = make_user(db, "carol")
    subscriptions.toggle_subscription(db, alice, str(bob["_id"]))
    subscriptions.toggle_subscription(db, alice, str(carol["_id"]))
    subscriptions.toggle_subscription(db, carol, str(bob["_id"]))

    result = subscriptions.get_subscribed_channels(db, "ALICE")
    assert result["countOfChannels"] == 2
    assert {c["username"] for c in result["channels"]} == {"bob", "carol"}
    assert all("password_hash" not in c for c in result["channels"])

    subscribers = subscriptions.get_channel_subscribers(db, str(bob["_id"]))
    assert {s["username"] for s in subscribers} == {"alice", "carol"}

    with pytest.raises(ApiError) as exc:
        subscriptions.get_subscribed_channels(db, "nobody")
    assert exc.value.status_code == 404
