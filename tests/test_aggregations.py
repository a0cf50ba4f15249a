import pytest
from bson import ObjectId

import aggregations
import users
import videos
from database import SUBSCRIPTIONS, USERS, VIDEOS, create_document
from errors import ApiError
from tests.conftest import make_user, make_video


def subscribe(db, subscriber, channel):
    create_document(db, SUBSCRIPTIONS, {"subscriber": subscriber["_id"], "channel": channel["_id"]})


@pytest.fixture
def channel(db):
    alice = make_user(db, "alice")
    fans = [make_user(db, name) for name in ("bob", "carol", "dave")]
    for fan in fans:
        subscribe(db, fan, alice)
    subscribe(db, alice, fans[0])
    return alice, fans


def test_channel_profile_counts(db, channel):
    [profile] = users.get_channel_profile(db, "alice")
    assert profile["subscribersCount"] == 3
    assert profile["channelSubscriptionCount"] == 1
    assert profile["isSubscribed"] is False
    assert "subscribers" not in profile
    assert "password_hash" not in profile


def test_channel_profile_is_subscribed_for_viewer(db, channel):
    alice, fans = channel
    stranger = make_user(db, "erin")

    [seen_by_fan] = users.get_channel_profile(db, "Alice", fans[1]["_id"])
    [seen_by_stranger] = users.get_channel_profile(db, "alice", stranger["_id"])
    assert seen_by_fan["isSubscribed"] is True
    assert seen_by_stranger["isSubscribed"] is False


def test_channel_profile_for_unknown_username_is_empty(db, channel):
    assert users.get_channel_profile(db, "nobody") == []
    with pytest.raises(ApiError):
        users.get_channel_profile(db, "   ")


def test_watch_history_embeds_minimal_owner(db):
    alice = make_user(db, "alice", full_name="Alice Liddell")
    viewer = make_user(db, "viewer")
    first = make_video(db, alice, title="first")
    second = make_video(db, alice, title="second")
    for video in (first, second, first):
        users.add_to_watch_history(db, viewer["_id"], video["_id"])

    history = users.get_watch_history(db, viewer["_id"])

    assert [v["title"] for v in history] == ["first", "second"]
    assert history[0]["owner"] == {
        "full_name": "Alice Liddell",
        "username": "alice",
        "avatar": "/static/avatars/alice.jpg",
    }


def test_watch_history_owner_fields_are_projected_in_the_store(db):
    alice = make_user(db, "alice", password_hash="secret-hash", refresh_token_hash="token-hash")
    video = make_video(db, alice)

    pipeline = aggregations.watch_history_pipeline([video["_id"]])
    assert all("$lookup" not in stage for stage in pipeline)
    [row] = db[VIDEOS].aggregate(pipeline)
    assert row["owner"] == alice["_id"]

    owners = aggregations.owner_summaries(db[USERS], [alice["_id"]])
    assert set(owners[alice["_id"]]) == {"_id", "full_name", "username", "avatar"}


def test_watch_history_moves_repeats_to_front_and_is_capped(db, monkeypatch):
    monkeypatch.setattr(users, "WATCH_HISTORY_LIMIT", 3)
    alice = make_user(db, "alice")
    clips = [make_video(db, alice, title=f"c{i}") for i in range(4)]
    for clip in clips + [clips[1]]:
        users.add_to_watch_history(db, alice["_id"], clip["_id"])

    stored = db[USERS].find_one({"_id": alice["_id"]})["watch_history"]
    assert stored == [clips[1]["_id"], clips[3]["_id"], clips[2]["_id"]]
    assert [v["title"] for v in users.get_watch_history(db, alice["_id"])] == ["c1", "c3", "c2"]


def test_watch_history_skips_deleted_videos(db):
    alice = make_user(db, "alice")
    video = make_video(db, alice)
    users.add_to_watch_history(db, alice["_id"], ObjectId())
    users.add_to_watch_history(db, alice["_id"], video["_id"])

    assert [v["_id"] for v in users.get_watch_history(db, alice["_id"])] == [video["_id"]]
    assert users.get_watch_history(db, ObjectId()) == []


def test_pagination_totals(db):
    alice = make_user(db, "alice")
    for i in range(5):
        make_video(db, alice, title=f"v{i}", minutes=i)

    first = videos.list_all_videos(db, page=1, limit=2)
    last = videos.list_all_videos(db, page=3, limit=2)

    assert [v["title"] for v in first["docs"]] == ["v4", "v3"]
    assert first["totalDocs"] == 5
    assert first["totalPages"] == 3
    assert first["hasNextPage"] is True and first["nextPage"] == 2
    assert [v["title"] for v in last["docs"]] == ["v0"]
    assert last["totalDocs"] == 5
    assert last["hasNextPage"] is False and last["prevPage"] == 2


def test_pagination_defaults_and_limits(db):
    alice = make_user(db, "alice")
    bob = make_user(db, "bob")
    for i in range(3):
        make_video(db, alice, title=f"a{i}", minutes=i)
    make_video(db, bob, title="b0", minutes=10)

    page = videos.list_user_videos(db, str(alice["_id"]))
    assert page["page"] == 1
    assert page["limit"] == aggregations.DEFAULT_PAGE_LIMIT
    assert [v["title"] for v in page["docs"]] == ["a2", "a1", "a0"]

    capped = videos.list_all_videos(db, limit=10_000)
    assert capped["limit"] == aggregations.MAX_PAGE_LIMIT

    empty = videos.list_all_videos(db, page=9, limit=2)
    assert empty["docs"] == [] and empty["totalDocs"] == 4

    for bad in ({"page": 0}, {"limit": -1}, {"page": 10 ** 19}, {"page": 2 ** 62, "limit": 4}):
        with pytest.raises(ApiError) as exc:
            videos.list_all_videos(db, **bad)
        assert exc.value.status_code == 400


def test_paginate_pipeline_shape():
    match = {"owner": ObjectId()}
    assert aggregations.paginate_pipeline(match, page=3, limit=2) == [
        {"$match": match},
        {"$sort": {"created_at": -1, "_id": -1}},
        {"$skip": 4},
        {"$limit": 2},
    ]


def test_empty_collection_pages(db):
    result = aggregations.paginate(db[VIDEOS], {})
    assert result["docs"] == []
    assert result["totalPages"] == 0
    assert result["hasNextPage"] is False
