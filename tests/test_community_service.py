import pytest

from services import community_service, notification_service
from services.errors import NotFoundError, ValidationError
from services.puremind_db import create_user


@pytest.fixture
async def people(db):
    await create_user("ana", "ana@example.com", full_name="Ana")
    await create_user("ben", "ben@example.com", full_name="Ben")
    return "ana", "ben"


async def _titles(user_id):
    listing = await notification_service.list_notifications(user_id)
    return [n["title"] for n in listing["notifications"]]


async def test_create_post_attaches_author(people):
    post = await community_service.create_post("ana", "  First steps ", "Day one.", tags=["recovery"])
    assert post["title"] == "First steps"
    assert post["author"] == {"id": "ana", "full_name": "Ana"}
    assert post["likes"] == 0

    with pytest.raises(ValidationError):
        await community_service.create_post("ana", "", "body")
    with pytest.raises(ValidationError):
        await community_service.create_post("ana", "t", "body", metadata={"privacy": "friends"})


async def test_filters_and_tags(people):
    quiet = await community_service.create_post("ana", "Quiet", "x", tags=["calm", "sleep"])
    loud = await community_service.create_post("ben", "Loud", "y", tags=["calm"], metadata={"featured": True})
    await community_service.toggle_like("ana", loud["id"])

    popular = await community_service.list_posts("popular")
    assert [p["id"] for p in popular] == [loud["id"], quiet["id"]]
    assert [p["id"] for p in await community_service.list_posts("featured")] == [loud["id"]]
    assert [p["id"] for p in await community_service.list_posts(tag="sleep")] == [quiet["id"]]
    with pytest.raises(ValidationError):
        await community_service.list_posts("trending")

    assert await community_service.get_popular_tags() == [{"tag": "calm", "count": 2}, {"tag": "sleep", "count": 1}]


def test_popular_tags_limit():
    posts = [{"tags": [f"t{i}"] * (20 - i)} for i in range(12)]
    ranked = community_service.popular_tags(posts)
    assert len(ranked) == 10
    assert ranked[0] == {"tag": "t0", "count": 20}


async def test_only_author_edits_or_deletes(people):
    post = await community_service.create_post("ana", "Mine", "body")
    with pytest.raises(NotFoundError):
        await community_service.update_post("ben", post["id"], {"title": "Hijacked"})
    with pytest.raises(NotFoundError):
        await community_service.delete_post("ben", post["id"])

    updated = await community_service.update_post("ana", post["id"], {"title": "Renamed", "likes": 999})
    assert updated["title"] == "Renamed"
    assert updated["likes"] == 0

    await community_service.add_comment("ben", post["id"], "Nice")
    await community_service.toggle_like("ben", post["id"])
    await community_service.delete_post("ana", post["id"])
    assert await community_service.list_comments(post["id"]) == []
    assert not await community_service.has_liked("ben", post["id"])


async def test_like_toggles_and_notifies_author(people):
    post = await community_service.create_post("ana", "Gratitude", "body")

    liked = await community_service.toggle_like("ben", post["id"])
    assert liked == {"post_id": post["id"], "liked": True, "likes": 1}
    assert await community_service.has_liked("ben", post["id"])

    unliked = await community_service.toggle_like("ben", post["id"])
    assert unliked["liked"] is False
    assert unliked["likes"] == 0

    await community_service.toggle_like("ana", post["id"])
    assert await _titles("ana") == ["New Like ❤️"]
    assert await _titles("ben") == []


async def test_comments_count_and_notify(people):
    post = await community_service.create_post("ana", "Sleep", "body")
    comment = await community_service.add_comment("ben", post["id"], "  Same here  ")
    await community_service.add_comment("ana", post["id"], "Thanks!")

    assert comment["content"] == "Same here"
    assert comment["author"]["full_name"] == "Ben"
    assert (await community_service.get_post(post["id"]))["comments_count"] == 2
    assert {c["content"] for c in await community_service.list_comments(post["id"])} == {"Same here", "Thanks!"}
    assert await _titles("ana") == ["New Comment 💬"]

    with pytest.raises(NotFoundError):
        await community_service.delete_comment("ana", comment["id"])
    await community_service.delete_comment("ben", comment["id"])
    assert (await community_service.get_post(post["id"]))["comments_count"] == 1

    with pytest.raises(ValidationError):
        await community_service.add_comment("ben", post["id"], "   ")


async def test_follow_rules(people):
    with pytest.raises(ValidationError):
        await community_service.follow("ana", "ana")

    await community_service.follow("ana", "ben")
    with pytest.raises(ValidationError):
        await community_service.follow("ana", "ben")

    assert await community_service.is_following("ana", "ben")
    assert [f["following"]["full_name"] for f in await community_service.list_following("ana")] == ["Ben"]
    assert [f["follower"]["full_name"] for f in await community_service.list_followers("ben")] == ["Ana"]
    assert await _titles("ben") == ["New Follower"]

    assert await community_service.unfollow("ana", "ben")
    assert not await community_service.unfollow("ana", "ben")


async def test_direct_messages(people):
    with pytest.raises(ValidationError):
        await community_service.send_message("ana", "ana", "hi me")
    with pytest.raises(ValidationError):
        await community_service.send_message("ana", "ben", "  ")

    sent = await community_service.send_message("ana", "ben", "How are you holding up?")
    assert await _titles("ben") == ["New message from Ana"]

    inbox = await community_service.list_messages("ben")
    assert inbox["unread_count"] == 1
    assert inbox["messages"][0]["sender"]["full_name"] == "Ana"
    assert (await community_service.list_messages("ana"))["unread_count"] == 0

    with pytest.raises(NotFoundError):
        await community_service.mark_message_read("ana", sent["id"])
    await community_service.mark_message_read("ben", sent["id"])
    assert (await community_service.list_messages("ben"))["unread_count"] == 0

    with pytest.raises(NotFoundError):
        await community_service.delete_message("ben", sent["id"])
    await community_service.delete_message("ana", sent["id"])
    assert (await community_service.list_messages("ben"))["messages"] == []


async def test_notification_failure_does_not_block_social_actions(people, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("mongo down")

    monkeypatch.setattr(notification_service, "create_notification", broken)
    post = await community_service.create_post("ana", "Resilience", "body")
    assert (await community_service.toggle_like("ben", post["id"]))["liked"] is True
