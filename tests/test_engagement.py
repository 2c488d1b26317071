"""
Engagement ledger and notification queries.

Likes must be idempotent in both directions and ``total_likes`` must
always equal the number of like notifications on the blog.  Comments move
two counters, push a reference onto the blog and notify its author.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from blogsphere.errors import NotFoundError, ValidationError
from blogsphere.models import Blog, Comment, Notification, NotificationType
from blogsphere.schemas import BlogDraft
from blogsphere.services import engagement_service, notification_service
from blogsphere.store import DocumentStore


async def _publish(db: AsyncSession, lifecycle, author_id: int, title: str = "Engaging Post") -> str:
    created = await lifecycle.create_or_update(
        db, author_id, BlogDraft(title=title, des="desc", content=[], tags=["talk"])
    )
    return created["id"]


async def _blog(db: AsyncSession, blog_id: str, load=()) -> Blog:
    db.expunge_all()
    return await DocumentStore(db).find_one(Blog, blog_id=blog_id, load=load)


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_like_then_unlike(db_session: AsyncSession, lifecycle, make_user):
    author = await make_user("writer")
    fan = await make_user("fan")
    blog_id = await _publish(db_session, lifecycle, author)

    liked = await engagement_service.set_liked(db_session, fan, blog_id, True)
    assert liked == {"liked_by_user": True, "total_likes": 1}
    assert await engagement_service.is_liked(db_session, fan, blog_id) is True

    unliked = await engagement_service.set_liked(db_session, fan, blog_id, False)
    assert unliked == {"liked_by_user": False, "total_likes": 0}
    assert await engagement_service.is_liked(db_session, fan, blog_id) is False


@pytest.mark.asyncio
async def test_like_is_idempotent(db_session: AsyncSession, lifecycle, make_user):
    author = await make_user("writer")
    fan = await make_user("fan")
    blog_id = await _publish(db_session, lifecycle, author)

    for _ in range(3):
        result = await engagement_service.set_liked(db_session, fan, blog_id, True)
        assert result["total_likes"] == 1

    blog = await _blog(db_session, blog_id)
    assert blog.total_likes == 1


@pytest.mark.asyncio
async def test_like_that_loses_a_race_is_already_liked(db_session: AsyncSession, lifecycle, make_user, monkeypatch):
    author = await make_user("writer")
    fan = await make_user("fan")
    blog_id = await _publish(db_session, lifecycle, author)
    await engagement_service.set_liked(db_session, fan, blog_id, True)

    # A concurrent request passed the existence check before this like was
    # written; the unique like index is what stops it.
    async def never_exists(self, model, *criteria, **equals):
        return False

    monkeypatch.setattr(DocumentStore, "exists", never_exists)
    result = await engagement_service.set_liked(db_session, fan, blog_id, True)
    monkeypatch.undo()

    assert result == {"liked_by_user": True, "total_likes": 1}
    blog = await _blog(db_session, blog_id)
    assert blog.total_likes == 1
    likes = await DocumentStore(db_session).count(
        Notification, user_id=fan, blog_id=blog.id, type=NotificationType.LIKE
    )
    assert likes == 1
    assert await DocumentStore(db_session).count(Notification, type=NotificationType.LIKE) == 1


@pytest.mark.asyncio
async def test_unlike_without_like_is_noop(db_session: AsyncSession, lifecycle, make_user):
    author = await make_user("writer")
    fan = await make_user("fan")
    blog_id = await _publish(db_session, lifecycle, author)

    result = await engagement_service.set_liked(db_session, fan, blog_id, False)
    assert result == {"liked_by_user": False, "total_likes": 0}

    await engagement_service.set_liked(db_session, fan, blog_id, True)
    await engagement_service.set_liked(db_session, fan, blog_id, False)
    result = await engagement_service.set_liked(db_session, fan, blog_id, False)
    assert result["total_likes"] == 0


@pytest.mark.asyncio
async def test_total_likes_counts_distinct_users(db_session: AsyncSession, lifecycle, make_user):
    author = await make_user("writer")
    fans = [await make_user(f"fan{i}") for i in range(3)]
    blog_id = await _publish(db_session, lifecycle, author)

    for fan in fans:
        await engagement_service.set_liked(db_session, fan, blog_id, True)
    await engagement_service.set_liked(db_session, fans[0], blog_id, True)
    await engagement_service.set_liked(db_session, fans[1], blog_id, False)

    blog = await _blog(db_session, blog_id)
    likes = await DocumentStore(db_session).count(
        Notification, blog_id=blog.id, type=NotificationType.LIKE
    )
    assert blog.total_likes == likes == 2


@pytest.mark.asyncio
async def test_like_unknown_blog(db_session: AsyncSession, make_user):
    fan = await make_user("fan")
    with pytest.raises(NotFoundError):
        await engagement_service.set_liked(db_session, fan, "missing", True)
    with pytest.raises(NotFoundError):
        await engagement_service.is_liked(db_session, fan, "missing")


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_comment_updates_counters_and_notifies(db_session: AsyncSession, lifecycle, make_user):
    author = await make_user("writer")
    reader = await make_user("reader")
    blog_id = await _publish(db_session, lifecycle, author)

    result = await engagement_service.add_comment(db_session, reader, blog_id, author, "Nice post!")
    assert result["comment"] == "Nice post!"
    assert result["blog_author"] == author
    assert result["commented_by"]["username"] == "reader"
    assert result["is_reply"] is False
    assert result["children"] == []

    blog = await _blog(db_session, blog_id, load=("comments",))
    assert blog.total_comments == 1
    assert blog.total_parent_comments == 1
    assert [c.id for c in blog.comments] == [result["id"]]

    notification = await DocumentStore(db_session).find_one(Notification, type=NotificationType.COMMENT)
    assert notification.notification_for_id == author
    assert notification.user_id == reader
    assert notification.comment_id == result["id"]


@pytest.mark.asyncio
async def test_comments_are_pushed_in_order(db_session: AsyncSession, lifecycle, make_user):
    author = await make_user("writer")
    reader = await make_user("reader")
    blog_id = await _publish(db_session, lifecycle, author)

    ids = [
        (await engagement_service.add_comment(db_session, reader, blog_id, author, f"#{i}"))["id"]
        for i in range(3)
    ]
    blog = await _blog(db_session, blog_id, load=("comments",))
    assert [c.id for c in blog.comments] == ids
    assert blog.total_comments == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   \n\t"])
async def test_add_comment_rejects_blank_text(db_session: AsyncSession, lifecycle, make_user, text):
    author = await make_user("writer")
    blog_id = await _publish(db_session, lifecycle, author)

    with pytest.raises(ValidationError) as excinfo:
        await engagement_service.add_comment(db_session, author, blog_id, author, text)
    assert excinfo.value.field == "comment"
    assert await DocumentStore(db_session).count(Comment) == 0


@pytest.mark.asyncio
async def test_add_comment_wrong_author_is_not_found(db_session: AsyncSession, lifecycle, make_user):
    author = await make_user("writer")
    other = await make_user("other")
    blog_id = await _publish(db_session, lifecycle, author)

    with pytest.raises(NotFoundError):
        await engagement_service.add_comment(db_session, other, blog_id, other, "Hi")
    with pytest.raises(NotFoundError):
        await engagement_service.add_comment(db_session, other, "missing", author, "Hi")

    blog = await _blog(db_session, blog_id)
    assert blog.total_comments == 0


@pytest.mark.asyncio
async def test_list_comments_oldest_first_with_skip(db_session: AsyncSession, lifecycle, make_user):
    author = await make_user("writer")
    reader = await make_user("reader")
    blog_id = await _publish(db_session, lifecycle, author)
    for i in range(7):
        await engagement_service.add_comment(db_session, reader, blog_id, author, f"comment {i}")

    first_page = await engagement_service.list_comments(db_session, blog_id)
    assert [c["comment"] for c in first_page] == [f"comment {i}" for i in range(5)]
    assert first_page[0]["commented_by"]["username"] == "reader"

    rest = await engagement_service.list_comments(db_session, blog_id, skip=5)
    assert [c["comment"] for c in rest] == ["comment 5", "comment 6"]


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_notifications_for_author(db_session: AsyncSession, lifecycle, make_user):
    author = await make_user("writer")
    reader = await make_user("reader")
    blog_id = await _publish(db_session, lifecycle, author)

    assert await notification_service.has_new_notifications(db_session, author) is False

    await engagement_service.set_liked(db_session, reader, blog_id, True)
    await engagement_service.add_comment(db_session, reader, blog_id, author, "Loved it")

    assert await notification_service.has_new_notifications(db_session, author) is True
    assert await notification_service.has_new_notifications(db_session, reader) is False
    assert await notification_service.count_notifications(db_session, author) == 2
    assert await notification_service.count_notifications(db_session, author, "like") == 1

    items = await notification_service.list_notifications(db_session, author, type="comment")
    assert len(items) == 1
    assert items[0]["comment"]["comment"] == "Loved it"
    assert items[0]["user"]["username"] == "reader"
    assert items[0]["blog"]["blog_id"] == blog_id


@pytest.mark.asyncio
async def test_own_actions_are_not_notifications(db_session: AsyncSession, lifecycle, make_user):
    author = await make_user("writer")
    blog_id = await _publish(db_session, lifecycle, author)

    await engagement_service.set_liked(db_session, author, blog_id, True)
    await engagement_service.add_comment(db_session, author, blog_id, author, "Self-promotion")

    assert await notification_service.has_new_notifications(db_session, author) is False
    assert await notification_service.count_notifications(db_session, author) == 0


@pytest.mark.asyncio
async def test_unknown_notification_filter(db_session: AsyncSession, make_user):
    user = await make_user("writer")
    with pytest.raises(ValidationError) as excinfo:
        await notification_service.list_notifications(db_session, user, type="follow")
    assert excinfo.value.field == "filter"
