"""
Tests for the Remote Store Client and the change feed.

Covers ordered selects, partial updates, the atomic counter increment,
timeouts, and in-order delivery of committed changes to subscribers.
"""

import asyncio

import pytest

from portfolio.errors import FetchError, NotFoundError, RemoteWriteError
from portfolio.store.feed import ChangeEvent, ChangeFeed, ChangeType


def photo_values(title="Dawn", likes=0):
    return {
        "title": title,
        "description": "First light over the bay",
        "image_url": f"https://example.com/{title}.jpg",
        "likes": likes,
    }


class TestSelectAndInsert:
    """Tests for insert and ordered select."""

    def test_insert_assigns_id_and_timestamps(self, run_store):
        """The store assigns id and created_at; submitted fields come back unchanged."""
        async def body(store):
            row = await store.insert("photos", photo_values())
            assert row["id"]
            assert row["created_at"] is not None
            assert row["created_at"].tzinfo is not None
            assert row["title"] == "Dawn"
            assert row["likes"] == 0

            rows = await store.select("photos")
            assert [r["id"] for r in rows] == [row["id"]]

        run_store(body)

    def test_select_is_newest_first_by_default(self, run_store):
        async def body(store):
            first = await store.insert("photos", photo_values("first"))
            second = await store.insert("photos", photo_values("second"))
            third = await store.insert("photos", photo_values("third"))

            newest_first = await store.select("photos")
            assert [r["id"] for r in newest_first] == [third["id"], second["id"], first["id"]]

            oldest_first = await store.select("photos", ascending=True)
            assert [r["id"] for r in oldest_first] == [first["id"], second["id"], third["id"]]

        run_store(body)

    def test_select_with_equality_filter(self, run_store):
        async def body(store):
            post = await store.insert("blog_posts", {"title": "Post", "content": "", "excerpt": "", "tags": []})
            other = await store.insert("blog_posts", {"title": "Other", "content": "", "excerpt": "", "tags": []})
            await store.insert("blog_comments", {"blog_post_id": post["id"], "author": "A", "content": "one"})
            await store.insert("blog_comments", {"blog_post_id": other["id"], "author": "B", "content": "two"})

            rows = await store.select("blog_comments", where={"blog_post_id": post["id"]})
            assert [r["content"] for r in rows] == ["one"]

        run_store(body)

    def test_unknown_column_is_rejected(self, run_store):
        async def body(store):
            with pytest.raises(RemoteWriteError):
                await store.insert("photos", {**photo_values(), "camera": "X100"})

        run_store(body)

    def test_get_missing_row_raises_not_found(self, run_store):
        async def body(store):
            with pytest.raises(NotFoundError) as exc_info:
                await store.get("photos", "missing")
            assert exc_info.value.table == "photos"
            assert exc_info.value.row_id == "missing"

        run_store(body)


class TestUpdateAndDelete:
    """Tests for partial updates and deletes."""

    def test_update_changes_only_given_fields(self, run_store):
        async def body(store):
            post = await store.insert("blog_posts", {
                "title": "Old", "content": "<p>Body</p>", "excerpt": "Short", "tags": ["a"],
            })
            updated = await store.update("blog_posts", post["id"], {"title": "New"})

            assert updated["title"] == "New"
            assert updated["content"] == "<p>Body</p>"
            assert updated["excerpt"] == "Short"
            assert updated["tags"] == ["a"]
            assert updated["updated_at"] >= post["updated_at"]

        run_store(body)

    def test_update_missing_row_raises_not_found(self, run_store):
        async def body(store):
            with pytest.raises(NotFoundError):
                await store.update("photos", "missing", {"title": "x"})

        run_store(body)

    def test_conditional_update_returns_none_when_condition_fails(self, run_store):
        async def body(store):
            msg = await store.insert("contact_messages", {
                "name": "Ada", "email": "ada@example.com", "message": "Hello there friend", "is_read": True,
            })
            assert await store.update(
                "contact_messages", msg["id"], {"is_read": True}, where={"is_read": False}
            ) is None

        run_store(body)

    def test_delete_returns_row_and_removes_it(self, run_store):
        async def body(store):
            row = await store.insert("photos", photo_values())
            deleted = await store.delete("photos", row["id"])
            assert deleted["id"] == row["id"]
            assert await store.select("photos") == []

        run_store(body)

    def test_delete_missing_row_raises_not_found(self, run_store):
        async def body(store):
            with pytest.raises(NotFoundError):
                await store.delete("photos", "missing")

        run_store(body)

    def test_delete_with_children_removes_both_and_publishes_after_commit(self, run_store):
        async def body(store):
            photo = await store.insert("photos", photo_values())
            for author in ("Ada", "Grace"):
                await store.insert("photo_comments", {"photo_id": photo["id"], "author": author, "content": "Nice"})
            photo_events, comment_events = [], []
            store.feed.subscribe("photos", on_change=photo_events.append)
            store.feed.subscribe("photo_comments", on_change=comment_events.append)

            row, children = await store.delete_with_children("photos", photo["id"], "photo_comments", "photo_id")
            await store.feed.flush()

            assert row["id"] == photo["id"]
            assert sorted(c["author"] for c in children) == ["Ada", "Grace"]
            assert await store.select("photos") == []
            assert await store.select("photo_comments") == []
            assert [e.type for e in photo_events] == [ChangeType.DELETE]
            assert sorted(e.old["author"] for e in comment_events) == ["Ada", "Grace"]

        run_store(body)

    def test_delete_with_children_of_missing_row(self, run_store):
        async def body(store):
            with pytest.raises(NotFoundError):
                await store.delete_with_children("photos", "missing", "photo_comments", "photo_id")

        run_store(body)


class TestIncrement:
    """Tests for the atomic counter increment."""

    def test_concurrent_increments_are_not_lost(self, run_store):
        """N concurrent increments end at initial + N."""
        async def body(store):
            row = await store.insert("photos", photo_values(likes=3))
            n = 10
            results = await asyncio.gather(*(store.increment("photos", row["id"], "likes") for _ in range(n)))

            final = await store.get("photos", row["id"])
            assert final["likes"] == 3 + n
            assert sorted(results) == list(range(4, 4 + n))

        run_store(body)

    def test_increment_missing_row_raises_not_found(self, run_store):
        async def body(store):
            with pytest.raises(NotFoundError):
                await store.increment("photos", "missing", "likes")

        run_store(body)

    def test_counters_only_move_forward(self, run_store):
        async def body(store):
            row = await store.insert("photos", photo_values())
            with pytest.raises(ValueError):
                await store.increment("photos", row["id"], "likes", amount=-1)

        run_store(body)


class TestTimeouts:
    """Tests for the request timeout."""

    def test_slow_read_becomes_fetch_error(self, run_store):
        async def body(store):
            with pytest.raises(FetchError, match="timed out"):
                await store._run(asyncio.sleep(1), FetchError, "slow select")

        run_store(body, timeout=0.01)

    def test_slow_write_becomes_remote_write_error(self, run_store):
        async def body(store):
            with pytest.raises(RemoteWriteError, match="timed out"):
                await store._run(asyncio.sleep(1), RemoteWriteError, "slow insert")

        run_store(body, timeout=0.01)


class TestChangeFeed:
    """Tests for change publication and delivery."""

    def test_writes_are_published_in_commit_order(self, run_store):
        async def body(store):
            events = []
            store.feed.subscribe("photos", on_change=events.append)

            row = await store.insert("photos", photo_values())
            await store.increment("photos", row["id"], "likes")
            await store.update("photos", row["id"], {"title": "Dusk"})
            await store.delete("photos", row["id"])
            await store.feed.flush()

            assert [e.type for e in events] == [
                ChangeType.INSERT, ChangeType.UPDATE, ChangeType.UPDATE, ChangeType.DELETE,
            ]
            assert events[0].new["title"] == "Dawn"
            assert events[1].new["likes"] == 1
            assert events[2].new["title"] == "Dusk"
            assert events[3].old["id"] == row["id"]
            assert events[3].new is None

        run_store(body)

    def test_events_only_reach_subscribers_of_their_table(self, run_store):
        async def body(store):
            photo_events, post_events = [], []
            store.feed.subscribe("photos", on_change=photo_events.append)
            store.feed.subscribe("blog_posts", on_change=post_events.append)

            await store.insert("photos", photo_values())
            await store.feed.flush()

            assert len(photo_events) == 1
            assert post_events == []

        run_store(body)

    def test_failing_handler_does_not_affect_others(self, run_store):
        async def body(store):
            received = []

            def broken(event):
                raise RuntimeError("handler bug")

            store.feed.subscribe("photos", on_insert=broken)
            store.feed.subscribe("photos", on_insert=received.append)

            await store.insert("photos", photo_values("one"))
            await store.insert("photos", photo_values("two"))
            await store.feed.flush()

            assert [e.new["title"] for e in received] == ["one", "two"]

        run_store(body)

    def test_async_handlers_are_awaited(self, run_store):
        async def body(store):
            seen = []

            async def handler(event):
                await asyncio.sleep(0)
                seen.append(event.record_id)

            store.feed.subscribe("photos", on_insert=handler)
            row = await store.insert("photos", photo_values())
            await store.feed.flush()
            assert seen == [row["id"]]

        run_store(body)

    def test_unsubscribe_stops_delivery(self, run_store):
        async def body(store):
            received = []
            subscription = store.feed.subscribe("photos", on_change=received.append)
            subscription.unsubscribe()
            subscription.unsubscribe()

            await store.insert("photos", photo_values())
            await store.feed.flush()

            assert received == []
            assert subscription.closed
            assert store.feed.subscriber_count("photos") == 0

        run_store(body)

    def test_payload_shape(self):
        async def body():
            feed = ChangeFeed()
            received = []
            feed.subscribe("photos", on_change=received.append)
            feed.publish(ChangeEvent("photos", ChangeType.INSERT, new={"id": "p1"}))
            await feed.flush()
            return received[0].to_payload()

        payload = asyncio.run(body())
        assert payload == {"table": "photos", "eventType": "INSERT", "new": {"id": "p1"}, "old": None}
