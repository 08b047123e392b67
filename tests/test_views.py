"""
Tests for the view controllers and site routing.
"""

from unittest.mock import patch

import pytest

from portfolio.config import settings
from portfolio.errors import RemoteWriteError
from portfolio.repositories import BlogPostRepository, ContactMessageRepository, PhotoRepository
from portfolio.views.base import Notice, View
from portfolio.views.blog import BlogPostView, BlogView, parse_tags
from portfolio.views.contact import AdminMessagingView, ContactView
from portfolio.views.photography import PhotoDetailView, PhotographyView
from portfolio.views.routes import NOT_FOUND, build_view, resolve_route

from conftest import FakeStorage


async def add_post(store, title, tags=()):
    return await store.insert("blog_posts", {
        "title": title, "content": "<p>Body</p>", "excerpt": "Short", "tags": list(tags),
    })


class TestContactView:
    """Tests for the anonymous contact form."""

    def test_valid_submission_is_stored_and_form_reset(self, run_store, anonymous_session):
        async def body(store):
            await anonymous_session.check()
            messages = ContactMessageRepository(store)
            view = ContactView(anonymous_session, messages)
            view.set_field("name", "Ada")
            view.set_field("email", "ada@example.com")
            view.set_field("message", "Hello, this is a test message.")

            assert await view.submit() is True
            assert view.submitted
            assert view.fields == {"name": "", "email": "", "message": ""}

            stored = await messages.fetch_all()
            assert len(stored) == 1
            assert stored[0].is_read is False
            assert stored[0].admin_reply is None

            view.send_another()
            assert not view.submitted

        run_store(body)

    def test_invalid_submission_never_reaches_the_store(self, run_store, anonymous_session):
        async def body(store):
            messages = ContactMessageRepository(store)
            view = ContactView(anonymous_session, messages)
            view.set_field("name", "Ada")
            view.set_field("email", "ada@")

            with patch.object(messages, "submit") as submit:
                assert await view.submit() is False
                submit.assert_not_called()

            assert set(view.errors) == {"email", "message"}
            view.set_field("email", "ada@example.com")
            assert "email" not in view.errors

        run_store(body)

    def test_store_failure_becomes_a_notice(self, run_store, anonymous_session):
        async def body(store):
            messages = ContactMessageRepository(store)
            view = ContactView(anonymous_session, messages)
            view.fields = {"name": "Ada", "email": "ada@example.com", "message": "Hello, this is a test message."}

            with patch.object(messages, "submit", side_effect=RemoteWriteError("rejected")):
                assert await view.submit() is False

            assert view.notices == [Notice("error", "Error sending message. Please try again.")]
            assert not view.submitting
            assert view.fields["name"] == "Ada"

        run_store(body)

    def test_unknown_field(self, anonymous_session):
        view = ContactView(anonymous_session, messages=None)
        with pytest.raises(KeyError):
            view.set_field("phone", "555")


class TestAdminMessagingView:
    """Tests for the operator inbox."""

    def test_anonymous_visitor_gets_nothing(self, run_store, anonymous_session):
        async def body(store):
            await anonymous_session.check()
            view = AdminMessagingView(anonymous_session, ContactMessageRepository(store))
            await view.mount()
            assert not view.collection.mounted
            assert store.feed.subscriber_count() == 0

        run_store(body)

    def test_open_marks_read_and_reply_is_sent(self, run_store, operator_session):
        async def body(store):
            await operator_session.check()
            messages = ContactMessageRepository(store)
            created = await messages.submit("Ada", "ada@example.com", "Hello, this is a test message.")

            view = AdminMessagingView(operator_session, messages)
            await view.mount()
            assert view.unread_count == 1

            opened = await view.open(created.id)
            assert opened.is_read
            assert view.unread_count == 0
            assert view.selected.id == created.id

            view.reply_text = "Thanks, Ada!"
            assert await view.send_reply() is True
            assert view.notices[-1] == Notice("success", "Reply sent successfully!")
            assert view.selected is None
            assert view.reply_text == ""
            assert (await messages.get(created.id)).admin_reply == "Thanks, Ada!"
            await view.unmount()

        run_store(body)

    def test_blank_reply_is_not_sent(self, run_store, operator_session):
        async def body(store):
            await operator_session.check()
            messages = ContactMessageRepository(store)
            created = await messages.submit("Ada", "ada@example.com", "Hello, this is a test message.")
            view = AdminMessagingView(operator_session, messages)
            await view.mount()
            await view.open(created.id)

            view.reply_text = "   "
            assert await view.send_reply() is False
            assert view.notices == []
            await view.unmount()

        run_store(body)


class TestBlogView:
    """Tests for the blog listing and operator editing."""

    def test_tags_and_filtering(self, run_store, anonymous_session):
        async def body(store):
            await add_post(store, "Older", ["Azure", "Terraform"])
            await add_post(store, "Newer", ["Python", "Azure"])

            view = BlogView(anonymous_session, BlogPostRepository(store))
            await view.mount()

            assert view.all_tags == ["Python", "Azure", "Terraform"]
            view.select_tag("Terraform")
            assert [p.title for p in view.visible_posts] == ["Older"]
            view.select_tag(None)
            assert len(view.visible_posts) == 2

            view.toggle_comments(view.items[0].id)
            assert view.expanded_comments_post_id == view.items[0].id
            view.toggle_comments(view.items[0].id)
            assert view.expanded_comments_post_id is None
            await view.unmount()

        run_store(body)

    def test_anonymous_visitor_cannot_edit(self, run_store, anonymous_session):
        async def body(store):
            await anonymous_session.check()
            row = await add_post(store, "Post")
            view = BlogView(anonymous_session, BlogPostRepository(store))
            await view.mount()

            assert await view.create_post() is None
            assert await view.delete_post(row["id"]) is False
            assert await view.update_post(row["id"], {"title": "Hacked"}) is None
            assert [p.title for p in await BlogPostRepository(store).fetch_all()] == ["Post"]
            await view.unmount()

        run_store(body)

    def test_create_update_and_delete(self, run_store, operator_session):
        async def body(store):
            await operator_session.check()
            view = BlogView(operator_session, BlogPostRepository(store))
            await view.mount()

            draft = await view.create_post()
            assert view.editing_post_id == draft.id
            assert view.items[0].id == draft.id

            updated = await view.update_post(draft.id, {"title": "Terraform", "tags": "Azure, IaC ,"})
            assert updated.tags == ["Azure", "IaC"]
            assert view.collection.find(draft.id).title == "Terraform"

            assert await view.delete_post(draft.id) is True
            assert view.collection.find(draft.id) is None
            assert view.editing_post_id is None
            assert await view.delete_post(draft.id) is True
            assert view.notices == []
            await view.unmount()

        run_store(body)

    def test_insert_table_appends_placeholder_cells(self, run_store, operator_session):
        async def body(store):
            await operator_session.check()
            row = await add_post(store, "Post")
            view = BlogView(operator_session, BlogPostRepository(store))
            await view.mount()

            post = await view.insert_table(row["id"], 2, 3)
            assert post.content.startswith("<p>Body</p><table>")
            assert "<td>Cell 1-1</td>" in post.content
            assert "<td>Cell 2-3</td>" in post.content
            assert post.content.count("<tr>") == 2
            await view.unmount()

        run_store(body)

    def test_update_failure_becomes_a_notice(self, run_store, operator_session):
        async def body(store):
            await operator_session.check()
            posts = BlogPostRepository(store)
            row = await add_post(store, "Post")
            view = BlogView(operator_session, posts)
            await view.mount()

            with patch.object(posts, "update", side_effect=RemoteWriteError("rejected")):
                assert await view.update_post(row["id"], {"title": "New"}) is None

            assert view.notices == [Notice("error", "Error updating post. Please try again.")]
            await view.unmount()

        run_store(body)

    def test_parse_tags(self):
        assert parse_tags(" Azure, ,Terraform ") == ["Azure", "Terraform"]
        assert parse_tags("") == []


class TestBlogPostView:
    """Tests for the single post view."""

    def test_each_mount_counts_one_view(self, run_store, anonymous_session):
        async def body(store):
            row = await add_post(store, "Post")
            posts = BlogPostRepository(store)
            view = BlogPostView(anonymous_session, posts, row["id"])

            await view.mount()
            await view.mount()
            assert view.post.views == 1

            await view.unmount()
            await view.mount()
            assert view.post.views == 2
            assert (await posts.get(row["id"])).views == 2
            await view.unmount()

        run_store(body)

    def test_missing_post(self, run_store, anonymous_session):
        async def body(store):
            view = BlogPostView(anonymous_session, BlogPostRepository(store), "missing")
            await view.mount()
            assert view.not_found
            await view.unmount()

        run_store(body)

    def test_share_url(self, monkeypatch, anonymous_session):
        monkeypatch.setattr(settings, "SITE_URL", "https://example.com/")
        view = BlogPostView(anonymous_session, BlogPostRepository(store=None), "abc")
        assert view.share_url == "https://example.com/blog/abc"


class TestPhotographyView:
    """Tests for the gallery and photo detail views."""

    def test_anonymous_upload_is_refused(self, run_store, anonymous_session, png_bytes):
        async def body(store):
            await anonymous_session.check()
            storage = FakeStorage()
            view = PhotographyView(anonymous_session, PhotoRepository(store, storage))

            assert await view.add_photo("Dawn", "First light", png_bytes, "dawn.png") is None
            assert view.notices == [Notice("error", "Authentication error. Please log in again.")]
            assert storage.uploaded == []

        run_store(body)

    def test_upload_failure_adds_nothing(self, run_store, operator_session, png_bytes):
        async def body(store):
            await operator_session.check()
            view = PhotographyView(operator_session, PhotoRepository(store, FakeStorage(fail=True)))
            await view.mount()

            assert await view.add_photo("Dawn", "First light", png_bytes, "dawn.png") is None
            assert view.notices == [Notice("error", "Error adding photo. Please try again.")]
            assert view.items == []
            assert await store.select("photos") == []
            await view.unmount()

        run_store(body)

    def test_missing_fields_message(self, run_store, operator_session):
        async def body(store):
            await operator_session.check()
            view = PhotographyView(operator_session, PhotoRepository(store, FakeStorage()))
            assert await view.add_photo("Dawn", "", None) is None
            assert view.notices == [Notice("error", "Please fill in all fields and upload an image")]

        run_store(body)

    def test_add_and_delete_photo(self, run_store, operator_session, png_bytes):
        async def body(store):
            await operator_session.check()
            storage = FakeStorage()
            view = PhotographyView(operator_session, PhotoRepository(store, storage))
            await view.mount()

            photo = await view.add_photo("Dawn", "First light", png_bytes, "dawn.png")
            assert [p.id for p in view.items] == [photo.id]

            assert await view.delete_photo(photo.id) is True
            assert view.items == []
            assert storage.removed == [photo.image_url]
            await view.unmount()

        run_store(body)

    def test_detail_view(self, run_store, anonymous_session, monkeypatch):
        monkeypatch.setattr(settings, "SITE_URL", "https://example.com")

        async def body(store):
            row = await store.insert("photos", {
                "title": "Dawn", "description": "First light", "image_url": "https://example.com/dawn.jpg",
            })
            view = PhotoDetailView(anonymous_session, PhotoRepository(store), row["id"])
            await view.mount()

            assert view.photo.title == "Dawn"
            assert not view.not_found
            assert view.share_url == f"https://example.com/photography/{row['id']}"
            assert await view.like() is True
            assert view.photo.likes == 1
            await view.unmount()

        run_store(body)


class TestRouting:
    """Tests for site path resolution."""

    @pytest.mark.parametrize("path,name,params", [
        ("/", "home", {}),
        ("/about", "about", {}),
        ("/projects/", "projects", {}),
        ("/photography", "photography", {}),
        ("/photography/abc-123", "photo_detail", {"id": "abc-123"}),
        ("/blog?tag=Azure", "blog", {}),
        ("/blog/42#comments", "blog_post", {"id": "42"}),
        ("/contact", "contact", {}),
        ("/admin", NOT_FOUND, {}),
        ("/blog/42/edit", NOT_FOUND, {}),
    ])
    def test_resolve_route(self, path, name, params):
        route = resolve_route(path)
        assert route.name == name
        assert route.params == params

    def test_build_view(self, anonymous_session):
        assert isinstance(build_view(resolve_route("/blog"), anonymous_session, store=None), BlogView)
        detail = build_view(resolve_route("/photography/p1"), anonymous_session, store=None)
        assert isinstance(detail, PhotoDetailView)
        assert detail.photo_id == "p1"
        assert isinstance(build_view(resolve_route("/contact"), anonymous_session, store=None), ContactView)
        assert type(build_view(resolve_route("/about"), anonymous_session, store=None)) is View
