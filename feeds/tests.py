from datetime import timedelta
from unittest.mock import patch

from django.core.cache import cache
from django.db import connection
from django.test import TestCase
from django.test.utils import CaptureQueriesContext
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from core.exceptions import InvalidPayload
from feeds.composer import FeedComposer, FeedScope
from feeds.models import Comment, Community, CommunityMember, CommunityPost, Post, Project
from feeds.producers import ContentProducer, FeedCursor, PostProducer
from interactions.models import InteractionFact
from interactions.tracker import InteractionStateTracker
from notifications.models import Notification
from notifications.services import NotificationDispatcher
from users.factories import FollowFactory, UserFactory


class BrokenProducer(ContentProducer):
    kind = "broken"

    def fetch(self, cursor, limit):
        raise RuntimeError("store unavailable")

    def featured(self, since, limit):
        raise RuntimeError("store unavailable")


def identities(page):
    return [(annotated.item.kind, annotated.item.id) for annotated in page.items]


class Test_FeedScope(TestCase):
    def test_parse(self):
        self.assertEqual(FeedScope.parse("personal"), FeedScope("personal"))
        self.assertEqual(FeedScope.parse("community:12"), FeedScope("community", 12))
        self.assertEqual(str(FeedScope.parse("community:12")), "community:12")
        for raw in ("", "community:", "community:abc", "trending"):
            with self.assertRaises(InvalidPayload):
                FeedScope.parse(raw)

    def test_cursor_roundtrip_and_garbage(self):
        cursor = FeedCursor(timezone.now(), "post", 5)
        self.assertEqual(FeedCursor.decode(cursor.encode()), cursor)
        with self.assertRaises(InvalidPayload):
            FeedCursor.decode("not-a-cursor")


class Test_Compose(TestCase):
    def setUp(self):
        cache.clear()
        self.viewer = UserFactory()
        self.author = UserFactory()
        self.stranger = UserFactory()
        FollowFactory(follower=self.viewer, following=self.author)

    def test_personal_scope_covers_followed_and_self(self):
        followed = Post.objects.create(author=self.author, content="followed")
        own = Project.objects.create(author=self.viewer, title="mine", description="d")
        Post.objects.create(author=self.stranger, content="stranger")

        page = FeedComposer.compose(self.viewer, FeedScope("personal"))
        self.assertEqual(identities(page), [("project", own.pk), ("post", followed.pk)])

    def test_global_scope_merges_kinds_newest_first(self):
        now = timezone.now()
        old_post = Post.objects.create(author=self.stranger, content="a", created_at=now - timedelta(hours=2))
        project = Project.objects.create(author=self.author, title="b", description="d", created_at=now - timedelta(hours=1))
        new_post = Post.objects.create(author=self.viewer, content="c", created_at=now)

        page = FeedComposer.compose(self.viewer, FeedScope("global"))
        self.assertEqual(
            identities(page),
            [("post", new_post.pk), ("project", project.pk), ("post", old_post.pk)],
        )

    def test_compose_is_deterministic(self):
        now = timezone.now()
        for index in range(4):
            Post.objects.create(author=self.author, content=str(index), created_at=now)
            Project.objects.create(author=self.author, title=str(index), description="d", created_at=now)

        first = FeedComposer.compose(self.viewer, FeedScope("global"))
        second = FeedComposer.compose(self.viewer, FeedScope("global"))
        self.assertEqual(identities(first), identities(second))

    def test_cursor_pages_never_overlap_or_skip(self):
        now = timezone.now()
        for index in range(7):
            # Pairs share a timestamp so ties cross page boundaries
            created_at = now - timedelta(minutes=index // 2)
            Post.objects.create(author=self.author, content=str(index), created_at=created_at)
            Project.objects.create(author=self.author, title=str(index), description="d", created_at=created_at)

        everything = identities(FeedComposer.compose(self.viewer, FeedScope("global"), page_size=50))
        self.assertEqual(len(everything), 14)

        seen, cursor = [], None
        while True:
            page = FeedComposer.compose(self.viewer, FeedScope("global"), cursor=cursor, page_size=3)
            seen.extend(identities(page))
            cursor = page.next_cursor
            if cursor is None:
                break
        self.assertEqual(seen, everything)

    def test_page_size_is_capped(self):
        self.assertEqual(FeedComposer.page_size(None), 20)
        self.assertEqual(FeedComposer.page_size("500"), 50)
        self.assertEqual(FeedComposer.page_size("0"), 1)
        with self.assertRaises(InvalidPayload):
            FeedComposer.page_size("many")

    def test_failing_producer_degrades(self):
        post = Post.objects.create(author=self.author, content="still here")

        with patch("feeds.composer.producers_for", return_value=[PostProducer(), BrokenProducer()]):
            page = FeedComposer.compose(self.viewer, FeedScope("global"))

        self.assertEqual(identities(page), [("post", post.pk)])
        self.assertEqual(page.degraded, ["BrokenProducer"])

    def test_all_producers_failing_propagates(self):
        with patch("feeds.composer.producers_for", return_value=[BrokenProducer()]):
            with self.assertRaises(RuntimeError):
                FeedComposer.compose(self.viewer, FeedScope("global"))

    def test_annotation_does_not_query_per_item(self):
        def count_queries():
            with CaptureQueriesContext(connection) as queries:
                FeedComposer.compose(self.viewer, FeedScope("global"))
            return len(queries)

        Post.objects.create(author=self.author, content="one")
        Project.objects.create(author=self.author, title="one", description="d")
        baseline = count_queries()

        for index in range(8):
            post = Post.objects.create(author=self.author, content=str(index))
            project = Project.objects.create(author=self.author, title=str(index), description="d")
            InteractionStateTracker.toggle(self.viewer, "post", post.pk, "upvote")
            Comment.objects.create(author=self.viewer, target_type="project", target_id=project.pk, content="hi")
        self.assertEqual(count_queries(), baseline)

    def test_follow_upvote_scenario(self):
        post = Post.objects.create(author=self.author, content="hello world")

        item = FeedComposer.compose(self.viewer, FeedScope("personal")).items[0]
        self.assertEqual((item.item.kind, item.item.id), ("post", post.pk))
        self.assertFalse(item.state.has("upvote"))
        self.assertEqual(item.comment_count, 0)
        self.assertEqual(item.state.count("upvote"), 0)

        InteractionStateTracker.toggle(self.viewer, "post", post.pk, "upvote")
        item = FeedComposer.compose(self.viewer, FeedScope("personal")).items[0]
        self.assertTrue(item.state.has("upvote"))
        self.assertEqual(item.state.count("upvote"), 1)

        InteractionStateTracker.toggle(self.viewer, "post", post.pk, "upvote")
        item = FeedComposer.compose(self.viewer, FeedScope("personal")).items[0]
        self.assertFalse(item.state.has("upvote"))
        self.assertEqual(item.state.count("upvote"), 0)


class Test_CommunityScope(TestCase):
    def setUp(self):
        cache.clear()
        self.member = UserFactory()
        self.outsider = UserFactory()
        self.community = Community.objects.create(name="Synths", creator=self.member)
        CommunityMember.objects.create(community=self.community, user=self.member, role="owner")
        self.post = Post.objects.create(author=self.member, content="patch notes")
        self.link = CommunityPost.objects.create(community=self.community, post=self.post)

    def test_member_sees_community_posts(self):
        InteractionStateTracker.toggle(self.outsider, "post", self.post.pk, "upvote")

        page = FeedComposer.compose(self.member, FeedScope.community(self.community.pk))
        self.assertEqual(identities(page), [("community_post", self.link.pk)])
        self.assertEqual(page.items[0].item.target_id, self.post.pk)
        self.assertEqual(page.items[0].state.count("upvote"), 1)

    def test_non_member_and_unknown_community_are_empty(self):
        page = FeedComposer.compose(self.outsider, FeedScope.community(self.community.pk))
        self.assertEqual(page.items, [])
        self.assertIsNone(page.next_cursor)

        page = FeedComposer.compose(self.member, FeedScope.community(999999))
        self.assertEqual(page.items, [])


class Test_Featured(TestCase):
    def setUp(self):
        cache.clear()
        self.viewer = UserFactory()
        self.author = UserFactory()
        self.voters = [UserFactory() for _ in range(3)]

    def _upvote(self, target_type, target_id, count):
        for voter in self.voters[:count]:
            InteractionStateTracker.toggle(voter, target_type, target_id, "upvote")

    def test_top_by_upvotes_within_window(self):
        now = timezone.now()
        popular = Project.objects.create(author=self.author, title="popular", description="d", created_at=now - timedelta(days=1))
        liked = Post.objects.create(author=self.author, content="liked", created_at=now - timedelta(days=2))
        newer_liked = Post.objects.create(author=self.author, content="newer", created_at=now - timedelta(hours=1))
        stale = Project.objects.create(author=self.author, title="stale", description="d", created_at=now - timedelta(days=30))
        Post.objects.create(author=self.author, content="ignored")
        self._upvote("project", popular.pk, 3)
        self._upvote("post", liked.pk, 1)
        self._upvote("post", newer_liked.pk, 1)
        self._upvote("project", stale.pk, 3)

        page = FeedComposer.featured(self.viewer, FeedScope("global"))
        self.assertEqual(
            identities(page),
            [("project", popular.pk), ("post", newer_liked.pk), ("post", liked.pk)],
        )

    def test_limit(self):
        for index in range(4):
            project = Project.objects.create(author=self.author, title=str(index), description="d")
            self._upvote("project", project.pk, 1)
        page = FeedComposer.featured(self.viewer, FeedScope("global"), limit=2)
        self.assertEqual(len(page.items), 2)


class Test_FeedEndpoints(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.viewer = UserFactory()
        self.author = UserFactory()

    def test_follow_create_upvote_flow(self):
        self.client.force_authenticate(self.viewer)
        self.client.post(reverse("user-follow", kwargs={"pk": self.author.pk}))

        self.client.force_authenticate(self.author)
        response = self.client.post(reverse("post-list"), {"content": "shipping today"}, format="json")
        self.assertEqual(response.status_code, 201)
        post_id = response.json()["id"]

        self.client.force_authenticate(self.viewer)
        item = self.client.get(reverse("feed-personal")).json()["results"][0]
        self.assertEqual((item["kind"], item["id"]), ("post", post_id))
        self.assertFalse(item["has_upvoted"])
        self.assertEqual(item["comment_count"], 0)
        self.assertEqual(item["content"]["content"], "shipping today")

        self.client.post(reverse("post-upvote", kwargs={"pk": post_id}))
        self.client.post(reverse("post-comments", kwargs={"pk": post_id}), {"content": "congrats"}, format="json")
        item = self.client.get(reverse("feed-personal")).json()["results"][0]
        self.assertTrue(item["has_upvoted"])
        self.assertEqual(item["upvote_count"], 1)
        self.assertEqual(item["comment_count"], 1)
        self.assertEqual(
            set(Notification.objects.filter(recipient=self.author).values_list("type", flat=True)),
            {"follow", "upvote", "comment"},
        )

    def test_global_feed_allows_anonymous(self):
        Project.objects.create(author=self.author, title="open", description="d")
        response = self.client.get(reverse("feed-global"))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["results"][0]["kind"], "project")
        self.assertFalse(body["results"][0]["has_upvoted"])
        self.assertEqual(body["degraded"], [])

        self.assertEqual(self.client.get(reverse("feed-featured")).status_code, 200)
        self.assertEqual(self.client.get(reverse("feed-personal")).status_code, 401)

    def test_bad_cursor_is_400(self):
        self.client.force_authenticate(self.viewer)
        response = self.client.get(reverse("feed-global"), {"cursor": "%%%"})
        self.assertEqual(response.status_code, 400)

    def test_membership_and_community_feed(self):
        community = Community.objects.create(name="Makers", creator=self.author)
        post = Post.objects.create(author=self.author, content="welcome")
        CommunityPost.objects.create(community=community, post=post)
        self.client.force_authenticate(self.viewer)
        url = reverse("community-posts", kwargs={"pk": community.pk})

        self.assertEqual(self.client.get(url).json()["results"], [])

        response = self.client.post(reverse("community-membership", kwargs={"pk": community.pk}))
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.client.get(url).json()["results"][0]["target_id"], post.pk)

        self.client.delete(reverse("community-membership", kwargs={"pk": community.pk}))
        self.assertEqual(self.client.get(url).json()["results"], [])

    def test_private_community_is_invite_only(self):
        community = Community.objects.create(name="Secret", creator=self.author, is_private=True)
        self.client.force_authenticate(self.viewer)
        response = self.client.post(reverse("community-membership", kwargs={"pk": community.pk}))
        self.assertEqual(response.status_code, 403)

    def test_only_author_edits(self):
        project = Project.objects.create(author=self.author, title="mine", description="d")
        self.client.force_authenticate(self.viewer)
        response = self.client.patch(
            reverse("project-detail", kwargs={"pk": project.pk}), {"title": "yours"}, format="json"
        )
        self.assertEqual(response.status_code, 403)

        self.client.force_authenticate(self.author)
        response = self.client.patch(
            reverse("project-detail", kwargs={"pk": project.pk}), {"title": "renamed"}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["title"], "renamed")

    def test_comments_list_oldest_first(self):
        project = Project.objects.create(author=self.author, title="p", description="d")
        self.client.force_authenticate(self.viewer)
        url = reverse("project-comments", kwargs={"pk": project.pk})
        self.client.post(url, {"content": "first"}, format="json")
        self.client.post(url, {"content": "second"}, format="json")

        response = self.client.get(url)
        self.assertEqual([row["content"] for row in response.json()["results"]], ["first", "second"])
        self.assertEqual(self.client.post(url, {"content": "  "}, format="json").status_code, 400)
        self.assertEqual(
            self.client.get(reverse("project-comments", kwargs={"pk": 999999})).status_code, 404
        )


class Test_TargetDeletion(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.owner = UserFactory()
        self.fan = UserFactory()
        self.project = Project.objects.create(author=self.owner, title="Sampler", description="d")
        self.other = Project.objects.create(author=self.owner, title="Keeper", description="d")

    def test_deleting_project_removes_what_points_at_it(self):
        self.client.force_authenticate(self.fan)
        self.client.post(reverse("project-upvote", kwargs={"pk": self.project.pk}))
        self.client.post(
            reverse("project-comments", kwargs={"pk": self.project.pk}), {"content": "wow"}, format="json"
        )
        comment = Comment.objects.get()
        InteractionStateTracker.toggle(self.owner, "comment", comment.pk, "reaction", "🔥")
        InteractionStateTracker.toggle(self.fan, "project", self.other.pk, "bookmark")
        self.assertEqual(NotificationDispatcher.unread_count(self.owner), 2)

        self.client.force_authenticate(self.owner)
        response = self.client.delete(reverse("project-detail", kwargs={"pk": self.project.pk}))
        self.assertEqual(response.status_code, 204)

        self.assertFalse(InteractionFact.objects.filter(target_type="project", target_id=self.project.pk).exists())
        self.assertFalse(InteractionFact.objects.filter(target_type="comment").exists())
        self.assertFalse(Comment.objects.exists())
        self.assertFalse(Notification.objects.exists())
        self.assertEqual(NotificationDispatcher.unread_count(self.owner), 0)
        self.assertTrue(
            InteractionStateTracker.has_active(self.fan, "project", self.other.pk, "bookmark")
        )

    def test_deleting_post_removes_its_comments_and_votes(self):
        post = Post.objects.create(author=self.owner, content="hi")
        InteractionStateTracker.toggle(self.fan, "post", post.pk, "upvote")
        Comment.objects.create(author=self.fan, target_type="post", target_id=post.pk, content="yo")

        self.client.force_authenticate(self.owner)
        self.client.delete(reverse("post-detail", kwargs={"pk": post.pk}))

        self.assertFalse(InteractionFact.objects.exists())
        self.assertFalse(Comment.objects.exists())
        self.assertFalse(Notification.objects.filter(reference_type="post").exists())

    def test_comment_author_deletes_comment(self):
        comment = Comment.objects.create(
            author=self.fan, target_type="project", target_id=self.project.pk, content="nice"
        )
        InteractionStateTracker.toggle(self.owner, "comment", comment.pk, "reaction", "👏")
        url = reverse("project-comment-detail", kwargs={"pk": self.project.pk, "comment_pk": comment.pk})

        self.client.force_authenticate(self.owner)
        self.assertEqual(self.client.delete(url).status_code, 403)
        self.assertEqual(
            self.client.delete(
                reverse("post-comment-detail", kwargs={"pk": self.project.pk, "comment_pk": comment.pk})
            ).status_code,
            404,
        )

        self.client.force_authenticate(self.fan)
        self.assertEqual(self.client.delete(url).status_code, 204)
        self.assertFalse(Comment.objects.exists())
        self.assertFalse(InteractionFact.objects.exists())
        self.assertEqual(self.client.delete(url).status_code, 404)


class Test_Bookmarks(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.viewer = UserFactory()
        self.author = UserFactory()
        self.project = Project.objects.create(author=self.author, title="Drum kit", description="d")
        self.post = Post.objects.create(author=self.author, content="notes")
        self.client.force_authenticate(self.viewer)

    def test_most_recently_bookmarked_first(self):
        InteractionStateTracker.toggle(self.viewer, "project", self.project.pk, "bookmark")
        InteractionStateTracker.toggle(self.viewer, "post", self.post.pk, "bookmark")
        InteractionStateTracker.toggle(self.author, "project", self.project.pk, "upvote")

        response = self.client.get(reverse("bookmarks"))
        self.assertEqual(response.status_code, 200)
        results = response.json()["results"]
        self.assertEqual(
            [(row["kind"], row["id"]) for row in results],
            [("post", self.post.pk), ("project", self.project.pk)],
        )
        self.assertTrue(all(row["has_bookmarked"] for row in results))
        self.assertEqual(results[1]["upvote_count"], 1)

    def test_filter_by_type(self):
        InteractionStateTracker.toggle(self.viewer, "project", self.project.pk, "bookmark")
        InteractionStateTracker.toggle(self.viewer, "post", self.post.pk, "bookmark")

        response = self.client.get(reverse("bookmarks"), {"target_type": "project"})
        self.assertEqual([row["id"] for row in response.json()["results"]], [self.project.pk])
        response = self.client.get(reverse("bookmarks"), {"target_type": "comment"})
        self.assertEqual(response.status_code, 400)

    def test_only_own_active_bookmarks(self):
        InteractionStateTracker.toggle(self.author, "post", self.post.pk, "bookmark")
        InteractionStateTracker.toggle(self.viewer, "project", self.project.pk, "bookmark")
        InteractionStateTracker.toggle(self.viewer, "project", self.project.pk, "bookmark")

        self.assertEqual(FeedComposer.bookmarked(self.viewer).items, [])
        self.assertEqual(self.client.get(reverse("bookmarks")).json()["results"], [])
