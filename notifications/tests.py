from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.exceptions import Forbidden, NotFound
from feeds.models import Comment, Post, Project
from notifications.factories import NotificationFactory
from notifications.models import Notification
from notifications.references import (
    GrantReference,
    NoReference,
    PostReference,
    ProjectReference,
    UserReference,
    from_columns,
)
from notifications.services import NotificationCacheService, NotificationDispatcher, Suppression
from users.factories import FollowFactory, UserBlockFactory, UserFactory


class Test_References(TestCase):
    def test_columns_rebuild_the_variant(self):
        for reference in (
            ProjectReference(3),
            PostReference(4),
            UserReference(5),
            GrantReference("g-12"),
            NoReference(),
        ):
            self.assertEqual(from_columns(*reference.columns()), reference)

    def test_unknown_tag(self):
        with self.assertRaises(ValueError):
            from_columns("course", "1")


class Test_Notify(TestCase):
    def setUp(self):
        cache.clear()
        self.recipient = UserFactory()
        self.actor = UserFactory()

    def test_self_notification_suppressed(self):
        result = NotificationDispatcher.notify(
            self.recipient, "follow", "New follower", from_user=self.recipient
        )
        self.assertIs(result, Suppression.SELF_NOTIFICATION)
        self.assertFalse(Notification.objects.exists())

    def test_blocked_sender_suppressed(self):
        UserBlockFactory(blocker=self.recipient, blocked=self.actor)
        result = NotificationDispatcher.notify(
            self.recipient, "follow", "New follower", from_user=self.actor
        )
        self.assertIs(result, Suppression.BLOCKED)
        self.assertFalse(Notification.objects.exists())

    def test_block_is_one_directional(self):
        UserBlockFactory(blocker=self.actor, blocked=self.recipient)
        result = NotificationDispatcher.notify(
            self.recipient, "follow", "New follower", from_user=self.actor
        )
        self.assertIsInstance(result, Notification)

    def test_redelivered_trigger_returns_existing_row(self):
        kwargs = dict(
            from_user=self.actor,
            reference=ProjectReference(9),
            trigger_key="upvote:41",
        )
        first = NotificationDispatcher.notify(self.recipient, "upvote", "Upvote", **kwargs)
        second = NotificationDispatcher.notify(self.recipient, "upvote", "Upvote", **kwargs)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(Notification.objects.count(), 1)

    def test_new_action_instance_creates_new_row(self):
        NotificationDispatcher.notify(
            self.recipient, "upvote", "Upvote", from_user=self.actor,
            reference=ProjectReference(9), trigger_key="upvote:41",
        )
        NotificationDispatcher.notify(
            self.recipient, "upvote", "Upvote", from_user=self.actor,
            reference=ProjectReference(9), trigger_key="upvote:42",
        )
        self.assertEqual(Notification.objects.count(), 2)

    def test_different_actors_are_not_collapsed(self):
        for actor in (self.actor, UserFactory()):
            NotificationDispatcher.notify_upvote(actor, self.recipient.pk, "project", 9, "Tool", fact_id=actor.pk)
        self.assertEqual(Notification.objects.filter(recipient=self.recipient).count(), 2)

    def test_grant_outcome(self):
        result = NotificationDispatcher.notify_grant_outcome(
            self.recipient, "g-7", "Builder Grant", "approved", decided_by=self.actor, application_id=3
        )
        self.assertEqual(result.type, "application_update")
        self.assertEqual(from_columns(result.reference_type, result.reference_id), GrantReference("g-7"))
        self.assertEqual(result.trigger_key, "application:3:approved")


class Test_Lifecycle(TestCase):
    def setUp(self):
        cache.clear()
        self.recipient = UserFactory()
        self.stranger = UserFactory()
        self.first = NotificationFactory(recipient=self.recipient)
        self.second = NotificationFactory(recipient=self.recipient)

    def test_unread_count_reflects_mark_read_immediately(self):
        self.assertEqual(NotificationDispatcher.unread_count(self.recipient), 2)

        self.assertTrue(NotificationDispatcher.mark_read(self.first.pk, self.recipient))
        self.assertEqual(NotificationDispatcher.unread_count(self.recipient), 1)

        self.assertFalse(NotificationDispatcher.mark_read(self.first.pk, self.recipient))
        self.assertEqual(NotificationDispatcher.unread_count(self.recipient), 1)

    def test_unread_count_is_cached(self):
        NotificationDispatcher.unread_count(self.recipient)
        self.assertEqual(NotificationCacheService.get_cached_unread_count(self.recipient.pk), 2)
        with self.assertNumQueries(0):
            NotificationDispatcher.unread_count(self.recipient)

    def test_ownership_is_enforced(self):
        with self.assertRaises(Forbidden):
            NotificationDispatcher.mark_read(self.first.pk, self.stranger)
        with self.assertRaises(Forbidden):
            NotificationDispatcher.delete(self.first.pk, self.stranger)
        with self.assertRaises(NotFound):
            NotificationDispatcher.mark_read(999999, self.recipient)

        self.first.refresh_from_db()
        self.assertFalse(self.first.is_read)

    def test_mark_all_read_is_idempotent(self):
        self.assertEqual(NotificationDispatcher.mark_all_read(self.recipient), 2)
        self.assertEqual(NotificationDispatcher.mark_all_read(self.recipient), 0)
        self.assertEqual(NotificationDispatcher.unread_count(self.recipient), 0)

    def test_clear_all_only_touches_own_rows(self):
        NotificationFactory(recipient=self.stranger)
        self.assertEqual(NotificationDispatcher.clear_all(self.recipient), 2)
        self.assertEqual(Notification.objects.count(), 1)
        self.assertEqual(NotificationDispatcher.unread_count(self.recipient), 0)


class Test_DomainEvents(TestCase):
    def setUp(self):
        cache.clear()
        self.owner = UserFactory()
        self.fan = UserFactory()

    def test_follow_notifies_followed_user(self):
        follow = FollowFactory(follower=self.fan, following=self.owner)

        notification = Notification.objects.get(recipient=self.owner)
        self.assertEqual(notification.type, "follow")
        self.assertEqual(notification.trigger_key, f"follow:{follow.pk}")
        self.assertEqual(from_columns(notification.reference_type, notification.reference_id), UserReference(self.fan.pk))

    def test_comment_notifies_target_owner(self):
        project = Project.objects.create(author=self.owner, title="Beat maker", description="d")
        Comment.objects.create(author=self.fan, target_type="project", target_id=project.pk, content="Love it")

        notification = Notification.objects.get(recipient=self.owner)
        self.assertEqual(notification.type, "comment")
        self.assertEqual(notification.message, "Love it")
        self.assertEqual(from_columns(notification.reference_type, notification.reference_id), ProjectReference(project.pk))

    def test_comment_on_own_post_is_silent(self):
        post = Post.objects.create(author=self.owner, content="mine")
        Comment.objects.create(author=self.owner, target_type="post", target_id=post.pk, content="me")
        self.assertFalse(Notification.objects.exists())

    def test_comment_on_missing_target_is_silent(self):
        Comment.objects.create(author=self.fan, target_type="post", target_id=424242, content="?")
        self.assertFalse(Notification.objects.exists())


class Test_NotificationEndpoints(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.recipient = UserFactory()
        self.client.force_authenticate(self.recipient)
        self.unread = NotificationFactory(recipient=self.recipient, type="follow")
        self.read = NotificationFactory(recipient=self.recipient, type="comment", is_read=True)

    def test_list_newest_first_and_filters(self):
        response = self.client.get(reverse("notification-list"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["id"] for row in response.json()["results"]], [self.read.pk, self.unread.pk])

        response = self.client.get(reverse("notification-list"), {"is_read": "false"})
        self.assertEqual([row["id"] for row in response.json()["results"]], [self.unread.pk])

        response = self.client.get(reverse("notification-list"), {"type": "comment"})
        self.assertEqual([row["id"] for row in response.json()["results"]], [self.read.pk])

    def test_read_flow(self):
        response = self.client.get(reverse("notification-unread-count"))
        self.assertEqual(response.json(), {"count": 1, "by_type": {"follow": 1}})

        response = self.client.post(reverse("notification-read", kwargs={"pk": self.unread.pk}))
        self.assertEqual(response.json(), {"id": self.unread.pk, "is_read": True, "changed": True})
        response = self.client.post(reverse("notification-read", kwargs={"pk": self.unread.pk}))
        self.assertFalse(response.json()["changed"])

        response = self.client.get(reverse("notification-unread-count"))
        self.assertEqual(response.json()["count"], 0)

    def test_other_users_notification_is_forbidden(self):
        foreign = NotificationFactory()
        response = self.client.post(reverse("notification-read", kwargs={"pk": foreign.pk}))
        self.assertEqual(response.status_code, 403)
        response = self.client.delete(reverse("notification-detail", kwargs={"pk": foreign.pk}))
        self.assertEqual(response.status_code, 403)

    def test_mark_all_and_clear_all(self):
        response = self.client.post(reverse("notification-mark-all-read"))
        self.assertEqual(response.json(), {"status": "success", "count": 1})

        response = self.client.delete(reverse("notification-list"))
        self.assertEqual(response.json(), {"status": "success", "count": 2})
        self.assertFalse(Notification.objects.filter(recipient=self.recipient).exists())

    def test_delete_one(self):
        response = self.client.delete(reverse("notification-detail", kwargs={"pk": self.unread.pk}))
        self.assertEqual(response.status_code, 204)
        self.assertFalse(Notification.objects.filter(pk=self.unread.pk).exists())

    def test_unread_total_matches_breakdown_when_cache_is_stale(self):
        NotificationCacheService.set_cached_unread_count(self.recipient.pk, 99)

        response = self.client.get(reverse("notification-unread-count"))
        body = response.json()
        self.assertEqual(body["count"], sum(body["by_type"].values()))
        self.assertEqual(body["count"], 1)
        self.assertEqual(NotificationDispatcher.unread_count(self.recipient), 1)
