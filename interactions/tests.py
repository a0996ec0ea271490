from datetime import timedelta
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from core.exceptions import InvalidPayload
from feeds.models import Comment, Post, Project
from interactions.models import InteractionFact, ReadMarker
from interactions.tracker import InteractionStateTracker
from notifications.models import Notification
from users.factories import UserFactory


class Test_Toggle(TestCase):
    def setUp(self):
        self.actor = UserFactory()
        self.owner = UserFactory()
        self.project = Project.objects.create(author=self.owner, title="Synth", description="A synth")

    def test_toggle_parity(self):
        states = [
            InteractionStateTracker.toggle(self.actor, "project", self.project.pk, "upvote").active
            for _ in range(3)
        ]
        self.assertEqual(states, [True, False, True])
        self.assertEqual(InteractionFact.objects.count(), 1)

    def test_toggle_even_number_of_times_leaves_nothing(self):
        for _ in range(4):
            InteractionStateTracker.toggle(self.actor, "project", self.project.pk, "bookmark")
        self.assertFalse(
            InteractionStateTracker.has_active(self.actor, "project", self.project.pk, "bookmark")
        )
        self.assertEqual(InteractionFact.objects.count(), 0)

    def test_lost_insert_race_is_reported_active(self):
        InteractionStateTracker.toggle(self.actor, "project", self.project.pk, "upvote")

        # A concurrent toggle that saw nothing to delete still tries to insert
        with patch("interactions.tracker._delete_active", return_value=0):
            result = InteractionStateTracker.toggle(self.actor, "project", self.project.pk, "upvote")

        self.assertTrue(result.active)
        self.assertIsNone(result.fact)
        self.assertEqual(InteractionFact.objects.count(), 1)

    def test_activate_and_deactivate_are_idempotent(self):
        InteractionStateTracker.activate(self.actor, "project", self.project.pk, "upvote")
        InteractionStateTracker.activate(self.actor, "project", self.project.pk, "upvote")
        self.assertEqual(InteractionStateTracker.count_for("project", self.project.pk, "upvote"), 1)

        InteractionStateTracker.deactivate(self.actor, "project", self.project.pk, "upvote")
        InteractionStateTracker.deactivate(self.actor, "project", self.project.pk, "upvote")
        self.assertEqual(InteractionStateTracker.count_for("project", self.project.pk, "upvote"), 0)

    def test_distinct_emoji_are_independent(self):
        InteractionStateTracker.toggle(self.actor, "project", self.project.pk, "reaction", "🔥")
        InteractionStateTracker.toggle(self.actor, "project", self.project.pk, "reaction", "🚀")
        InteractionStateTracker.toggle(self.actor, "project", self.project.pk, "reaction", "🔥")

        state = InteractionStateTracker.snapshot(self.actor, [("project", self.project.pk)])[
            ("project", self.project.pk)
        ]
        self.assertEqual(state.reactions, {"🚀": 1})
        self.assertEqual(state.my_reactions, {"🚀"})

    def test_rejects_unsupported_combinations(self):
        with self.assertRaises(InvalidPayload):
            InteractionStateTracker.toggle(self.actor, "comment", 1, "upvote")
        with self.assertRaises(InvalidPayload):
            InteractionStateTracker.toggle(self.actor, "project", self.project.pk, "reaction", "")
        with self.assertRaises(InvalidPayload):
            InteractionStateTracker.toggle(self.actor, "project", self.project.pk, "reaction", "x" * 11)
        with self.assertRaises(InvalidPayload):
            InteractionStateTracker.toggle(self.actor, "grant", 1, "bookmark")


class Test_Snapshot(TestCase):
    def setUp(self):
        self.viewer = UserFactory()
        self.other = UserFactory()
        self.post = Post.objects.create(author=self.other, content="hello")
        self.project = Project.objects.create(author=self.other, title="Tool", description="d")

    def test_counts_and_flags_come_together(self):
        InteractionStateTracker.toggle(self.viewer, "post", self.post.pk, "upvote")
        InteractionStateTracker.toggle(self.other, "post", self.post.pk, "upvote")
        InteractionStateTracker.toggle(self.other, "project", self.project.pk, "bookmark")

        with self.assertNumQueries(1):
            states = InteractionStateTracker.snapshot(
                self.viewer, [("post", self.post.pk), ("project", self.project.pk)]
            )

        post_state = states[("post", self.post.pk)]
        self.assertEqual(post_state.count("upvote"), 2)
        self.assertTrue(post_state.has("upvote"))
        project_state = states[("project", self.project.pk)]
        self.assertEqual(project_state.count("bookmark"), 1)
        self.assertFalse(project_state.has("bookmark"))
        self.assertEqual(project_state.count("upvote"), 0)

    def test_empty_batch_issues_no_query(self):
        with self.assertNumQueries(0):
            self.assertEqual(InteractionStateTracker.snapshot(self.viewer, []), {})


class Test_ReadMarker(TestCase):
    def setUp(self):
        self.user = UserFactory()

    def test_marker_never_moves_backwards(self):
        now = timezone.now()
        InteractionStateTracker.advance_read_marker(self.user, "conversation", 7, now)
        effective = InteractionStateTracker.advance_read_marker(
            self.user, "conversation", 7, now - timedelta(minutes=5)
        )

        self.assertEqual(effective, now)
        self.assertEqual(InteractionStateTracker.read_marker_for(self.user, "conversation", 7), now)
        self.assertEqual(ReadMarker.objects.count(), 1)

    def test_marker_advances(self):
        now = timezone.now()
        InteractionStateTracker.advance_read_marker(self.user, "conversation", 7, now)
        later = now + timedelta(seconds=1)
        self.assertEqual(
            InteractionStateTracker.advance_read_marker(self.user.pk, "conversation", 7, later), later
        )


class Test_InteractionEndpoints(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.viewer = UserFactory()
        self.owner = UserFactory()
        self.project = Project.objects.create(author=self.owner, title="Loop", description="d")
        self.post = Post.objects.create(author=self.owner, content="first post")
        self.client.force_authenticate(self.viewer)

    def test_upvote_toggle_returns_state_and_count(self):
        url = reverse("project-upvote", kwargs={"pk": self.project.pk})

        response = self.client.post(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"active": True, "count": 1})

        response = self.client.post(url)
        self.assertEqual(response.json(), {"active": False, "count": 0})

    def test_upvote_notifies_owner_once_per_new_upvote(self):
        url = reverse("post-upvote", kwargs={"pk": self.post.pk})
        self.client.post(url)
        self.client.post(url)
        self.client.post(url)

        notifications = Notification.objects.filter(recipient=self.owner, type="upvote")
        self.assertEqual(notifications.count(), 2)
        self.assertEqual(notifications.first().reference_type, "post")
        self.assertEqual(notifications.first().reference_id, str(self.post.pk))

    def test_upvoting_own_project_does_not_notify(self):
        self.client.force_authenticate(self.owner)
        self.client.post(reverse("project-upvote", kwargs={"pk": self.project.pk}))
        self.assertFalse(Notification.objects.exists())

    def test_delete_deactivates(self):
        url = reverse("project-bookmark", kwargs={"pk": self.project.pk})
        self.client.post(url)

        response = self.client.delete(url)
        self.assertEqual(response.json(), {"active": False, "count": 0})
        response = self.client.delete(url)
        self.assertEqual(response.json(), {"active": False, "count": 0})

    def test_unknown_target_is_404(self):
        response = self.client.post(reverse("project-upvote", kwargs={"pk": 9999}))
        self.assertEqual(response.status_code, 404)

    def test_requires_authentication(self):
        self.client.force_authenticate(None)
        response = self.client.post(reverse("project-upvote", kwargs={"pk": self.project.pk}))
        self.assertEqual(response.status_code, 401)

    def test_reactions_on_a_comment(self):
        comment = Comment.objects.create(
            author=self.owner, target_type="project", target_id=self.project.pk, content="nice"
        )
        url = reverse("reactions")
        body = {"target_type": "comment", "target_id": comment.pk, "emoji": "👏"}

        response = self.client.post(url, body, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["active"])
        self.assertEqual(response.json()["reactions"], {"👏": 1})

        response = self.client.get(url, {"target_type": "comment", "target_id": comment.pk})
        self.assertEqual(response.json()["my_reactions"], ["👏"])

        response = self.client.delete(url, body, format="json")
        self.assertFalse(response.json()["active"])
        self.assertEqual(response.json()["reactions"], {})

    def test_reaction_validation(self):
        response = self.client.post(
            reverse("reactions"),
            {"target_type": "grant", "target_id": 1, "emoji": "👏"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
