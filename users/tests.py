from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.exceptions import InvalidPayload
from notifications.models import Notification
from users import services
from users.factories import UserFactory
from users.models import Follow, UserBlock


class Test_Services(TestCase):
    def setUp(self):
        self.alice = UserFactory()
        self.bob = UserFactory()

    def test_follow_is_idempotent(self):
        self.assertTrue(services.follow_user(self.alice, self.bob))
        self.assertFalse(services.follow_user(self.alice, self.bob))
        self.assertEqual(services.following_ids(self.alice), [self.bob.pk])

    def test_cannot_follow_or_block_self(self):
        with self.assertRaises(InvalidPayload):
            services.follow_user(self.alice, self.alice)
        with self.assertRaises(InvalidPayload):
            services.block_user(self.alice, self.alice)

    def test_block_relation_is_directed(self):
        services.block_user(self.alice, self.bob)
        self.assertTrue(services.has_blocked(self.alice.pk, self.bob.pk))
        self.assertFalse(services.has_blocked(self.bob.pk, self.alice.pk))
        self.assertFalse(services.has_blocked(self.alice.pk, None))

        self.assertTrue(services.unblock_user(self.alice, self.bob))
        self.assertFalse(services.has_blocked(self.alice.pk, self.bob.pk))


class Test_RelationEndpoints(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.alice = UserFactory()
        self.bob = UserFactory()
        self.client.force_authenticate(self.alice)

    def test_follow_and_unfollow(self):
        url = reverse("user-follow", kwargs={"pk": self.bob.pk})

        response = self.client.post(url)
        self.assertEqual(response.status_code, 201)
        response = self.client.post(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Follow.objects.count(), 1)
        self.assertEqual(Notification.objects.filter(recipient=self.bob, type="follow").count(), 1)

        response = self.client.delete(url)
        self.assertEqual(response.json(), {"active": False})
        self.assertFalse(Follow.objects.exists())

    def test_follow_unknown_user(self):
        response = self.client.post(reverse("user-follow", kwargs={"pk": 999999}))
        self.assertEqual(response.status_code, 404)

    def test_block_then_follow_is_silent(self):
        self.client.force_authenticate(self.bob)
        self.client.post(reverse("user-block", kwargs={"pk": self.alice.pk}))
        self.assertTrue(UserBlock.objects.filter(blocker=self.bob, blocked=self.alice).exists())

        self.client.force_authenticate(self.alice)
        self.client.post(reverse("user-follow", kwargs={"pk": self.bob.pk}))
        self.assertFalse(Notification.objects.exists())
