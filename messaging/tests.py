from datetime import timedelta
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.exceptions import Forbidden, NotFound
from messaging.exceptions import InvalidConversation, InvalidMessagePayload
from messaging.models import Conversation, Message
from messaging.services import ConversationManager, MessagePayload
from notifications.models import Notification
from users.factories import UserBlockFactory, UserFactory


class Test_MessagePayload(TestCase):
    def test_exactly_one_kind(self):
        self.assertEqual(MessagePayload(text="hi").message_type, "text")
        self.assertEqual(MessagePayload(image_path="img/1.png").message_type, "image")
        self.assertEqual(
            MessagePayload(file_path="f/1.pdf", file_name="cv.pdf").fields()["file_name"], "cv.pdf"
        )

        with self.assertRaises(InvalidMessagePayload):
            MessagePayload().fields()
        with self.assertRaises(InvalidMessagePayload):
            MessagePayload(text="   ").fields()
        with self.assertRaises(InvalidMessagePayload):
            MessagePayload(text="hi", voice_note_path="v/1.webm").fields()
        with self.assertRaises(InvalidMessagePayload):
            MessagePayload(text="hi", file_name="cv.pdf").fields()


class Test_ConversationManager(TestCase):
    def setUp(self):
        cache.clear()
        self.alice = UserFactory()
        self.bob = UserFactory()
        self.carol = UserFactory()

    def test_pair_is_unordered(self):
        first, created = ConversationManager.get_or_create_conversation(self.bob, self.alice)
        second, created_again = ConversationManager.get_or_create_conversation(self.alice, self.bob)

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first.pk, second.pk)
        self.assertLess(first.participant_low_id, first.participant_high_id)

    def test_self_conversation_rejected(self):
        with self.assertRaises(InvalidConversation):
            ConversationManager.get_or_create_conversation(self.alice, self.alice)

    def test_lost_creation_race_returns_winner(self):
        existing, _ = ConversationManager.get_or_create_conversation(self.alice, self.bob)

        # The lookup ran before the other side committed its insert
        with patch("messaging.services.conversation_manager._lookup", return_value=None):
            conversation, created = ConversationManager.get_or_create_conversation(self.bob, self.alice)

        self.assertFalse(created)
        self.assertEqual(conversation.pk, existing.pk)
        self.assertEqual(Conversation.objects.count(), 1)

    def test_simultaneous_first_contact(self):
        ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="hello"))
        with patch("messaging.services.conversation_manager._lookup", return_value=None):
            second = ConversationManager.send_direct_message(
                self.bob, self.alice, MessagePayload(text="hello")
            )

        self.assertEqual(Conversation.objects.count(), 1)
        self.assertEqual(Message.objects.count(), 2)
        conversation = Conversation.objects.get()
        self.assertEqual(conversation.last_message_at, second.created_at)

    def test_last_message_at_only_moves_forward(self):
        conversation, _ = ConversationManager.get_or_create_conversation(self.alice, self.bob)
        message = ConversationManager.append_message(conversation.pk, self.alice, MessagePayload(text="1"))
        future = message.created_at + timedelta(hours=1)
        Conversation.objects.filter(pk=conversation.pk).update(last_message_at=future)

        ConversationManager.append_message(conversation.pk, self.bob, MessagePayload(text="2"))

        conversation.refresh_from_db()
        self.assertEqual(conversation.last_message_at, future)

    def test_non_participant_cannot_append_or_read(self):
        conversation, _ = ConversationManager.get_or_create_conversation(self.alice, self.bob)
        with self.assertRaises(Forbidden):
            ConversationManager.append_message(conversation.pk, self.carol, MessagePayload(text="hey"))
        with self.assertRaises(Forbidden):
            ConversationManager.list_messages(conversation.pk, self.carol)
        with self.assertRaises(NotFound):
            ConversationManager.list_messages(999999, self.alice)
        self.assertFalse(Message.objects.exists())

    def test_messages_are_ordered_and_pollable(self):
        first = ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="1"))
        second = ConversationManager.send_direct_message(self.bob, self.alice, MessagePayload(text="2"))
        third = ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="3"))
        conversation_id = first.conversation_id

        ids = list(ConversationManager.list_messages(conversation_id, self.bob).values_list("id", flat=True))
        self.assertEqual(ids, [first.pk, second.pk, third.pk])
        newer = ConversationManager.list_messages(conversation_id, self.bob, after=second.pk)
        self.assertEqual([message.pk for message in newer], [third.pk])

    def test_unread_counts_follow_read_marker(self):
        ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="1"))
        last = ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="2"))
        ConversationManager.send_direct_message(self.bob, self.alice, MessagePayload(text="mine"))

        bob_view = ConversationManager.list_conversations(self.bob).get()
        self.assertEqual(bob_view.unread_count, 2)
        self.assertEqual(ConversationManager.unread_conversation_count(self.bob), 1)
        self.assertEqual(ConversationManager.list_conversations(self.alice).get().unread_count, 1)

        ConversationManager.mark_read(self.bob, last.conversation_id)
        self.assertEqual(ConversationManager.list_conversations(self.bob).get().unread_count, 0)
        self.assertEqual(ConversationManager.unread_conversation_count(self.bob), 0)

    def test_mark_read_with_earlier_time_is_noop(self):
        message = ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="1"))
        marker = ConversationManager.mark_read(self.bob, message.conversation_id)

        effective = ConversationManager.mark_read(
            self.bob, message.conversation_id, read_through=marker - timedelta(days=1)
        )

        self.assertEqual(effective, marker)
        self.assertEqual(ConversationManager.list_conversations(self.bob).get().unread_count, 0)

    def test_future_read_through_is_clamped_to_latest_message(self):
        message = ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="1"))
        effective = ConversationManager.mark_read(
            self.bob, message.conversation_id, read_through=message.created_at + timedelta(days=3650)
        )
        self.assertEqual(effective, message.created_at)

        ConversationManager.append_message(message.conversation_id, self.alice, MessagePayload(text="new"))
        self.assertEqual(ConversationManager.list_conversations(self.bob).get().unread_count, 1)

    def test_conversations_most_recent_first(self):
        with_bob = ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="1"))
        with_carol = ConversationManager.send_direct_message(self.alice, self.carol, MessagePayload(text="1"))
        empty, _ = ConversationManager.get_or_create_conversation(self.alice, UserFactory())

        ids = [conversation.pk for conversation in ConversationManager.list_conversations(self.alice)]
        self.assertEqual(ids, [with_carol.conversation_id, with_bob.conversation_id, empty.pk])

    def test_sending_notifies_recipient(self):
        message = ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="ping"))

        notification = Notification.objects.get(recipient=self.bob)
        self.assertEqual(notification.type, "message")
        self.assertEqual(notification.reference_type, "user")
        self.assertEqual(notification.reference_id, str(self.alice.pk))
        self.assertEqual(notification.trigger_key, f"message:{message.pk}")
        self.assertEqual(notification.message, "ping")

    def test_blocked_sender_still_delivers_without_notification(self):
        UserBlockFactory(blocker=self.bob, blocked=self.alice)
        ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="ping"))

        self.assertEqual(Message.objects.count(), 1)
        self.assertFalse(Notification.objects.filter(recipient=self.bob).exists())


class Test_ConversationEndpoints(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.alice = UserFactory()
        self.bob = UserFactory()
        self.client.force_authenticate(self.alice)

    def test_first_contact_then_thread(self):
        response = self.client.post(
            reverse("conversation-list"),
            {"recipient_id": self.bob.pk, "content": "hello"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        conversation_id = response.json()["conversation"]

        response = self.client.post(
            reverse("conversation-messages", kwargs={"pk": conversation_id}),
            {"image_path": "uploads/cat.png"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["message_type"], "image")

        response = self.client.get(reverse("conversation-messages", kwargs={"pk": conversation_id}))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [message["message_type"] for message in response.json()["results"]], ["text", "image"]
        )

        self.client.force_authenticate(self.bob)
        response = self.client.get(reverse("conversation-list"))
        conversation = response.json()["results"][0]
        self.assertEqual(conversation["unread_count"], 2)
        self.assertEqual(conversation["other_participant"]["id"], self.alice.pk)
        self.assertEqual(self.client.get(reverse("conversation-unread-count")).json(), {"count": 1})

        response = self.client.post(reverse("conversation-read", kwargs={"pk": conversation_id}))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(reverse("conversation-unread-count")).json(), {"count": 0})

    def test_two_payload_kinds_rejected(self):
        response = self.client.post(
            reverse("conversation-list"),
            {"recipient_id": self.bob.pk, "content": "hi", "voice_note_path": "v/1.webm"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Conversation.objects.exists())

    def test_message_to_self_rejected(self):
        response = self.client.post(
            reverse("conversation-list"),
            {"recipient_id": self.alice.pk, "content": "hi"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)

    def test_outsider_gets_403(self):
        message = ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="x"))
        self.client.force_authenticate(UserFactory())

        response = self.client.get(
            reverse("conversation-messages", kwargs={"pk": message.conversation_id})
        )
        self.assertEqual(response.status_code, 403)
        response = self.client.post(
            reverse("conversation-read", kwargs={"pk": message.conversation_id})
        )
        self.assertEqual(response.status_code, 403)

    def test_future_read_marker_does_not_hide_new_messages(self):
        message = ConversationManager.send_direct_message(self.bob, self.alice, MessagePayload(text="x"))
        response = self.client.post(
            reverse("conversation-read", kwargs={"pk": message.conversation_id}),
            {"read_through": (message.created_at + timedelta(days=3650)).isoformat()},
            format="json",
        )
        self.assertEqual(response.status_code, 200)

        ConversationManager.append_message(message.conversation_id, self.bob, MessagePayload(text="new"))
        conversation = self.client.get(reverse("conversation-list")).json()["results"][0]
        self.assertEqual(conversation["unread_count"], 1)

    def test_non_numeric_after_rejected(self):
        message = ConversationManager.send_direct_message(self.alice, self.bob, MessagePayload(text="x"))
        response = self.client.get(
            reverse("conversation-messages", kwargs={"pk": message.conversation_id}),
            {"after": "abc"},
        )
        self.assertEqual(response.status_code, 400)
