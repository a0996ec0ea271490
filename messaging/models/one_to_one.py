# messaging/models/one_to_one.py
from django.db import models
from django.conf import settings


class Conversation(models.Model):
    """
    A 1:1 thread. The participant pair is stored normalised
    (participant_low.pk < participant_high.pk) so the unique constraint
    covers the unordered pair.
    """

    participant_low = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="conversations_as_low",
    )
    participant_high = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="conversations_as_high",
    )
    last_message_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["participant_low", "participant_high"],
                name="unique_conversation_pair",
            ),
            models.CheckConstraint(
                condition=models.Q(participant_low__lt=models.F("participant_high")),
                name="conversation_pair_normalised",
            ),
        ]
        indexes = [
            models.Index(fields=["participant_high"], name="conversation_high_idx"),
        ]

    def __str__(self):
        return f"Conversation {self.pk} ({self.participant_low_id}, {self.participant_high_id})"

    def has_participant(self, user_id) -> bool:
        return user_id in (self.participant_low_id, self.participant_high_id)

    def other_participant_id(self, user_id):
        if user_id == self.participant_low_id:
            return self.participant_high_id
        return self.participant_low_id


class MessageType(models.TextChoices):
    TEXT = "text", "Text"
    VOICE = "voice", "Voice note"
    IMAGE = "image", "Image"
    FILE = "file", "File"


class Message(models.Model):
    """Immutable unit of a conversation; exactly one payload column is set"""

    conversation = models.ForeignKey(
        Conversation, on_delete=models.CASCADE, related_name="messages"
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    message_type = models.CharField(
        max_length=20, choices=MessageType.choices, default=MessageType.TEXT
    )
    content = models.TextField(blank=True, null=True)
    # Opaque object-storage paths; the core never reads the bytes.
    voice_note_path = models.CharField(max_length=500, blank=True, null=True)
    image_path = models.CharField(max_length=500, blank=True, null=True)
    file_path = models.CharField(max_length=500, blank=True, null=True)
    file_name = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["conversation", "created_at"], name="message_timeline_idx"),
        ]

    def __str__(self):
        return f"Message {self.pk} in conversation {self.conversation_id}"

    def preview(self) -> str:
        if self.message_type == MessageType.TEXT:
            return (self.content or "")[:100]
        if self.message_type == MessageType.FILE and self.file_name:
            return f"Sent a file: {self.file_name}"
        return f"Sent a {self.get_message_type_display().lower()}"
