# messaging/services/conversation_manager.py
"""
Direct-message threads between two users.

A conversation is keyed by its normalised participant pair and created on
first contact. Concurrent first contact from both sides is arbitrated by the
unique pair constraint: the losing insert re-reads the winning row.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from typing import Dict, Optional, Tuple

from django.db import IntegrityError, transaction
from django.db.models import Count, DateTimeField, F, IntegerField, OuterRef, Q, QuerySet, Subquery, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.exceptions import Forbidden, NotFound
from interactions.tracker import InteractionStateTracker
from ..exceptions import InvalidConversation, InvalidMessagePayload
from ..models import Conversation, Message, MessageType

logger = logging.getLogger(__name__)

READ_MARKER_TARGET = "conversation"
EPOCH = datetime(1970, 1, 1, tzinfo=dt_timezone.utc)


def _pk(user_or_id):
    return getattr(user_or_id, "pk", user_or_id)


@dataclass(frozen=True)
class MessagePayload:
    """Exactly one of the payload pointers is set"""

    text: Optional[str] = None
    voice_note_path: Optional[str] = None
    image_path: Optional[str] = None
    file_path: Optional[str] = None
    file_name: Optional[str] = None

    @classmethod
    def from_data(cls, data) -> "MessagePayload":
        return cls(
            text=data.get("content") or data.get("text"),
            voice_note_path=data.get("voice_note_path"),
            image_path=data.get("image_path"),
            file_path=data.get("file_path"),
            file_name=data.get("file_name"),
        )

    @property
    def message_type(self) -> str:
        provided = [
            message_type
            for message_type, value in (
                (MessageType.TEXT, (self.text or "").strip()),
                (MessageType.VOICE, self.voice_note_path),
                (MessageType.IMAGE, self.image_path),
                (MessageType.FILE, self.file_path),
            )
            if value
        ]
        if len(provided) != 1:
            raise InvalidMessagePayload()
        if self.file_name and provided[0] != MessageType.FILE:
            raise InvalidMessagePayload("file_name is only valid for a file message.")
        return provided[0].value

    def fields(self) -> Dict:
        message_type = self.message_type
        return {
            "message_type": message_type,
            "content": self.text.strip() if message_type == MessageType.TEXT else None,
            "voice_note_path": self.voice_note_path if message_type == MessageType.VOICE else None,
            "image_path": self.image_path if message_type == MessageType.IMAGE else None,
            "file_path": self.file_path if message_type == MessageType.FILE else None,
            "file_name": self.file_name if message_type == MessageType.FILE else None,
        }


def _lookup(low_id, high_id) -> Optional[Conversation]:
    return Conversation.objects.filter(
        participant_low_id=low_id, participant_high_id=high_id
    ).first()


def _participant_conversation(conversation_id, user_id) -> Conversation:
    conversation = Conversation.objects.filter(pk=conversation_id).first()
    if conversation is None:
        raise NotFound("Conversation not found.")
    if not conversation.has_participant(user_id):
        raise Forbidden("You are not a participant in this conversation.")
    return conversation


class ConversationManager:
    """Lookup, append and unread bookkeeping for 1:1 conversations"""

    @staticmethod
    def get_or_create_conversation(user_a, user_b) -> Tuple[Conversation, bool]:
        a_id, b_id = _pk(user_a), _pk(user_b)
        if a_id == b_id:
            raise InvalidConversation()
        low_id, high_id = sorted((a_id, b_id))

        conversation = _lookup(low_id, high_id)
        if conversation is not None:
            return conversation, False
        try:
            with transaction.atomic():
                conversation = Conversation.objects.create(
                    participant_low_id=low_id, participant_high_id=high_id
                )
        except IntegrityError:
            logger.info(
                "Conversation between %s and %s created concurrently; using the existing one",
                low_id, high_id,
            )
            return Conversation.objects.get(
                participant_low_id=low_id, participant_high_id=high_id
            ), False
        logger.info("Created conversation %s between %s and %s", conversation.pk, low_id, high_id)
        return conversation, True

    @staticmethod
    @transaction.atomic
    def append_message(conversation_id, sender, payload: MessagePayload) -> Message:
        sender_id = _pk(sender)
        fields = payload.fields()
        conversation = _participant_conversation(conversation_id, sender_id)

        message = Message.objects.create(
            conversation=conversation, sender_id=sender_id, **fields
        )
        # Only ever moves forward, so racing appends settle on the latest.
        Conversation.objects.filter(pk=conversation.pk).filter(
            Q(last_message_at__isnull=True) | Q(last_message_at__lt=message.created_at)
        ).update(last_message_at=message.created_at)

        logger.info(
            "User %s sent %s message %s in conversation %s",
            sender_id, message.message_type, message.pk, conversation.pk,
        )
        return message

    @staticmethod
    @transaction.atomic
    def send_direct_message(sender, recipient, payload: MessagePayload) -> Message:
        """First-contact send: the conversation exists only if the message does."""
        payload.fields()
        conversation, _ = ConversationManager.get_or_create_conversation(sender, recipient)
        return ConversationManager.append_message(conversation.pk, sender, payload)

    @staticmethod
    def list_messages(conversation_id, user, after: Optional[int] = None) -> QuerySet:
        """Messages oldest first; ``after`` restricts to messages following that message id."""
        _participant_conversation(conversation_id, _pk(user))
        queryset = Message.objects.filter(conversation_id=conversation_id).select_related("sender")
        if after is not None:
            anchor = (
                Message.objects.filter(pk=after, conversation_id=conversation_id)
                .values("created_at", "id")
                .first()
            )
            if anchor is None:
                raise NotFound("Message not found in this conversation.")
            queryset = queryset.filter(
                Q(created_at__gt=anchor["created_at"])
                | Q(created_at=anchor["created_at"], id__gt=anchor["id"])
            )
        return queryset.order_by("created_at", "id")

    @staticmethod
    def list_conversations(user) -> QuerySet:
        """
        The caller's conversations, most recently active first, each annotated
        with ``read_through`` and ``unread_count`` (messages from the other
        participant after the caller's read marker).
        """
        user_id = _pk(user)
        unread = (
            Message.objects.filter(
                conversation_id=OuterRef("pk"), created_at__gt=OuterRef("read_through")
            )
            .exclude(sender_id=user_id)
            .order_by()
            .values("conversation_id")
            .annotate(total=Count("id"))
            .values("total")[:1]
        )
        return (
            Conversation.objects.filter(
                Q(participant_low_id=user_id) | Q(participant_high_id=user_id)
            )
            .select_related("participant_low", "participant_high")
            .annotate(
                read_through=Coalesce(
                    InteractionStateTracker.read_marker_subquery(user_id, READ_MARKER_TARGET),
                    Value(EPOCH, output_field=DateTimeField()),
                )
            )
            .annotate(
                unread_count=Coalesce(
                    Subquery(unread, output_field=IntegerField()), Value(0)
                )
            )
            .order_by(F("last_message_at").desc(nulls_last=True), "-id")
        )

    @staticmethod
    def mark_read(user, conversation_id, read_through: Optional[datetime] = None) -> datetime:
        """
        Advance the caller's marker to ``read_through`` (default: the latest
        message, or now for an empty thread). Returns the effective marker,
        which never moves backwards.

        A requested position past the latest message is clamped to it, so a
        future timestamp cannot hide messages that have not been sent yet.
        """
        user_id = _pk(user)
        _participant_conversation(conversation_id, user_id)
        latest = (
            Message.objects.filter(conversation_id=conversation_id)
            .order_by("-created_at", "-id")
            .values_list("created_at", flat=True)
            .first()
        )
        ceiling = latest or timezone.now()
        if read_through is None or read_through > ceiling:
            read_through = ceiling
        return InteractionStateTracker.advance_read_marker(
            user_id, READ_MARKER_TARGET, conversation_id, read_through
        )

    @staticmethod
    def unread_conversation_count(user) -> int:
        return ConversationManager.list_conversations(user).filter(unread_count__gt=0).count()
