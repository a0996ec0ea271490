# messaging/serializers/__init__.py
from .one_to_one import (
    ConversationSerializer,
    FirstContactSerializer,
    MarkReadSerializer,
    MessagePayloadSerializer,
    MessageSerializer,
    ReadMarkerSerializer,
    UnreadConversationCountSerializer,
)

__all__ = [
    "ConversationSerializer",
    "FirstContactSerializer",
    "MarkReadSerializer",
    "MessagePayloadSerializer",
    "MessageSerializer",
    "ReadMarkerSerializer",
    "UnreadConversationCountSerializer",
]
