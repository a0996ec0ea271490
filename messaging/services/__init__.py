# messaging/services/__init__.py
from .conversation_manager import ConversationManager, MessagePayload

__all__ = [
    "ConversationManager",
    "MessagePayload",
]
