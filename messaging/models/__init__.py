from .one_to_one import Conversation, Message, MessageType

__all__ = [
    "Conversation",
    "Message",
    "MessageType",
]
