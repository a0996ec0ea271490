# messaging/exceptions.py
from core.exceptions import InvalidPayload


class InvalidConversation(InvalidPayload):
    default_detail = "A conversation needs two distinct participants."
    default_code = "invalid_conversation"


class InvalidMessagePayload(InvalidPayload):
    default_detail = "A message must carry exactly one of text, voice note, image or file."
    default_code = "invalid_message_payload"
