# messaging/serializers/one_to_one.py
from django.contrib.auth import get_user_model
from rest_framework import serializers

from users.serializers import UserMinimalSerializer
from ..models import Conversation, Message
from ..services import MessagePayload

User = get_user_model()


class MessageSerializer(serializers.ModelSerializer):
    sender = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "conversation",
            "sender",
            "message_type",
            "content",
            "voice_note_path",
            "image_path",
            "file_path",
            "file_name",
            "created_at",
        ]
        read_only_fields = fields


class MessagePayloadSerializer(serializers.Serializer):
    """Exactly one of content, voice_note_path, image_path or file_path"""

    content = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    voice_note_path = serializers.CharField(required=False, max_length=500)
    image_path = serializers.CharField(required=False, max_length=500)
    file_path = serializers.CharField(required=False, max_length=500)
    file_name = serializers.CharField(required=False, max_length=255)

    def validate(self, attrs):
        payload = MessagePayload.from_data(attrs)
        # Raises InvalidMessagePayload unless exactly one kind is present
        payload.fields()
        attrs["payload"] = payload
        return attrs


class FirstContactSerializer(MessagePayloadSerializer):
    recipient_id = serializers.IntegerField()

    def validate_recipient_id(self, value):
        if not User.objects.filter(pk=value, is_active=True).exists():
            raise serializers.ValidationError("Recipient not found.")
        return value


class ConversationSerializer(serializers.ModelSerializer):
    other_participant = serializers.SerializerMethodField()
    unread_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Conversation
        fields = ["id", "other_participant", "last_message_at", "created_at", "unread_count"]
        read_only_fields = fields

    def get_other_participant(self, obj):
        user = self.context["request"].user
        other = obj.participant_high if obj.participant_low_id == user.pk else obj.participant_low
        return UserMinimalSerializer(other).data


class MarkReadSerializer(serializers.Serializer):
    read_through = serializers.DateTimeField(required=False)


class ReadMarkerSerializer(serializers.Serializer):
    conversation = serializers.IntegerField()
    read_through = serializers.DateTimeField()


class UnreadConversationCountSerializer(serializers.Serializer):
    count = serializers.IntegerField()
