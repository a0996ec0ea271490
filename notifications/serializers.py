# notifications/serializers.py
from rest_framework import serializers

from users.serializers import UserMinimalSerializer
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    from_user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Notification
        fields = [
            "id",
            "type",
            "title",
            "message",
            "reference_type",
            "reference_id",
            "from_user",
            "is_read",
            "read_at",
            "created_at",
        ]
        read_only_fields = fields


class UnreadCountSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    by_type = serializers.DictField(child=serializers.IntegerField())


class NotificationBulkResultSerializer(serializers.Serializer):
    status = serializers.CharField()
    count = serializers.IntegerField()


class NotificationReadSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    is_read = serializers.BooleanField()
    changed = serializers.BooleanField()
