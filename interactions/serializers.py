# interactions/serializers.py
from django.conf import settings
from rest_framework import serializers

from .models import TargetType


class ToggleStateSerializer(serializers.Serializer):
    active = serializers.BooleanField()
    count = serializers.IntegerField()


class ReactionTargetSerializer(serializers.Serializer):
    target_type = serializers.ChoiceField(choices=TargetType.choices)
    target_id = serializers.IntegerField(min_value=1)


class ReactionInputSerializer(ReactionTargetSerializer):
    emoji = serializers.CharField(max_length=settings.REACTION_MAX_LENGTH)


class ReactionSummarySerializer(serializers.Serializer):
    target_type = serializers.CharField()
    target_id = serializers.IntegerField()
    reactions = serializers.DictField(child=serializers.IntegerField())
    my_reactions = serializers.ListField(child=serializers.CharField())


class ReactionStateSerializer(ReactionSummarySerializer):
    emoji = serializers.CharField()
    active = serializers.BooleanField()
