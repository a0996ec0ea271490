# messaging/views/one_to_one.py
import logging

from django.contrib.auth import get_user_model
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view

from core.exceptions import InvalidPayload

from ..pagination import MessagePagination
from ..serializers import (
    ConversationSerializer,
    FirstContactSerializer,
    MarkReadSerializer,
    MessagePayloadSerializer,
    MessageSerializer,
    ReadMarkerSerializer,
    UnreadConversationCountSerializer,
)
from ..services import ConversationManager
from ..throttling import MessageRateThrottle

logger = logging.getLogger(__name__)
User = get_user_model()


@extend_schema_view(
    list=extend_schema(
        description="List the caller's conversations, most recently active first, each with its unread message count and the other participant.",
        summary="List Conversations",
        tags=["Conversations"],
    ),
)
class ConversationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = ConversationSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return ConversationManager.list_conversations(self.request.user)

    def get_throttles(self):
        if self.request.method == "POST" and self.action in ("create", "messages"):
            return [*super().get_throttles(), MessageRateThrottle()]
        return super().get_throttles()

    @extend_schema(
        description="Send a first message to another user. The conversation is created if the pair has none yet.",
        summary="Send Direct Message",
        request=FirstContactSerializer,
        responses={201: MessageSerializer},
        tags=["Conversations"],
    )
    def create(self, request):
        serializer = FirstContactSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        recipient = User.objects.get(pk=serializer.validated_data["recipient_id"])
        message = ConversationManager.send_direct_message(
            request.user, recipient, serializer.validated_data["payload"]
        )
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        description="Number of conversations holding messages the caller has not read",
        responses={200: UnreadConversationCountSerializer},
        tags=["Conversations"],
    )
    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        return Response({"count": ConversationManager.unread_conversation_count(request.user)})

    @extend_schema(
        methods=["GET"],
        description="Messages of the conversation, oldest first. Pass after=<message id> to poll for newer messages.",
        parameters=[OpenApiParameter("after", int, description="Only messages following this message id")],
        responses={200: MessageSerializer(many=True)},
        tags=["Conversations"],
    )
    @extend_schema(
        methods=["POST"],
        description="Append a message. The body carries exactly one of content, voice_note_path, image_path or file_path.",
        request=MessagePayloadSerializer,
        responses={201: MessageSerializer},
        tags=["Conversations"],
    )
    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        if request.method == "POST":
            serializer = MessagePayloadSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            message = ConversationManager.append_message(
                pk, request.user, serializer.validated_data["payload"]
            )
            return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)

        after = request.query_params.get("after")
        if after is not None and not after.isdigit():
            raise InvalidPayload("after must be a message id.")
        queryset = ConversationManager.list_messages(
            pk, request.user, after=int(after) if after else None
        )
        paginator = MessagePagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        return paginator.get_paginated_response(MessageSerializer(page, many=True).data)

    @extend_schema(
        description="Advance the caller's read marker. Without read_through it moves to the latest message. The marker never moves backwards.",
        request=MarkReadSerializer,
        responses={200: ReadMarkerSerializer},
        tags=["Conversations"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        serializer = MarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        read_through = ConversationManager.mark_read(
            request.user, pk, serializer.validated_data.get("read_through")
        )
        return Response({"conversation": int(pk), "read_through": read_through})
