# notifications/views.py
from rest_framework import viewsets, permissions, status, mixins
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view

from .filters import NotificationFilter
from .serializers import (
    NotificationSerializer,
    UnreadCountSerializer,
    NotificationBulkResultSerializer,
    NotificationReadSerializer,
)
from .services import NotificationDispatcher
import logging

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(
        description="List the caller's notifications, newest first. Filter with is_read and type.",
        summary="List Notifications",
        tags=["Notifications"],
    ),
    destroy=extend_schema(
        description="Delete one of the caller's notifications.",
        summary="Delete Notification",
        tags=["Notifications"],
    ),
)
class NotificationViewSet(
    mixins.ListModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet
):
    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_class = NotificationFilter

    def get_queryset(self):
        return NotificationDispatcher.list_for(self.request.user)

    def destroy(self, request, *args, **kwargs):
        NotificationDispatcher.delete(kwargs["pk"], request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        description="Number of unread notifications for the caller",
        responses={200: UnreadCountSerializer},
        tags=["Notifications"],
    )
    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        count, by_type = NotificationDispatcher.unread_breakdown(request.user)
        return Response({"count": count, "by_type": by_type})

    @extend_schema(
        description="Mark one notification as read. Marking an already read notification is a no-op.",
        request=None,
        responses={200: NotificationReadSerializer},
        tags=["Notifications"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        changed = NotificationDispatcher.mark_read(pk, request.user)
        return Response({"id": int(pk), "is_read": True, "changed": changed})

    @extend_schema(
        description="Mark all unread notifications as read",
        request=None,
        responses={200: NotificationBulkResultSerializer},
        tags=["Notifications"],
    )
    @action(detail=False, methods=["post"], url_path="mark-all-read")
    def mark_all_read(self, request):
        updated = NotificationDispatcher.mark_all_read(request.user)
        return Response({"status": "success", "count": updated})

    @extend_schema(
        description="Permanently delete every notification of the caller",
        request=None,
        responses={200: NotificationBulkResultSerializer},
        tags=["Notifications"],
    )
    def clear_all(self, request):
        deleted = NotificationDispatcher.clear_all(request.user)
        return Response({"status": "success", "count": deleted})
