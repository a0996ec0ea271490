# interactions/views.py
import logging

from django.db import transaction
from rest_framework import permissions, viewsets
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from feeds.targets import get_target_or_404
from notifications.services import NotificationDispatcher
from .models import InteractionKind
from .serializers import (
    ReactionInputSerializer,
    ReactionStateSerializer,
    ReactionSummarySerializer,
    ReactionTargetSerializer,
    ToggleStateSerializer,
)
from .tracker import InteractionStateTracker

logger = logging.getLogger(__name__)


class TargetInteractionViewSet(viewsets.ViewSet):
    """
    Upvote or bookmark on a project or post. Configured per route with
    ``target_type`` and ``kind``.
    """

    permission_classes = [permissions.IsAuthenticated]
    target_type = None
    kind = None

    def _state(self, request, pk, active):
        count = InteractionStateTracker.count_for(self.target_type, pk, self.kind)
        return Response({"active": active, "count": count})

    @extend_schema(
        description="Toggle the caller's upvote or bookmark. A new upvote notifies the owner.",
        request=None,
        responses={200: ToggleStateSerializer},
        tags=["Interactions"],
    )
    def toggle(self, request, pk=None):
        target = get_target_or_404(self.target_type, pk)
        with transaction.atomic():
            result = InteractionStateTracker.toggle(request.user, self.target_type, pk, self.kind)
            if self.kind == InteractionKind.UPVOTE and result.fact is not None:
                NotificationDispatcher.notify_upvote(
                    request.user,
                    target.author_id,
                    self.target_type,
                    target.pk,
                    target.headline,
                    fact_id=result.fact.pk,
                )
        return self._state(request, pk, result.active)

    @extend_schema(
        description="Remove the caller's upvote or bookmark. Removing an absent one is a no-op.",
        request=None,
        responses={200: ToggleStateSerializer},
        tags=["Interactions"],
    )
    def deactivate(self, request, pk=None):
        get_target_or_404(self.target_type, pk)
        result = InteractionStateTracker.deactivate(request.user, self.target_type, pk, self.kind)
        return self._state(request, pk, result.active)


class ReactionViewSet(viewsets.ViewSet):
    """Emoji reactions on projects, posts and comments"""

    permission_classes = [permissions.IsAuthenticated]

    def _summary(self, request, target_type, target_id):
        state = InteractionStateTracker.snapshot(
            request.user, [(target_type, target_id)]
        )[(target_type, target_id)]
        return {
            "target_type": target_type,
            "target_id": target_id,
            "reactions": dict(state.reactions),
            "my_reactions": sorted(state.my_reactions),
        }

    @extend_schema(
        description="Reaction counts per emoji and the caller's own reactions",
        parameters=[ReactionTargetSerializer],
        responses={200: ReactionSummarySerializer},
        tags=["Reactions"],
    )
    def list(self, request):
        serializer = ReactionTargetSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        get_target_or_404(data["target_type"], data["target_id"])
        return Response(self._summary(request, data["target_type"], data["target_id"]))

    @extend_schema(
        description="Toggle one emoji reaction. Different emoji are independent of each other.",
        request=ReactionInputSerializer,
        responses={200: ReactionStateSerializer},
        tags=["Reactions"],
    )
    def toggle(self, request):
        data = self._validated(request)
        result = InteractionStateTracker.toggle(
            request.user, data["target_type"], data["target_id"],
            InteractionKind.REACTION, data["emoji"],
        )
        return self._respond(request, data, result.active)

    @extend_schema(
        description="Remove one emoji reaction of the caller",
        request=ReactionInputSerializer,
        responses={200: ReactionStateSerializer},
        tags=["Reactions"],
    )
    def deactivate(self, request):
        data = self._validated(request)
        result = InteractionStateTracker.deactivate(
            request.user, data["target_type"], data["target_id"],
            InteractionKind.REACTION, data["emoji"],
        )
        return self._respond(request, data, result.active)

    def _validated(self, request):
        serializer = ReactionInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        get_target_or_404(data["target_type"], data["target_id"])
        return data

    def _respond(self, request, data, active):
        summary = self._summary(request, data["target_type"], data["target_id"])
        return Response({**summary, "emoji": data["emoji"].strip(), "active": active})
