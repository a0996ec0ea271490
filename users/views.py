# users/views.py
from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .serializers import RelationStatusSerializer
from . import services

import logging

logger = logging.getLogger(__name__)

User = get_user_model()


class UserRelationViewSet(viewsets.ViewSet):
    """Follow and block edges between the caller and another user"""

    permission_classes = [IsAuthenticated]

    def _target(self, pk):
        return get_object_or_404(User, pk=pk)

    @extend_schema(
        description="Follow a user. The followed user is notified once per new follow.",
        request=None,
        responses={200: RelationStatusSerializer, 201: RelationStatusSerializer},
        tags=["Users"],
    )
    def follow(self, request, pk=None):
        created = services.follow_user(request.user, self._target(pk))
        return Response(
            {"active": True},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(
        description="Stop following a user.",
        request=None,
        responses={200: RelationStatusSerializer},
        tags=["Users"],
    )
    def unfollow(self, request, pk=None):
        services.unfollow_user(request.user, self._target(pk))
        return Response({"active": False})

    @extend_schema(
        description="Block a user. Notifications caused by a blocked user are suppressed.",
        request=None,
        responses={200: RelationStatusSerializer, 201: RelationStatusSerializer},
        tags=["Users"],
    )
    def block(self, request, pk=None):
        created = services.block_user(request.user, self._target(pk))
        return Response(
            {"active": True},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(
        description="Remove a block.",
        request=None,
        responses={200: RelationStatusSerializer},
        tags=["Users"],
    )
    def unblock(self, request, pk=None):
        services.unblock_user(request.user, self._target(pk))
        return Response({"active": False})
