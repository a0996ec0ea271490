from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import mixins, status, viewsets
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from core.exceptions import Forbidden
from feeds.composer import FeedComposer, FeedScope
from feeds.models import Comment, Community, CommunityMember, Post, Project
from feeds.permissions import IsAuthorOrReadOnly
from feeds.serializers import (
    CommentSerializer,
    FeedPageSerializer,
    MembershipSerializer,
    PostSerializer,
    ProjectSerializer,
)
from feeds.targets import get_target_or_404

import logging

logger = logging.getLogger(__name__)

FEED_PARAMETERS = [
    OpenApiParameter("cursor", OpenApiTypes.STR, description="Opaque cursor from the previous page"),
    OpenApiParameter("page_size", OpenApiTypes.INT, description="Items per page (capped)"),
]


def _compose_response(request, scope):
    page = FeedComposer.compose(
        request.user,
        scope,
        cursor=request.query_params.get("cursor"),
        page_size=request.query_params.get("page_size"),
    )
    return Response(FeedPageSerializer(page, context={"request": request}).data)


class FeedViewSet(viewsets.ViewSet):
    """Personal, global and featured feeds"""

    def get_permissions(self):
        if self.action in ("global_feed", "featured"):
            return [AllowAny()]
        return [IsAuthenticated()]

    @extend_schema(
        description="Posts and projects from the people the caller follows and the caller, newest first",
        parameters=FEED_PARAMETERS,
        responses={200: OpenApiTypes.OBJECT},
        tags=["Feed"],
    )
    def personal(self, request):
        return _compose_response(request, FeedScope(FeedScope.PERSONAL))

    @extend_schema(
        description="All posts and projects, newest first. Authentication optional.",
        parameters=FEED_PARAMETERS,
        responses={200: OpenApiTypes.OBJECT},
        tags=["Feed"],
    )
    def global_feed(self, request):
        return _compose_response(request, FeedScope(FeedScope.GLOBAL))

    @extend_schema(
        description="Most upvoted items of a scope within the recent window. Separate from the main feed order.",
        parameters=[
            OpenApiParameter(
                "scope", OpenApiTypes.STR,
                description="global (default), personal or community:<id>",
            ),
        ],
        responses={200: OpenApiTypes.OBJECT},
        tags=["Feed"],
    )
    def featured(self, request):
        scope = FeedScope.parse(request.query_params.get("scope") or FeedScope.GLOBAL)
        page = FeedComposer.featured(request.user, scope)
        return Response(FeedPageSerializer(page, context={"request": request}).data)

    @extend_schema(
        description="Projects and posts the caller has bookmarked, most recently bookmarked first",
        parameters=[
            OpenApiParameter("target_type", OpenApiTypes.STR, description="project or post"),
        ],
        responses={200: OpenApiTypes.OBJECT},
        tags=["Feed"],
    )
    def bookmarked(self, request):
        page = FeedComposer.bookmarked(request.user, request.query_params.get("target_type"))
        return Response(FeedPageSerializer(page, context={"request": request}).data)


class CommunityViewSet(viewsets.ViewSet):
    """Community feed and membership"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        description="Posts shared into the community, newest first. Empty when the caller is not a member.",
        parameters=FEED_PARAMETERS,
        responses={200: OpenApiTypes.OBJECT},
        tags=["Communities"],
    )
    def posts(self, request, pk=None):
        return _compose_response(request, FeedScope.community(pk))

    @extend_schema(
        description="Join a public community",
        request=None,
        responses={200: MembershipSerializer, 201: MembershipSerializer},
        tags=["Communities"],
    )
    def join(self, request, pk=None):
        community = get_object_or_404(Community, pk=pk)
        if community.is_private and not community.is_member(request.user):
            raise Forbidden("This community is invite only.")
        membership, created = CommunityMember.objects.get_or_create(
            community=community, user=request.user
        )
        if created:
            logger.info("User %s joined community %s", request.user.pk, community.pk)
        return Response(
            {"community": community.pk, "is_member": True, "role": membership.role},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(
        description="Leave a community",
        request=None,
        responses={200: MembershipSerializer},
        tags=["Communities"],
    )
    def leave(self, request, pk=None):
        community = get_object_or_404(Community, pk=pk)
        CommunityMember.objects.filter(community=community, user=request.user).delete()
        return Response({"community": community.pk, "is_member": False, "role": None})


@extend_schema_view(
    create=extend_schema(summary="Create Project", tags=["Projects"]),
    retrieve=extend_schema(summary="Retrieve Project", tags=["Projects"]),
    partial_update=extend_schema(summary="Edit Project", tags=["Projects"]),
    destroy=extend_schema(summary="Delete Project", tags=["Projects"]),
)
class ProjectViewSet(
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Project.objects.select_related("author")
    serializer_class = ProjectSerializer
    permission_classes = [IsAuthenticated, IsAuthorOrReadOnly]

    def perform_create(self, serializer):
        serializer.save(author=self.request.user)

    def perform_destroy(self, instance):
        pk = instance.pk
        # Interactions, comments and notifications go with it
        with transaction.atomic():
            instance.delete()
        logger.info("User %s deleted %s#%s", self.request.user.pk, instance._meta.model_name, pk)


@extend_schema_view(
    create=extend_schema(summary="Create Post", tags=["Posts"]),
    retrieve=extend_schema(summary="Retrieve Post", tags=["Posts"]),
    partial_update=extend_schema(summary="Edit Post", tags=["Posts"]),
    destroy=extend_schema(summary="Delete Post", tags=["Posts"]),
)
class PostViewSet(
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Post.objects.select_related("author").prefetch_related("media")
    serializer_class = PostSerializer
    permission_classes = [IsAuthenticated, IsAuthorOrReadOnly]

    def perform_create(self, serializer):
        serializer.save(author=self.request.user)

    def perform_destroy(self, instance):
        pk = instance.pk
        # Interactions, comments and notifications go with it
        with transaction.atomic():
            instance.delete()
        logger.info("User %s deleted %s#%s", self.request.user.pk, instance._meta.model_name, pk)


class TargetCommentViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Comments of one project or post, oldest first"""

    serializer_class = CommentSerializer
    permission_classes = [IsAuthenticated, IsAuthorOrReadOnly]
    target_type = None

    def get_queryset(self):
        return Comment.objects.filter(
            target_type=self.target_type, target_id=self.kwargs["pk"]
        ).select_related("author")

    @extend_schema(description="List comments", tags=["Comments"])
    def list(self, request, *args, **kwargs):
        get_target_or_404(self.target_type, kwargs["pk"])
        return super().list(request, *args, **kwargs)

    @extend_schema(
        description="Add a comment. The owner of the project or post is notified.",
        responses={201: CommentSerializer},
        tags=["Comments"],
    )
    def create(self, request, pk=None):
        get_target_or_404(self.target_type, pk)
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            comment = serializer.save(
                author=request.user, target_type=self.target_type, target_id=pk
            )
        logger.info("User %s commented on %s#%s", request.user.pk, self.target_type, pk)
        return Response(self.get_serializer(comment).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        description="Delete one of your comments",
        responses={204: None},
        tags=["Comments"],
    )
    def destroy(self, request, pk=None, comment_pk=None):
        comment = get_object_or_404(self.get_queryset(), pk=comment_pk)
        self.check_object_permissions(request, comment)
        with transaction.atomic():
            comment.delete()
        logger.info("User %s deleted comment %s on %s#%s", request.user.pk, comment_pk, self.target_type, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
