from django.urls import path

from .views import (
    CommunityViewSet,
    FeedViewSet,
    PostViewSet,
    ProjectViewSet,
    TargetCommentViewSet,
)

detail_actions = {"get": "retrieve", "patch": "partial_update", "delete": "destroy"}

urlpatterns = [
    # Feeds
    path("feed/", FeedViewSet.as_view({"get": "personal"}), name="feed-personal"),
    path("feed/global/", FeedViewSet.as_view({"get": "global_feed"}), name="feed-global"),
    path("feed/featured/", FeedViewSet.as_view({"get": "featured"}), name="feed-featured"),
    path("bookmarks/", FeedViewSet.as_view({"get": "bookmarked"}), name="bookmarks"),
    # Communities
    path(
        "communities/<int:pk>/posts/",
        CommunityViewSet.as_view({"get": "posts"}),
        name="community-posts",
    ),
    path(
        "communities/<int:pk>/membership/",
        CommunityViewSet.as_view({"post": "join", "delete": "leave"}),
        name="community-membership",
    ),
    # Projects
    path("projects/", ProjectViewSet.as_view({"post": "create"}), name="project-list"),
    path("projects/<int:pk>/", ProjectViewSet.as_view(detail_actions), name="project-detail"),
    path(
        "projects/<int:pk>/comments/",
        TargetCommentViewSet.as_view({"get": "list", "post": "create"}, target_type="project"),
        name="project-comments",
    ),
    path(
        "projects/<int:pk>/comments/<int:comment_pk>/",
        TargetCommentViewSet.as_view({"delete": "destroy"}, target_type="project"),
        name="project-comment-detail",
    ),
    # Posts
    path("posts/", PostViewSet.as_view({"post": "create"}), name="post-list"),
    path("posts/<int:pk>/", PostViewSet.as_view(detail_actions), name="post-detail"),
    path(
        "posts/<int:pk>/comments/",
        TargetCommentViewSet.as_view({"get": "list", "post": "create"}, target_type="post"),
        name="post-comments",
    ),
    path(
        "posts/<int:pk>/comments/<int:comment_pk>/",
        TargetCommentViewSet.as_view({"delete": "destroy"}, target_type="post"),
        name="post-comment-detail",
    ),
]
