# users/urls.py
from django.urls import path
from .views import UserRelationViewSet

urlpatterns = [
    path(
        "<int:pk>/follow/",
        UserRelationViewSet.as_view({"post": "follow", "delete": "unfollow"}),
        name="user-follow",
    ),
    path(
        "<int:pk>/block/",
        UserRelationViewSet.as_view({"post": "block", "delete": "unblock"}),
        name="user-block",
    ),
]
