# notifications/urls.py
from django.urls import path
from .views import NotificationViewSet

urlpatterns = [
    path(
        "",
        NotificationViewSet.as_view({"get": "list", "delete": "clear_all"}),
        name="notification-list",
    ),
    path(
        "unread-count/",
        NotificationViewSet.as_view({"get": "unread_count"}),
        name="notification-unread-count",
    ),
    path(
        "mark-all-read/",
        NotificationViewSet.as_view({"post": "mark_all_read"}),
        name="notification-mark-all-read",
    ),
    path(
        "<int:pk>/",
        NotificationViewSet.as_view({"delete": "destroy"}),
        name="notification-detail",
    ),
    path(
        "<int:pk>/read/",
        NotificationViewSet.as_view({"post": "read"}),
        name="notification-read",
    ),
]
