# messaging/urls.py
from django.urls import path

from .views.one_to_one import ConversationViewSet

urlpatterns = [
    path(
        "",
        ConversationViewSet.as_view({"get": "list", "post": "create"}),
        name="conversation-list",
    ),
    path(
        "unread-count/",
        ConversationViewSet.as_view({"get": "unread_count"}),
        name="conversation-unread-count",
    ),
    path(
        "<int:pk>/messages/",
        ConversationViewSet.as_view({"get": "messages", "post": "messages"}),
        name="conversation-messages",
    ),
    path(
        "<int:pk>/read/",
        ConversationViewSet.as_view({"post": "read"}),
        name="conversation-read",
    ),
]
