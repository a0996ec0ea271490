# interactions/urls.py
from django.urls import path

from .views import ReactionViewSet, TargetInteractionViewSet

toggle_actions = {"post": "toggle", "delete": "deactivate"}

urlpatterns = [
    path(
        "reactions/",
        ReactionViewSet.as_view({"get": "list", "post": "toggle", "delete": "deactivate"}),
        name="reactions",
    ),
]

for target_type in ("project", "post"):
    for kind in ("upvote", "bookmark"):
        urlpatterns.append(
            path(
                f"{target_type}s/<int:pk>/{kind}/",
                TargetInteractionViewSet.as_view(toggle_actions, target_type=target_type, kind=kind),
                name=f"{target_type}-{kind}",
            )
        )
