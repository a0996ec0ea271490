# feeds/targets.py
"""Lookup of the entities interactions and comments point at"""
from core.exceptions import NotFound
from .models import Comment, Post, Project

TARGET_MODELS = {
    "project": Project,
    "post": Post,
    "comment": Comment,
}


def resolve_target(target_type, target_id):
    """The target instance, or None when the type is unknown or the row is gone"""
    model = TARGET_MODELS.get(str(target_type))
    if model is None:
        return None
    return model.objects.filter(pk=target_id).select_related("author").first()


def get_target_or_404(target_type, target_id):
    target = resolve_target(target_type, target_id)
    if target is None:
        raise NotFound(f"{str(target_type).capitalize()} not found.")
    return target
