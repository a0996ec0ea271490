# feeds/permissions.py
import logging

from rest_framework import permissions

logger = logging.getLogger(__name__)


class IsAuthorOrReadOnly(permissions.BasePermission):
    """
    Anyone authenticated may read; only the author (or a superuser) may edit
    or delete.
    """

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        if request.user.is_superuser:
            return True
        is_author = obj.author_id == request.user.pk
        logger.debug(
            "Permission check: user=%s, object=%s, is_author=%s",
            request.user.pk, obj.pk, is_author,
        )
        return is_author
