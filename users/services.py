# users/services.py
"""
Social graph and block relation used by the feed and notification core.
"""
import logging
from typing import List

from django.db import transaction

from core.exceptions import InvalidPayload
from .models import Follow, UserBlock

logger = logging.getLogger(__name__)


@transaction.atomic
def follow_user(follower, following) -> bool:
    """Create the follow edge; returns True only when a new edge was made."""
    if follower.pk == following.pk:
        raise InvalidPayload("You cannot follow yourself.")
    _, created = Follow.objects.get_or_create(follower=follower, following=following)
    if created:
        logger.info("User %s now follows %s", follower.pk, following.pk)
    return created


@transaction.atomic
def unfollow_user(follower, following) -> bool:
    deleted, _ = Follow.objects.filter(follower=follower, following=following).delete()
    return deleted > 0


def following_ids(user) -> List[int]:
    return list(
        Follow.objects.filter(follower=user).values_list("following_id", flat=True)
    )


@transaction.atomic
def block_user(blocker, blocked) -> bool:
    if blocker.pk == blocked.pk:
        raise InvalidPayload("You cannot block yourself.")
    _, created = UserBlock.objects.get_or_create(blocker=blocker, blocked=blocked)
    if created:
        logger.info("User %s blocked %s", blocker.pk, blocked.pk)
    return created


@transaction.atomic
def unblock_user(blocker, blocked) -> bool:
    deleted, _ = UserBlock.objects.filter(blocker=blocker, blocked=blocked).delete()
    return deleted > 0


def has_blocked(blocker_id, blocked_id) -> bool:
    if blocker_id is None or blocked_id is None:
        return False
    return UserBlock.objects.filter(
        blocker_id=blocker_id, blocked_id=blocked_id
    ).exists()
