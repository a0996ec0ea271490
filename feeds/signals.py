# feeds/signals.py
from django.db.models.signals import post_delete
from django.dispatch import receiver

from interactions.models import InteractionFact
from notifications.models import Notification
from notifications.services import NotificationCacheService
from feeds.models import Comment, Post, Project

import logging

logger = logging.getLogger(__name__)


def _purge_target(target_type, target_id):
    """Drop the rows that point at a deleted target through (type, id) columns."""
    facts, _ = InteractionFact.objects.filter(
        target_type=target_type, target_id=target_id
    ).delete()

    comments = 0
    if target_type != "comment":
        # Each comment delete cascades into its own reactions through this module
        comments, _ = Comment.objects.filter(
            target_type=target_type, target_id=target_id
        ).delete()

        referencing = Notification.objects.filter(
            reference_type=target_type, reference_id=str(target_id)
        )
        recipients = set(referencing.values_list("recipient_id", flat=True))
        referencing.delete()
        for recipient_id in recipients:
            NotificationCacheService.invalidate_cache(recipient_id)

    logger.debug(
        "Purged %s#%s: %s interaction facts, %s comments",
        target_type, target_id, facts, comments,
    )


@receiver(post_delete, sender=Project)
def purge_deleted_project(sender, instance, **kwargs):
    _purge_target("project", instance.pk)


@receiver(post_delete, sender=Post)
def purge_deleted_post(sender, instance, **kwargs):
    _purge_target("post", instance.pk)


@receiver(post_delete, sender=Comment)
def purge_deleted_comment(sender, instance, **kwargs):
    _purge_target("comment", instance.pk)
