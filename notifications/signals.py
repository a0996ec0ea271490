# notifications/signals.py
import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from feeds.models import Comment
from messaging.models import Message
from users.models import Follow
from .services import NotificationDispatcher

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Follow)
def create_follow_notification(sender, instance, created, **kwargs):
    if created:
        NotificationDispatcher.notify_follow(instance)


@receiver(post_save, sender=Comment)
def create_comment_notification(sender, instance, created, **kwargs):
    if not created:
        return
    target = instance.target
    if target is None:
        logger.warning(
            "Comment %s points at missing %s#%s; no notification sent",
            instance.pk, instance.target_type, instance.target_id,
        )
        return
    NotificationDispatcher.notify_comment(instance, target.author_id, target.headline)


@receiver(post_save, sender=Message)
def create_message_notification(sender, instance, created, **kwargs):
    if created:
        recipient_id = instance.conversation.other_participant_id(instance.sender_id)
        NotificationDispatcher.notify_message(instance, recipient_id)
