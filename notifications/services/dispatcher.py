# notifications/services/dispatcher.py
import enum
import logging
from typing import Dict, Optional, Tuple, Union

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from core.exceptions import Forbidden, NotFound
from users.services import has_blocked
from ..models import Notification, NotificationKind
from ..references import (
    GrantReference,
    NoReference,
    Reference,
    UserReference,
    for_target,
)
from .cache_service import NotificationCacheService

logger = logging.getLogger(__name__)


class Suppression(enum.Enum):
    """A notify() call that deliberately produced no row. Not an error."""

    SELF_NOTIFICATION = "self_notification"
    BLOCKED = "blocked"


def _pk(user_or_id):
    return getattr(user_or_id, "pk", user_or_id)


def _display_name(user) -> str:
    if user is None:
        return "Someone"
    return user.get_full_name() or user.username


class NotificationDispatcher:
    """Turns domain events into per-recipient notification rows"""

    @staticmethod
    @transaction.atomic
    def notify(
        recipient,
        type: str,
        title: str,
        from_user=None,
        reference: Reference = NoReference(),
        message: Optional[str] = None,
        trigger_key: Optional[str] = None,
    ) -> Union[Notification, Suppression]:
        """
        Record a notification for ``recipient``.

        Returns ``Suppression.SELF_NOTIFICATION`` when the recipient caused the
        event and ``Suppression.BLOCKED`` when the recipient has blocked the
        sender. When ``trigger_key`` is given, delivering the same trigger
        again returns the row created the first time.
        """
        recipient_id = _pk(recipient)
        from_user_id = _pk(from_user)

        if from_user_id is not None and from_user_id == recipient_id:
            logger.debug("Suppressed self %s notification for user %s", type, recipient_id)
            return Suppression.SELF_NOTIFICATION
        if has_blocked(recipient_id, from_user_id):
            logger.info(
                "Suppressed %s notification for user %s: sender %s is blocked",
                type, recipient_id, from_user_id,
            )
            return Suppression.BLOCKED

        reference_type, reference_id = reference.columns()
        identity = {
            "recipient_id": recipient_id,
            "type": type,
            "reference_type": reference_type,
            "reference_id": reference_id,
        }
        content = {
            "from_user_id": from_user_id,
            "title": title[:255],
            "message": message,
        }

        if trigger_key is None:
            notification = Notification.objects.create(**identity, **content)
        else:
            notification, created = Notification.objects.get_or_create(
                **identity, trigger_key=trigger_key, defaults=content
            )
            if not created:
                logger.info(
                    "Trigger %s already delivered to user %s as notification %s",
                    trigger_key, recipient_id, notification.pk,
                )
                return notification

        NotificationCacheService.invalidate_cache(recipient_id)
        logger.info(
            "Created %s notification %s for user %s", type, notification.pk, recipient_id
        )
        return notification

    @staticmethod
    def list_for(recipient, is_read: Optional[bool] = None, type: Optional[str] = None) -> QuerySet:
        queryset = Notification.objects.filter(recipient_id=_pk(recipient))
        if is_read is not None:
            queryset = queryset.filter(is_read=is_read)
        if type:
            queryset = queryset.filter(type=type)
        return queryset.select_related("from_user").order_by("-created_at", "-id")

    @staticmethod
    def unread_count(recipient) -> int:
        recipient_id = _pk(recipient)
        count = NotificationCacheService.get_cached_unread_count(recipient_id)
        if count is None:
            count = Notification.objects.filter(
                recipient_id=recipient_id, is_read=False
            ).count()
            NotificationCacheService.set_cached_unread_count(recipient_id, count)
        return count

    @staticmethod
    def unread_breakdown(recipient) -> Tuple[int, Dict[str, int]]:
        """Unread total and per-type counts read from the same grouped rows"""
        recipient_id = _pk(recipient)
        by_type = {
            row["type"]: row["count"]
            for row in Notification.get_unread_count_by_type(recipient_id)
        }
        count = sum(by_type.values())
        NotificationCacheService.set_cached_unread_count(recipient_id, count)
        return count, by_type

    @staticmethod
    def _owned(notification_id, recipient_id) -> None:
        owner_id = (
            Notification.objects.filter(pk=notification_id)
            .values_list("recipient_id", flat=True)
            .first()
        )
        if owner_id is None:
            raise NotFound("Notification not found.")
        if owner_id != recipient_id:
            raise Forbidden("This notification belongs to another user.")

    @staticmethod
    @transaction.atomic
    def mark_read(notification_id, recipient) -> bool:
        """Returns True when the notification went from unread to read."""
        recipient_id = _pk(recipient)
        NotificationDispatcher._owned(notification_id, recipient_id)
        updated = Notification.objects.filter(
            pk=notification_id, recipient_id=recipient_id, is_read=False
        ).update(is_read=True, read_at=timezone.now())
        if updated:
            NotificationCacheService.invalidate_cache(recipient_id)
        return bool(updated)

    @staticmethod
    @transaction.atomic
    def mark_all_read(recipient) -> int:
        recipient_id = _pk(recipient)
        updated = Notification.objects.filter(
            recipient_id=recipient_id, is_read=False
        ).update(is_read=True, read_at=timezone.now())
        logger.info("Marked %s notifications as read for user %s", updated, recipient_id)
        NotificationCacheService.invalidate_cache(recipient_id)
        return updated

    @staticmethod
    @transaction.atomic
    def delete(notification_id, recipient) -> None:
        recipient_id = _pk(recipient)
        NotificationDispatcher._owned(notification_id, recipient_id)
        Notification.objects.filter(pk=notification_id, recipient_id=recipient_id).delete()
        NotificationCacheService.invalidate_cache(recipient_id)

    @staticmethod
    @transaction.atomic
    def clear_all(recipient) -> int:
        recipient_id = _pk(recipient)
        deleted, _ = Notification.objects.filter(recipient_id=recipient_id).delete()
        logger.info("Cleared %s notifications for user %s", deleted, recipient_id)
        NotificationCacheService.invalidate_cache(recipient_id)
        return deleted

    # Domain events

    @staticmethod
    def notify_upvote(actor, owner_id, target_type, target_id, target_title, fact_id=None):
        return NotificationDispatcher.notify(
            recipient=owner_id,
            type=NotificationKind.UPVOTE,
            title=f"New upvote on your {target_type}",
            from_user=actor,
            reference=for_target(target_type, target_id),
            message=f'{_display_name(actor)} upvoted "{target_title}"',
            trigger_key=f"upvote:{fact_id}" if fact_id else None,
        )

    @staticmethod
    def notify_comment(comment, owner_id, target_title):
        return NotificationDispatcher.notify(
            recipient=owner_id,
            type=NotificationKind.COMMENT,
            title=f"New comment on your {comment.target_type}",
            from_user=comment.author,
            reference=for_target(comment.target_type, comment.target_id),
            message=comment.content[:100],
            trigger_key=f"comment:{comment.pk}",
        )

    @staticmethod
    def notify_follow(follow):
        return NotificationDispatcher.notify(
            recipient=follow.following_id,
            type=NotificationKind.FOLLOW,
            title="New follower",
            from_user=follow.follower,
            reference=UserReference(follow.follower_id),
            message=f"{_display_name(follow.follower)} started following you",
            trigger_key=f"follow:{follow.pk}",
        )

    @staticmethod
    def notify_message(message, recipient_id):
        return NotificationDispatcher.notify(
            recipient=recipient_id,
            type=NotificationKind.MESSAGE,
            title=f"New message from {_display_name(message.sender)}",
            from_user=message.sender,
            reference=UserReference(message.sender_id),
            message=message.preview(),
            trigger_key=f"message:{message.pk}",
        )

    @staticmethod
    def notify_grant_outcome(applicant, grant_id, grant_title, status, decided_by=None, application_id=None):
        """Entry point for the grants module when an application is decided"""
        return NotificationDispatcher.notify(
            recipient=applicant,
            type=NotificationKind.APPLICATION_UPDATE,
            title=f"Your application was {status}",
            from_user=decided_by,
            reference=GrantReference(grant_id),
            message=f'Your application to "{grant_title}" has been {status}',
            trigger_key=f"application:{application_id}:{status}" if application_id else None,
        )
