# notifications/models.py
from django.db import models
from django.db.models import Count
from django.utils import timezone
from django.conf import settings


class NotificationKind(models.TextChoices):
    UPVOTE = "upvote", "Upvote"
    COMMENT = "comment", "Comment"
    FOLLOW = "follow", "Follow"
    MESSAGE = "message", "Message"
    APPLICATION_UPDATE = "application_update", "Grant application update"


class ReferenceType(models.TextChoices):
    PROJECT = "project", "Project"
    POST = "post", "Post"
    USER = "user", "User"
    GRANT = "grant", "Grant"
    NONE = "none", "None"


class Notification(models.Model):
    """A recipient-facing record of one triggering action"""

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    from_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications_caused",
    )
    type = models.CharField(max_length=50, choices=NotificationKind.choices)
    title = models.CharField(max_length=255)
    message = models.TextField(blank=True, null=True)
    reference_type = models.CharField(
        max_length=20, choices=ReferenceType.choices, default=ReferenceType.NONE
    )
    reference_id = models.CharField(max_length=64, blank=True, default="")
    # Identifies the action instance that produced the row; redelivery of
    # the same trigger maps onto the same row.
    trigger_key = models.CharField(max_length=100, blank=True, null=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["recipient", "type", "reference_type", "reference_id", "trigger_key"],
                condition=models.Q(trigger_key__isnull=False),
                name="unique_notification_trigger",
            ),
        ]
        indexes = [
            models.Index(
                fields=["recipient", "is_read", "created_at"],
                name="notification_inbox_idx",
            ),
            models.Index(
                fields=["reference_type", "reference_id"],
                name="notification_reference_idx",
            ),
        ]

    @classmethod
    def get_unread_count_by_type(cls, recipient):
        return (
            cls.objects.filter(recipient=recipient, is_read=False)
            .values("type")
            .annotate(count=Count("id"))
            .order_by()
        )

    def __str__(self):
        return self.title
