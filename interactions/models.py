# interactions/models.py
from django.db import models
from django.conf import settings


class TargetType(models.TextChoices):
    PROJECT = "project", "Project"
    POST = "post", "Post"
    COMMENT = "comment", "Comment"


class InteractionKind(models.TextChoices):
    UPVOTE = "upvote", "Upvote"
    BOOKMARK = "bookmark", "Bookmark"
    REACTION = "reaction", "Reaction"


class InteractionFact(models.Model):
    """
    One active (actor, target, kind[, value]) relation. The row exists while
    the fact is active; toggling off deletes it.

    ``value`` carries the emoji label for reactions and is the empty string
    for every other kind, so the unique constraint also covers votes and
    bookmarks on backends that treat NULLs as distinct.
    """

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="interaction_facts",
    )
    target_type = models.CharField(max_length=20, choices=TargetType.choices)
    target_id = models.PositiveBigIntegerField()
    kind = models.CharField(max_length=20, choices=InteractionKind.choices)
    value = models.CharField(max_length=10, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["actor", "target_type", "target_id", "kind", "value"],
                name="unique_active_interaction",
            ),
        ]
        indexes = [
            models.Index(
                fields=["target_type", "target_id", "kind"],
                name="interaction_target_idx",
            ),
        ]

    def __str__(self):
        label = f":{self.value}" if self.value else ""
        return f"{self.actor_id} {self.kind}{label} {self.target_type}#{self.target_id}"


class ReadMarker(models.Model):
    """Per-user watermark over a target (e.g. a conversation); only moves forward"""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="read_markers",
    )
    target_type = models.CharField(max_length=20)
    target_id = models.PositiveBigIntegerField()
    read_through_at = models.DateTimeField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "target_type", "target_id"],
                name="unique_read_marker",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} read {self.target_type}#{self.target_id} through {self.read_through_at}"
