# users/models.py
from django.db import models
from django.conf import settings


class Follow(models.Model):
    """Directed follow edge of the social graph"""

    follower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="following_edges",
    )
    following = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="follower_edges",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["follower", "following"], name="unique_follow_edge"
            ),
            models.CheckConstraint(
                condition=~models.Q(follower=models.F("following")),
                name="follow_not_self",
            ),
        ]
        indexes = [
            models.Index(fields=["following"], name="follow_following_idx"),
        ]

    def __str__(self):
        return f"{self.follower_id} follows {self.following_id}"


class UserBlock(models.Model):
    """A user refusing contact from another user"""

    blocker = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="blocks_made",
    )
    blocked = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="blocks_received",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["blocker", "blocked"], name="unique_user_block"
            ),
        ]

    def __str__(self):
        return f"{self.blocker_id} blocked {self.blocked_id}"
