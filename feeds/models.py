from django.db import models
from django.utils import timezone
from django.conf import settings


class Project(models.Model):
    """A showcased project; upvotable, bookmarkable and commentable"""

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="projects"
    )
    title = models.CharField(max_length=200)
    description = models.TextField()
    demo_url = models.URLField(blank=True, null=True)
    # Object-storage paths, never the bytes
    image_path = models.CharField(max_length=500, blank=True, null=True)
    voice_note_path = models.CharField(max_length=500, blank=True, null=True)
    tags = models.JSONField(default=list, blank=True)
    is_featured = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['-created_at', '-id'], name='project_recent_idx'),
            models.Index(fields=['author', '-created_at'], name='project_author_idx'),
        ]

    def __str__(self):
        return self.title

    @property
    def headline(self):
        return self.title


class Post(models.Model):
    """Short-form post: text and/or a voice note, with optional media"""

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="posts"
    )
    content = models.TextField(blank=True, null=True)
    voice_note_path = models.CharField(max_length=500, blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['-created_at', '-id'], name='post_recent_idx'),
            models.Index(fields=['author', '-created_at'], name='post_author_idx'),
        ]

    def __str__(self):
        return f"Post {self.pk} by {self.author_id}"

    @property
    def headline(self):
        text = (self.content or "").strip()
        if not text:
            return "your post"
        return text[:50] + "..." if len(text) > 50 else text


class PostMedia(models.Model):
    MEDIA_TYPES = [
        ('image', 'Image'),
        ('video', 'Video'),
    ]

    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='media')
    media_type = models.CharField(max_length=10, choices=MEDIA_TYPES)
    media_path = models.CharField(max_length=500)
    preview_path = models.CharField(max_length=500, blank=True, null=True)
    aspect_ratio = models.FloatField(blank=True, null=True)
    order_index = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['order_index', 'id']

    def __str__(self):
        return f"{self.media_type} #{self.order_index} of post {self.post_id}"


class Comment(models.Model):
    """Comment on a project or a post"""

    TARGET_TYPES = [
        ('project', 'Project'),
        ('post', 'Post'),
    ]

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    target_type = models.CharField(max_length=20, choices=TARGET_TYPES)
    target_id = models.PositiveBigIntegerField()
    content = models.TextField()
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['target_type', 'target_id', 'created_at'], name='comment_target_idx'),
        ]

    def __str__(self):
        return f"Comment by {self.author_id} on {self.target_type}#{self.target_id}"

    @property
    def headline(self):
        return self.content[:50]

    @property
    def target(self):
        """The commented project or post, or None when it no longer exists"""
        from .targets import resolve_target

        return resolve_target(self.target_type, self.target_id)


class Community(models.Model):
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=50, blank=True)
    is_private = models.BooleanField(default=False)
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_communities'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = 'communities'
        ordering = ['name']

    def __str__(self):
        return self.name

    def is_member(self, user):
        if not getattr(user, "is_authenticated", False):
            return False
        return self.members.filter(user=user).exists()


class CommunityMember(models.Model):
    ROLE_CHOICES = [
        ('owner', 'Owner'),
        ('moderator', 'Moderator'),
        ('member', 'Member'),
    ]

    community = models.ForeignKey(Community, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='community_memberships'
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='member')
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['community', 'user'], name='unique_community_member'),
        ]

    def __str__(self):
        return f"{self.user_id} in {self.community_id} ({self.role})"


class CommunityPost(models.Model):
    """A post shared into a community"""

    community = models.ForeignKey(Community, on_delete=models.CASCADE, related_name='community_posts')
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='community_links')
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['community', 'post'], name='unique_community_post'),
        ]
        indexes = [
            models.Index(fields=['community', '-created_at'], name='community_post_recent_idx'),
        ]

    def __str__(self):
        return f"Post {self.post_id} in community {self.community_id}"
