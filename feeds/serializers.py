# feeds/serializers.py
from rest_framework import serializers

from users.serializers import UserMinimalSerializer
from feeds.models import Comment, Post, PostMedia, Project


class PostMediaSerializer(serializers.ModelSerializer):
    class Meta:
        model = PostMedia
        fields = ["id", "media_type", "media_path", "preview_path", "aspect_ratio", "order_index"]


class PostSerializer(serializers.ModelSerializer):
    """Serializer for posts; media is attached at creation only"""

    author = UserMinimalSerializer(read_only=True)
    media = PostMediaSerializer(many=True, required=False)

    class Meta:
        model = Post
        fields = ["id", "author", "content", "voice_note_path", "media", "created_at", "updated_at"]
        read_only_fields = ["author", "created_at", "updated_at"]

    def validate(self, attrs):
        content = (attrs.get("content") or "").strip()
        has_media = bool(attrs.get("media"))
        if self.instance is None and not (content or attrs.get("voice_note_path") or has_media):
            raise serializers.ValidationError("A post needs text, a voice note or media.")
        return attrs

    def create(self, validated_data):
        media = validated_data.pop("media", [])
        post = Post.objects.create(**validated_data)
        for index, item in enumerate(media):
            item.setdefault("order_index", index)
            PostMedia.objects.create(post=post, **item)
        return post

    def update(self, instance, validated_data):
        validated_data.pop("media", None)
        return super().update(instance, validated_data)


class ProjectSerializer(serializers.ModelSerializer):
    author = UserMinimalSerializer(read_only=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)

    class Meta:
        model = Project
        fields = [
            "id",
            "author",
            "title",
            "description",
            "demo_url",
            "image_path",
            "voice_note_path",
            "tags",
            "is_featured",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["author", "is_featured", "created_at", "updated_at"]


class CommentSerializer(serializers.ModelSerializer):
    """Serializer for comments on projects and posts"""

    author = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Comment
        fields = ["id", "author", "target_type", "target_id", "content", "created_at"]
        read_only_fields = ["author", "target_type", "target_id", "created_at"]

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Comment cannot be empty.")
        return value.strip()


class MembershipSerializer(serializers.Serializer):
    community = serializers.IntegerField()
    is_member = serializers.BooleanField()
    role = serializers.CharField(allow_null=True)


class FeedItemSerializer(serializers.Serializer):
    """
    Renders an AnnotatedItem: the envelope, the viewer's interaction state
    and the kind-specific payload.
    """

    PAYLOAD_SERIALIZERS = {
        "post": PostSerializer,
        "project": ProjectSerializer,
        "community_post": PostSerializer,
    }

    def to_representation(self, annotated):
        item, state = annotated.item, annotated.state
        payload_serializer = self.PAYLOAD_SERIALIZERS[item.kind]
        return {
            "kind": item.kind,
            "id": item.id,
            "created_at": serializers.DateTimeField().to_representation(item.created_at),
            "target_type": item.target_type,
            "target_id": item.target_id,
            "upvote_count": state.count("upvote"),
            "bookmark_count": state.count("bookmark"),
            "comment_count": annotated.comment_count,
            "has_upvoted": state.has("upvote"),
            "has_bookmarked": state.has("bookmark"),
            "reactions": dict(state.reactions),
            "my_reactions": sorted(state.my_reactions),
            "content": payload_serializer(item.payload, context=self.context).data,
        }


class FeedPageSerializer(serializers.Serializer):
    def to_representation(self, page):
        return {
            "results": FeedItemSerializer(page.items, many=True, context=self.context).data,
            "next_cursor": page.next_cursor,
            "degraded": list(page.degraded),
        }
