from django.contrib import admin
from feeds.models import (
    Comment,
    Community,
    CommunityMember,
    CommunityPost,
    Post,
    PostMedia,
    Project,
)


class PostMediaInline(admin.TabularInline):
    """Inline editor for post media"""
    model = PostMedia
    extra = 0


class CommunityMemberInline(admin.TabularInline):
    model = CommunityMember
    extra = 0
    raw_id_fields = ['user']


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'author', 'is_featured', 'created_at']
    list_filter = ['is_featured', 'created_at']
    search_fields = ['title', 'description', 'author__username']
    raw_id_fields = ['author']
    readonly_fields = ['updated_at']
    actions = ['mark_featured']

    def mark_featured(self, request, queryset):
        queryset.update(is_featured=True)
    mark_featured.short_description = 'Mark selected projects as featured'


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ['id', 'short_content', 'author', 'created_at']
    list_filter = ['created_at']
    search_fields = ['content', 'author__username']
    raw_id_fields = ['author']
    readonly_fields = ['updated_at']
    inlines = [PostMediaInline]

    def short_content(self, obj):
        return obj.headline
    short_content.short_description = 'Content'


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ['id', 'author', 'target_type', 'target_id', 'created_at']
    list_filter = ['target_type', 'created_at']
    search_fields = ['content', 'author__username']
    raw_id_fields = ['author']


@admin.register(Community)
class CommunityAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'is_private', 'creator', 'created_at']
    list_filter = ['is_private', 'category']
    search_fields = ['name', 'description']
    inlines = [CommunityMemberInline]


@admin.register(CommunityPost)
class CommunityPostAdmin(admin.ModelAdmin):
    list_display = ['id', 'community', 'post', 'created_at']
    raw_id_fields = ['post']
