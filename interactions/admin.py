from django.contrib import admin

from .models import InteractionFact, ReadMarker


@admin.register(InteractionFact)
class InteractionFactAdmin(admin.ModelAdmin):
    list_display = ("actor", "kind", "value", "target_type", "target_id", "created_at")
    list_filter = ("kind", "target_type")
    search_fields = ("actor__username", "value")
    raw_id_fields = ("actor",)


@admin.register(ReadMarker)
class ReadMarkerAdmin(admin.ModelAdmin):
    list_display = ("user", "target_type", "target_id", "read_through_at", "updated_at")
    list_filter = ("target_type",)
    raw_id_fields = ("user",)
