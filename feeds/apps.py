from django.apps import AppConfig


class FeedsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "feeds"

    def ready(self):
        # Targets are referenced by (type, id) columns, so deletes are cascaded by hand
        from . import signals  # noqa: F401
