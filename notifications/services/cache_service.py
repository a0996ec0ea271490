# notifications/services/cache_service.py
from django.conf import settings
from django.core.cache import cache
from django.db import transaction


class NotificationCacheService:
    @staticmethod
    def get_cache_key(user_id: int) -> str:
        return f"notification_unread_count_{user_id}"

    @staticmethod
    def get_cached_unread_count(user_id: int):
        return cache.get(NotificationCacheService.get_cache_key(user_id))

    @staticmethod
    def set_cached_unread_count(user_id: int, count: int) -> None:
        cache.set(
            NotificationCacheService.get_cache_key(user_id),
            count,
            timeout=settings.NOTIFICATION_COUNT_CACHE_TIMEOUT,
        )

    @staticmethod
    def invalidate_cache(user_id: int) -> None:
        # Dropped now for the writer's next read, and again after commit in
        # case a concurrent reader cached the pre-commit count meanwhile.
        key = NotificationCacheService.get_cache_key(user_id)
        cache.delete(key)
        transaction.on_commit(lambda: cache.delete(key))
