from .cache_service import NotificationCacheService
from .dispatcher import NotificationDispatcher, Suppression

__all__ = [
    "NotificationCacheService",
    "NotificationDispatcher",
    "Suppression",
]
