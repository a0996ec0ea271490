# notifications/filters.py
import django_filters
from .models import Notification, NotificationKind


class NotificationFilter(django_filters.FilterSet):
    type = django_filters.ChoiceFilter(field_name="type", choices=NotificationKind.choices)
    is_read = django_filters.BooleanFilter(field_name="is_read")
    created_at = django_filters.DateFromToRangeFilter(field_name="created_at")

    class Meta:
        model = Notification
        fields = ["type", "is_read", "created_at"]
