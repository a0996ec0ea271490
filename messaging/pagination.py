# messaging/pagination.py
from django.conf import settings
from rest_framework.pagination import CursorPagination
from rest_framework.response import Response


class MessagePagination(CursorPagination):
    """Cursor pagination over the (created_at, id) message order"""

    page_size = settings.MESSAGE_PAGE_SIZE
    ordering = ("created_at", "id")
    cursor_query_param = "cursor"
    page_size_query_param = "page_size"
    max_page_size = 100

    def get_paginated_response(self, data):
        return Response({
            "next": self.get_next_link(),
            "previous": self.get_previous_link(),
            "results": data,
        })

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "properties": {
                "next": {"type": "string", "format": "uri", "nullable": True},
                "previous": {"type": "string", "format": "uri", "nullable": True},
                "results": schema,
            },
        }
