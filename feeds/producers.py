# feeds/producers.py
"""
Content producers. Each one knows how to read one kind of feed unit and
hands the composer plain ContentItem envelopes ordered newest first.
"""
import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple

from django.db.models import Count, IntegerField, OuterRef, Q, Subquery, Value
from django.db.models.functions import Coalesce
from django.utils.dateparse import parse_datetime

from core.exceptions import InvalidPayload
from interactions.models import InteractionFact, InteractionKind
from .models import CommunityPost, Post, Project


@dataclass(frozen=True)
class ContentItem:
    """Feed envelope shared by every kind of content"""

    kind: str
    id: int
    author_id: int
    created_at: datetime
    # What interactions and comments on this item point at
    target_type: str
    target_id: int
    payload: Any
    upvotes: int = 0

    @property
    def sort_key(self) -> Tuple[datetime, str, int]:
        return (self.created_at, self.kind, self.id)

    @property
    def identity(self) -> Tuple[str, int]:
        return (self.kind, self.id)


@dataclass(frozen=True)
class FeedCursor:
    """Position of the last item of a page in the (created_at, kind, id) order"""

    created_at: datetime
    kind: str
    id: int

    @classmethod
    def after(cls, item: ContentItem) -> "FeedCursor":
        return cls(item.created_at, item.kind, item.id)

    def encode(self) -> str:
        raw = json.dumps([self.created_at.isoformat(), self.kind, self.id])
        return base64.urlsafe_b64encode(raw.encode()).decode()

    @classmethod
    def decode(cls, token: Optional[str]) -> Optional["FeedCursor"]:
        if not token:
            return None
        try:
            created_at, kind, item_id = json.loads(base64.urlsafe_b64decode(token.encode()))
            parsed = parse_datetime(created_at)
            if parsed is None:
                raise ValueError(created_at)
            return cls(parsed, str(kind), int(item_id))
        except (binascii.Error, ValueError, TypeError, UnicodeDecodeError):
            raise InvalidPayload("Invalid feed cursor.") from None

    def after_q(self, kind: str, created_field="created_at", id_field="id") -> Q:
        """Rows of ``kind`` that come strictly after this cursor, newest first"""
        older = Q(**{f"{created_field}__lt": self.created_at})
        if kind < self.kind:
            return older | Q(**{created_field: self.created_at})
        if kind == self.kind:
            return older | Q(**{created_field: self.created_at, f"{id_field}__lt": self.id})
        return older


def _upvote_count(target_type, outer_ref="pk") -> Coalesce:
    upvotes = (
        InteractionFact.objects.filter(
            target_type=target_type,
            target_id=OuterRef(outer_ref),
            kind=InteractionKind.UPVOTE,
        )
        .order_by()
        .values("target_id")
        .annotate(total=Count("id"))
        .values("total")[:1]
    )
    return Coalesce(Subquery(upvotes, output_field=IntegerField()), Value(0))


class ContentProducer:
    """Base producer; subclasses supply the queryset and the envelope mapping"""

    kind = None
    target_type = None
    target_ref = "pk"

    @property
    def name(self):
        return self.__class__.__name__

    def get_queryset(self):
        raise NotImplementedError

    def to_item(self, row, upvotes=0) -> ContentItem:
        raise NotImplementedError

    def fetch(self, cursor: Optional[FeedCursor], limit: int) -> List[ContentItem]:
        queryset = self.get_queryset()
        if cursor is not None:
            queryset = queryset.filter(cursor.after_q(self.kind))
        rows = queryset.order_by("-created_at", "-id")[:limit]
        return [self.to_item(row) for row in rows]

    def featured(self, since: datetime, limit: int) -> List[ContentItem]:
        rows = (
            self.get_queryset()
            .filter(created_at__gte=since)
            .annotate(upvote_total=_upvote_count(self.target_type, self.target_ref))
            .filter(upvote_total__gt=0)
            .order_by("-upvote_total", "-created_at", "-id")[:limit]
        )
        return [self.to_item(row, upvotes=row.upvote_total) for row in rows]


class PostProducer(ContentProducer):
    kind = "post"
    target_type = "post"

    def __init__(self, author_ids: Optional[Iterable[int]] = None):
        self.author_ids = None if author_ids is None else list(author_ids)

    def get_queryset(self):
        queryset = Post.objects.select_related("author").prefetch_related("media")
        if self.author_ids is not None:
            queryset = queryset.filter(author_id__in=self.author_ids)
        return queryset

    def to_item(self, row, upvotes=0):
        return ContentItem(
            kind=self.kind,
            id=row.pk,
            author_id=row.author_id,
            created_at=row.created_at,
            target_type=self.target_type,
            target_id=row.pk,
            payload=row,
            upvotes=upvotes,
        )


class ProjectProducer(ContentProducer):
    kind = "project"
    target_type = "project"

    def __init__(self, author_ids: Optional[Iterable[int]] = None):
        self.author_ids = None if author_ids is None else list(author_ids)

    def get_queryset(self):
        queryset = Project.objects.select_related("author")
        if self.author_ids is not None:
            queryset = queryset.filter(author_id__in=self.author_ids)
        return queryset

    def to_item(self, row, upvotes=0):
        return ContentItem(
            kind=self.kind,
            id=row.pk,
            author_id=row.author_id,
            created_at=row.created_at,
            target_type=self.target_type,
            target_id=row.pk,
            payload=row,
            upvotes=upvotes,
        )


class CommunityPostProducer(ContentProducer):
    """Posts shared into one community; interactions land on the underlying post"""

    kind = "community_post"
    target_type = "post"
    target_ref = "post_id"

    def __init__(self, community_id: int):
        self.community_id = community_id

    def get_queryset(self):
        return (
            CommunityPost.objects.filter(community_id=self.community_id)
            .select_related("post", "post__author")
            .prefetch_related("post__media")
        )

    def to_item(self, row, upvotes=0):
        return ContentItem(
            kind=self.kind,
            id=row.pk,
            author_id=row.post.author_id,
            created_at=row.created_at,
            target_type=self.target_type,
            target_id=row.post_id,
            payload=row.post,
            upvotes=upvotes,
        )
