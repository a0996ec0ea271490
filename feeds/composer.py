# feeds/composer.py
"""
Merges the producers of a feed scope into one page ordered by
(created_at, kind, id) descending, annotated with the viewer's interaction
state.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

from django.conf import settings
from django.db.models import Count, Q
from django.utils import timezone

from core.exceptions import InvalidPayload
from interactions.models import InteractionKind
from interactions.tracker import InteractionStateTracker, TargetState
from users.services import following_ids
from .models import Comment, Community
from .producers import (
    CommunityPostProducer,
    ContentItem,
    ContentProducer,
    FeedCursor,
    PostProducer,
    ProjectProducer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedScope:
    kind: str
    community_id: Optional[int] = None

    PERSONAL = "personal"
    GLOBAL = "global"
    COMMUNITY = "community"

    @classmethod
    def parse(cls, raw: str) -> "FeedScope":
        raw = (raw or "").strip()
        if raw in (cls.PERSONAL, cls.GLOBAL):
            return cls(raw)
        prefix, _, community_id = raw.partition(":")
        if prefix == cls.COMMUNITY and community_id.isdigit():
            return cls(cls.COMMUNITY, int(community_id))
        raise InvalidPayload(f"Unknown feed scope '{raw}'.")

    @classmethod
    def community(cls, community_id) -> "FeedScope":
        return cls(cls.COMMUNITY, int(community_id))

    def __str__(self):
        if self.kind == self.COMMUNITY:
            return f"{self.kind}:{self.community_id}"
        return self.kind


@dataclass
class AnnotatedItem:
    item: ContentItem
    state: TargetState
    comment_count: int = 0


@dataclass
class FeedPage:
    items: List[AnnotatedItem] = field(default_factory=list)
    next_cursor: Optional[str] = None
    # Producers that failed and were left out of this page
    degraded: List[str] = field(default_factory=list)


def producers_for(viewer, scope: FeedScope) -> List[ContentProducer]:
    if scope.kind == FeedScope.GLOBAL:
        return [PostProducer(), ProjectProducer()]

    if scope.kind == FeedScope.PERSONAL:
        if not getattr(viewer, "is_authenticated", False):
            return []
        author_ids = following_ids(viewer) + [viewer.pk]
        return [PostProducer(author_ids), ProjectProducer(author_ids)]

    community = Community.objects.filter(pk=scope.community_id).first()
    if community is None or not community.is_member(viewer):
        logger.debug(
            "Viewer %s has no access to community %s; empty feed",
            getattr(viewer, "pk", None), scope.community_id,
        )
        return []
    return [CommunityPostProducer(community.pk)]


def _collect(producers, read) -> Tuple[List[ContentItem], List[str]]:
    """Run ``read`` on every producer; a failing producer is logged and skipped."""
    items, degraded = [], []
    last_error = None
    for producer in producers:
        try:
            items.extend(read(producer))
        except Exception as exc:
            logger.exception("Feed producer %s failed; serving the others", producer.name)
            degraded.append(producer.name)
            last_error = exc
    if producers and len(degraded) == len(producers):
        raise last_error
    return items, degraded


def _annotate(viewer, items: List[ContentItem]) -> List[AnnotatedItem]:
    if not items:
        return []
    targets = {(item.target_type, item.target_id) for item in items}
    states = InteractionStateTracker.snapshot(viewer, targets)

    ids_by_type = defaultdict(set)
    for target_type, target_id in targets:
        ids_by_type[target_type].add(target_id)
    condition = Q()
    for target_type, ids in ids_by_type.items():
        condition |= Q(target_type=target_type, target_id__in=ids)
    comment_counts: Dict[Tuple[str, int], int] = {
        (row["target_type"], row["target_id"]): row["total"]
        for row in Comment.objects.filter(condition)
        .values("target_type", "target_id")
        .annotate(total=Count("id"))
        .order_by()
    }

    return [
        AnnotatedItem(
            item=item,
            state=states[(item.target_type, item.target_id)],
            comment_count=comment_counts.get((item.target_type, item.target_id), 0),
        )
        for item in items
    ]


def _dedupe(items: List[ContentItem]) -> List[ContentItem]:
    seen = set()
    unique = []
    for item in items:
        if item.payload is None or item.identity in seen:
            continue
        seen.add(item.identity)
        unique.append(item)
    return unique


class FeedComposer:
    """Viewer-specific feeds over the producers of a scope"""

    @staticmethod
    def page_size(requested=None) -> int:
        if requested in (None, ""):
            return settings.FEED_PAGE_SIZE
        try:
            size = int(requested)
        except (TypeError, ValueError):
            raise InvalidPayload("page_size must be an integer.") from None
        return max(1, min(size, settings.FEED_MAX_PAGE_SIZE))

    @staticmethod
    def compose(viewer, scope: FeedScope, cursor: Optional[str] = None, page_size=None) -> FeedPage:
        """
        One page of the feed. Pass the returned ``next_cursor`` back to read
        the following page; ``next_cursor`` is None on the last page.
        """
        limit = FeedComposer.page_size(page_size)
        position = FeedCursor.decode(cursor)
        producers = producers_for(viewer, scope)

        # One extra row per producer tells whether another page exists
        items, degraded = _collect(producers, lambda producer: producer.fetch(position, limit + 1))
        items = sorted(_dedupe(items), key=lambda item: item.sort_key, reverse=True)

        page_items = items[:limit]
        next_cursor = None
        if len(items) > limit:
            next_cursor = FeedCursor.after(page_items[-1]).encode()

        logger.debug(
            "Composed %s feed for viewer %s: %s items, degraded=%s",
            scope, getattr(viewer, "pk", None), len(page_items), degraded,
        )
        return FeedPage(
            items=_annotate(viewer, page_items),
            next_cursor=next_cursor,
            degraded=degraded,
        )

    @staticmethod
    def featured(viewer, scope: FeedScope, limit=None, window_days=None) -> FeedPage:
        """Top items by upvote count inside the recency window, ties broken by recency"""
        limit = limit or settings.FEED_FEATURED_LIMIT
        window_days = window_days or settings.FEED_FEATURED_WINDOW_DAYS
        since = timezone.now() - timedelta(days=window_days)
        producers = producers_for(viewer, scope)

        items, degraded = _collect(producers, lambda producer: producer.featured(since, limit))
        items = sorted(
            _dedupe(items),
            key=lambda item: (item.upvotes, item.created_at, item.kind, item.id),
            reverse=True,
        )[:limit]
        return FeedPage(items=_annotate(viewer, items), degraded=degraded)

    @staticmethod
    def bookmarked(viewer, target_type: Optional[str] = None) -> FeedPage:
        """The viewer's bookmarked projects and posts, most recently bookmarked first"""
        producers = {"project": ProjectProducer(), "post": PostProducer()}
        if target_type and target_type not in producers:
            raise InvalidPayload(f"Cannot list bookmarks of type '{target_type}'.")

        refs = InteractionStateTracker.active_targets(viewer, InteractionKind.BOOKMARK, target_type)
        rows = {
            kind: producer.get_queryset().in_bulk(
                [target_id for ref_type, target_id in refs if ref_type == kind]
            )
            for kind, producer in producers.items()
        }
        items = [
            producers[ref_type].to_item(rows[ref_type][target_id])
            for ref_type, target_id in refs
            if target_id in rows.get(ref_type, {})
        ]
        return FeedPage(items=_annotate(viewer, items))
