# interactions/tracker.py
"""
Per-user interaction state: upvotes, bookmarks, emoji reactions and read
markers.

Toggles never read before writing. A toggle first tries to delete the active
fact; when nothing was deleted it inserts one inside a savepoint and lets the
unique constraint arbitrate. An insert that loses to a concurrent insert is
reported as "already active" instead of an error.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, OuterRef, Q, Subquery
from django.utils import timezone

from core.exceptions import InvalidPayload
from .models import InteractionFact, InteractionKind, ReadMarker, TargetType

logger = logging.getLogger(__name__)

TargetRef = Tuple[str, int]

# Kinds each target type accepts.
ALLOWED_KINDS = {
    TargetType.PROJECT.value: {"upvote", "bookmark", "reaction"},
    TargetType.POST.value: {"upvote", "bookmark", "reaction"},
    TargetType.COMMENT.value: {"reaction"},
}


@dataclass(frozen=True)
class InteractionKey:
    actor_id: int
    target_type: str
    target_id: int
    kind: str
    value: str = ""

    def as_filter(self) -> Dict:
        return {
            "actor_id": self.actor_id,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "kind": self.kind,
            "value": self.value,
        }


@dataclass(frozen=True)
class ToggleResult:
    active: bool
    # Set only when this call created the fact.
    fact: Optional[InteractionFact] = None


@dataclass
class TargetState:
    """Interaction counts for one target plus what the viewer holds on it"""

    counts: Dict[str, int] = field(default_factory=dict)
    active: Set[str] = field(default_factory=set)
    reactions: Dict[str, int] = field(default_factory=dict)
    my_reactions: Set[str] = field(default_factory=set)

    def count(self, kind: str) -> int:
        return self.counts.get(kind, 0)

    def has(self, kind: str) -> bool:
        return kind in self.active


def build_key(actor, target_type, target_id, kind, value="") -> InteractionKey:
    target_type, kind = str(target_type), str(kind)
    if target_type not in ALLOWED_KINDS:
        raise InvalidPayload(f"Unknown target type '{target_type}'.")
    if kind not in ALLOWED_KINDS[target_type]:
        raise InvalidPayload(f"'{kind}' is not supported on a {target_type}.")

    value = (value or "").strip()
    if kind == InteractionKind.REACTION:
        if not value:
            raise InvalidPayload("A reaction needs an emoji.")
        if len(value) > settings.REACTION_MAX_LENGTH:
            raise InvalidPayload("Emoji label is too long.")
    else:
        value = ""

    actor_id = getattr(actor, "pk", actor)
    return InteractionKey(actor_id, str(target_type), int(target_id), str(kind), value)


def _delete_active(key: InteractionKey) -> int:
    deleted, _ = InteractionFact.objects.filter(**key.as_filter()).delete()
    return deleted


def _insert_fact(key: InteractionKey) -> Optional[InteractionFact]:
    try:
        with transaction.atomic():
            return InteractionFact.objects.create(**key.as_filter())
    except IntegrityError:
        logger.info("Concurrent insert already holds %s; treating as active", key)
        return None


class InteractionStateTracker:
    """Toggles and queries interaction facts"""

    @staticmethod
    def toggle(actor, target_type, target_id, kind, value="") -> ToggleResult:
        key = build_key(actor, target_type, target_id, kind, value)
        with transaction.atomic():
            if _delete_active(key):
                logger.debug("Toggled off %s", key)
                return ToggleResult(active=False)
            fact = _insert_fact(key)
            logger.debug("Toggled on %s", key)
            return ToggleResult(active=True, fact=fact)

    @staticmethod
    def activate(actor, target_type, target_id, kind, value="") -> ToggleResult:
        key = build_key(actor, target_type, target_id, kind, value)
        return ToggleResult(active=True, fact=_insert_fact(key))

    @staticmethod
    def deactivate(actor, target_type, target_id, kind, value="") -> ToggleResult:
        key = build_key(actor, target_type, target_id, kind, value)
        _delete_active(key)
        return ToggleResult(active=False)

    @staticmethod
    def count_for(target_type, target_id, kind) -> int:
        return InteractionFact.objects.filter(
            target_type=target_type, target_id=target_id, kind=kind
        ).count()

    @staticmethod
    def has_active(actor, target_type, target_id, kind, value="") -> bool:
        key = build_key(actor, target_type, target_id, kind, value)
        return InteractionFact.objects.filter(**key.as_filter()).exists()

    @staticmethod
    def active_targets(actor, kind, target_type=None) -> List[TargetRef]:
        """Targets the actor currently holds ``kind`` on, most recent first"""
        queryset = InteractionFact.objects.filter(actor_id=getattr(actor, "pk", actor), kind=kind)
        if target_type:
            queryset = queryset.filter(target_type=target_type)
        return [
            (ref_type, int(ref_id))
            for ref_type, ref_id in queryset.order_by("-created_at", "-id").values_list(
                "target_type", "target_id"
            )
        ]

    @staticmethod
    def snapshot(actor, targets: Iterable[TargetRef]) -> Dict[TargetRef, TargetState]:
        """
        Counts and viewer flags for a batch of targets, read in one grouped
        query so that a count and the matching flag never disagree.
        """
        ids_by_type = defaultdict(set)
        for target_type, target_id in targets:
            ids_by_type[target_type].add(int(target_id))

        states: Dict[TargetRef, TargetState] = {
            (target_type, target_id): TargetState()
            for target_type, ids in ids_by_type.items()
            for target_id in ids
        }
        if not states:
            return states

        condition = Q()
        for target_type, ids in ids_by_type.items():
            condition |= Q(target_type=target_type, target_id__in=ids)

        actor_id = getattr(actor, "pk", actor)
        rows = (
            InteractionFact.objects.filter(condition)
            .values("target_type", "target_id", "kind", "value")
            .annotate(total=Count("id"), mine=Count("id", filter=Q(actor_id=actor_id)))
            .order_by()
        )
        for row in rows:
            state = states[(row["target_type"], row["target_id"])]
            kind = row["kind"]
            state.counts[kind] = state.counts.get(kind, 0) + row["total"]
            if row["mine"]:
                state.active.add(kind)
            if kind == InteractionKind.REACTION:
                state.reactions[row["value"]] = row["total"]
                if row["mine"]:
                    state.my_reactions.add(row["value"])
        return states

    @staticmethod
    def advance_read_marker(user, target_type, target_id, read_through: datetime) -> datetime:
        """Move the watermark forward to ``read_through``; earlier values are ignored."""
        with transaction.atomic():
            marker, created = ReadMarker.objects.get_or_create(
                user_id=getattr(user, "pk", user),
                target_type=target_type,
                target_id=target_id,
                defaults={"read_through_at": read_through},
            )
            if created:
                return marker.read_through_at
            advanced = ReadMarker.objects.filter(
                pk=marker.pk, read_through_at__lt=read_through
            ).update(read_through_at=read_through, updated_at=timezone.now())
            if not advanced:
                logger.debug(
                    "Read marker for user %s on %s#%s already at or past %s",
                    getattr(user, "pk", user), target_type, target_id, read_through,
                )
            return ReadMarker.objects.values_list("read_through_at", flat=True).get(
                pk=marker.pk
            )

    @staticmethod
    def read_marker_for(user, target_type, target_id) -> Optional[datetime]:
        return (
            ReadMarker.objects.filter(
                user_id=getattr(user, "pk", user),
                target_type=target_type,
                target_id=target_id,
            )
            .values_list("read_through_at", flat=True)
            .first()
        )

    @staticmethod
    def read_marker_subquery(user, target_type, outer_ref="pk") -> Subquery:
        """Marker position of ``user`` for the target referenced by ``outer_ref``"""
        return Subquery(
            ReadMarker.objects.filter(
                user_id=getattr(user, "pk", user),
                target_type=target_type,
                target_id=OuterRef(outer_ref),
            ).values("read_through_at")[:1]
        )
