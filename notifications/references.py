# notifications/references.py
"""
What a notification points at. Each tag carries only the field that is
valid for it; storage flattens the variant to (reference_type, reference_id).
"""
from dataclasses import dataclass
from typing import Tuple, Union

from .models import ReferenceType


@dataclass(frozen=True)
class ProjectReference:
    project_id: int
    tag = ReferenceType.PROJECT.value

    def columns(self) -> Tuple[str, str]:
        return self.tag, str(self.project_id)


@dataclass(frozen=True)
class PostReference:
    post_id: int
    tag = ReferenceType.POST.value

    def columns(self) -> Tuple[str, str]:
        return self.tag, str(self.post_id)


@dataclass(frozen=True)
class UserReference:
    user_id: int
    tag = ReferenceType.USER.value

    def columns(self) -> Tuple[str, str]:
        return self.tag, str(self.user_id)


@dataclass(frozen=True)
class GrantReference:
    grant_id: str
    tag = ReferenceType.GRANT.value

    def columns(self) -> Tuple[str, str]:
        return self.tag, str(self.grant_id)


@dataclass(frozen=True)
class NoReference:
    tag = ReferenceType.NONE.value

    def columns(self) -> Tuple[str, str]:
        return self.tag, ""


Reference = Union[ProjectReference, PostReference, UserReference, GrantReference, NoReference]

_BY_TAG = {
    ReferenceType.PROJECT.value: lambda value: ProjectReference(int(value)),
    ReferenceType.POST.value: lambda value: PostReference(int(value)),
    ReferenceType.USER.value: lambda value: UserReference(int(value)),
    ReferenceType.GRANT.value: lambda value: GrantReference(value),
    ReferenceType.NONE.value: lambda value: NoReference(),
}


def from_columns(reference_type: str, reference_id: str) -> Reference:
    """Rebuild the variant from a stored row"""
    try:
        return _BY_TAG[reference_type](reference_id)
    except KeyError:
        raise ValueError(f"Unknown reference type '{reference_type}'") from None


def for_target(target_type: str, target_id: int) -> Reference:
    """Reference for an interaction/comment target that is a project or post"""
    if target_type == ReferenceType.PROJECT.value:
        return ProjectReference(int(target_id))
    if target_type == ReferenceType.POST.value:
        return PostReference(int(target_id))
    return NoReference()
