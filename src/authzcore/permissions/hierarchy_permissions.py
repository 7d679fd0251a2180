"""Batch resolution of permissions over the hierarchy.

A ``HierarchyPermissions`` instance is built for one user's role assignments
and one :class:`PermissionChecker`. It answers on which hierarchy elements
the checked permissions are granted, following these rules:

- Assignments on higher levels inherit downwards. A WRITER on an
  organization is a WRITER on all its products and repositories.
- Assignments on lower levels can widen inherited permissions but never
  restrict them. A repository ADMIN under a product WRITER is an ADMIN on
  that repository; a repository READER under a product WRITER stays a WRITER.
- Access to an element implies visibility of its ancestors. A READER on a
  repository can see the parent product and organization, without that
  visibility inheriting down to siblings.

The result is meant for building list-query filters: ``includes()`` and
``implicit_includes()`` together enumerate the elements a query has to
select, without per-row authorization checks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Collection, Iterable, Mapping

from ..hierarchy import WILDCARD, CompoundHierarchyId, HierarchyLevel
from .checker import PermissionChecker
from .roles import OrganizationRole, Role

IdsByLevel = dict[HierarchyLevel, list[CompoundHierarchyId]]

RoleAssignment = tuple[CompoundHierarchyId, Role]


class HierarchyPermissions(ABC):
    """Permissions granted on hierarchy elements for a fixed checker."""

    @abstractmethod
    def has_permission(self, element_id: CompoundHierarchyId) -> bool:
        """Check whether the permissions are granted on ``element_id``."""

    @abstractmethod
    def permission_granted_on_level(self, element_id: CompoundHierarchyId) -> CompoundHierarchyId | None:
        """Return the element whose assignment grants access to ``element_id``.

        This is the closest ancestor-or-self with a direct grant, or, for an
        implicitly visible element, the descendant causing its visibility.
        ``None`` if no access is granted.
        """

    @abstractmethod
    def includes(self) -> IdsByLevel:
        """Ids with a direct grant, grouped by level.

        Access inherits downwards from each of these ids. Elements whose
        ancestor is already included are omitted.
        """

    @abstractmethod
    def implicit_includes(self) -> IdsByLevel:
        """Ancestors visible only because a descendant is granted access.

        These do not inherit downwards and never overlap ``includes()``.
        Query filters need both maps.
        """

    @abstractmethod
    def is_superuser(self) -> bool:
        """Whether this instance represents superuser permissions."""


class _SuperuserPermissions(HierarchyPermissions):
    """Grants everything; selected when a wildcard ADMIN assignment exists."""

    def has_permission(self, element_id: CompoundHierarchyId) -> bool:
        return True

    def permission_granted_on_level(self, element_id: CompoundHierarchyId) -> CompoundHierarchyId | None:
        return WILDCARD

    def includes(self) -> IdsByLevel:
        return {HierarchyLevel.WILDCARD: [WILDCARD]}

    def implicit_includes(self) -> IdsByLevel:
        return {}

    def is_superuser(self) -> bool:
        return True

    def __repr__(self) -> str:
        return "HierarchyPermissions(superuser)"


SUPERUSER_PERMISSIONS: HierarchyPermissions = _SuperuserPermissions()


class _StandardPermissions(HierarchyPermissions):
    """Permissions computed from direct and implicit grants."""

    def __init__(
        self,
        direct_grants: frozenset[CompoundHierarchyId],
        implicit_causes: Mapping[CompoundHierarchyId, CompoundHierarchyId],
    ) -> None:
        self._direct_grants = direct_grants
        self._implicit_causes = dict(implicit_causes)

    def has_permission(self, element_id: CompoundHierarchyId) -> bool:
        return self.permission_granted_on_level(element_id) is not None

    def permission_granted_on_level(self, element_id: CompoundHierarchyId) -> CompoundHierarchyId | None:
        granted = _find_granting_ancestor(self._direct_grants, element_id)
        if granted is not None:
            return granted
        return self._implicit_causes.get(element_id)

    def includes(self) -> IdsByLevel:
        return _group_by_level(self._direct_grants)

    def implicit_includes(self) -> IdsByLevel:
        return _group_by_level(self._implicit_causes)

    def is_superuser(self) -> bool:
        return False

    def __repr__(self) -> str:
        return (
            f"HierarchyPermissions(includes={sorted(map(str, self._direct_grants))}, "
            f"implicit={sorted(map(str, self._implicit_causes))})"
        )


def create_hierarchy_permissions(
    role_assignments: Collection[RoleAssignment],
    checker: PermissionChecker,
) -> HierarchyPermissions:
    """Evaluate ``checker`` against a user's ``role_assignments``.

    Args:
        role_assignments: ``(element id, role)`` pairs of one user.
        checker: The permissions to evaluate.

    Returns:
        The shared superuser instance if the only wildcard assignment is
        ``OrganizationRole.ADMIN``; a freshly computed instance otherwise.
    """
    by_level = _group_assignments(role_assignments)

    wildcard_assignments = by_level.get(HierarchyLevel.WILDCARD, [])
    if len(wildcard_assignments) == 1 and wildcard_assignments[0][1] == OrganizationRole.ADMIN:
        return SUPERUSER_PERMISSIONS

    direct_grants = _compute_direct_grants(by_level, checker)
    implicit_causes = _compute_implicit_causes(by_level, direct_grants, checker)
    return _StandardPermissions(frozenset(direct_grants), implicit_causes)


def _group_assignments(
    role_assignments: Iterable[RoleAssignment],
) -> dict[HierarchyLevel, list[RoleAssignment]]:
    """Group assignments by level, each group sorted by id for stable results."""
    grouped: dict[HierarchyLevel, list[RoleAssignment]] = defaultdict(list)
    for element_id, role in role_assignments:
        grouped[element_id.level].append((element_id, role))
    for assignments in grouped.values():
        assignments.sort(key=lambda assignment: assignment[0].sort_key)
    return grouped


def _compute_direct_grants(
    by_level: Mapping[HierarchyLevel, list[RoleAssignment]],
    checker: PermissionChecker,
) -> set[CompoundHierarchyId]:
    """Collect the ids whose own assignment grants access, top-down.

    An id is skipped when an ancestor is already granted: querying by the
    ancestor covers it, and its own (possibly weaker) role must not narrow
    the inherited grant.
    """
    direct_grants: set[CompoundHierarchyId] = set()
    for level in HierarchyLevel.ordered():
        for element_id, role in by_level.get(level, ()):
            if not checker(role):
                continue
            if _find_granting_ancestor(direct_grants, element_id.parent) is None:
                direct_grants.add(element_id)
    return direct_grants


def _compute_implicit_causes(
    by_level: Mapping[HierarchyLevel, list[RoleAssignment]],
    direct_grants: set[CompoundHierarchyId],
    checker: PermissionChecker,
) -> dict[CompoundHierarchyId, CompoundHierarchyId]:
    """Map ancestors that become visible to the descendant causing it.

    If several descendants qualify the same ancestor, the one with the lowest
    sort key is recorded.
    """
    causes: dict[CompoundHierarchyId, CompoundHierarchyId] = {}
    for level in (HierarchyLevel.PRODUCT, HierarchyLevel.REPOSITORY):
        for element_id, role in by_level.get(level, ()):
            if not checker(role):
                continue
            parents = element_id.parents
            if any(parent in direct_grants for parent in parents):
                continue
            for parent in parents:
                causes.setdefault(parent, element_id)
    return causes


def _find_granting_ancestor(
    grants: Collection[CompoundHierarchyId],
    element_id: CompoundHierarchyId | None,
) -> CompoundHierarchyId | None:
    """Walk from ``element_id`` up to the organization; return the first granted id."""
    current = element_id
    while current is not None:
        if current in grants:
            return current
        current = current.parent
    return None


def _group_by_level(ids: Iterable[CompoundHierarchyId]) -> IdsByLevel:
    grouped: IdsByLevel = defaultdict(list)
    for element_id in sorted(ids, key=lambda i: i.sort_key):
        grouped[element_id.level].append(element_id)
    return dict(grouped)


__all__ = [
    "SUPERUSER_PERMISSIONS",
    "HierarchyPermissions",
    "IdsByLevel",
    "RoleAssignment",
    "create_hierarchy_permissions",
]
