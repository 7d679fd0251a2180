"""Point resolution: a user's effective permissions on a single element."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from ..hierarchy import CompoundHierarchyId, HierarchyLevel
from .checker import PermissionChecker
from .constants import OrganizationPermission, ProductPermission, RepositoryPermission
from .hierarchy_permissions import HierarchyPermissions, RoleAssignment, create_hierarchy_permissions
from .roles import OrganizationRole, Role, roles_for_level

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectiveRole:
    """Permissions a user holds on one hierarchy element.

    A snapshot computed per request; it is not updated when assignments
    change.
    """

    element_id: CompoundHierarchyId
    is_superuser: bool = False
    organization_permissions: frozenset[OrganizationPermission] = frozenset()
    product_permissions: frozenset[ProductPermission] = frozenset()
    repository_permissions: frozenset[RepositoryPermission] = frozenset()

    @classmethod
    def empty(cls, element_id: CompoundHierarchyId) -> EffectiveRole:
        """Non-superuser role without any permissions."""
        return cls(element_id=element_id)

    @classmethod
    def from_checker(
        cls,
        element_id: CompoundHierarchyId,
        checker: PermissionChecker,
        *,
        is_superuser: bool = False,
    ) -> EffectiveRole:
        return cls(
            element_id=element_id,
            is_superuser=is_superuser,
            organization_permissions=checker.organization_permissions,
            product_permissions=checker.product_permissions,
            repository_permissions=checker.repository_permissions,
        )

    def has_organization_permission(self, permission: OrganizationPermission) -> bool:
        return permission in self.organization_permissions

    def has_product_permission(self, permission: ProductPermission) -> bool:
        return permission in self.product_permissions

    def has_repository_permission(self, permission: RepositoryPermission) -> bool:
        return permission in self.repository_permissions


@dataclass(frozen=True)
class RoleInfo:
    """The highest role a user effectively holds on an element.

    ``granted_on`` is the element whose assignment grants the role; it differs
    from the queried element when the role is inherited.
    """

    role: Role
    granted_on: CompoundHierarchyId


def applies_to(assignment_id: CompoundHierarchyId, target: CompoundHierarchyId) -> bool:
    """Check whether an assignment on ``assignment_id`` can affect ``target``.

    True for the target itself, its ancestors and the wildcard.
    """
    return assignment_id.is_wildcard or assignment_id.contains(target)


def resolve_effective_role(
    target: CompoundHierarchyId,
    role_assignments: Iterable[RoleAssignment],
) -> EffectiveRole:
    """Compute the effective role of a user on ``target``.

    The permission sets of all applicable assignments are united per level.
    No narrowing happens here: the role catalog already encodes how a role
    acts on lower levels. Assignments on other branches are ignored.

    Args:
        target: The element to resolve.
        role_assignments: The user's assignments; may contain unrelated ones.

    Returns:
        The effective role; empty if nothing applies.
    """
    organization: set[OrganizationPermission] = set()
    product: set[ProductPermission] = set()
    repository: set[RepositoryPermission] = set()
    is_superuser = False

    for element_id, role in role_assignments:
        if not applies_to(element_id, target):
            continue
        if element_id.is_wildcard and role == OrganizationRole.ADMIN:
            is_superuser = True
        organization |= role.organization_permissions
        product |= role.product_permissions
        repository |= role.repository_permissions

    return EffectiveRole(
        element_id=target,
        is_superuser=is_superuser,
        organization_permissions=frozenset(organization),
        product_permissions=frozenset(product),
        repository_permissions=frozenset(repository),
    )


def find_highest_role(
    role_assignments: list[RoleAssignment],
    target: CompoundHierarchyId,
) -> tuple[RoleInfo, HierarchyPermissions] | None:
    """Find the most permissive built-in role granted on ``target``.

    Roles of the target's level (organization roles for the wildcard) are
    tried from ADMIN down; the first one whose permissions are all granted
    wins. Relies on ``roles_for_level`` returning roles in ascending order.
    """
    candidates = roles_for_level(target.level) or roles_for_level(HierarchyLevel.ORGANIZATION)

    for role in reversed(candidates):
        permissions = create_hierarchy_permissions(role_assignments, PermissionChecker.for_role(role))
        granted_on = permissions.permission_granted_on_level(target)
        if granted_on is not None:
            logger.debug("Highest role on %s is %r (granted on %s)", target, role, granted_on)
            return RoleInfo(role=role, granted_on=granted_on), permissions
    return None


__all__ = [
    "EffectiveRole",
    "RoleInfo",
    "applies_to",
    "find_highest_role",
    "resolve_effective_role",
]
