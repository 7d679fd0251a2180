"""Permission checker: a predicate testing roles against required permissions."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    OrganizationPermission,
    Permission,
    ProductPermission,
    RepositoryPermission,
)
from .roles import Role


@dataclass(frozen=True)
class PermissionChecker:
    """Required permissions on each level of the hierarchy.

    Calling the checker with a role returns True if the role contains all
    required permissions on all three levels. An empty set on a level is
    always satisfied.

    Example::

        checker = permissions(RepositoryPermission.WRITE)
        checker(RepositoryRole.WRITER)  # True
        checker(RepositoryRole.READER)  # False
    """

    organization_permissions: frozenset[OrganizationPermission] = frozenset()
    product_permissions: frozenset[ProductPermission] = frozenset()
    repository_permissions: frozenset[RepositoryPermission] = frozenset()

    def __call__(self, role: Role) -> bool:
        return (
            self.organization_permissions <= role.organization_permissions
            and self.product_permissions <= role.product_permissions
            and self.repository_permissions <= role.repository_permissions
        )

    @classmethod
    def for_role(cls, role: Role) -> PermissionChecker:
        """Checker requiring every permission ``role`` grants.

        Used to test whether a role is at least as permissive as ``role``.
        """
        return cls(
            organization_permissions=role.organization_permissions,
            product_permissions=role.product_permissions,
            repository_permissions=role.repository_permissions,
        )

    @property
    def is_empty(self) -> bool:
        return not (self.organization_permissions or self.product_permissions or self.repository_permissions)


def permissions(*required: Permission) -> PermissionChecker:
    """Build a checker from permissions of a single hierarchy level.

    Raises:
        ValueError: If the permissions belong to different levels.
        TypeError: If an argument is not a permission.
    """
    for permission in required:
        if not isinstance(permission, (OrganizationPermission, ProductPermission, RepositoryPermission)):
            raise TypeError(f"Not a permission: {permission!r}")

    kinds = {type(permission) for permission in required}
    if len(kinds) > 1:
        raise ValueError("permissions() expects permissions of exactly one level")

    return PermissionChecker(
        organization_permissions=frozenset(p for p in required if isinstance(p, OrganizationPermission)),
        product_permissions=frozenset(p for p in required if isinstance(p, ProductPermission)),
        repository_permissions=frozenset(p for p in required if isinstance(p, RepositoryPermission)),
    )


__all__ = [
    "PermissionChecker",
    "permissions",
]
