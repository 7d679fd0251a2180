"""Built-in role catalog.

Each level of the hierarchy has a READER, WRITER and ADMIN role. A role
declares permission sets for all three levels, so the effect of assigning it
further down the hierarchy is already part of the catalog:

- An organization role implies the role of the same name on products and
  repositories (an organization WRITER is a WRITER everywhere below).
- Product and repository roles only grant read access on the levels above
  the one they are defined at.

Roles are immutable and looked up by ``(level, name)`` when decoding stored
assignments.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..hierarchy import HierarchyLevel
from .constants import (
    ORGANIZATION_READ_PERMISSIONS,
    PRODUCT_READ_PERMISSIONS,
    REPOSITORY_READ_PERMISSIONS,
    OrganizationPermission,
    ProductPermission,
    RepositoryPermission,
)

_ROLE_FAMILY = {
    HierarchyLevel.ORGANIZATION: "OrganizationRole",
    HierarchyLevel.PRODUCT: "ProductRole",
    HierarchyLevel.REPOSITORY: "RepositoryRole",
}


@dataclass(frozen=True)
class Role:
    """A named bundle of permissions, assignable on elements of ``level``."""

    name: str
    level: HierarchyLevel
    organization_permissions: frozenset[OrganizationPermission] = frozenset()
    product_permissions: frozenset[ProductPermission] = frozenset()
    repository_permissions: frozenset[RepositoryPermission] = frozenset()

    def __repr__(self) -> str:
        return f"{_ROLE_FAMILY.get(self.level, 'Role')}.{self.name}"

    __str__ = __repr__


# ── Repository roles ────────────────────────────────────


class RepositoryRole:
    """Roles defined on repository level."""

    READER = Role(
        name="READER",
        level=HierarchyLevel.REPOSITORY,
        organization_permissions=ORGANIZATION_READ_PERMISSIONS,
        product_permissions=PRODUCT_READ_PERMISSIONS,
        repository_permissions=REPOSITORY_READ_PERMISSIONS,
    )
    WRITER = Role(
        name="WRITER",
        level=HierarchyLevel.REPOSITORY,
        organization_permissions=ORGANIZATION_READ_PERMISSIONS,
        product_permissions=PRODUCT_READ_PERMISSIONS,
        repository_permissions=REPOSITORY_READ_PERMISSIONS
        | {RepositoryPermission.WRITE, RepositoryPermission.TRIGGER_ORT_RUN},
    )
    ADMIN = Role(
        name="ADMIN",
        level=HierarchyLevel.REPOSITORY,
        organization_permissions=ORGANIZATION_READ_PERMISSIONS,
        product_permissions=PRODUCT_READ_PERMISSIONS,
        repository_permissions=frozenset(RepositoryPermission),
    )

    # Ascending by granted permissions
    ALL = (READER, WRITER, ADMIN)


# ── Product roles ───────────────────────────────────────


class ProductRole:
    """Roles defined on product level."""

    READER = Role(
        name="READER",
        level=HierarchyLevel.PRODUCT,
        organization_permissions=ORGANIZATION_READ_PERMISSIONS,
        product_permissions=PRODUCT_READ_PERMISSIONS,
        repository_permissions=RepositoryRole.READER.repository_permissions,
    )
    WRITER = Role(
        name="WRITER",
        level=HierarchyLevel.PRODUCT,
        organization_permissions=ORGANIZATION_READ_PERMISSIONS,
        product_permissions=PRODUCT_READ_PERMISSIONS
        | {
            ProductPermission.WRITE,
            ProductPermission.CREATE_REPOSITORY,
            ProductPermission.TRIGGER_ORT_RUN,
        },
        repository_permissions=RepositoryRole.WRITER.repository_permissions,
    )
    ADMIN = Role(
        name="ADMIN",
        level=HierarchyLevel.PRODUCT,
        organization_permissions=ORGANIZATION_READ_PERMISSIONS,
        product_permissions=frozenset(ProductPermission),
        repository_permissions=RepositoryRole.ADMIN.repository_permissions,
    )

    ALL = (READER, WRITER, ADMIN)


# ── Organization roles ──────────────────────────────────


class OrganizationRole:
    """Roles defined on organization level.

    ``OrganizationRole.ADMIN`` assigned on the wildcard id makes a superuser.
    """

    READER = Role(
        name="READER",
        level=HierarchyLevel.ORGANIZATION,
        organization_permissions=ORGANIZATION_READ_PERMISSIONS,
        product_permissions=ProductRole.READER.product_permissions,
        repository_permissions=ProductRole.READER.repository_permissions,
    )
    WRITER = Role(
        name="WRITER",
        level=HierarchyLevel.ORGANIZATION,
        organization_permissions=ORGANIZATION_READ_PERMISSIONS
        | {OrganizationPermission.WRITE, OrganizationPermission.CREATE_PRODUCT},
        product_permissions=ProductRole.WRITER.product_permissions,
        repository_permissions=ProductRole.WRITER.repository_permissions,
    )
    ADMIN = Role(
        name="ADMIN",
        level=HierarchyLevel.ORGANIZATION,
        organization_permissions=frozenset(OrganizationPermission),
        product_permissions=ProductRole.ADMIN.product_permissions,
        repository_permissions=ProductRole.ADMIN.repository_permissions,
    )

    ALL = (READER, WRITER, ADMIN)


# ── Catalog ─────────────────────────────────────────────

_ROLES_BY_LEVEL: dict[HierarchyLevel, tuple[Role, ...]] = {
    HierarchyLevel.ORGANIZATION: OrganizationRole.ALL,
    HierarchyLevel.PRODUCT: ProductRole.ALL,
    HierarchyLevel.REPOSITORY: RepositoryRole.ALL,
}

ROLE_CATALOG: dict[tuple[HierarchyLevel, str], Role] = {
    (role.level, role.name): role for roles in _ROLES_BY_LEVEL.values() for role in roles
}


def roles_for_level(level: HierarchyLevel) -> tuple[Role, ...]:
    """Return the built-in roles of ``level`` in ascending order.

    The wildcard level has no roles of its own.
    """
    return _ROLES_BY_LEVEL.get(level, ())


def get_role_by_name_and_level(level: HierarchyLevel, name: str) -> Role | None:
    """Look up a built-in role; ``None`` if there is no such role."""
    return ROLE_CATALOG.get((level, name))


__all__ = [
    "ROLE_CATALOG",
    "OrganizationRole",
    "ProductRole",
    "RepositoryRole",
    "Role",
    "get_role_by_name_and_level",
    "roles_for_level",
]
