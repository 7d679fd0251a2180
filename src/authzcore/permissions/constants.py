"""Permission enumerations for the three hierarchy levels.

Provides:
- ``OrganizationPermission``: actions controllable on an organization.
- ``ProductPermission``: actions controllable on a product.
- ``RepositoryPermission``: actions controllable on a repository.
- ``*_READ_PERMISSIONS``: read-only sets shared by several roles.
"""

from __future__ import annotations

from enum import Enum

from ..hierarchy import HierarchyLevel


class OrganizationPermission(Enum):
    """Permissions on organization level."""

    READ = "READ"
    WRITE = "WRITE"
    WRITE_SECRETS = "WRITE_SECRETS"
    MANAGE_GROUPS = "MANAGE_GROUPS"
    READ_PRODUCTS = "READ_PRODUCTS"
    CREATE_PRODUCT = "CREATE_PRODUCT"
    DELETE = "DELETE"

    @property
    def level(self) -> HierarchyLevel:
        return HierarchyLevel.ORGANIZATION


class ProductPermission(Enum):
    """Permissions on product level."""

    READ = "READ"
    WRITE = "WRITE"
    WRITE_SECRETS = "WRITE_SECRETS"
    MANAGE_GROUPS = "MANAGE_GROUPS"
    READ_REPOSITORIES = "READ_REPOSITORIES"
    CREATE_REPOSITORY = "CREATE_REPOSITORY"
    TRIGGER_ORT_RUN = "TRIGGER_ORT_RUN"
    DELETE = "DELETE"

    @property
    def level(self) -> HierarchyLevel:
        return HierarchyLevel.PRODUCT


class RepositoryPermission(Enum):
    """Permissions on repository level."""

    READ = "READ"
    WRITE = "WRITE"
    WRITE_SECRETS = "WRITE_SECRETS"
    MANAGE_GROUPS = "MANAGE_GROUPS"
    READ_ORT_RUNS = "READ_ORT_RUNS"
    TRIGGER_ORT_RUN = "TRIGGER_ORT_RUN"
    MANAGE_RESOLUTIONS = "MANAGE_RESOLUTIONS"
    DELETE = "DELETE"

    @property
    def level(self) -> HierarchyLevel:
        return HierarchyLevel.REPOSITORY


# ── Shared read sets ────────────────────────────────────
# Every role grants at least these on the levels above the one it is defined at.

ORGANIZATION_READ_PERMISSIONS: frozenset[OrganizationPermission] = frozenset(
    {
        OrganizationPermission.READ,
        OrganizationPermission.READ_PRODUCTS,
    }
)

PRODUCT_READ_PERMISSIONS: frozenset[ProductPermission] = frozenset(
    {
        ProductPermission.READ,
        ProductPermission.READ_REPOSITORIES,
    }
)

REPOSITORY_READ_PERMISSIONS: frozenset[RepositoryPermission] = frozenset(
    {
        RepositoryPermission.READ,
        RepositoryPermission.READ_ORT_RUNS,
    }
)


Permission = OrganizationPermission | ProductPermission | RepositoryPermission


__all__ = [
    "ORGANIZATION_READ_PERMISSIONS",
    "PRODUCT_READ_PERMISSIONS",
    "REPOSITORY_READ_PERMISSIONS",
    "OrganizationPermission",
    "Permission",
    "ProductPermission",
    "RepositoryPermission",
]
