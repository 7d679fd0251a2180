"""Role catalog and hierarchical permission resolution.

Defines:
- OrganizationPermission / ProductPermission / RepositoryPermission: per-level permissions
- OrganizationRole / ProductRole / RepositoryRole: the fixed role catalog
- PermissionChecker: predicate over roles ("does this role grant X?")
- create_hierarchy_permissions(): batch resolution over all of a user's assignments
- resolve_effective_role(): point resolution for a single element
"""

from .checker import PermissionChecker, permissions
from .constants import (
    ORGANIZATION_READ_PERMISSIONS,
    PRODUCT_READ_PERMISSIONS,
    REPOSITORY_READ_PERMISSIONS,
    OrganizationPermission,
    Permission,
    ProductPermission,
    RepositoryPermission,
)
from .effective_role import (
    EffectiveRole,
    RoleInfo,
    applies_to,
    find_highest_role,
    resolve_effective_role,
)
from .hierarchy_permissions import (
    SUPERUSER_PERMISSIONS,
    HierarchyPermissions,
    IdsByLevel,
    RoleAssignment,
    create_hierarchy_permissions,
)
from .roles import (
    ROLE_CATALOG,
    OrganizationRole,
    ProductRole,
    RepositoryRole,
    Role,
    get_role_by_name_and_level,
    roles_for_level,
)

__all__ = [
    "ORGANIZATION_READ_PERMISSIONS",
    "PRODUCT_READ_PERMISSIONS",
    "REPOSITORY_READ_PERMISSIONS",
    "ROLE_CATALOG",
    "SUPERUSER_PERMISSIONS",
    "EffectiveRole",
    "HierarchyPermissions",
    "IdsByLevel",
    "OrganizationPermission",
    "OrganizationRole",
    "Permission",
    "PermissionChecker",
    "ProductPermission",
    "ProductRole",
    "RepositoryPermission",
    "RepositoryRole",
    "Role",
    "RoleAssignment",
    "RoleInfo",
    "applies_to",
    "create_hierarchy_permissions",
    "find_highest_role",
    "get_role_by_name_and_level",
    "permissions",
    "resolve_effective_role",
    "roles_for_level",
]
