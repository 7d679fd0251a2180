from .config import AuthzConfig, EnforcementMode, LogLevel, load_config_from_env
from .exceptions import (
    AuthzError,
    ConfigurationError,
    InvalidHierarchyIdError,
    PermissionDeniedError,
    StorageError,
)
from .hierarchy import (
    INVALID_ID,
    WILDCARD,
    CompoundHierarchyId,
    HierarchyId,
    HierarchyLevel,
    OrganizationId,
    ProductId,
    RepositoryId,
)
from .logging import (
    AuthzFormatter,
    AuthzLoggerAdapter,
    get_authz_logger,
    safe_preview,
    setup_logging,
)
from .permissions import (
    EffectiveRole,
    OrganizationPermission,
    OrganizationRole,
    PermissionChecker,
    ProductPermission,
    ProductRole,
    RepositoryPermission,
    RepositoryRole,
    Role,
    RoleInfo,
    create_hierarchy_permissions,
    permissions,
)
from .service import (
    AuthorizationService,
    AuthorizationStore,
    DefaultAuthorizationService,
    HierarchyFilter,
    InMemoryAuthorizationStore,
)

__all__ = [
    "INVALID_ID",
    "WILDCARD",
    "AuthorizationService",
    "AuthorizationStore",
    "AuthzConfig",
    "AuthzError",
    "AuthzFormatter",
    "AuthzLoggerAdapter",
    "CompoundHierarchyId",
    "ConfigurationError",
    "DefaultAuthorizationService",
    "EffectiveRole",
    "EnforcementMode",
    "HierarchyFilter",
    "HierarchyId",
    "HierarchyLevel",
    "InMemoryAuthorizationStore",
    "InvalidHierarchyIdError",
    "LogLevel",
    "OrganizationId",
    "OrganizationPermission",
    "OrganizationRole",
    "PermissionChecker",
    "PermissionDeniedError",
    "ProductId",
    "ProductPermission",
    "ProductRole",
    "RepositoryId",
    "RepositoryPermission",
    "RepositoryRole",
    "Role",
    "RoleInfo",
    "StorageError",
    "create_hierarchy_permissions",
    "get_authz_logger",
    "load_config_from_env",
    "permissions",
    "safe_preview",
    "setup_logging",
]
