"""Authorization checks for gRPC handlers.

Usage (in any service)::

    from authzcore.security import authorize_call, require_permission

    CREATE_PRODUCT = require_permission(OrganizationPermission.CREATE_PRODUCT)

    async def CreateProduct(self, request, context):
        await authorize_call(CREATE_PRODUCT, self.authz, context, self.config)

Configuration (env vars)::

    AUTHZ_ENFORCEMENT=enforce          # off | warn | enforce (default: enforce)
    AUTHZ_USER_ID_METADATA_KEY=x-user-id
"""

from .checkers import (
    ORGANIZATION_ID_KEY,
    PRODUCT_ID_KEY,
    REPOSITORY_ID_KEY,
    AuthorizationChecker,
    authorize_call,
    require_permission,
    require_superuser,
)

__all__ = [
    "ORGANIZATION_ID_KEY",
    "PRODUCT_ID_KEY",
    "REPOSITORY_ID_KEY",
    "AuthorizationChecker",
    "authorize_call",
    "require_permission",
    "require_superuser",
]
