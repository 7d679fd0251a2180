"""Request authorization helpers for gRPC handlers.

An :class:`AuthorizationChecker` knows which hierarchy element a request
targets and which permissions it needs. :func:`authorize_call` runs a checker
for the calling user and aborts the call if access is denied.

The target element is taken from invocation metadata:

- ``x-organization-id`` for organization permissions
- ``x-product-id`` for product permissions
- ``x-repository-id`` for repository permissions

Usage::

    READ_REPOSITORY = require_permission(RepositoryPermission.READ)

    async def GetRepository(self, request, context):
        role = await authorize_call(READ_REPOSITORY, self.authz, context, self.config)
        ...
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import grpc

from ..config import AuthzConfig, EnforcementMode
from ..exceptions import InvalidHierarchyIdError
from ..hierarchy import WILDCARD, HierarchyId, OrganizationId, ProductId, RepositoryId
from ..permissions.checker import PermissionChecker, permissions
from ..permissions.constants import OrganizationPermission, Permission, ProductPermission, RepositoryPermission
from ..permissions.effective_role import EffectiveRole
from ..permissions.roles import OrganizationRole
from ..service.authorization import AuthorizationService

logger = logging.getLogger(__name__)

ORGANIZATION_ID_KEY = "x-organization-id"
PRODUCT_ID_KEY = "x-product-id"
REPOSITORY_ID_KEY = "x-repository-id"

_ID_KEYS: dict[type, tuple[str, type]] = {
    OrganizationPermission: (ORGANIZATION_ID_KEY, OrganizationId),
    ProductPermission: (PRODUCT_ID_KEY, ProductId),
    RepositoryPermission: (REPOSITORY_ID_KEY, RepositoryId),
}


def _metadata(context: Any) -> dict[str, str]:
    return {key.lower(): value for key, value in (context.invocation_metadata() or ())}


def _require_id(metadata: dict[str, str], key: str) -> int:
    """Read a numeric id from metadata.

    Raises:
        InvalidHierarchyIdError: If the key is missing or not a number.
    """
    raw = metadata.get(key, "").strip()
    try:
        return int(raw)
    except ValueError:
        raise InvalidHierarchyIdError(raw or None, f"Missing or invalid '{key}' metadata") from None


class AuthorizationChecker(Protocol):
    """Loads the effective role of a user for the element a call targets."""

    async def load_effective_role(
        self,
        service: AuthorizationService,
        user_id: str,
        context: Any,
    ) -> Optional[EffectiveRole]:
        """Return the effective role if access is granted, else ``None``.

        Raises:
            InvalidHierarchyIdError: If the targeted element does not exist.
        """
        ...


class _PermissionChecker:
    def __init__(self, permission: Permission) -> None:
        self.permission = permission
        self._checker = permissions(permission)
        self._key, self._id_type = _ID_KEYS[type(permission)]

    async def load_effective_role(
        self,
        service: AuthorizationService,
        user_id: str,
        context: Any,
    ) -> Optional[EffectiveRole]:
        raw_id: HierarchyId = self._id_type(_require_id(_metadata(context), self._key))
        element_id = await service.resolve(raw_id)
        if element_id.is_invalid:
            raise InvalidHierarchyIdError(raw_id)
        return await service.check_permissions(user_id, element_id, self._checker)

    def __repr__(self) -> str:
        return f"require_permission({type(self.permission).__name__}.{self.permission.name})"


class _SuperuserChecker:
    _checker = PermissionChecker.for_role(OrganizationRole.ADMIN)

    async def load_effective_role(
        self,
        service: AuthorizationService,
        user_id: str,
        context: Any,
    ) -> Optional[EffectiveRole]:
        role = await service.check_permissions(user_id, WILDCARD, self._checker)
        if role is not None and role.is_superuser:
            return role
        return None

    def __repr__(self) -> str:
        return "require_superuser()"


def require_permission(permission: Permission) -> AuthorizationChecker:
    """Checker for one permission on the element named in call metadata."""
    return _PermissionChecker(permission)


def require_superuser() -> AuthorizationChecker:
    """Checker passing only for superusers."""
    return _SuperuserChecker()


async def authorize_call(
    checker: AuthorizationChecker,
    service: AuthorizationService,
    context: Any,
    config: AuthzConfig | None = None,
) -> Optional[EffectiveRole]:
    """Authorize the current gRPC call.

    Aborts with UNAUTHENTICATED if no user id is present, NOT_FOUND if the
    targeted element does not exist and PERMISSION_DENIED if access is
    denied. In ``warn`` mode denials are logged and the call proceeds with
    the user's effective role (``None`` if the element is unknown); in
    ``off`` mode no check is made and ``None`` is returned.

    Returns:
        The effective role granting access.
    """
    cfg = config or AuthzConfig()
    if cfg.enforcement == EnforcementMode.OFF:
        return None

    user_id = _metadata(context).get(cfg.user_id_metadata_key, "").strip()
    if not user_id:
        await _deny(context, cfg, grpc.StatusCode.UNAUTHENTICATED, f"{checker!r}: no user id")
        return None

    try:
        role = await checker.load_effective_role(service, user_id, context)
    except InvalidHierarchyIdError as e:
        await _deny(context, cfg, grpc.StatusCode.NOT_FOUND, f"{checker!r}: {e.message}", user_id=user_id)
        return None

    if role is None:
        await _deny(context, cfg, grpc.StatusCode.PERMISSION_DENIED, f"{checker!r} denied", user_id=user_id)
        if cfg.enforcement == EnforcementMode.WARN:
            return await _fallback_role(checker, service, user_id, context)
        return None

    logger.debug("%s allowed for user '%s' on %s", checker, user_id, role.element_id)
    return role


async def _deny(
    context: Any,
    config: AuthzConfig,
    status: grpc.StatusCode,
    reason: str,
    *,
    user_id: str | None = None,
) -> None:
    if config.enforcement == EnforcementMode.WARN:
        logger.warning("WARN_DENIED %s (user=%s, would block in enforce mode)", reason, user_id)
        return

    logger.warning("DENIED %s (user=%s)", reason, user_id)
    await context.abort(status, reason)


async def _fallback_role(
    checker: AuthorizationChecker,
    service: AuthorizationService,
    user_id: str,
    context: Any,
) -> Optional[EffectiveRole]:
    if isinstance(checker, _PermissionChecker):
        raw_id = checker._id_type(_require_id(_metadata(context), checker._key))
        return await service.get_effective_role(user_id, raw_id)
    return await service.get_effective_role(user_id, WILDCARD)


__all__ = [
    "ORGANIZATION_ID_KEY",
    "PRODUCT_ID_KEY",
    "REPOSITORY_ID_KEY",
    "AuthorizationChecker",
    "authorize_call",
    "require_permission",
    "require_superuser",
]
