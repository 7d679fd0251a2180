"""Authorization service: the operations the API layer uses.

Most operations accept either a :class:`CompoundHierarchyId` or a raw
``OrganizationId`` / ``ProductId`` / ``RepositoryId``. Compound ids are
trusted as given; raw ids are completed from storage first. Pass compound
ids only when they come from a trusted source, such as
``EffectiveRole.element_id``, since an unchecked compound id can claim any
ancestor.

Denial never raises. Unresolvable ids are logged and treated as "no
permissions". Storage failures propagate.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import AbstractSet, Optional, Union

from ..hierarchy import CompoundHierarchyId, HierarchyId
from ..logging import get_authz_logger
from ..permissions.checker import PermissionChecker
from ..permissions.constants import OrganizationPermission, ProductPermission, RepositoryPermission
from ..permissions.effective_role import (
    EffectiveRole,
    RoleInfo,
    applies_to,
    find_highest_role,
    resolve_effective_role,
)
from ..permissions.hierarchy_permissions import RoleAssignment, create_hierarchy_permissions
from ..permissions.roles import Role
from .codec import decode_assignments, decode_role, role_columns
from .filter import HierarchyFilter, build_hierarchy_filter
from .store import AuthorizationStore

logger = logging.getLogger(__name__)

ElementRef = Union[CompoundHierarchyId, HierarchyId]


class AuthorizationService(ABC):
    """Query and manage role assignments of users on hierarchy elements."""

    @abstractmethod
    async def resolve(self, element: ElementRef) -> CompoundHierarchyId:
        """Return the compound id for ``element``.

        Raw ids that cannot be resolved yield an id for which
        ``is_invalid`` is True.
        """

    @abstractmethod
    async def check_permissions(
        self,
        user_id: str,
        element: ElementRef,
        checker: PermissionChecker,
    ) -> Optional[EffectiveRole]:
        """Check the permissions of ``checker`` on ``element``.

        Returns an :class:`EffectiveRole` carrying the checked permissions if
        they are granted, ``None`` otherwise (including unresolvable ids).
        """

    @abstractmethod
    async def get_effective_role(self, user_id: str, element: ElementRef) -> EffectiveRole:
        """Return all permissions of ``user_id`` on ``element``; never ``None``."""

    @abstractmethod
    async def assign_role(self, user_id: str, role: Role, element_id: CompoundHierarchyId) -> None:
        """Assign ``role`` on ``element_id``, replacing an existing assignment there."""

    @abstractmethod
    async def remove_assignment(self, user_id: str, element_id: CompoundHierarchyId) -> bool:
        """Remove the assignment on exactly ``element_id``; True if one existed.

        Assignments on ancestors keep inheriting downwards.
        """

    @abstractmethod
    async def list_users_with_role(self, role: Role, element_id: CompoundHierarchyId) -> set[str]:
        """Users explicitly assigned ``role`` on ``element_id``, without inheritance."""

    @abstractmethod
    async def list_users(self, element_id: CompoundHierarchyId) -> dict[str, set[Role]]:
        """Users with access to ``element_id`` and the roles granting it.

        Includes roles inherited from ancestors; excludes superusers.
        """

    @abstractmethod
    async def list_user_role_infos(self, element_id: CompoundHierarchyId) -> dict[str, RoleInfo]:
        """The highest role per user on ``element_id`` and where it is granted."""

    @abstractmethod
    async def filter_hierarchy_ids(
        self,
        user_id: str,
        organization_permissions: AbstractSet[OrganizationPermission] = frozenset(),
        product_permissions: AbstractSet[ProductPermission] = frozenset(),
        repository_permissions: AbstractSet[RepositoryPermission] = frozenset(),
        contained_in: Optional[ElementRef] = None,
    ) -> HierarchyFilter:
        """Build a list-query filter of elements where all given permissions hold.

        With ``contained_in``, only elements inside that element are returned.
        """

    async def filter_hierarchy_ids_for_role(
        self,
        user_id: str,
        required_role: Role,
        contained_in: Optional[ElementRef] = None,
    ) -> HierarchyFilter:
        """Like :meth:`filter_hierarchy_ids` with the permissions of ``required_role``.

        This does not match the role exactly: searching for READER also
        matches WRITER and ADMIN assignments.
        """
        return await self.filter_hierarchy_ids(
            user_id,
            organization_permissions=required_role.organization_permissions,
            product_permissions=required_role.product_permissions,
            repository_permissions=required_role.repository_permissions,
            contained_in=contained_in,
        )


class DefaultAuthorizationService(AuthorizationService):
    """AuthorizationService backed by an :class:`AuthorizationStore`.

    User ids are managed externally and stored as given.
    """

    def __init__(self, store: AuthorizationStore) -> None:
        self._store = store

    async def resolve(self, element: ElementRef) -> CompoundHierarchyId:
        if isinstance(element, CompoundHierarchyId):
            return element

        resolved = await self._store.resolve_compound_id(element)
        if resolved.is_invalid:
            logger.warning("Failed to resolve hierarchy id %s", element)
        return resolved

    async def check_permissions(
        self,
        user_id: str,
        element: ElementRef,
        checker: PermissionChecker,
    ) -> Optional[EffectiveRole]:
        element_id = await self.resolve(element)
        if element_id.is_invalid:
            return None

        assignments = await self._load_assignments(user_id, element_id)
        permissions = create_hierarchy_permissions(assignments, checker)
        if not permissions.has_permission(element_id):
            return None

        return EffectiveRole.from_checker(element_id, checker, is_superuser=permissions.is_superuser())

    async def get_effective_role(self, user_id: str, element: ElementRef) -> EffectiveRole:
        element_id = await self.resolve(element)
        if element_id.is_invalid:
            return EffectiveRole.empty(element_id)

        assignments = await self._load_assignments(user_id, element_id)
        return resolve_effective_role(element_id, assignments)

    async def assign_role(self, user_id: str, role: Role, element_id: CompoundHierarchyId) -> None:
        log = get_authz_logger(__name__, user_id=user_id, element_id=element_id)

        async with self._store.transaction():
            await self._do_remove_assignment(user_id, element_id)

            log.info("Assigning role '%r' to user '%s' on hierarchy element %s", role, user_id, element_id)
            await self._store.insert_assignment(user_id, element_id, **role_columns(role))

    async def remove_assignment(self, user_id: str, element_id: CompoundHierarchyId) -> bool:
        async with self._store.transaction():
            return await self._do_remove_assignment(user_id, element_id)

    async def list_users_with_role(self, role: Role, element_id: CompoundHierarchyId) -> set[str]:
        rows = await self._store.load_element_assignments(element_id)
        return {row.user_id for row in rows if row.matches(element_id) and decode_role(row) == role}

    async def list_users(self, element_id: CompoundHierarchyId) -> dict[str, set[Role]]:
        users: dict[str, set[Role]] = defaultdict(set)
        for user_id, assignments in (await self._load_assignments_by_user(element_id)).items():
            for assigned_on, role in assignments:
                if applies_to(assigned_on, element_id):
                    users[user_id].add(role)
        return dict(users)

    async def list_user_role_infos(self, element_id: CompoundHierarchyId) -> dict[str, RoleInfo]:
        result: dict[str, RoleInfo] = {}
        for user_id, assignments in (await self._load_assignments_by_user(element_id)).items():
            logger.debug("Computing effective role for user '%s' on element %s", user_id, element_id)
            highest = find_highest_role(assignments, element_id)
            if highest is not None:
                result[user_id] = highest[0]
        return result

    async def filter_hierarchy_ids(
        self,
        user_id: str,
        organization_permissions: AbstractSet[OrganizationPermission] = frozenset(),
        product_permissions: AbstractSet[ProductPermission] = frozenset(),
        repository_permissions: AbstractSet[RepositoryPermission] = frozenset(),
        contained_in: Optional[ElementRef] = None,
    ) -> HierarchyFilter:
        contained_in_id = await self.resolve(contained_in) if contained_in is not None else None
        if contained_in_id is not None and contained_in_id.is_invalid:
            return HierarchyFilter()

        checker = PermissionChecker(
            organization_permissions=frozenset(organization_permissions),
            product_permissions=frozenset(product_permissions),
            repository_permissions=frozenset(repository_permissions),
        )
        assignments = decode_assignments(await self._store.load_all_assignments(user_id))
        permissions = create_hierarchy_permissions(assignments, checker)
        return build_hierarchy_filter(permissions, contained_in_id)

    # ── Internals ───────────────────────────────────────

    async def _load_assignments(self, user_id: str, element_id: CompoundHierarchyId) -> list[RoleAssignment]:
        """Decoded assignments of ``user_id`` within the organization of ``element_id``."""
        get_authz_logger(__name__, user_id=user_id, element_id=element_id).debug("Loading role assignments")
        return decode_assignments(await self._store.load_assignments(user_id, element_id))

    async def _load_assignments_by_user(self, element_id: CompoundHierarchyId) -> dict[str, list[RoleAssignment]]:
        """Decoded non-wildcard assignments of all users, grouped by user."""
        by_user: dict[str, list] = defaultdict(list)
        for row in await self._store.load_element_assignments(element_id):
            if row.organization_id is not None:
                by_user[row.user_id].append(row)
        return {user_id: decode_assignments(user_rows) for user_id, user_rows in by_user.items()}

    async def _do_remove_assignment(self, user_id: str, element_id: CompoundHierarchyId) -> bool:
        removed = await self._store.delete_assignment(user_id, element_id)
        if removed:
            logger.info("Removed role assignment for user '%s' on hierarchy element %s", user_id, element_id)
        return removed


__all__ = [
    "AuthorizationService",
    "DefaultAuthorizationService",
    "ElementRef",
]
