"""Persistence boundary for role assignments.

Provides:
- ``RoleAssignmentRecord``: one stored assignment row.
- ``AuthorizationStore``: the protocol the service consumes.
- ``InMemoryAuthorizationStore``: a process-local implementation for
  embedding and tests.

Rows keep role names as plain strings, one column per level, so a row can
hold a name that no longer matches the catalog. Decoding is the service's
job (see :mod:`authzcore.service.codec`).
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

from ..hierarchy import (
    INVALID_ID,
    CompoundHierarchyId,
    HierarchyId,
    OrganizationId,
    ProductId,
    RepositoryId,
)

logger = logging.getLogger(__name__)


class RoleAssignmentRecord(BaseModel):
    """A stored role assignment.

    All id columns empty means the wildcard scope. Exactly one role column is
    expected to be set.
    """

    model_config = {"frozen": True}

    id: int
    user_id: str
    organization_id: Optional[int] = None
    product_id: Optional[int] = None
    repository_id: Optional[int] = None
    organization_role: Optional[str] = None
    product_role: Optional[str] = None
    repository_role: Optional[str] = None

    @property
    def element_id(self) -> CompoundHierarchyId:
        """The hierarchy element this row is assigned on."""
        if self.organization_id is None:
            return CompoundHierarchyId()
        if self.product_id is None:
            return CompoundHierarchyId.for_organization(self.organization_id)
        if self.repository_id is None:
            return CompoundHierarchyId.for_product(self.organization_id, self.product_id)
        return CompoundHierarchyId.for_repository(self.organization_id, self.product_id, self.repository_id)

    def matches(self, element_id: CompoundHierarchyId) -> bool:
        """Check whether this row is assigned exactly on ``element_id``."""
        return (
            self.organization_id == element_id.organization_id
            and self.product_id == element_id.product_id
            and self.repository_id == element_id.repository_id
        )


@runtime_checkable
class AuthorizationStore(Protocol):
    """Storage operations required by the authorization service.

    Implementations signal unavailable storage by raising
    :class:`~authzcore.exceptions.StorageError` (or by letting driver errors
    propagate). The service never catches either; they reach the caller
    unchanged.
    """

    async def load_assignments(self, user_id: str, target: CompoundHierarchyId) -> list[RoleAssignmentRecord]:
        """Rows of ``user_id`` that may apply to ``target``.

        Must include every row on ``target``, its ancestors and the wildcard.
        May include more; the service filters.
        """
        ...

    async def load_all_assignments(self, user_id: str) -> list[RoleAssignmentRecord]:
        """All rows of ``user_id``."""
        ...

    async def load_element_assignments(self, target: CompoundHierarchyId) -> list[RoleAssignmentRecord]:
        """Rows of all users that may apply to ``target``.

        For a real element this covers its organization and excludes wildcard
        rows; for the wildcard it returns only wildcard rows.
        """
        ...

    async def insert_assignment(
        self,
        user_id: str,
        element_id: CompoundHierarchyId,
        *,
        organization_role: Optional[str] = None,
        product_role: Optional[str] = None,
        repository_role: Optional[str] = None,
    ) -> RoleAssignmentRecord:
        ...

    async def delete_assignment(self, user_id: str, element_id: CompoundHierarchyId) -> bool:
        """Delete the row of ``user_id`` exactly on ``element_id``; True if one existed."""
        ...

    def transaction(self):
        """Async context manager grouping writes into one atomic unit."""
        ...

    async def resolve_compound_id(self, hierarchy_id: HierarchyId) -> CompoundHierarchyId:
        """Complete a raw id with its ancestors.

        Components that cannot be resolved are set to ``INVALID_ID``; this
        must not raise for missing elements.
        """
        ...


class InMemoryAuthorizationStore:
    """Process-local store holding the hierarchy structure and assignment rows.

    Writes grouped in :meth:`transaction` are serialised by an asyncio lock,
    so concurrent replace operations for the same user and element never
    interleave.
    """

    def __init__(self) -> None:
        self._rows: list[RoleAssignmentRecord] = []
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()
        self._organizations: set[int] = set()
        self._products: dict[int, int] = {}
        self._repositories: dict[int, int] = {}

    # ── Hierarchy structure ─────────────────────────────

    def add_organization(self, organization_id: int) -> CompoundHierarchyId:
        self._organizations.add(organization_id)
        return CompoundHierarchyId.for_organization(organization_id)

    def add_product(self, organization_id: int, product_id: int) -> CompoundHierarchyId:
        self._organizations.add(organization_id)
        self._products[product_id] = organization_id
        return CompoundHierarchyId.for_product(organization_id, product_id)

    def add_repository(self, organization_id: int, product_id: int, repository_id: int) -> CompoundHierarchyId:
        self.add_product(organization_id, product_id)
        self._repositories[repository_id] = product_id
        return CompoundHierarchyId.for_repository(organization_id, product_id, repository_id)

    async def resolve_compound_id(self, hierarchy_id: HierarchyId) -> CompoundHierarchyId:
        if isinstance(hierarchy_id, OrganizationId):
            return CompoundHierarchyId.for_organization(self._known_organization(hierarchy_id.value))

        if isinstance(hierarchy_id, ProductId):
            if hierarchy_id.value not in self._products:
                return CompoundHierarchyId.for_product(INVALID_ID, hierarchy_id.value)
            organization_id = self._known_organization(self._products[hierarchy_id.value])
            return CompoundHierarchyId.for_product(organization_id, hierarchy_id.value)

        if isinstance(hierarchy_id, RepositoryId):
            product_id = self._repositories.get(hierarchy_id.value)
            if product_id is None:
                return CompoundHierarchyId.for_repository(INVALID_ID, INVALID_ID, hierarchy_id.value)
            organization_id = self._known_organization(self._products.get(product_id, INVALID_ID))
            return CompoundHierarchyId.for_repository(organization_id, product_id, hierarchy_id.value)

        raise TypeError(f"Unsupported hierarchy id: {hierarchy_id!r}")

    def _known_organization(self, organization_id: int) -> int:
        return organization_id if organization_id in self._organizations else INVALID_ID

    # ── Assignments ─────────────────────────────────────

    async def load_assignments(self, user_id: str, target: CompoundHierarchyId) -> list[RoleAssignmentRecord]:
        logger.debug("Loading role assignments for user '%s' on element %s", user_id, target)
        return [
            row
            for row in self._rows
            if row.user_id == user_id
            and (row.organization_id is None or row.organization_id == target.organization_id)
        ]

    async def load_all_assignments(self, user_id: str) -> list[RoleAssignmentRecord]:
        logger.debug("Loading all role assignments for user '%s'", user_id)
        return [row for row in self._rows if row.user_id == user_id]

    async def load_element_assignments(self, target: CompoundHierarchyId) -> list[RoleAssignmentRecord]:
        logger.debug("Loading role assignments on element %s", target)
        if target.is_wildcard:
            return [row for row in self._rows if row.organization_id is None]
        return [row for row in self._rows if row.organization_id == target.organization_id]

    async def insert_assignment(
        self,
        user_id: str,
        element_id: CompoundHierarchyId,
        *,
        organization_role: Optional[str] = None,
        product_role: Optional[str] = None,
        repository_role: Optional[str] = None,
    ) -> RoleAssignmentRecord:
        record = RoleAssignmentRecord(
            id=next(self._ids),
            user_id=user_id,
            organization_id=element_id.organization_id,
            product_id=element_id.product_id,
            repository_id=element_id.repository_id,
            organization_role=organization_role,
            product_role=product_role,
            repository_role=repository_role,
        )
        self._rows.append(record)
        return record

    async def delete_assignment(self, user_id: str, element_id: CompoundHierarchyId) -> bool:
        remaining = [row for row in self._rows if not (row.user_id == user_id and row.matches(element_id))]
        removed = len(remaining) != len(self._rows)
        self._rows = remaining
        return removed

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            snapshot = list(self._rows)
            try:
                yield
            except BaseException:
                self._rows = snapshot
                raise

    def __len__(self) -> int:
        return len(self._rows)


__all__ = [
    "AuthorizationStore",
    "InMemoryAuthorizationStore",
    "RoleAssignmentRecord",
]
