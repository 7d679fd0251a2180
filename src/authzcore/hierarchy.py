"""Identifiers for elements of the organization → product → repository hierarchy.

Provides:
- ``HierarchyLevel``: the levels of the hierarchy plus the wildcard scope.
- ``OrganizationId``, ``ProductId``, ``RepositoryId``: raw, single-level ids.
- ``CompoundHierarchyId``: an id carrying all ancestor components.
- ``WILDCARD``: the id matching every element (superuser scope).
- ``INVALID_ID``: component value marking an id that could not be resolved.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Optional, Union

# Component value used when a raw id cannot be resolved to its ancestors.
INVALID_ID = -1


class HierarchyLevel(IntEnum):
    """Levels in the hierarchy.

    ``WILDCARD`` is not a position in the hierarchy; it denotes the scope
    covering every element.
    """

    WILDCARD = 0
    ORGANIZATION = 1
    PRODUCT = 2
    REPOSITORY = 3

    @classmethod
    def ordered(cls) -> tuple[HierarchyLevel, ...]:
        """Real hierarchy levels, top-down."""
        return (cls.ORGANIZATION, cls.PRODUCT, cls.REPOSITORY)


@dataclass(frozen=True)
class OrganizationId:
    value: int

    level: ClassVar[HierarchyLevel] = HierarchyLevel.ORGANIZATION


@dataclass(frozen=True)
class ProductId:
    value: int

    level: ClassVar[HierarchyLevel] = HierarchyLevel.PRODUCT


@dataclass(frozen=True)
class RepositoryId:
    value: int

    level: ClassVar[HierarchyLevel] = HierarchyLevel.REPOSITORY


HierarchyId = Union[OrganizationId, ProductId, RepositoryId]


@dataclass(frozen=True)
class CompoundHierarchyId:
    """All ids in the hierarchy for one element.

    Components below the element's level are ``None``: a product id has no
    ``repository_id``, an organization id has neither ``product_id`` nor
    ``repository_id``. Only :data:`WILDCARD` has no ``organization_id``.

    Instances are not checked for consistency against storage; a compound id
    built from untrusted input can claim arbitrary ancestors. Ids obtained
    from the authorization service (e.g. ``EffectiveRole.element_id``) are
    resolved and safe to reuse.
    """

    organization_id: Optional[int] = None
    product_id: Optional[int] = None
    repository_id: Optional[int] = None

    def __post_init__(self) -> None:
        if self.repository_id is not None and self.product_id is None:
            raise ValueError("A repository id requires a product id")
        if self.product_id is not None and self.organization_id is None:
            raise ValueError("A product id requires an organization id")

    # ── Construction ────────────────────────────────────

    @classmethod
    def for_organization(cls, organization_id: int) -> CompoundHierarchyId:
        return cls(organization_id)

    @classmethod
    def for_product(cls, organization_id: int, product_id: int) -> CompoundHierarchyId:
        return cls(organization_id, product_id)

    @classmethod
    def for_repository(
        cls,
        organization_id: int,
        product_id: int,
        repository_id: int,
    ) -> CompoundHierarchyId:
        return cls(organization_id, product_id, repository_id)

    # ── Structure ───────────────────────────────────────

    @property
    def level(self) -> HierarchyLevel:
        """The deepest level with a component set."""
        if self.repository_id is not None:
            return HierarchyLevel.REPOSITORY
        if self.product_id is not None:
            return HierarchyLevel.PRODUCT
        if self.organization_id is not None:
            return HierarchyLevel.ORGANIZATION
        return HierarchyLevel.WILDCARD

    @property
    def parent(self) -> CompoundHierarchyId | None:
        """The id one level up, or ``None`` for organizations and the wildcard."""
        if self.repository_id is not None:
            return CompoundHierarchyId(self.organization_id, self.product_id)
        if self.product_id is not None:
            return CompoundHierarchyId(self.organization_id)
        return None

    @property
    def parents(self) -> tuple[CompoundHierarchyId, ...]:
        """All strict ancestors, from the immediate parent up to the organization."""
        result: list[CompoundHierarchyId] = []
        current = self.parent
        while current is not None:
            result.append(current)
            current = current.parent
        return tuple(result)

    @property
    def is_wildcard(self) -> bool:
        return self.organization_id is None

    @property
    def is_invalid(self) -> bool:
        """Whether a component could not be resolved from a raw id."""
        return INVALID_ID in (self.organization_id, self.product_id, self.repository_id)

    @property
    def sort_key(self) -> tuple[int, int, int, int]:
        """Total order used wherever results must not depend on input order."""
        return (
            int(self.level),
            -2 if self.organization_id is None else self.organization_id,
            -2 if self.product_id is None else self.product_id,
            -2 if self.repository_id is None else self.repository_id,
        )

    def component(self, level: HierarchyLevel) -> Optional[int]:
        """Return the component for ``level``.

        Raises:
            ValueError: For :attr:`HierarchyLevel.WILDCARD`.
        """
        if level == HierarchyLevel.ORGANIZATION:
            return self.organization_id
        if level == HierarchyLevel.PRODUCT:
            return self.product_id
        if level == HierarchyLevel.REPOSITORY:
            return self.repository_id
        raise ValueError(f"Invalid level {level!r}")

    def contains(self, other: CompoundHierarchyId) -> bool:
        """Check whether ``other`` is this element or lies below it.

        The wildcard contains every id; no real id contains the wildcard.
        """
        if self.level > other.level:
            return False
        for level in HierarchyLevel.ordered():
            if level > other.level:
                break
            own = self.component(level)
            if own is not None and own != other.component(level):
                return False
        return True

    def __contains__(self, other: object) -> bool:
        return isinstance(other, CompoundHierarchyId) and self.contains(other)

    def __str__(self) -> str:
        if self.is_wildcard:
            return "*"
        parts = [f"org={self.organization_id}"]
        if self.product_id is not None:
            parts.append(f"product={self.product_id}")
        if self.repository_id is not None:
            parts.append(f"repo={self.repository_id}")
        return "/".join(parts)


WILDCARD = CompoundHierarchyId()


__all__ = [
    "INVALID_ID",
    "WILDCARD",
    "CompoundHierarchyId",
    "HierarchyId",
    "HierarchyLevel",
    "OrganizationId",
    "ProductId",
    "RepositoryId",
]
