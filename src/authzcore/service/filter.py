"""Query filters derived from batch permission resolution."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..hierarchy import CompoundHierarchyId
from ..permissions.hierarchy_permissions import HierarchyPermissions, IdsByLevel


@dataclass(frozen=True)
class HierarchyFilter:
    """Elements a user may see for a list query.

    Attributes:
        transitive_includes: Ids whose whole subtree is accessible.
        non_transitive_includes: Ids visible only as ancestors of accessible
            elements; their other descendants are not accessible.
        is_wildcard: The user may access everything (superuser, unrestricted).

    A query selects rows matching any transitive include (including rows
    below it) or exactly matching a non-transitive include, unless
    ``is_wildcard`` is set.
    """

    transitive_includes: IdsByLevel = field(default_factory=dict)
    non_transitive_includes: IdsByLevel = field(default_factory=dict)
    is_wildcard: bool = False

    def all_ids(self) -> list[CompoundHierarchyId]:
        """All included ids, transitive first."""
        return [
            element_id
            for includes in (self.transitive_includes, self.non_transitive_includes)
            for ids in includes.values()
            for element_id in ids
        ]


def filter_contained_in(includes: IdsByLevel, contained_in: CompoundHierarchyId | None) -> IdsByLevel:
    """Keep only ids inside ``contained_in``; unchanged if it is ``None``."""
    if contained_in is None:
        return includes
    filtered = {level: [i for i in ids if contained_in.contains(i)] for level, ids in includes.items()}
    return {level: ids for level, ids in filtered.items() if ids}


def includes_dominated_by(
    permissions: HierarchyPermissions,
    contained_in: CompoundHierarchyId | None,
) -> IdsByLevel | None:
    """Collapse includes to ``contained_in`` if a higher include covers it.

    If an include on a strictly higher level contains ``contained_in``, every
    element below ``contained_in`` is accessible. Returns ``None`` otherwise.
    """
    if contained_in is None:
        return None
    covered = any(
        level < contained_in.level and any(element_id.contains(contained_in) for element_id in ids)
        for level, ids in permissions.includes().items()
    )
    if covered:
        return {contained_in.level: [contained_in]}
    return None


def build_hierarchy_filter(
    permissions: HierarchyPermissions,
    contained_in: CompoundHierarchyId | None = None,
) -> HierarchyFilter:
    """Turn batch resolution results into a :class:`HierarchyFilter`."""
    transitive = includes_dominated_by(permissions, contained_in)
    if transitive is None:
        transitive = filter_contained_in(permissions.includes(), contained_in)

    return HierarchyFilter(
        transitive_includes=transitive,
        non_transitive_includes=filter_contained_in(permissions.implicit_includes(), contained_in),
        is_wildcard=permissions.is_superuser() and contained_in is None,
    )


__all__ = [
    "HierarchyFilter",
    "build_hierarchy_filter",
    "filter_contained_in",
    "includes_dominated_by",
]
