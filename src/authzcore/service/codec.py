"""Mapping between stored assignment rows and catalog roles."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..hierarchy import HierarchyLevel
from ..permissions.hierarchy_permissions import RoleAssignment
from ..permissions.roles import Role, get_role_by_name_and_level
from .store import RoleAssignmentRecord

logger = logging.getLogger(__name__)


def role_columns(role: Role) -> dict[str, Optional[str]]:
    """Return the role column values for storing ``role``."""
    return {
        "organization_role": role.name if role.level == HierarchyLevel.ORGANIZATION else None,
        "product_role": role.name if role.level == HierarchyLevel.PRODUCT else None,
        "repository_role": role.name if role.level == HierarchyLevel.REPOSITORY else None,
    }


def decode_role(record: RoleAssignmentRecord) -> Role | None:
    """Return the role stored in ``record``.

    Exactly one role column must be set to a name known to the catalog. A row
    without a role, with several roles or with an unknown name grants
    nothing: it is logged and ``None`` is returned.
    """
    columns = (
        (HierarchyLevel.ORGANIZATION, record.organization_role),
        (HierarchyLevel.PRODUCT, record.product_role),
        (HierarchyLevel.REPOSITORY, record.repository_role),
    )
    roles: list[Role] = []
    for level, name in columns:
        if name is None:
            continue
        role = get_role_by_name_and_level(level, name)
        if role is None:
            logger.error(
                "Failed to extract role from role assignment %s: unknown %s role '%s'",
                record.id,
                level.name.lower(),
                name,
            )
            return None
        roles.append(role)

    if not roles:
        logger.error("Failed to extract role from role assignment %s: no role set", record.id)
        return None
    if len(roles) > 1:
        logger.error(
            "Failed to extract role from role assignment %s: several roles set (%s)",
            record.id,
            ", ".join(map(repr, roles)),
        )
        return None
    return roles[0]


def decode_assignments(records: Iterable[RoleAssignmentRecord]) -> list[RoleAssignment]:
    """Decode rows into ``(element id, role)`` pairs, dropping corrupt rows."""
    assignments: list[RoleAssignment] = []
    for record in records:
        role = decode_role(record)
        if role is not None:
            assignments.append((record.element_id, role))
    return assignments


__all__ = [
    "decode_assignments",
    "decode_role",
    "role_columns",
]
