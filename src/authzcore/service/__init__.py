"""Authorization service and its storage boundary."""

from .authorization import AuthorizationService, DefaultAuthorizationService, ElementRef
from .codec import decode_assignments, decode_role, role_columns
from .filter import HierarchyFilter, build_hierarchy_filter
from .store import AuthorizationStore, InMemoryAuthorizationStore, RoleAssignmentRecord

__all__ = [
    "AuthorizationService",
    "AuthorizationStore",
    "DefaultAuthorizationService",
    "ElementRef",
    "HierarchyFilter",
    "InMemoryAuthorizationStore",
    "RoleAssignmentRecord",
    "build_hierarchy_filter",
    "decode_assignments",
    "decode_role",
    "role_columns",
]
