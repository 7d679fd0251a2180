"""Tests for DefaultAuthorizationService backed by the in-memory store."""

from __future__ import annotations

import asyncio
import logging

import pytest

from authzcore import (
    INVALID_ID,
    WILDCARD,
    AuthorizationStore,
    CompoundHierarchyId,
    DefaultAuthorizationService,
    HierarchyFilter,
    HierarchyLevel,
    InMemoryAuthorizationStore,
    OrganizationId,
    OrganizationPermission,
    OrganizationRole,
    ProductId,
    ProductPermission,
    ProductRole,
    RepositoryId,
    RepositoryPermission,
    RepositoryRole,
    RoleInfo,
    StorageError,
    permissions,
)
from authzcore.service import RoleAssignmentRecord, decode_role

ORG1 = CompoundHierarchyId.for_organization(1)
PRODUCT10 = CompoundHierarchyId.for_product(1, 10)
PRODUCT11 = CompoundHierarchyId.for_product(1, 11)
REPO100 = CompoundHierarchyId.for_repository(1, 10, 100)
REPO101 = CompoundHierarchyId.for_repository(1, 10, 101)
REPO110 = CompoundHierarchyId.for_repository(1, 11, 110)
ORG2 = CompoundHierarchyId.for_organization(2)
REPO200 = CompoundHierarchyId.for_repository(2, 20, 200)


class TestStore:
    """Tests for InMemoryAuthorizationStore."""

    def test_implements_protocol(self, store: InMemoryAuthorizationStore) -> None:
        assert isinstance(store, AuthorizationStore)

    @pytest.mark.asyncio
    async def test_resolve_compound_id(self, store: InMemoryAuthorizationStore) -> None:
        assert await store.resolve_compound_id(RepositoryId(110)) == REPO110
        assert await store.resolve_compound_id(ProductId(20)) == CompoundHierarchyId.for_product(2, 20)
        assert await store.resolve_compound_id(OrganizationId(1)) == ORG1

    @pytest.mark.asyncio
    async def test_resolve_missing_ids(self, store: InMemoryAuthorizationStore) -> None:
        """Unknown ids resolve to invalid compound ids instead of raising."""
        for missing in (OrganizationId(999), ProductId(999), RepositoryId(999)):
            resolved = await store.resolve_compound_id(missing)
            assert resolved.is_invalid, missing
            assert resolved.level == missing.level
        assert (await store.resolve_compound_id(OrganizationId(999))).organization_id == INVALID_ID

    @pytest.mark.asyncio
    async def test_resolve_unsupported_type(self, store: InMemoryAuthorizationStore) -> None:
        with pytest.raises(TypeError):
            await store.resolve_compound_id(100)

    @pytest.mark.asyncio
    async def test_transaction_rolls_back(self, store: InMemoryAuthorizationStore) -> None:
        with pytest.raises(RuntimeError):
            async with store.transaction():
                await store.insert_assignment("alice", ORG1, organization_role="READER")
                raise RuntimeError("boom")

        assert len(store) == 0


class TestResolution:
    """Point checks and effective roles."""

    @pytest.mark.asyncio
    async def test_product_writer_on_repository(self, service) -> None:
        await service.assign_role("alice", ProductRole.WRITER, PRODUCT10)

        role = await service.get_effective_role("alice", REPO100)
        assert role.has_repository_permission(RepositoryPermission.WRITE)
        assert not role.is_superuser

    @pytest.mark.asyncio
    async def test_raw_id_is_resolved(self, service) -> None:
        await service.assign_role("alice", ProductRole.WRITER, PRODUCT10)

        role = await service.get_effective_role("alice", RepositoryId(101))
        assert role.element_id == REPO101
        assert role.has_repository_permission(RepositoryPermission.WRITE)

    @pytest.mark.asyncio
    async def test_other_organizations_unaffected(self, service) -> None:
        await service.assign_role("alice", OrganizationRole.ADMIN, ORG1)

        role = await service.get_effective_role("alice", REPO200)
        assert role.repository_permissions == frozenset()

    @pytest.mark.asyncio
    async def test_unresolvable_id_fails_closed(self, service, caplog: pytest.LogCaptureFixture) -> None:
        await service.assign_role("alice", OrganizationRole.ADMIN, WILDCARD)

        with caplog.at_level(logging.WARNING, logger="authzcore.service.authorization"):
            role = await service.get_effective_role("alice", RepositoryId(999))
            checked = await service.check_permissions("alice", RepositoryId(999), permissions())

        assert role.element_id.is_invalid
        assert not role.is_superuser
        assert role.repository_permissions == frozenset()
        assert checked is None
        assert "Failed to resolve hierarchy id" in caplog.text

    @pytest.mark.asyncio
    async def test_check_permissions_granted(self, service) -> None:
        await service.assign_role("alice", RepositoryRole.WRITER, REPO100)
        checker = permissions(RepositoryPermission.WRITE)

        role = await service.check_permissions("alice", REPO100, checker)
        assert role is not None
        assert role.element_id == REPO100
        assert role.repository_permissions == {RepositoryPermission.WRITE}
        assert await service.check_permissions("alice", REPO101, checker) is None

    @pytest.mark.asyncio
    async def test_check_permissions_implicit_visibility(self, service) -> None:
        """A repository reader may read its organization."""
        await service.assign_role("alice", RepositoryRole.READER, REPO100)

        read_organization = permissions(OrganizationPermission.READ)
        assert await service.check_permissions("alice", ORG1, read_organization)
        assert await service.check_permissions("alice", OrganizationId(2), read_organization) is None

    @pytest.mark.asyncio
    async def test_superuser(self, service) -> None:
        await service.assign_role("root", OrganizationRole.ADMIN, WILDCARD)

        role = await service.check_permissions("root", REPO200, permissions(RepositoryPermission.DELETE))
        assert role is not None
        assert role.is_superuser
        effective = await service.get_effective_role("root", WILDCARD)
        assert effective.is_superuser
        assert effective.organization_permissions == frozenset(OrganizationPermission)

    @pytest.mark.asyncio
    async def test_corrupt_role_grants_nothing(self, service, store, caplog: pytest.LogCaptureFixture) -> None:
        """A row with an unknown role name is logged and ignored."""
        await store.insert_assignment("alice", PRODUCT10, product_role="OWNER")
        await store.insert_assignment("alice", REPO100, repository_role="READER")

        with caplog.at_level(logging.ERROR, logger="authzcore.service.codec"):
            role = await service.get_effective_role("alice", REPO100)

        assert role.repository_permissions == RepositoryRole.READER.repository_permissions
        assert "unknown product role 'OWNER'" in caplog.text

    @pytest.mark.asyncio
    async def test_row_without_role(self, service, store, caplog: pytest.LogCaptureFixture) -> None:
        record = await store.insert_assignment("alice", ORG1)

        with caplog.at_level(logging.ERROR, logger="authzcore.service.codec"):
            role = await service.get_effective_role("alice", ORG1)

        assert role.organization_permissions == frozenset()
        assert f"role assignment {record.id}: no role set" in caplog.text

    def test_decode_rejects_any_bad_column(self, caplog: pytest.LogCaptureFixture) -> None:
        """A valid role next to an unknown one does not rescue the row."""
        record = RoleAssignmentRecord(
            id=1, user_id="alice", organization_id=1, organization_role="ADMIN", repository_role="BOGUS"
        )

        with caplog.at_level(logging.ERROR, logger="authzcore.service.codec"):
            assert decode_role(record) is None

        assert "role assignment 1: unknown repository role 'BOGUS'" in caplog.text

    def test_decode_rejects_several_roles(self, caplog: pytest.LogCaptureFixture) -> None:
        record = RoleAssignmentRecord(
            id=2, user_id="alice", organization_id=1, organization_role="READER", product_role="ADMIN"
        )

        with caplog.at_level(logging.ERROR, logger="authzcore.service.codec"):
            assert decode_role(record) is None

        assert "role assignment 2: several roles set" in caplog.text

    @pytest.mark.asyncio
    async def test_row_with_extra_bad_column_grants_nothing(self, service, store) -> None:
        await store.insert_assignment("alice", ORG1, organization_role="ADMIN", repository_role="BOGUS")

        assert await service.check_permissions("alice", REPO100, permissions(RepositoryPermission.READ)) is None
        assert (await service.get_effective_role("alice", ORG1)).organization_permissions == frozenset()

    @pytest.mark.asyncio
    async def test_corrupt_role_ignored_in_batch_resolution(
        self, service, store, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Corrupt rows are dropped from checks and list filters alike."""
        corrupt = await store.insert_assignment("alice", PRODUCT10, product_role="OWNER")
        await store.insert_assignment("alice", REPO100, repository_role="READER")

        with caplog.at_level(logging.ERROR, logger="authzcore.service.codec"):
            result = await service.filter_hierarchy_ids("alice", repository_permissions={RepositoryPermission.READ})
            readable = await service.check_permissions("alice", REPO100, permissions(RepositoryPermission.READ))
            writable = await service.check_permissions("alice", PRODUCT10, permissions(ProductPermission.WRITE))

        assert result.transitive_includes == {HierarchyLevel.REPOSITORY: [REPO100]}
        assert result.non_transitive_includes == {
            HierarchyLevel.ORGANIZATION: [ORG1],
            HierarchyLevel.PRODUCT: [PRODUCT10],
        }
        assert readable is not None
        assert writable is None
        assert f"role assignment {corrupt.id}: unknown product role 'OWNER'" in caplog.text


class _UnavailableStore(InMemoryAuthorizationStore):
    async def load_assignments(self, user_id, target):
        raise StorageError("role_assignments table unavailable")

    async def load_all_assignments(self, user_id):
        raise StorageError("role_assignments table unavailable")


class TestStorageFailures:
    """Storage errors are not treated as denial."""

    @pytest.mark.asyncio
    async def test_storage_error_propagates(self) -> None:
        service = DefaultAuthorizationService(_UnavailableStore())

        with pytest.raises(StorageError, match="unavailable"):
            await service.get_effective_role("alice", ORG1)
        with pytest.raises(StorageError):
            await service.check_permissions("alice", ORG1, permissions(OrganizationPermission.READ))
        with pytest.raises(StorageError):
            await service.filter_hierarchy_ids("alice")


class TestAssignments:
    """Assigning and removing roles."""

    @pytest.mark.asyncio
    async def test_assign_replaces_existing(self, service, store) -> None:
        await service.assign_role("alice", RepositoryRole.ADMIN, REPO100)
        await service.assign_role("alice", RepositoryRole.READER, REPO100)

        assert len(store) == 1
        role = await service.get_effective_role("alice", REPO100)
        assert not role.has_repository_permission(RepositoryPermission.WRITE)

    @pytest.mark.asyncio
    async def test_assign_on_different_elements(self, service, store) -> None:
        await service.assign_role("alice", OrganizationRole.READER, ORG1)
        await service.assign_role("alice", RepositoryRole.ADMIN, REPO100)

        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_remove(self, service) -> None:
        await service.assign_role("alice", ProductRole.ADMIN, PRODUCT10)

        assert await service.remove_assignment("alice", PRODUCT10) is True
        assert await service.remove_assignment("alice", PRODUCT10) is False
        assert await service.remove_assignment("bob", REPO100) is False

    @pytest.mark.asyncio
    async def test_remove_keeps_inherited_roles(self, service) -> None:
        await service.assign_role("alice", OrganizationRole.WRITER, ORG1)
        await service.assign_role("alice", RepositoryRole.ADMIN, REPO100)

        await service.remove_assignment("alice", REPO100)

        role = await service.get_effective_role("alice", REPO100)
        assert role.has_repository_permission(RepositoryPermission.WRITE)
        assert not role.has_repository_permission(RepositoryPermission.DELETE)

    @pytest.mark.asyncio
    async def test_round_trip(self, service) -> None:
        """Assign then remove restores the previous effective role."""
        await service.assign_role("alice", ProductRole.READER, PRODUCT10)
        before = await service.get_effective_role("alice", REPO100)

        await service.assign_role("alice", RepositoryRole.ADMIN, REPO100)
        assert await service.get_effective_role("alice", REPO100) != before
        await service.remove_assignment("alice", REPO100)

        assert await service.get_effective_role("alice", REPO100) == before

    @pytest.mark.asyncio
    async def test_concurrent_assignments_leave_one_row(self, service, store) -> None:
        await asyncio.gather(
            *(service.assign_role("alice", role, REPO100) for role in RepositoryRole.ALL),
        )
        assert len(store) == 1


class TestListUsers:
    """Listing users on an element."""

    @pytest.mark.asyncio
    async def test_list_users_with_role(self, service) -> None:
        await service.assign_role("alice", ProductRole.WRITER, PRODUCT10)
        await service.assign_role("bob", ProductRole.READER, PRODUCT10)
        await service.assign_role("carol", OrganizationRole.WRITER, ORG1)

        assert await service.list_users_with_role(ProductRole.WRITER, PRODUCT10) == {"alice"}
        assert await service.list_users_with_role(ProductRole.READER, PRODUCT10) == {"bob"}
        assert await service.list_users_with_role(ProductRole.ADMIN, PRODUCT10) == set()

    @pytest.mark.asyncio
    async def test_list_users_includes_inherited(self, service) -> None:
        await service.assign_role("alice", ProductRole.WRITER, PRODUCT10)
        await service.assign_role("bob", OrganizationRole.READER, ORG1)
        await service.assign_role("carol", RepositoryRole.ADMIN, REPO100)
        await service.assign_role("dave", RepositoryRole.ADMIN, REPO101)
        await service.assign_role("root", OrganizationRole.ADMIN, WILDCARD)

        users = await service.list_users(REPO100)

        assert users == {
            "alice": {ProductRole.WRITER},
            "bob": {OrganizationRole.READER},
            "carol": {RepositoryRole.ADMIN},
        }

    @pytest.mark.asyncio
    async def test_list_users_multiple_roles(self, service) -> None:
        await service.assign_role("alice", OrganizationRole.READER, ORG1)
        await service.assign_role("alice", RepositoryRole.WRITER, REPO100)

        assert await service.list_users(REPO100) == {"alice": {OrganizationRole.READER, RepositoryRole.WRITER}}

    @pytest.mark.asyncio
    async def test_list_user_role_infos(self, service) -> None:
        await service.assign_role("alice", OrganizationRole.ADMIN, ORG1)
        await service.assign_role("bob", RepositoryRole.WRITER, REPO100)
        await service.assign_role("carol", RepositoryRole.READER, REPO110)
        await service.assign_role("root", OrganizationRole.ADMIN, WILDCARD)

        infos = await service.list_user_role_infos(PRODUCT10)

        assert infos == {
            "alice": RoleInfo(role=ProductRole.ADMIN, granted_on=ORG1),
            "bob": RoleInfo(role=ProductRole.READER, granted_on=REPO100),
        }


class TestFilterHierarchyIds:
    """Filters for list queries."""

    @pytest.mark.asyncio
    async def test_filter_by_permissions(self, service) -> None:
        await service.assign_role("alice", RepositoryRole.READER, REPO100)
        await service.assign_role("alice", ProductRole.READER, CompoundHierarchyId.for_product(2, 20))

        result = await service.filter_hierarchy_ids("alice", repository_permissions={RepositoryPermission.READ})

        assert result.transitive_includes == {
            HierarchyLevel.PRODUCT: [CompoundHierarchyId.for_product(2, 20)],
            HierarchyLevel.REPOSITORY: [REPO100],
        }
        assert result.non_transitive_includes == {
            HierarchyLevel.ORGANIZATION: [ORG1, ORG2],
            HierarchyLevel.PRODUCT: [PRODUCT10],
        }
        assert not result.is_wildcard

    @pytest.mark.asyncio
    async def test_filter_for_role(self, service) -> None:
        """Searching for a role also matches stronger roles."""
        await service.assign_role("alice", ProductRole.ADMIN, PRODUCT10)
        await service.assign_role("alice", ProductRole.READER, PRODUCT11)

        result = await service.filter_hierarchy_ids_for_role("alice", ProductRole.WRITER)

        assert result.transitive_includes == {HierarchyLevel.PRODUCT: [PRODUCT10]}

    @pytest.mark.asyncio
    async def test_filter_contained_in(self, service) -> None:
        await service.assign_role("alice", RepositoryRole.READER, REPO100)
        await service.assign_role("alice", RepositoryRole.READER, REPO110)

        result = await service.filter_hierarchy_ids(
            "alice",
            repository_permissions={RepositoryPermission.READ},
            contained_in=ProductId(11),
        )

        assert result.transitive_includes == {HierarchyLevel.REPOSITORY: [REPO110]}
        assert result.non_transitive_includes == {HierarchyLevel.PRODUCT: [PRODUCT11]}

    @pytest.mark.asyncio
    async def test_filter_contained_in_dominated_by_higher_grant(self, service) -> None:
        await service.assign_role("alice", OrganizationRole.READER, ORG1)

        result = await service.filter_hierarchy_ids(
            "alice",
            product_permissions={ProductPermission.READ},
            contained_in=PRODUCT10,
        )

        assert result.transitive_includes == {HierarchyLevel.PRODUCT: [PRODUCT10]}
        assert result.non_transitive_includes == {}

    @pytest.mark.asyncio
    async def test_filter_superuser(self, service) -> None:
        await service.assign_role("root", OrganizationRole.ADMIN, WILDCARD)

        result = await service.filter_hierarchy_ids("root", organization_permissions={OrganizationPermission.DELETE})
        assert result.is_wildcard

        scoped = await service.filter_hierarchy_ids("root", contained_in=ORG2)
        assert not scoped.is_wildcard
        assert scoped.transitive_includes == {HierarchyLevel.ORGANIZATION: [ORG2]}

    @pytest.mark.asyncio
    async def test_filter_invalid_contained_in(self, service) -> None:
        await service.assign_role("root", OrganizationRole.ADMIN, WILDCARD)

        result = await service.filter_hierarchy_ids("root", contained_in=RepositoryId(999))
        assert result == HierarchyFilter()

    @pytest.mark.asyncio
    async def test_all_ids(self, service) -> None:
        await service.assign_role("alice", RepositoryRole.READER, REPO100)

        result = await service.filter_hierarchy_ids("alice", repository_permissions={RepositoryPermission.READ})
        assert result.all_ids() == [REPO100, ORG1, PRODUCT10]
