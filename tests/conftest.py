"""Shared fixtures: an in-memory hierarchy with two organizations.

    org 1 ── product 10 ── repo 100, repo 101
          └─ product 11 ── repo 110
    org 2 ── product 20 ── repo 200
"""

from __future__ import annotations

import pytest

from authzcore import DefaultAuthorizationService, InMemoryAuthorizationStore


@pytest.fixture
def store() -> InMemoryAuthorizationStore:
    store = InMemoryAuthorizationStore()
    store.add_repository(1, 10, 100)
    store.add_repository(1, 10, 101)
    store.add_repository(1, 11, 110)
    store.add_repository(2, 20, 200)
    return store


@pytest.fixture
def service(store: InMemoryAuthorizationStore) -> DefaultAuthorizationService:
    return DefaultAuthorizationService(store)
