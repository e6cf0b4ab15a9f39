"""
Shared pytest fixtures for the permission ledger tests.

Provides:
- An in-memory grant store honouring the unique (identity, service, permission, created_by) rule
- A SQLite-backed database and store
- An API client wired to the in-memory store, plus bearer tokens for creators
"""
from typing import Dict, List, Optional, Sequence, Set, Tuple

import jwt
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.database.engine import Database
from app.features.permissions.errors import DuplicateGrantError, StoreError
from app.features.permissions.service import PermissionService
from app.features.permissions.store import SqlAlchemyGrantStore
from app.main import create_app


Scope = Tuple[int, str, str]


class InMemoryGrantStore:
    """Dict-backed GrantStore that records how often each method is called."""

    def __init__(self):
        self.rows: Dict[Scope, List[str]] = {}
        self.calls: Dict[str, int] = {"find": 0, "insert": 0, "delete": 0}

    async def find_grants(
        self,
        identity: int,
        service: str,
        created_by: str,
        permissions: Optional[Sequence[str]] = None,
    ) -> List[str]:
        self.calls["find"] += 1
        held = self.rows.get((identity, service, created_by), [])
        if permissions is None:
            return list(held)
        wanted: Set[str] = set(permissions)
        return [permission for permission in held if permission in wanted]

    async def insert_grants(self, identity: int, service: str, created_by: str, permissions: Sequence[str]) -> None:
        self.calls["insert"] += 1
        held = self.rows.setdefault((identity, service, created_by), [])
        if len(set(permissions)) != len(permissions) or any(permission in held for permission in permissions):
            raise DuplicateGrantError("duplicate grant")
        held.extend(permissions)

    async def delete_grants(self, identity: int, service: str, created_by: str, permissions: Sequence[str]) -> int:
        self.calls["delete"] += 1
        held = self.rows.get((identity, service, created_by), [])
        kept = [permission for permission in held if permission not in set(permissions)]
        self.rows[(identity, service, created_by)] = kept
        return len(held) - len(kept)

    def count(self) -> int:
        return sum(len(held) for held in self.rows.values())


class BrokenGrantStore:
    """Every call fails like an unreachable database."""

    async def find_grants(self, *args, **kwargs):
        raise StoreError("database is down")

    async def insert_grants(self, *args, **kwargs):
        raise StoreError("database is down")

    async def delete_grants(self, *args, **kwargs):
        raise StoreError("database is down")


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def store() -> InMemoryGrantStore:
    return InMemoryGrantStore()


@pytest.fixture
def service(store) -> PermissionService:
    return PermissionService(store)


@pytest_asyncio.fixture
async def database():
    """Fresh in-memory SQLite database with the ledger tables."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.init()
    yield db
    await db.dispose()


@pytest.fixture
def sql_store(database) -> SqlAlchemyGrantStore:
    return SqlAlchemyGrantStore(database.sessions)


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(connection_string="sqlite+aiosqlite:///:memory:", rate_limit="1000/minute")


@pytest.fixture
def client(settings, store):
    app = create_app(settings, store=store)
    with TestClient(app) as test_client:
        yield test_client


def make_token(creator: str, claim: str = "sub", secret: str = "unchecked-secret-padded-to-32-bytes!") -> str:
    return jwt.encode({claim: creator}, secret, algorithm="HS256")


@pytest.fixture
def alice_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token('Alice')}"}


@pytest.fixture
def bob_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token('bob')}"}


@pytest.fixture
def broken_store() -> BrokenGrantStore:
    return BrokenGrantStore()
