"""
Grant store: the only component that touches persisted permission rows.

Every operation is scoped by (identity, service, created_by) and works on
plain permission strings; ORM objects never leave this module.
"""
from typing import List, Optional, Protocol, Sequence

from sqlalchemy import and_, delete, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.features.permissions.errors import DuplicateGrantError, StoreError
from app.features.permissions.models import PermissionGrant, generate_ulid
from app.utils import get_logger


log = get_logger(__name__)


class GrantStore(Protocol):
    """Persistence contract the reconciler and query engine depend on."""

    async def find_grants(
        self,
        identity: int,
        service: str,
        created_by: str,
        permissions: Optional[Sequence[str]] = None,
    ) -> List[str]:
        ...

    async def insert_grants(
        self,
        identity: int,
        service: str,
        created_by: str,
        permissions: Sequence[str],
    ) -> None:
        ...

    async def delete_grants(
        self,
        identity: int,
        service: str,
        created_by: str,
        permissions: Sequence[str],
    ) -> int:
        ...


def _is_unique_violation(exc: IntegrityError) -> bool:
    # SQLite: "UNIQUE constraint failed", PostgreSQL: "duplicate key value violates unique constraint"
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate key" in message


def _scope(identity: int, service: str, created_by: str):
    return and_(
        PermissionGrant.identity == identity,
        PermissionGrant.service == service,
        PermissionGrant.created_by == created_by,
    )


class SqlAlchemyGrantStore:
    """
    `GrantStore` over an async SQLAlchemy session factory.

    Each call runs in its own transaction. Queries are built from SQLAlchemy
    expressions so every value is sent as a bound parameter.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def find_grants(
        self,
        identity: int,
        service: str,
        created_by: str,
        permissions: Optional[Sequence[str]] = None,
    ) -> List[str]:
        """
        Permissions held under the scope, oldest first.

        When `permissions` is given only those are looked up, still in one statement.
        """
        stmt = select(PermissionGrant.permission).where(_scope(identity, service, created_by))
        if permissions is not None:
            stmt = stmt.where(PermissionGrant.permission.in_(list(permissions)))
        stmt = stmt.order_by(PermissionGrant.created_at, PermissionGrant.id)

        try:
            async with self._sessions() as session:
                result = await session.execute(stmt)
                found = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read grants: {e}") from e

        log.debug("Found %s grants for identity=%s service=%s created_by=%s", len(found), identity, service, created_by)
        return found

    async def insert_grants(
        self,
        identity: int,
        service: str,
        created_by: str,
        permissions: Sequence[str],
    ) -> None:
        """
        Insert one row per permission, all or nothing.

        Raises:
            DuplicateGrantError: a row for one of the permissions already exists
            StoreError: any other database failure
        """
        if not permissions:
            return

        rows = [
            {
                "id": generate_ulid(),
                "identity": identity,
                "service": service,
                "permission": permission,
                "created_by": created_by,
            }
            for permission in permissions
        ]
        try:
            async with self._sessions.begin() as session:
                await session.execute(insert(PermissionGrant), rows)
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise DuplicateGrantError(f"Grant already exists: {e.orig}") from e
            raise StoreError(f"Failed to insert grants: {e}") from e
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to insert grants: {e}") from e

    async def delete_grants(
        self,
        identity: int,
        service: str,
        created_by: str,
        permissions: Sequence[str],
    ) -> int:
        """Delete the named permissions under the scope. Returns the number of rows removed."""
        if not permissions:
            return 0

        stmt = delete(PermissionGrant).where(
            _scope(identity, service, created_by),
            PermissionGrant.permission.in_(list(permissions)),
        )
        try:
            async with self._sessions.begin() as session:
                result = await session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete grants: {e}") from e

        return result.rowcount
