"""
Read side of the ledger: does an identity hold permissions, and which.
"""
from dataclasses import dataclass
from typing import List, Sequence

from app.features.permissions.reconciler import check_identity, normalize_creator
from app.features.permissions.store import GrantStore


@dataclass(frozen=True)
class PermissionHeld:
    permission: str
    has: bool


@dataclass(frozen=True)
class PermissionCheck:
    overall: bool
    permissions: List[PermissionHeld]


class QueryEngine:
    def __init__(self, store: GrantStore):
        self.store = store

    async def has(
        self,
        identity: int,
        service: str,
        creator: str,
        permissions: Sequence[str],
    ) -> PermissionCheck:
        """
        Check several permissions with a single store lookup.

        `overall` is true only when every requested permission is held.
        """
        check_identity(identity)
        existing = set(
            await self.store.find_grants(identity, service, normalize_creator(creator), permissions)
        )
        checked = [PermissionHeld(permission=permission, has=permission in existing) for permission in permissions]
        return PermissionCheck(overall=all(item.has for item in checked), permissions=checked)

    async def list_permissions(self, identity: int, service: str, creator: str) -> List[str]:
        check_identity(identity)
        return await self.store.find_grants(identity, service, normalize_creator(creator))
