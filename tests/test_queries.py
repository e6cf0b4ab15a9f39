from app.features.permissions.queries import PermissionCheck, PermissionHeld, QueryEngine
from app.features.permissions.reconciler import GrantReconciler


async def test_has_batch_reports_each_permission_with_one_lookup(store):
    await GrantReconciler(store).give(1, "s", "c", ["a", "b"])
    finds_before = store.calls["find"]

    check = await QueryEngine(store).has(1, "s", "c", ["a", "b", "c"])

    assert check == PermissionCheck(
        overall=False,
        permissions=[
            PermissionHeld("a", True),
            PermissionHeld("b", True),
            PermissionHeld("c", False),
        ],
    )
    assert store.calls["find"] == finds_before + 1


async def test_has_single_permission(store):
    await GrantReconciler(store).give(1, "s", "c", ["a"])

    check = await QueryEngine(store).has(1, "s", "C", ["a"])

    assert check.overall is True
    assert check.permissions == [PermissionHeld("a", True)]


async def test_has_nothing_granted(store):
    check = await QueryEngine(store).has(1, "s", "c", ["a", "b"])
    assert check.overall is False
    assert [item.has for item in check.permissions] == [False, False]


async def test_grants_are_invisible_to_other_creators(store):
    await GrantReconciler(store).give(1, "s", "alice", ["a"])
    queries = QueryEngine(store)

    assert (await queries.has(1, "s", "bob", ["a"])).overall is False
    assert await queries.list_permissions(1, "s", "bob") == []
    assert await queries.list_permissions(1, "s", "alice") == ["a"]


async def test_list_is_scoped_by_identity_and_service(store):
    reconciler = GrantReconciler(store)
    await reconciler.give(1, "s", "c", ["a"])
    await reconciler.give(2, "s", "c", ["b"])
    await reconciler.give(1, "other", "c", ["z"])

    assert await QueryEngine(store).list_permissions(1, "s", "c") == ["a"]
