"""Paginated store behaviour, exercised through the orders instantiation."""

import asyncio

import httpx
import pytest

from bookstall.shared.domain.orders.models import OrderStatus
from bookstall.shared.domain.orders.order_store import OrderStore
from bookstall.shared.domain.pagination import CollectionPhase, PaginationCursor

from conftest import Gate, make_order, page_response

ORDERS = "/api/seller/orders"


def orders_page(numbers, page, total, limit=10, pages=None, **order_kwargs):
    return page_response("orders", [make_order(n, **order_kwargs) for n in numbers], page, limit, total, pages)


async def seed_first_page(server, orders, total=25):
    server.add("GET", ORDERS, orders_page(range(1, 11), page=1, total=total))
    await orders.fetch_page(1)
    server.routes.clear()
    server.requests.clear()


@pytest.mark.asyncio
async def test_first_page_on_empty_collection(server, orders):
    server.add("GET", ORDERS, orders_page([1, 2], page=1, total=2))

    assert await orders.fetch_page(1) is True

    assert [o.id for o in orders.items] == ["o1", "o2"]
    assert orders.cursor.total_pages == 1
    assert orders.cursor.is_fully_loaded
    assert orders.phase is CollectionPhase.IDLE

    assert await orders.load_more() is False
    assert len(server.requests) == 1


@pytest.mark.asyncio
async def test_first_page_sends_page_and_limit(server, orders):
    server.add("GET", ORDERS, orders_page([1], page=1, total=1))

    await orders.fetch_page(1)

    request = server.requests[0]
    assert request.url.params["page"] == "1"
    assert request.url.params["limit"] == "10"


@pytest.mark.asyncio
async def test_page_one_replaces_items_in_response_order(server, orders):
    server.add(
        "GET", ORDERS,
        orders_page([1, 2, 3], page=1, total=3),
        orders_page([4, 1], page=1, total=2),
    )

    await orders.fetch_page(1)
    await orders.fetch_page(1)

    assert [o.id for o in orders.items] == ["o4", "o1"]
    assert orders.cursor.total_items == 2


@pytest.mark.asyncio
async def test_load_more_appends_next_page(server, orders):
    await seed_first_page(server, orders, total=25)
    server.add("GET", ORDERS, orders_page(range(11, 21), page=2, total=25))

    assert await orders.load_more() is True

    assert len(orders.items) == 20
    assert orders.cursor.page_index == 2
    assert server.requests[-1].url.params["page"] == "2"
    assert [o.id for o in orders.items[:10]] == [f"o{n}" for n in range(1, 11)]


@pytest.mark.asyncio
async def test_load_more_dedupes_and_overwrites_in_place(server, orders):
    await seed_first_page(server, orders, total=25)
    page_two = [make_order(10, status="SHIPPED")] + [make_order(n) for n in range(11, 20)]
    server.add("GET", ORDERS, page_response("orders", page_two, 2, 10, 25))

    await orders.load_more()

    ids = [o.id for o in orders.items]
    assert len(ids) == len(set(ids)) == 19
    assert ids.index("o10") == 9
    assert orders.find("o10").status is OrderStatus.SHIPPED


@pytest.mark.asyncio
async def test_retried_page_fetch_is_idempotent(server, orders):
    await seed_first_page(server, orders, total=25)
    server.add("GET", ORDERS, orders_page(range(11, 21), page=2, total=25))

    await orders.fetch_page(2)
    await orders.fetch_page(2)

    ids = [o.id for o in orders.items]
    assert len(ids) == 20
    assert len(set(ids)) == 20


@pytest.mark.asyncio
async def test_load_more_noop_without_cursor(server, orders):
    assert await orders.load_more() is False
    assert server.requests == []


@pytest.mark.asyncio
async def test_load_more_noop_on_last_page(server, orders):
    server.add("GET", ORDERS, orders_page(range(21, 26), page=3, total=25))
    await orders.fetch_page(3)
    requests_before = len(server.requests)

    assert await orders.load_more() is False
    assert len(server.requests) == requests_before


@pytest.mark.asyncio
async def test_empty_collection_is_not_fully_loaded(server, orders):
    server.add("GET", ORDERS, orders_page([], page=1, total=0))

    await orders.fetch_page(1)

    assert orders.items == ()
    assert orders.cursor.total_pages == 0
    assert not orders.cursor.is_fully_loaded
    assert await orders.load_more() is False


@pytest.mark.asyncio
async def test_concurrent_load_more_issues_one_request(server, orders):
    await seed_first_page(server, orders, total=25)
    gate = Gate(orders_page(range(11, 21), page=2, total=25))
    server.add("GET", ORDERS, gate)

    first = asyncio.create_task(orders.load_more())
    second = asyncio.create_task(orders.load_more())
    await gate.entered.wait()
    assert orders.is_loading_more
    gate.release.set()

    results = await asyncio.gather(first, second)

    assert sorted(results) == [False, True]
    assert len(server.calls("GET", ORDERS)) == 1
    assert len(orders.items) == 20


@pytest.mark.asyncio
async def test_refresh_uses_only_refreshing_flag(server, orders, recorder, event_bus):
    await seed_first_page(server, orders, total=25)
    gate = Gate(orders_page([1, 2], page=1, total=2))
    server.add("GET", ORDERS, gate)
    await event_bus.wait_until_idle()
    recorder.events.clear()

    task = asyncio.create_task(orders.refresh())
    await gate.entered.wait()
    assert orders.is_refreshing
    assert not orders.is_loading_initial
    assert not orders.is_loading_more
    gate.release.set()
    await task
    await event_bus.wait_until_idle()

    assert not orders.is_refreshing
    phases = [e["phase"] for e in recorder.of("collection.changed")]
    assert phases == ["refreshing", "idle"]
    assert [o.id for o in orders.items] == ["o1", "o2"]
    assert orders.cursor.page_index == 1


@pytest.mark.asyncio
async def test_initial_load_uses_loading_initial_phase(server, orders):
    gate = Gate(orders_page([1], page=1, total=1))
    server.add("GET", ORDERS, gate)

    task = asyncio.create_task(orders.fetch_page(1))
    await gate.entered.wait()
    snapshot = orders.snapshot()
    assert snapshot.is_loading_initial
    assert not snapshot.is_refreshing
    gate.release.set()
    await task

    assert orders.phase is CollectionPhase.IDLE


@pytest.mark.asyncio
async def test_fetch_while_busy_is_noop(server, orders):
    gate = Gate(orders_page([1], page=1, total=1))
    server.add("GET", ORDERS, gate)

    task = asyncio.create_task(orders.fetch_page(1))
    await gate.entered.wait()
    assert await orders.fetch_page(1) is False
    gate.release.set()
    await task

    assert len(server.requests) == 1


@pytest.mark.asyncio
async def test_stale_load_more_response_is_discarded_after_refresh(server, orders):
    await seed_first_page(server, orders, total=25)
    slow_page_two = Gate(orders_page(range(11, 21), page=2, total=25))
    server.add("GET", ORDERS, slow_page_two, orders_page([30, 31], page=1, total=2))

    load_more = asyncio.create_task(orders.load_more())
    await slow_page_two.entered.wait()

    assert await orders.refresh() is True
    assert [o.id for o in orders.items] == ["o30", "o31"]

    slow_page_two.release.set()
    assert await load_more is True

    assert [o.id for o in orders.items] == ["o30", "o31"]
    assert orders.cursor.page_index == 1
    assert orders.phase is CollectionPhase.IDLE


@pytest.mark.asyncio
async def test_second_refresh_while_refreshing_is_noop(server, orders):
    gate = Gate(orders_page([1], page=1, total=1))
    server.add("GET", ORDERS, gate)

    task = asyncio.create_task(orders.refresh())
    await gate.entered.wait()
    assert await orders.refresh() is False
    gate.release.set()
    await task

    assert len(server.requests) == 1


@pytest.mark.asyncio
async def test_server_failure_keeps_items_and_cursor(server, orders):
    await seed_first_page(server, orders, total=25)
    cursor_before = orders.cursor
    server.add("GET", ORDERS, httpx.Response(500, json={"message": "Database unavailable"}))

    await orders.load_more()

    assert len(orders.items) == 10
    assert orders.cursor == cursor_before
    assert orders.phase is CollectionPhase.IDLE
    assert orders.last_error.kind == "server"
    assert orders.last_error.status == 500
    assert orders.last_error.message == "Database unavailable"


@pytest.mark.asyncio
async def test_server_failure_without_message_uses_fallback(server, orders):
    server.add("GET", ORDERS, httpx.Response(503))

    await orders.refresh()

    assert orders.last_error.message == "Server error. Please try again later"
    assert not orders.is_refreshing


@pytest.mark.asyncio
async def test_network_failure_raises_banner(server, orders, recorder, event_bus):
    await seed_first_page(server, orders, total=25)
    server.add("GET", ORDERS, httpx.ConnectError("connection refused"))

    await orders.refresh()
    await event_bus.wait_until_idle()

    assert orders.last_error.kind == "network"
    assert orders.last_error.status is None
    assert len(orders.items) == 10
    banners = recorder.of("logs.event")
    assert banners and banners[0]["level"] == "warning"
    assert banners[0]["topic"] == "orders"


@pytest.mark.asyncio
async def test_malformed_response_is_reported_as_server_error(server, orders):
    server.add("GET", ORDERS, httpx.Response(200, json={"books": []}))

    await orders.fetch_page(1)

    assert orders.last_error.kind == "server"
    assert orders.items == ()
    assert orders.cursor is None


@pytest.mark.asyncio
async def test_success_clears_previous_error(server, orders):
    server.add("GET", ORDERS, httpx.Response(500), orders_page([1], page=1, total=1))

    await orders.fetch_page(1)
    assert orders.last_error is not None
    await orders.fetch_page(1)

    assert orders.last_error is None
    assert [o.id for o in orders.items] == ["o1"]


@pytest.mark.asyncio
async def test_fetch_page_rejects_page_zero(orders):
    with pytest.raises(ValueError):
        await orders.fetch_page(0)


@pytest.mark.asyncio
async def test_mutate_local_transforms_matching_items_without_fetching(server, orders):
    await seed_first_page(server, orders, total=25)
    requests_before = len(server.requests)

    changed = await orders.mutate_local(
        lambda o: o.id in ("o2", "o3"),
        lambda o: o.model_copy(update={"status": OrderStatus.CONFIRMED}),
    )

    assert changed == 2
    assert orders.find("o2").status is OrderStatus.CONFIRMED
    assert orders.find("o1").status is OrderStatus.PENDING
    assert len(server.requests) == requests_before


@pytest.mark.asyncio
async def test_prepend_puts_item_first_and_counts_it(server, orders):
    await seed_first_page(server, orders, total=20)
    new_order = OrderStore.item_model.model_validate(make_order(99))

    await orders.prepend(new_order)

    assert orders.items[0].id == "o99"
    assert len(orders.items) == 11
    assert orders.cursor.total_items == 21
    assert orders.cursor.total_pages == 3


@pytest.mark.asyncio
async def test_prepend_without_cursor(orders):
    new_order = OrderStore.item_model.model_validate(make_order(1))

    await orders.prepend(new_order)

    assert [o.id for o in orders.items] == ["o1"]
    assert orders.cursor is None


@pytest.mark.asyncio
async def test_clear_discards_in_flight_response(server, orders):
    gate = Gate(orders_page([1, 2], page=1, total=2))
    server.add("GET", ORDERS, gate)

    task = asyncio.create_task(orders.fetch_page(1))
    await gate.entered.wait()
    await orders.clear()
    gate.release.set()
    await task

    assert orders.items == ()
    assert orders.cursor is None
    assert orders.phase is CollectionPhase.IDLE


@pytest.mark.asyncio
async def test_collection_survives_restart(server, orders, api, storage, event_bus):
    await seed_first_page(server, orders, total=25)

    document = storage.load_document("order-storage")
    assert set(document) == {"items", "cursor"}
    assert document["cursor"] == {"page": 1, "limit": 10, "total": 25, "pages": 3}

    restarted = OrderStore(api, storage, event_bus, "order-storage", page_size=10)
    assert await restarted.rehydrate() is True

    assert [o.id for o in restarted.items] == [o.id for o in orders.items]
    assert restarted.cursor == orders.cursor
    assert restarted.phase is CollectionPhase.IDLE
    assert restarted.last_error is None


@pytest.mark.asyncio
async def test_unreadable_persisted_collection_is_ignored(orders, storage):
    storage.save_document("order-storage", {"items": [{"id": "o1"}], "cursor": None})

    assert await orders.rehydrate() is False
    assert orders.items == ()


def test_cursor_wire_round_trip():
    cursor = PaginationCursor.from_wire({"page": 2, "limit": 10, "total": 25, "pages": 3})

    assert cursor.page_index == 2
    assert cursor.has_more
    assert cursor.is_consistent
    assert cursor.to_wire() == {"page": 2, "limit": 10, "total": 25, "pages": 3}
