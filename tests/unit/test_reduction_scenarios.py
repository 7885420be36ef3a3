"""End-to-end engine scenarios on the in-memory store: runner -> selector -> executor."""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest
from reduction_fakes import NOW, FakeRedis, make_listing

from src.pr_engine.cycle_lock import CycleLock
from src.pr_engine.eligibility import EligibilitySelector
from src.pr_engine.runner import BatchRunner
from src.pr_listing.domain.models import MarketSnapshot

WEEK = timedelta(days=7)


@pytest.fixture
def runner(listing_repo, executor, session_factory) -> BatchRunner:
    redis = FakeRedis()

    async def factory() -> FakeRedis:
        return redis

    return BatchRunner(
        selector=EligibilitySelector(repo=listing_repo),
        executor=executor,
        session_factory=session_factory,
        sinks=[],
        lock=CycleLock(redis_factory=factory, key="test:lock", ttl_seconds=60),
        max_workers=4,
        listing_timeout_seconds=5,
    )


async def test_single_percentage_cut(store, runner) -> None:
    store.add(make_listing(minimum_price=Decimal("60.00"), next_price_reduction=NOW))

    summary = await runner.run_cycle(NOW)

    assert summary.counts["Reduced"] == 1
    listing = store.listings["LST-1"]
    assert listing.current_price == Decimal("90.00")
    assert listing.last_price_reduction == NOW
    assert listing.next_price_reduction == NOW + WEEK
    [entry] = store.history_for("LST-1")
    assert (entry.price, entry.reason) == (Decimal("90.00"), "scheduled_reduction")


async def test_walks_down_to_floor_then_stops(store, runner) -> None:
    store.add(make_listing(current_price=Decimal("90.00"), minimum_price=Decimal("80.00")))

    await runner.run_cycle(NOW)
    assert store.listings["LST-1"].current_price == Decimal("81.00")

    await runner.run_cycle(NOW + WEEK)
    assert store.listings["LST-1"].current_price == Decimal("80.00")

    summary = await runner.run_cycle(NOW + 2 * WEEK)
    # At the floor the listing is no longer selected at all
    assert summary.items == []
    assert [e.price for e in store.history_for("LST-1")] == [
        Decimal("81.00"), Decimal("80.00"),
    ]


async def test_future_schedule_not_selected(store, runner) -> None:
    store.add(make_listing(next_price_reduction=NOW + timedelta(days=1)))

    summary = await runner.run_cycle(NOW)

    assert summary.items == []
    assert store.listings["LST-1"].current_price == Decimal("100.00")


async def test_market_suggestion_below_price(store, runner) -> None:
    store.add(make_listing(current_price=Decimal("60.00"), minimum_price=Decimal("40.00"),
                           reduction_strategy="market_based"))
    store.snapshots["LST-1"] = MarketSnapshot("LST-1", Decimal("55.00"), Decimal("45.00"), 8)

    summary = await runner.run_cycle(NOW)

    assert summary.items[0].new_price == Decimal("45.00")
    assert store.listings["LST-1"].current_price == Decimal("45.00")


async def test_market_suggestion_above_price(store, runner) -> None:
    store.add(make_listing(current_price=Decimal("60.00"), minimum_price=Decimal("40.00"),
                           reduction_strategy="market_based"))
    store.snapshots["LST-1"] = MarketSnapshot("LST-1", Decimal("65.00"), Decimal("70.00"), 8)

    summary = await runner.run_cycle(NOW)

    assert summary.counts == {"Reduced": 0, "Skipped": 1, "Failed": 0}
    assert store.listings["LST-1"].current_price == Decimal("60.00")
    assert store.history == []


async def test_floor_and_monotonicity_over_many_cycles(store, runner) -> None:
    store.add(make_listing(id="LST-PCT", current_price=Decimal("99.99"),
                           minimum_price=Decimal("37.13"), reduction_percentage=Decimal("13")))
    store.add(make_listing(id="LST-AMT", current_price=Decimal("50.00"),
                           minimum_price=Decimal("1.00"), reduction_strategy="fixed_amount",
                           reduction_amount=Decimal("17.50")))
    store.add(make_listing(id="LST-TIME", current_price=Decimal("250.00"),
                           minimum_price=Decimal("120.00"), reduction_strategy="time_based"))

    now = NOW
    for _ in range(12):
        before = {lid: l.current_price for lid, l in store.listings.items()}
        await runner.run_cycle(now)
        for lid, listing in store.listings.items():
            assert listing.current_price >= listing.minimum_price
            assert listing.current_price <= before[lid]
            history = store.history_for(lid)
            if listing.last_price_reduction is not None:
                assert history[-1].price == listing.current_price
        now += WEEK * 2

    assert store.listings["LST-AMT"].current_price == Decimal("1.00")
    assert store.listings["LST-PCT"].current_price == Decimal("37.13")


async def test_history_timestamps_strictly_increase(store, runner) -> None:
    store.add(make_listing(reduction_interval_days=1))

    for day in range(3):
        await runner.run_cycle(NOW + timedelta(days=day))

    stamps = [e.created_at for e in store.history_for("LST-1")]
    assert len(stamps) == 3
    assert stamps == sorted(set(stamps))


async def test_at_most_once_under_concurrent_executors(
    store, session_factory, executor
) -> None:
    store.add(make_listing())

    outcomes = await asyncio.gather(
        *(executor.execute(session_factory(), "LST-1", NOW) for _ in range(5))
    )

    reduced = [o for o in outcomes if o.outcome.value == "Reduced"]
    assert len(reduced) == 1
    assert store.listings["LST-1"].current_price == Decimal("90.00")
    assert len(store.history_for("LST-1")) == 1
