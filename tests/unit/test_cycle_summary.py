"""Tests for CycleSummary aggregation and the summary sinks."""

import json
import logging
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from reduction_fakes import NOW, FakeRedis

from src.pr_engine.outcomes import CycleItem, CycleSummary, Failed, Reduced, Skipped
from src.pr_engine.summary import (
    LoggingSummarySink,
    NotificationSummarySink,
    RedisSummarySink,
)


def _summary(dry_run: bool = False) -> CycleSummary:
    return CycleSummary.build(
        cycle_id="cyc_test",
        now=NOW,
        started_at=NOW,
        finished_at=NOW + timedelta(seconds=2),
        dry_run=dry_run,
        outcomes=[
            Reduced("LST-1", Decimal("100.00"), Decimal("90.00"), "scheduled_reduction"),
            Skipped("LST-2", "market data unavailable", Decimal("60.00")),
            Failed("LST-3", "timed out after 30s"),
        ],
    )


class TestCycleSummary:
    def test_counts(self) -> None:
        assert _summary().counts == {"Reduced": 1, "Skipped": 1, "Failed": 1}

    def test_item_from_outcome(self) -> None:
        item = CycleItem.from_outcome(Skipped("LST-2", "not due"))
        assert (item.outcome, item.reason, item.new_price) == ("Skipped", "not due", None)

    def test_to_dict_is_json_safe(self) -> None:
        data = json.loads(json.dumps(_summary().to_dict()))
        assert data["processed"] == 3
        assert data["items"][0] == {
            "listing_id": "LST-1",
            "outcome": "Reduced",
            "old_price": "100.00",
            "new_price": "90.00",
            "reason": "scheduled_reduction",
        }
        assert data["items"][2]["reason"] == "timed out after 30s"


class TestLoggingSink:
    async def test_logs_counts_and_failures(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="src.pr_engine.summary"):
            await LoggingSummarySink().publish(_summary())
        assert "reduced=1 skipped=1 failed=1" in caplog.text
        assert "LST-3" in caplog.text


class TestRedisSink:
    async def test_round_trip(self) -> None:
        redis = FakeRedis()

        async def factory() -> FakeRedis:
            return redis

        sink = RedisSummarySink(redis_factory=factory, key="test:last")
        assert await sink.get_last_summary() is None

        await sink.publish(_summary())

        last = await sink.get_last_summary()
        assert last["cycle_id"] == "cyc_test"
        assert last["counts"]["Reduced"] == 1


class TestNotificationSink:
    def _factory(self, db: AsyncMock) -> MagicMock:
        ctx = MagicMock()
        ctx.__aenter__ = AsyncMock(return_value=db)
        ctx.__aexit__ = AsyncMock(return_value=None)
        return MagicMock(return_value=ctx)

    async def test_one_notification_per_reduction(self) -> None:
        db = AsyncMock()
        owner = MagicMock()
        owner.fetchone.return_value = MagicMock(user_id="user-1", title="Denim jacket")
        db.execute.side_effect = [owner, MagicMock()]

        await NotificationSummarySink(self._factory(db)).publish(_summary())

        assert db.execute.await_count == 2
        params = db.execute.await_args_list[1].args[1]
        assert params["user_id"] == "user-1"
        assert params["type"] == "price_reduction"
        assert params["title"] == "Price Reduced"
        assert '"Denim jacket" reduced from $100.00 to $90.00' in params["message"]
        assert json.loads(params["data"])["cycle_id"] == "cyc_test"
        db.commit.assert_awaited_once()

    async def test_dry_run_notifies_nobody(self) -> None:
        db = AsyncMock()
        factory = self._factory(db)
        await NotificationSummarySink(factory).publish(_summary(dry_run=True))
        factory.assert_not_called()
