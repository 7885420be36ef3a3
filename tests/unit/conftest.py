"""Fixtures wiring the in-memory fakes into a ReductionExecutor."""

import pytest
from reduction_fakes import (
    FakeHistoryLedger,
    FakeListingRepository,
    FakeMarketData,
    FakeSession,
    FakeSessionFactory,
    InMemoryStore,
)

from src.pr_engine.executor import ReductionExecutor
from src.pr_pricing.domain.evaluator import PolicyEvaluator


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def session_factory(store: InMemoryStore) -> FakeSessionFactory:
    return FakeSessionFactory(store)


@pytest.fixture
def db(session_factory: FakeSessionFactory) -> FakeSession:
    return session_factory()


@pytest.fixture
def listing_repo() -> FakeListingRepository:
    return FakeListingRepository()


@pytest.fixture
def history_ledger() -> FakeHistoryLedger:
    return FakeHistoryLedger()


@pytest.fixture
def executor(
    listing_repo: FakeListingRepository, history_ledger: FakeHistoryLedger
) -> ReductionExecutor:
    return ReductionExecutor(
        listings=listing_repo,
        history=history_ledger,
        market_data=FakeMarketData(),
        evaluator=PolicyEvaluator(),
        max_retries=2,
        retry_backoff_seconds=0,
    )
