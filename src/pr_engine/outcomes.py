"""Per-listing outcomes and the cycle summary handed to sinks.

The summary is reporting data, not business state: losing it loses nothing.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar

from src.pr_common.enums import ReductionOutcomeType


@dataclass(frozen=True)
class Reduced:
    outcome: ClassVar[ReductionOutcomeType] = ReductionOutcomeType.REDUCED

    listing_id: str
    old_price: Decimal
    new_price: Decimal
    reason: str
    strategy: str | None = None
    dry_run: bool = False


@dataclass(frozen=True)
class Skipped:
    outcome: ClassVar[ReductionOutcomeType] = ReductionOutcomeType.SKIPPED

    listing_id: str
    reason: str
    old_price: Decimal | None = None


@dataclass(frozen=True)
class Failed:
    outcome: ClassVar[ReductionOutcomeType] = ReductionOutcomeType.FAILED

    listing_id: str
    error: str
    old_price: Decimal | None = None


ReductionOutcome = Reduced | Skipped | Failed


def _money(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


@dataclass(frozen=True)
class CycleItem:
    listing_id: str
    outcome: str
    old_price: Decimal | None = None
    new_price: Decimal | None = None
    reason: str | None = None

    @classmethod
    def from_outcome(cls, o: ReductionOutcome) -> "CycleItem":
        if isinstance(o, Reduced):
            return cls(o.listing_id, o.outcome.value, o.old_price, o.new_price, o.reason)
        if isinstance(o, Skipped):
            return cls(o.listing_id, o.outcome.value, o.old_price, None, o.reason)
        return cls(o.listing_id, o.outcome.value, o.old_price, None, o.error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "listing_id": self.listing_id,
            "outcome": self.outcome,
            "old_price": _money(self.old_price),
            "new_price": _money(self.new_price),
            "reason": self.reason,
        }


@dataclass
class CycleSummary:
    cycle_id: str
    now: datetime
    started_at: datetime
    finished_at: datetime
    dry_run: bool
    items: list[CycleItem] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        cycle_id: str,
        now: datetime,
        started_at: datetime,
        finished_at: datetime,
        dry_run: bool,
        outcomes: list[ReductionOutcome],
    ) -> "CycleSummary":
        return cls(
            cycle_id=cycle_id,
            now=now,
            started_at=started_at,
            finished_at=finished_at,
            dry_run=dry_run,
            items=[CycleItem.from_outcome(o) for o in outcomes],
        )

    @property
    def counts(self) -> dict[str, int]:
        tally = Counter(item.outcome for item in self.items)
        return {t.value: tally.get(t.value, 0) for t in ReductionOutcomeType}

    @property
    def reduced(self) -> list[CycleItem]:
        return [i for i in self.items if i.outcome == ReductionOutcomeType.REDUCED.value]

    @property
    def failed(self) -> list[CycleItem]:
        return [i for i in self.items if i.outcome == ReductionOutcomeType.FAILED.value]

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle_id": self.cycle_id,
            "now": self.now.isoformat(),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "dry_run": self.dry_run,
            "processed": len(self.items),
            "counts": self.counts,
            "items": [i.to_dict() for i in self.items],
        }
