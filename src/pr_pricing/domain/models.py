"""Evaluation results — what a strategy proposes for one listing."""

from dataclasses import dataclass
from decimal import Decimal

from src.pr_common.enums import PriceChangeReason


@dataclass(frozen=True)
class Candidate:
    price: Decimal                # rounded to cents, not yet clamped to the floor
    strategy: str
    reason: str = PriceChangeReason.SCHEDULED_REDUCTION.value


@dataclass(frozen=True)
class NoChange:
    reason: str


EvaluationResult = Candidate | NoChange
