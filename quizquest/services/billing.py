"""
Token/cost estimator and soft budget for BYOK remote generation.

Estimates are a heuristic (about 4 characters per token, a fixed output size
per question) and never reflect the provider's real billing. The budget is an
advisory cap kept per user in the key-value store.
"""
import math
from dataclasses import dataclass
from typing import Optional

import structlog

from quizquest.errors import BudgetExceededError
from quizquest.services.storage import KeyValueStore
from quizquest.services.text import normalize_whitespace, truncate_for_model

logger = structlog.get_logger()

CHARS_PER_TOKEN = 4
OUTPUT_TOKENS_PER_QUESTION = 120


@dataclass(frozen=True)
class ModelPricing:
    input_usd_per_1k: float
    output_usd_per_1k: float


# gpt-4o-mini list price: $0.15 / 1M input, $0.60 / 1M output
PRICING_4O_MINI = ModelPricing(input_usd_per_1k=0.00015, output_usd_per_1k=0.00060)


@dataclass(frozen=True)
class CostEstimate:
    input_tokens: int
    output_tokens: int
    usd: float


@dataclass(frozen=True)
class BudgetState:
    budget_usd: float = 0.0
    spent_usd: float = 0.0
    has_api_key: bool = False

    @property
    def remaining_usd(self) -> float:
        return max(0.0, round(self.budget_usd - self.spent_usd, 6))

    def allows(self, estimate: CostEstimate) -> bool:
        return round(self.spent_usd + estimate.usd, 6) <= self.budget_usd


def estimate_tokens_from_text(text: str) -> int:
    return max(1, math.ceil(len(normalize_whitespace(text)) / CHARS_PER_TOKEN))


def estimate_usd(tokens_in: int, tokens_out: int, pricing: ModelPricing = PRICING_4O_MINI) -> float:
    in_cost = (tokens_in / 1000) * pricing.input_usd_per_1k
    out_cost = (tokens_out / 1000) * pricing.output_usd_per_1k
    return round(in_cost + out_cost, 6)


def estimate_cost(text: str, count: int, pricing: ModelPricing = PRICING_4O_MINI) -> CostEstimate:
    tokens_in = estimate_tokens_from_text(truncate_for_model(text))
    tokens_out = max(0, count) * OUTPUT_TOKENS_PER_QUESTION
    return CostEstimate(
        input_tokens=tokens_in,
        output_tokens=tokens_out,
        usd=estimate_usd(tokens_in, tokens_out, pricing),
    )


def check_budget(state: BudgetState, estimate: CostEstimate) -> None:
    if not state.allows(estimate):
        logger.warning(
            "budget_gate_rejected",
            estimated_usd=estimate.usd,
            spent_usd=state.spent_usd,
            budget_usd=state.budget_usd,
        )
        raise BudgetExceededError(
            "Over your local soft budget. Increase it or lower question count.",
            estimated_usd=estimate.usd,
            spent_usd=state.spent_usd,
            budget_usd=state.budget_usd,
        )


def _as_amount(value) -> float:
    try:
        n = float(value)
    except (TypeError, ValueError):
        return 0.0
    return n if math.isfinite(n) and n >= 0 else 0.0


class BudgetStore:
    """Budget ceiling, running spend and BYOK key for one user."""

    def __init__(self, store: KeyValueStore, user_id: str):
        self.store = store
        self.user_id = str(user_id)

    def _key(self, name: str) -> str:
        return f"quizquest:{self.user_id}:{name}"

    def load(self) -> BudgetState:
        return BudgetState(
            budget_usd=_as_amount(self.store.get(self._key("budget_usd"))),
            spent_usd=_as_amount(self.store.get(self._key("spent_usd"))),
            has_api_key=bool(self.get_api_key()),
        )

    def set_budget(self, budget_usd: float) -> BudgetState:
        self.store.set(self._key("budget_usd"), max(0.0, _as_amount(budget_usd)))
        logger.info("budget_updated", user_id=self.user_id, budget_usd=budget_usd)
        return self.load()

    def add_spent(self, delta_usd: float) -> BudgetState:
        current = self.load().spent_usd
        total = round(current + max(0.0, _as_amount(delta_usd)), 6)
        self.store.set(self._key("spent_usd"), total)
        logger.info("spend_recorded", user_id=self.user_id, delta_usd=delta_usd, spent_usd=total)
        return self.load()

    def reset_spent(self) -> BudgetState:
        self.store.set(self._key("spent_usd"), 0.0)
        logger.info("spend_reset", user_id=self.user_id)
        return self.load()

    def get_api_key(self) -> Optional[str]:
        value = self.store.get(self._key("api_key"))
        return value if isinstance(value, str) and value else None

    def set_api_key(self, api_key: str) -> None:
        self.store.set(self._key("api_key"), api_key.strip())

    def clear_api_key(self) -> None:
        self.store.delete(self._key("api_key"))
