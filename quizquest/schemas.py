from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quizquest.config import MAX_QUESTIONS

CHOICE_COUNT = 4


class GeneratedQuestion(BaseModel):
    """One multiple-choice item: a prompt, four distinct choices, one answer."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    prompt: str
    choices: Tuple[str, ...]
    answer_index: int = Field(alias="answerIndex", ge=0, le=CHOICE_COUNT - 1)

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("prompt must not be empty")
        return v

    @field_validator("choices")
    @classmethod
    def _four_distinct_choices(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        v = tuple(c.strip() for c in v)
        if len(v) != CHOICE_COUNT:
            raise ValueError(f"expected exactly {CHOICE_COUNT} choices, got {len(v)}")
        if any(not c for c in v):
            raise ValueError("choices must not be empty")
        if len({c.lower() for c in v}) != CHOICE_COUNT:
            raise ValueError("choices must be distinct")
        return v

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


# ----------------- Request / response bodies -----------------

class EstimateRequest(BaseModel):
    text: str
    count: int = Field(default=5, ge=1, le=MAX_QUESTIONS)


class GenerateRequest(BaseModel):
    text: str
    count: int = Field(default=5, ge=1, le=MAX_QUESTIONS)
    api_key: Optional[str] = None


class SaveRequest(BaseModel):
    title: str
    description: str = "Generated with QuizQuest"
    questions: List[GeneratedQuestion]


class BudgetUpdate(BaseModel):
    budget_usd: float = Field(ge=0)


class ApiKeyUpdate(BaseModel):
    api_key: str


class QuizCreate(BaseModel):
    title: str
    description: str = ""


class FinishRequest(BaseModel):
    answers: List[int]
