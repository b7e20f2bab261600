"""
Error taxonomy for lesson extraction, generation and budgeting.

Every error carries the HTTP status the routers answer with.
"""
from typing import Optional


class QuizQuestError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EmptyLessonError(QuizQuestError):
    """No lesson text (or no title / questions) to work with."""
    status_code = 400


class ExtractionError(QuizQuestError):
    """Neither the text layer nor OCR produced usable text."""
    status_code = 422


class InvalidKeyError(QuizQuestError):
    status_code = 400


class BudgetExceededError(QuizQuestError):
    status_code = 402

    def __init__(self, message: str, estimated_usd: float = 0.0, spent_usd: float = 0.0, budget_usd: float = 0.0):
        super().__init__(message)
        self.estimated_usd = estimated_usd
        self.spent_usd = spent_usd
        self.budget_usd = budget_usd


class RemoteServiceError(QuizQuestError):
    """Non-success answer (or no answer) from the completion service."""
    status_code = 502

    def __init__(self, status: Optional[int], body: str):
        label = status if status is not None else "no response"
        super().__init__(f"OpenAI error ({label}): {body}")
        self.status = status
        self.body = body


class ParseError(QuizQuestError):
    status_code = 502


class NoValidQuestionsError(QuizQuestError):
    status_code = 502


class GenerationBusyError(QuizQuestError):
    status_code = 409
