"""
Lesson-to-quiz pipeline: text acquisition, estimation, generation, save.

Steps run strictly one after another. A user may have only one generation in
flight; the budget is read before the remote call and written once after it
succeeds.
"""
import random
import threading
from contextlib import contextmanager
from typing import List, Optional

import structlog

from quizquest.errors import EmptyLessonError, GenerationBusyError, InvalidKeyError
from quizquest.schemas import GeneratedQuestion
from quizquest.services.billing import BudgetStore, CostEstimate, check_budget, estimate_cost
from quizquest.services.local_quiz import generate_questions_local
from quizquest.services.llm import generate_questions_ai, is_plausible_api_key
from quizquest.services.monitoring import GENERATION_REQUESTS
from quizquest.services.pdf_extractor import PdfTextExtractor
from quizquest.services.quiz_store import QuizSink

logger = structlog.get_logger()

STRATEGY_LOCAL = "local"
STRATEGY_AI = "ai"


class BusyGuard:
    def __init__(self):
        self._lock = threading.Lock()
        self._busy = set()

    @contextmanager
    def hold(self, key: str):
        with self._lock:
            if key in self._busy:
                raise GenerationBusyError("A generation is already running. Wait for it to finish.")
            self._busy.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._busy.discard(key)

    def is_busy(self, key: str) -> bool:
        with self._lock:
            return key in self._busy


generation_guard = BusyGuard()


class GenerationPipeline:
    def __init__(self, budget_store: BudgetStore, extractor: Optional[PdfTextExtractor] = None,
                 rng: Optional[random.Random] = None, guard: BusyGuard = generation_guard):
        self.budget_store = budget_store
        self.extractor = extractor or PdfTextExtractor()
        self.rng = rng
        self.guard = guard

    @property
    def user_id(self) -> str:
        return self.budget_store.user_id

    def acquire_text(self, pdf_bytes: Optional[bytes] = None, text: Optional[str] = None) -> str:
        if pdf_bytes:
            lesson = self.extractor.extract(pdf_bytes)
        else:
            lesson = (text or "").strip()
        if not lesson:
            raise EmptyLessonError("Paste text or upload a PDF first.")
        return lesson

    def estimate(self, text: str, count: int) -> CostEstimate:
        return estimate_cost(text, count)

    def generate(self, text: str, count: int, strategy: str = STRATEGY_LOCAL,
                 api_key: Optional[str] = None) -> List[GeneratedQuestion]:
        if not (text or "").strip():
            raise EmptyLessonError("Paste text or upload a PDF first.")
        if strategy not in (STRATEGY_LOCAL, STRATEGY_AI):
            raise ValueError(f"unknown generation strategy: {strategy}")

        with self.guard.hold(self.user_id):
            try:
                if strategy == STRATEGY_LOCAL:
                    questions = generate_questions_local(text, count, rng=self.rng)
                else:
                    questions = self._generate_remote(text, count, api_key)
            except Exception:
                GENERATION_REQUESTS.labels(strategy=strategy, status="error").inc()
                raise
        GENERATION_REQUESTS.labels(strategy=strategy, status="success").inc()
        logger.info("questions_generated", user_id=self.user_id, strategy=strategy,
                    requested=count, returned=len(questions))
        return questions

    def _generate_remote(self, text: str, count: int, api_key: Optional[str]) -> List[GeneratedQuestion]:
        key = (api_key or "").strip() or self.budget_store.get_api_key()
        if not is_plausible_api_key(key):
            raise InvalidKeyError("Enter your OpenAI key (BYOK) to use AI generation.")

        estimate = self.estimate(text, count)
        check_budget(self.budget_store.load(), estimate)

        questions = generate_questions_ai(text, count, key)
        self.budget_store.add_spent(estimate.usd)
        return questions

    def save(self, sink: QuizSink, owner_uid: str, title: str, questions: List[GeneratedQuestion],
             description: str = "Generated with QuizQuest") -> int:
        title = (title or "").strip()
        if not questions or not title:
            raise EmptyLessonError("Add a quiz title and generate questions first.")
        quiz_id = sink.create_quiz(owner_uid, title, description)
        for question in questions:
            sink.add_question(quiz_id, question)
        logger.info("quiz_saved", user_id=owner_uid, quiz_id=quiz_id, questions=len(questions))
        return quiz_id
