"""
Offline question synthesis: keyword-frequency MCQs straight from lesson text.

No network, no model. The correct answer is a paragraph's most frequent term
and the distractors are its runners-up.
"""
import random
from typing import List, Optional

import structlog

from quizquest.schemas import CHOICE_COUNT, GeneratedQuestion
from quizquest.services.logging import log_performance
from quizquest.services.text import pick_keywords, split_paragraphs

logger = structlog.get_logger()

KEYWORDS_PER_PARAGRAPH = 6
DISTRACTOR_COUNT = CHOICE_COUNT - 1
EXCERPT_CHARS = 160
MAX_BACKFILL_ATTEMPTS = 24
FALLBACK_TOPIC = "concept"
PLACEHOLDER_TERMS = ("term", "concept", "idea", "principle", "process", "element")

PROMPT_TEMPLATE = 'In the context of: "{excerpt}" - which term best fits the topic?'


def capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]


def _fill_distractors(topic: str, keywords: List[str], rng: random.Random) -> List[str]:
    distractors = [k for k in keywords[1:DISTRACTOR_COUNT + 1] if k != topic]
    attempts = 0
    while len(distractors) < DISTRACTOR_COUNT and keywords and attempts < MAX_BACKFILL_ATTEMPTS:
        attempts += 1
        extra = rng.choice(keywords)
        if extra != topic and extra not in distractors:
            distractors.append(extra)
    for placeholder in PLACEHOLDER_TERMS:
        if len(distractors) >= DISTRACTOR_COUNT:
            break
        if placeholder != topic and placeholder not in distractors:
            distractors.append(placeholder)
    return distractors


def synthesize_question(paragraph: str, rng: random.Random) -> GeneratedQuestion:
    keywords = pick_keywords(paragraph, KEYWORDS_PER_PARAGRAPH)
    topic = keywords[0] if keywords else FALLBACK_TOPIC
    options = _fill_distractors(topic, keywords, rng) + [topic]
    rng.shuffle(options)
    return GeneratedQuestion(
        prompt=PROMPT_TEMPLATE.format(excerpt=paragraph[:EXCERPT_CHARS]),
        choices=[capitalize(o) for o in options],
        answer_index=options.index(topic),
    )


@log_performance("generate_questions_local")
def generate_questions_local(text: str, count: int = 5, rng: Optional[random.Random] = None) -> List[GeneratedQuestion]:
    """Exactly ``count`` questions; paragraphs are reused cyclically."""
    if count < 1:
        return []
    rng = rng or random.SystemRandom()
    paragraphs = split_paragraphs(text)
    questions = []
    for i in range(count):
        paragraph = paragraphs[i % len(paragraphs)] if paragraphs else (text or "")
        questions.append(synthesize_question(paragraph, rng))
    logger.info("local_questions_generated", count=count, paragraphs=len(paragraphs))
    return questions
