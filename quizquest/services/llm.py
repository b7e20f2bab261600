from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Union

import structlog
from openai import APIConnectionError, APIStatusError, OpenAI
from pydantic import ValidationError

from quizquest.config import OPENAI_MODEL, OPENAI_TEMPERATURE, OPENAI_TIMEOUT
from quizquest.errors import InvalidKeyError, NoValidQuestionsError, ParseError, RemoteServiceError
from quizquest.schemas import CHOICE_COUNT, GeneratedQuestion
from quizquest.services.logging import log_performance
from quizquest.services.text import truncate_for_model

logger = structlog.get_logger()

API_KEY_RE = re.compile(r"sk-[A-Za-z0-9_\-]{8,}")
FENCED_JSON_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)

SYSTEM_PROMPT = (
    "You are an assistant that writes multiple-choice questions. "
    "Return STRICT JSON ONLY with no extra text."
)

USER_PROMPT = '''
Create {count} multiple-choice questions from the following lesson content.

Rules:
- Each question must have exactly 4 choices.
- Provide an integer 'answerIndex' (0..3) for the correct choice.
- Choices must be concise.
- Use the exact JSON schema below.

Schema (JSON only):
{{
  "questions": [
    {{
      "prompt": "string",
      "choices": ["string", "string", "string", "string"],
      "answerIndex": 0
    }}
  ]
}}

Lesson:
"""{lesson}"""
'''


@dataclass(frozen=True)
class RejectedItem:
    reason: str


def is_plausible_api_key(api_key: Optional[str]) -> bool:
    return bool(api_key) and bool(API_KEY_RE.fullmatch(api_key))


def _get_client(api_key: str) -> OpenAI:
    # Caller's own key, per request; never read from the environment
    return OpenAI(api_key=api_key, timeout=OPENAI_TIMEOUT, max_retries=0)


def build_messages(lesson: str, count: int, system_prompt: Optional[str] = None) -> List[dict]:
    return [
        {"role": "system", "content": system_prompt or SYSTEM_PROMPT},
        {"role": "user", "content": USER_PROMPT.format(count=count, lesson=lesson)},
    ]


def parse_completion(content: str) -> Any:
    """JSON body of a completion, with one retry on a fenced code block."""
    try:
        return json.loads(content)
    except ValueError:
        pass
    match = FENCED_JSON_RE.search(content or "")
    if match:
        try:
            return json.loads(match.group(1))
        except ValueError:
            pass
    raise ParseError("AI did not return valid JSON.")


def _items_of(parsed: Any) -> list:
    if isinstance(parsed, dict):
        items = parsed.get("questions")
        return items if isinstance(items, list) else []
    if isinstance(parsed, list):
        return parsed
    return []


def _as_finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def validate_item(raw: Any) -> Union[GeneratedQuestion, RejectedItem]:
    if not isinstance(raw, dict):
        return RejectedItem("item is not an object")
    prompt = str(raw.get("prompt") or "").strip()
    if not prompt:
        return RejectedItem("missing prompt")
    choices = raw.get("choices")
    if not isinstance(choices, list) or len(choices) != CHOICE_COUNT:
        return RejectedItem(f"expected {CHOICE_COUNT} choices")
    answer = _as_finite_number(raw.get("answerIndex"))
    if answer is None:
        return RejectedItem("answerIndex is not a finite number")
    try:
        return GeneratedQuestion(
            prompt=prompt,
            choices=[str(c) for c in choices],
            answer_index=min(CHOICE_COUNT - 1, max(0, int(round(answer)))),
        )
    except ValidationError as e:
        return RejectedItem(e.errors()[0]["msg"])


def questions_from_completion(content: str, count: int) -> List[GeneratedQuestion]:
    parsed = parse_completion(content)
    valid: List[GeneratedQuestion] = []
    rejected = 0
    for raw in _items_of(parsed):
        result = validate_item(raw)
        if isinstance(result, RejectedItem):
            rejected += 1
            logger.info("ai_item_rejected", reason=result.reason)
            continue
        valid.append(result)
    if not valid:
        raise NoValidQuestionsError("AI returned no valid questions.")
    if rejected:
        logger.warning("ai_items_dropped", rejected=rejected, kept=len(valid))
    return valid[:count]


@log_performance("generate_questions_ai")
def generate_questions_ai(
    text: str,
    count: int,
    api_key: str,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    system_prompt: Optional[str] = None,
) -> List[GeneratedQuestion]:
    """
    Ask the completion service for ``count`` MCQs about ``text``.

    At most ``count`` validated questions come back, possibly fewer.
    """
    if not is_plausible_api_key(api_key):
        raise InvalidKeyError("Invalid OpenAI API key. Paste a valid 'sk-...' key.")

    lesson = truncate_for_model(text)
    client = _get_client(api_key)
    try:
        rsp = client.chat.completions.create(
            model=model or OPENAI_MODEL,
            temperature=OPENAI_TEMPERATURE if temperature is None else temperature,
            messages=build_messages(lesson, count, system_prompt),
            response_format={"type": "json_object"},
        )
    except APIStatusError as e:
        body = e.response.text if e.response is not None else str(e)
        logger.warning("ai_request_failed", status=e.status_code)
        raise RemoteServiceError(e.status_code, body or str(e)) from e
    except APIConnectionError as e:
        logger.warning("ai_request_unreachable", error=str(e))
        raise RemoteServiceError(None, str(e)) from e

    content = rsp.choices[0].message.content if rsp.choices else ""
    return questions_from_completion(content or "", count)
