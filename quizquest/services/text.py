import re
from collections import Counter
from typing import List


# -------------------- SEGMENTATION --------------------

WHITESPACE_RE = re.compile(r"\s+")
SENT_SPLIT = re.compile(r"(?<=[.!?])\s+")

PARAGRAPH_TARGET_CHARS = 280


def normalize_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text or "").strip()


def split_sentences(text: str) -> List[str]:
    """Split after '.', '!' or '?' followed by whitespace."""
    normalized = normalize_whitespace(text)
    if not normalized:
        return []
    return [s.strip() for s in SENT_SPLIT.split(normalized) if s.strip()]


def pack_paragraphs(sentences: List[str], target_chars: int = PARAGRAPH_TARGET_CHARS) -> List[str]:
    """
    Greedily group consecutive sentences into paragraphs.

    A paragraph is closed as soon as its joined length exceeds
    ``target_chars``; the trailing partial paragraph is kept even when short.
    Each sentence lands in exactly one paragraph, in input order.
    """
    paragraphs: List[str] = []
    bucket: List[str] = []
    for s in sentences:
        bucket.append(s)
        joined = " ".join(bucket)
        if len(joined) > target_chars:
            paragraphs.append(joined)
            bucket = []
    if bucket:
        paragraphs.append(" ".join(bucket))
    return paragraphs


def split_paragraphs(text: str, target_chars: int = PARAGRAPH_TARGET_CHARS) -> List[str]:
    return pack_paragraphs(split_sentences(text), target_chars)


# -------------------- KEYWORDS --------------------

WORD_RE = re.compile(r"[a-z][a-z\-']+")

STOPWORDS = frozenset("""
the a an and or but of to in on for with as by is are was were be been that this it
at from which into than then so such these those can could should would will may might
about over under between through their there they them his her its we you your our us
""".split())


def tokenize_words(text: str) -> List[str]:
    return WORD_RE.findall((text or "").lower())


def pick_keywords(paragraph: str, k: int = 6) -> List[str]:
    """
    Top ``k`` non-stop-word terms by frequency.

    Ties go to the term that appears first in the paragraph.
    """
    counts = Counter()
    first_seen = {}
    for position, word in enumerate(tokenize_words(paragraph)):
        if word in STOPWORDS:
            continue
        counts[word] += 1
        first_seen.setdefault(word, position)
    ranked = sorted(counts, key=lambda w: (-counts[w], first_seen[w]))
    return ranked[:max(0, k)]


# -------------------- PROMPT SIZE --------------------

MODEL_CHAR_LIMIT = 40000


def truncate_for_model(text: str, limit: int = MODEL_CHAR_LIMIT) -> str:
    """Cut lesson text to a safe prompt size."""
    text = text or ""
    return text if len(text) <= limit else text[:limit]
