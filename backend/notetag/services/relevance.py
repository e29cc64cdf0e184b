"""
NoteTag Backend — Local Tag Relevance Scoring
===============================================

What:  Pure keyword heuristics that rank candidate tags against note text.
Why:   The default Hugging Face classification model (distilbert-base-uncased)
       is not a zero-shot classifier, and short label texts classify poorly
       anyway. These heuristics stand in for the remote scoring call.
How:   Substring, token and prefix overlap plus a fixed category keyword table.
       No I/O and no state: every function is safe to call from anywhere.
Who:   Used by HuggingFaceService for tag ranking and note splitting.

Scoring (per tag, capped at 1.0):
    +0.8  tag appears verbatim in the lowercased text
    +0.4  tag contains the text's first word, or a text word contains the tag
    +0.6  per exact token match   (tokens longer than 2 chars, split on \\W+)
    +0.3  per 3-char prefix match (same tokens, when not an exact match)
    +0.4  per context keyword hit, only when the tag name is a table key

Example:
    >>> score_tag_relevance("Cook dinner for the family", "food")
    0.8      # "cook" and "dinner" are food keywords: 2 × 0.4
"""

import re
from typing import Dict, List, Mapping, Sequence, Tuple

# Category → trigger words. Only tags named exactly like a key get a bonus.
CONTEXT_KEYWORDS: Dict[str, List[str]] = {
    "food": ["eat", "cook", "meal", "dinner", "lunch", "breakfast", "recipe", "ingredient"],
    "shopping": ["buy", "purchase", "store", "market", "get", "need"],
    "work": ["meeting", "project", "deadline", "office", "email", "task"],
    "health": ["doctor", "medicine", "exercise", "gym", "hospital"],
    "travel": ["trip", "vacation", "flight", "hotel", "visit"],
    "home": ["house", "clean", "repair", "garden", "room"],
    "finance": ["money", "pay", "bill", "bank", "budget", "cost"],
}

SUBSTRING_WEIGHT = 0.8
PARTIAL_WEIGHT = 0.4
EXACT_TOKEN_WEIGHT = 0.6
PREFIX_TOKEN_WEIGHT = 0.3
CONTEXT_WEIGHT = 0.4

# Heuristic scores are coarser than model probabilities, so the bar is higher
# than the 0.1 used for classifier output
MIN_RELEVANCE = 0.2
KEYWORD_FALLBACK_MIN = 0.3

MIN_SENTENCE_LENGTH = 10

_TOKEN_SPLIT = re.compile(r"\W+")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_HAS_LETTER = re.compile(r"[a-zA-Z]")


def _tokens(text: str) -> List[str]:
    return [word for word in _TOKEN_SPLIT.split(text) if len(word) > 2]


def context_matches(
    text: str,
    tag: str,
    keyword_table: Mapping[str, Sequence[str]] = CONTEXT_KEYWORDS,
) -> int:
    """Count the table keywords for `tag` that occur in `text` (lowercased)."""
    keywords = keyword_table.get(tag.lower(), ())
    content = text.lower()
    return sum(1 for keyword in keywords if keyword in content)


def score_tag_relevance(
    text: str,
    tag: str,
    keyword_table: Mapping[str, Sequence[str]] = CONTEXT_KEYWORDS,
) -> float:
    """
    Score how relevant `tag` is to `text`, in [0, 1].

    Args:
        text: Raw note text.
        tag: Candidate tag name.
        keyword_table: Category → keyword list used for the context bonus.

    Returns:
        The weighted heuristic score, capped at 1.0.
    """
    content = text.lower()
    tag_lower = tag.lower()
    if not tag_lower:
        return 0.0

    score = 0.0

    if tag_lower in content:
        score += SUBSTRING_WEIGHT

    words = content.strip().split(" ")
    if (words[0] and words[0] in tag_lower) or any(tag_lower in word for word in words):
        score += PARTIAL_WEIGHT

    tag_tokens = _tokens(tag_lower)
    for content_word in _tokens(content):
        for tag_word in tag_tokens:
            if content_word == tag_word:
                score += EXACT_TOKEN_WEIGHT
            elif content_word.startswith(tag_word[:3]) or tag_word.startswith(content_word[:3]):
                score += PREFIX_TOKEN_WEIGHT

    score += context_matches(content, tag_lower, keyword_table) * CONTEXT_WEIGHT

    return min(score, 1.0)


def rank_by_relevance(
    text: str,
    vocabulary: Sequence[str],
    threshold: float = MIN_RELEVANCE,
    limit: int = 3,
    keyword_table: Mapping[str, Sequence[str]] = CONTEXT_KEYWORDS,
) -> List[Tuple[str, float]]:
    """
    Score every tag and return (tag, score) pairs above `threshold`.

    Ordered by score descending; ties keep vocabulary order.
    """
    scored = [(tag, score_tag_relevance(text, tag, keyword_table)) for tag in vocabulary]
    kept = [pair for pair in scored if pair[1] > threshold]
    kept.sort(key=lambda pair: pair[1], reverse=True)
    return kept[:limit]


def keyword_fallback(text: str, vocabulary: Sequence[str], limit: int = 3) -> List[str]:
    """
    Last-resort matching when no tag clears the relevance threshold.

    Keeps vocabulary order and carries no score.
    """
    content = text.lower()
    first_word = content.strip().split(" ")[0]
    matches = []
    for tag in vocabulary:
        tag_lower = tag.lower()
        if (
            tag_lower in content
            or (first_word and first_word in tag_lower)
            or score_tag_relevance(text, tag) > KEYWORD_FALLBACK_MIN
        ):
            matches.append(tag)
    return matches[:limit]


def split_sentences(text: str) -> List[str]:
    """
    Split a note on sentence punctuation.

    Fragments of MIN_SENTENCE_LENGTH characters or fewer, and fragments with no
    letter, are dropped. Returns the surviving fragments when there are at
    least two, otherwise the whole note as a single item.
    """
    sentences = [
        fragment.strip()
        for fragment in _SENTENCE_SPLIT.split(text)
    ]
    sentences = [
        s for s in sentences
        if len(s) > MIN_SENTENCE_LENGTH and _HAS_LETTER.search(s)
    ]
    if len(sentences) > 1:
        return sentences
    return [text.strip()]
