"""
NoteTag Backend — Model Output Parsing
========================================

What:  Helpers that turn raw generative-model text into structured values.
Why:   Chat models wrap JSON in markdown fences, add prose, or ignore the
       requested format. Every provider needs the same defensive parsing and
       the same vocabulary filtering.
How:   Parsing failures raise ResponseParseError; callers decide the fallback.
"""

import json
import re
from typing import Any, Iterable, List, Sequence

from notetag.exceptions import ResponseParseError
from notetag.schemas.ai import MAX_SUGGESTED_TAGS

# ```json ... ``` or ``` ... ```
_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


def strip_code_fence(raw: str) -> str:
    """Remove a surrounding markdown code fence, if present."""
    match = _CODE_FENCE.match(raw)
    return match.group(1) if match else raw.strip()


def parse_json(raw: str) -> Any:
    """
    Decode a model response as JSON.

    Raises:
        ResponseParseError: The (unfenced) text is not valid JSON.
    """
    try:
        return json.loads(strip_code_fence(raw))
    except (TypeError, ValueError) as e:
        raise ResponseParseError(
            message=f"Model response is not valid JSON: {e}",
            raw=raw,
        ) from e


def parse_string_array(raw: str) -> List[str]:
    """
    Decode a JSON array of strings, dropping blanks and non-strings.

    Raises:
        ResponseParseError: Not JSON, not an array, or no usable items.
    """
    data = parse_json(raw)
    if not isinstance(data, list):
        raise ResponseParseError(message="Model response is not a JSON array", raw=raw)
    items = [item.strip() for item in data if isinstance(item, str) and item.strip()]
    if not items:
        raise ResponseParseError(message="Model returned an empty array", raw=raw)
    return items


def filter_to_vocabulary(
    tags: Iterable[str],
    vocabulary: Sequence[str],
    limit: int = MAX_SUGGESTED_TAGS,
) -> List[str]:
    """
    Keep tags that are vocabulary members, drop duplicates, truncate.

    Order of `tags` is preserved, so pre-sorted input stays ranked.
    """
    allowed = set(vocabulary)
    kept: List[str] = []
    for tag in tags:
        if tag in allowed and tag not in kept:
            kept.append(tag)
        if len(kept) >= limit:
            break
    return kept


def parse_comma_separated(raw: str) -> List[str]:
    """Split a comma-separated model answer into trimmed, non-empty names."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def mentioned_tags(raw: str, vocabulary: Sequence[str], limit: int = MAX_SUGGESTED_TAGS) -> List[str]:
    """Vocabulary entries that appear anywhere in free text (case-insensitive)."""
    lowered = raw.lower()
    return [tag for tag in vocabulary if tag.lower() in lowered][:limit]
