"""
Recover (original, translation) pairs from free-form Gemini output.

The model is asked for a JSON array but is not bound to return one. Observed
failure modes, each handled by one stage:

1. Markdown fencing (```json ... ```)          -> fence stripping
2. Commentary before/after the array           -> bracket slicing
3. Truncated or mildly malformed JSON          -> tolerant line recovery

Strict JSON parsing always runs before line recovery so well-formed output
is never touched by the heuristics.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, List, Optional

from .models import TranslationPair

logger = logging.getLogger(__name__)

ORIGINAL_KEYS = ("original", "Original", "source", "Source")
TRANSLATION_KEYS = ("translation", "Translation", "target", "Target")

# Opening fence with optional language tag, closing fence on its own line
_FENCE_RE = re.compile(r"```[\w+-]*[ \t]*\r?\n(.*?)\r?\n[ \t]*```", re.DOTALL)

_ORIGINAL_LINE_RE = re.compile(r'^"(?:original|source)"\s*:', re.IGNORECASE)
_TRANSLATION_LINE_RE = re.compile(r'^"(?:translation|target)"\s*:', re.IGNORECASE)
_QUOTED_VALUE_RE = re.compile(r':\s*"(.*?)"\s*,?\s*$')
_BOUNDARY_LINES = frozenset({"}", "},", "],"})


def strip_fences(text: str) -> str:
    """Return the interior of the first fenced block, or ``text`` unchanged."""
    match = _FENCE_RE.search(text)
    if match and match.group(1):
        return match.group(1).strip()
    return text


def slice_brackets(text: str) -> str:
    """Cut ``text`` down to its outermost ``[...]`` span when it isn't one already."""
    stripped = text.strip()
    if stripped.startswith("[") and stripped.endswith("]"):
        return stripped
    start = stripped.find("[")
    end = stripped.rfind("]")
    if start != -1 and end != -1 and end > start:
        return stripped[start:end + 1]
    return stripped


def _first_present(item: dict, keys: Iterable[str]) -> Any:
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return None


def normalize_pair(item: Any) -> Optional[TranslationPair]:
    """
    Map any accepted key spelling onto a ``TranslationPair``.

    Missing or null fields become empty strings. Non-object items yield None.
    """
    if not isinstance(item, dict):
        return None
    original = _first_present(item, ORIGINAL_KEYS)
    translation = _first_present(item, TRANSLATION_KEYS)
    return TranslationPair(
        original="" if original is None else str(original),
        translation="" if translation is None else str(translation),
    )


def _normalize_all(items: Iterable[Any]) -> Optional[List[TranslationPair]]:
    pairs = [p for p in (normalize_pair(i) for i in items) if p is not None]
    return pairs or None


def _decode_fragment(value: str) -> str:
    """Apply JSON string escapes when the fragment allows it."""
    try:
        return json.loads(f'"{value}"')
    except ValueError:
        return value


def extract_value(line: str) -> str:
    """Best-effort value extraction from a ``"key": value`` line."""
    match = _QUOTED_VALUE_RE.search(line)
    if match:
        return _decode_fragment(match.group(1))
    idx = line.find(":")
    if idx == -1:
        return ""
    value = line[idx + 1:].strip()
    if value.endswith(","):
        value = value[:-1].rstrip()
    # Tolerate a missing opening or closing quote
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return _decode_fragment(value)


def recover_pairs(text: str) -> Optional[List[TranslationPair]]:
    """
    Line-oriented recovery for JSON that failed to parse.

    A record is flushed on an object boundary line (``}``, ``},``, ``],``),
    when a second ``original`` arrives before a boundary, and at end of input.
    """
    items: List[TranslationPair] = []
    original: Optional[str] = None
    translation: Optional[str] = None

    def flush() -> None:
        nonlocal original, translation
        if original is not None or translation is not None:
            items.append(TranslationPair(original=original or "", translation=translation or ""))
        original = None
        translation = None

    for raw in text.splitlines():
        line = raw.strip()
        if _ORIGINAL_LINE_RE.match(line):
            if original is not None:
                flush()
            original = extract_value(line)
        elif _TRANSLATION_LINE_RE.match(line):
            translation = extract_value(line)
        elif line in _BOUNDARY_LINES:
            flush()

    flush()
    return items or None


def parse_translation_pairs(text: Any) -> Optional[List[TranslationPair]]:
    """
    Parse a model response into ordered translation pairs.

    Returns None ("no structured result") for empty, non-string, or
    unrecoverable input, and for any result with zero pairs. Never raises.
    """
    if not text or not isinstance(text, str):
        return None

    candidate = slice_brackets(strip_fences(text.strip()))

    try:
        parsed = json.loads(candidate)
    except (ValueError, RecursionError):
        # RecursionError: pathologically nested arrays exhaust the decoder
        logger.debug("Strict JSON parse failed, trying line recovery")
        return recover_pairs(candidate)

    if not isinstance(parsed, list):
        return None
    return _normalize_all(parsed)
