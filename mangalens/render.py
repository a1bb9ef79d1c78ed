"""
Presentation of parsed translation pairs.

Every pair becomes an "original" row followed by a "translation" row. A side
with no text produces no row, so a record recovered without a translation
shows only its original line.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from markupsafe import Markup, escape

from .models import TranslationOutcome, TranslationPair
from .parser import normalize_pair

ROW_ORIGINAL = "original"
ROW_TRANSLATION = "translation"


@dataclass(frozen=True)
class Row:
    kind: str
    text: str

    @property
    def css_class(self) -> str:
        return f"line-row line-{self.kind}"


PairLike = Union[TranslationPair, dict]


def _as_pair(item: PairLike) -> Optional[TranslationPair]:
    if isinstance(item, TranslationPair):
        return item
    return normalize_pair(item)


def render_rows(pairs: Optional[Iterable[PairLike]]) -> List[Row]:
    """Flatten pairs into display rows, preserving order."""
    rows: List[Row] = []
    for item in pairs or ():
        pair = _as_pair(item)
        if pair is None:
            continue
        if pair.original:
            rows.append(Row(ROW_ORIGINAL, pair.original))
        if pair.translation:
            rows.append(Row(ROW_TRANSLATION, pair.translation))
    return rows


def render_html(pairs: Optional[Iterable[PairLike]]) -> Markup:
    """Escaped ``<div class="line-row ...">`` markup for the web viewer."""
    return Markup("\n").join(
        Markup('<div class="{}">{}</div>').format(row.css_class, escape(row.text))
        for row in render_rows(pairs)
    )


def render_text(pairs: Optional[Iterable[PairLike]]) -> str:
    """Plain-text rendering for the terminal; translations are indented."""
    lines = []
    for row in render_rows(pairs):
        if row.kind == ROW_ORIGINAL:
            lines.append(row.text)
        else:
            lines.extend(f"    {part}" for part in row.text.splitlines() or [""])
    return "\n".join(lines)


def render_outcome(outcome: TranslationOutcome) -> str:
    """Structured pairs as rows, otherwise the raw response verbatim."""
    if outcome.is_structured:
        return render_text(outcome.pairs)
    return outcome.raw_text or "No translation found."
