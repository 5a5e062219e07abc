"""
Rule-based vocabulary extraction.

Mines ``Word: definition`` style pairs out of free text with a fixed list of
regex rules and ranks them with a hand-tuned confidence score. The function is
pure: it never touches the store and never raises on odd input.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Iterable, List, Optional, Set

MAX_CANDIDATES = 50
MIN_CONFIDENCE = 0.3
SELECT_THRESHOLD = 0.6

# Evaluated independently over the whole text; results are concatenated.
PATTERNS = [
    # "Word: Definition" or "Word - Definition"
    re.compile(r"([A-Z][a-z]+)[\s]*[:\-][\s]*([^.\n]+)"),
    # "Word (definition)"
    re.compile(r"([A-Z][a-z]+)\s*\(([^)]+)\)"),
    # "**Word**: Definition"
    re.compile(r"\*\*([A-Z][a-z]+)\*\*[\s]*[:\-]?[\s]*([^.\n]+)"),
    # "1. Word: Definition"
    re.compile(r"\d+\.?\s*([A-Z][a-z]+)[\s]*[:\-][\s]*([^.\n]+)"),
    # vocabulary list, one entry per line
    re.compile(r"^([A-Z][a-z]+)[\s]*[:\-][\s]*(.+)$", re.MULTILINE),
]

DEFINITION_PHRASES = re.compile(r"\b(means?|refers? to|defined as|is a|are)\b", re.IGNORECASE | re.ASCII)
PART_OF_SPEECH = re.compile(r"\b(adjective|noun|verb|adverb)\b", re.IGNORECASE | re.ASCII)
YEAR_LIKE = re.compile(r"\d{4}", re.ASCII)
ONLY_DIGITS = re.compile(r"^\d+$", re.ASCII)
TITLE_CASE_WORD = re.compile(r"^[A-Z][a-z]+$")


@dataclass
class ExtractionCandidate:
    word: str
    definition: str
    confidence: float
    selected: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_confidence(word: str, definition: str) -> float:
    """Heuristic score in [0, 1]; not a calibrated probability."""
    confidence = 0.5

    if len(definition) > 50:
        confidence += 0.2
    if len(definition) > 100:
        confidence += 0.1

    if DEFINITION_PHRASES.search(definition):
        confidence += 0.2
    if PART_OF_SPEECH.search(definition):
        confidence += 0.1

    if len(definition) < 20:
        confidence -= 0.3
    if YEAR_LIKE.search(definition):
        confidence -= 0.2

    if len(word) > 6:
        confidence += 0.1
    if TITLE_CASE_WORD.match(word):
        confidence += 0.1

    return max(0.0, min(1.0, confidence))


def is_plausible_definition(definition: str) -> bool:
    return (
        10 < len(definition) < 300
        and not ONLY_DIGITS.match(definition)
        and len(definition.split()) > 2
    )


def is_selected_by_default(confidence: float) -> bool:
    # round() absorbs float drift from summing the weights
    return round(confidence, 6) >= SELECT_THRESHOLD


def extract(text: Optional[str], existing_words: Optional[Iterable[str]] = None) -> List[ExtractionCandidate]:
    """Return ranked, de-duplicated candidates found in ``text``.

    ``existing_words`` holds the owner's words, lower-cased; any candidate
    whose word is already there is skipped, as is any word accepted earlier in
    the same pass.
    """
    if not text:
        return []
    # MULTILINE anchors only recognise "\n" as a line break
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    existing: Set[str] = {w.strip().lower() for w in (existing_words or ())}
    accepted: Set[str] = set()
    candidates: List[ExtractionCandidate] = []

    for pattern in PATTERNS:
        for match in pattern.finditer(text):
            word = match.group(1).strip()
            definition = match.group(2).strip()

            if not is_plausible_definition(definition):
                continue

            confidence = calculate_confidence(word, definition)
            key = word.lower()
            if key in existing or key in accepted:
                continue
            if confidence <= MIN_CONFIDENCE:
                continue

            accepted.add(key)
            candidates.append(ExtractionCandidate(
                word=word,
                definition=definition,
                confidence=confidence,
                selected=is_selected_by_default(confidence),
            ))

    # sorted() is stable, so ties keep rule/document order
    candidates = sorted(candidates, key=lambda c: c.confidence, reverse=True)
    return candidates[:MAX_CANDIDATES]


def select_all(candidates: List[ExtractionCandidate]) -> List[ExtractionCandidate]:
    for candidate in candidates:
        candidate.selected = True
    return candidates


def deselect_all(candidates: List[ExtractionCandidate]) -> List[ExtractionCandidate]:
    for candidate in candidates:
        candidate.selected = False
    return candidates


def toggle(candidates: List[ExtractionCandidate], index: int) -> ExtractionCandidate:
    candidate = candidates[index]
    candidate.selected = not candidate.selected
    return candidate


def selected_candidates(candidates: Iterable[ExtractionCandidate]) -> List[ExtractionCandidate]:
    return [c for c in candidates if c.selected]


def visible_candidates(candidates: Iterable[ExtractionCandidate], show_low_confidence: bool = False) -> List[ExtractionCandidate]:
    """Low-confidence candidates are hidden from review unless asked for."""
    return [c for c in candidates if show_low_confidence or is_selected_by_default(c.confidence)]
