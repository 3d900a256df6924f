# tutor_app/extractor.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

# "māja (house)" / "māja(house)"
_PAREN_PAIR = re.compile(r"(\w+)\s*\(([^)]+)\)")
# "labrīt - good morning", also en dash, em dash and arrow
_SEPARATOR_PAIR = re.compile(r"(\w+)\s*[-–—→]\s*([^.,\n]+)")

CONTEXT_CHARS = 50              # characters kept on each side of a match
MAX_TRANSLATION_TOKENS = 3      # separator matches only


@dataclass(frozen=True)
class VocabularyPair:
    word: str
    translation: str
    context: str


def pair_key(word: str, translation: str) -> str:
    return f"{word.lower()}-{translation.lower()}"


def _context(text: str, start: int, end: int) -> str:
    lo = max(0, start - CONTEXT_CHARS)
    hi = min(len(text), end + CONTEXT_CHARS)
    return text[lo:hi].strip()


def _candidates(text: str) -> List[Tuple[int, int, re.Match]]:
    """Matches of both scans as (start, scan_rank, match), in text order."""
    found: List[Tuple[int, int, re.Match]] = []
    for m in _PAREN_PAIR.finditer(text):
        found.append((m.start(), 0, m))
    for m in _SEPARATOR_PAIR.finditer(text):
        translation = m.group(2).strip()
        # long tails are clauses joined by a dash, not glosses
        if len(translation.split()) > MAX_TRANSLATION_TOKENS:
            continue
        found.append((m.start(), 1, m))
    found.sort(key=lambda c: (c[0], c[1]))
    return found


def extract_vocabulary(text: Optional[str]) -> List[VocabularyPair]:
    """
    Pull (word, translation, context) candidates out of a tutor turn.

    Two independent pattern scans, "word (translation)" and
    "word - translation" (-, –, — or →). This is a heuristic: it misses real
    vocabulary and picks up unrelated asides, both accepted. Pairs whose word
    or translation is a single character are dropped, and repeats within one
    call collapse case-insensitively onto the first occurrence.
    """
    text = text or ""
    pairs: List[VocabularyPair] = []
    seen: Set[str] = set()

    for _start, _rank, m in _candidates(text):
        word = m.group(1).strip()
        translation = m.group(2).strip()
        if len(word) <= 1 or len(translation) <= 1:
            continue

        key = pair_key(word, translation)
        if key in seen:
            continue
        seen.add(key)

        pairs.append(VocabularyPair(
            word=word,
            translation=translation,
            context=_context(text, m.start(), m.end()),
        ))

    return pairs
