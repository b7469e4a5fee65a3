"""
Text-matching helpers shared by the prefilter and the stability gate.

Pain-point rule
---------------
A declared pain point (free text, e.g. "Slow bundle builds in CI") is reduced
to its keywords: whitespace-separated, lower-cased words longer than four
characters.  It matches an item text when

    matched_keywords >= 2   OR   matched_keywords >= 0.5 * total_keywords

A pain point with no qualifying keywords never matches.

Technology-name rule
--------------------
Two names match on exact equality, or when one contains the other after
stripping ``.`` and ``-`` (``nextjs`` ~ ``Next.js``, ``vue`` ~ ``vue-router``).
"""

from __future__ import annotations

from typing import Iterable, Optional

MIN_KEYWORD_LENGTH = 5   # words must be longer than four characters


def pain_point_keywords(pain_point: str) -> list[str]:
    """Return the qualifying keywords of a pain point."""
    return [w for w in pain_point.lower().split() if len(w) >= MIN_KEYWORD_LENGTH]


def pain_point_matches(pain_point: str, text: str) -> bool:
    """Return True when ``text`` (already lower-cased) addresses ``pain_point``."""
    keywords = pain_point_keywords(pain_point)
    if not keywords:
        return False
    hits = sum(1 for kw in keywords if kw in text)
    return hits >= 2 or hits >= len(keywords) * 0.5


def matching_pain_points(pain_points: Iterable[str], text: str) -> list[str]:
    """Return every pain point ``text`` addresses, in declaration order."""
    lowered = text.lower()
    return [pp for pp in pain_points if pain_point_matches(pp, lowered)]


def first_matching_pain_point(pain_points: Iterable[str], text: str) -> Optional[str]:
    matches = matching_pain_points(pain_points, text)
    return matches[0] if matches else None


def normalize_tech_name(name: str) -> str:
    return name.lower().replace(".", "").replace("-", "")


def tech_name_matches(tag: str, stack_names: set[str]) -> bool:
    """Return True when ``tag`` matches any lower-cased name in ``stack_names``."""
    tag_lower = tag.lower()
    if tag_lower in stack_names:
        return True
    tag_norm = normalize_tech_name(tag_lower)
    if not tag_norm:
        return False
    for name in stack_names:
        name_norm = normalize_tech_name(name)
        if name_norm and (name_norm in tag_norm or tag_norm in name_norm):
            return True
    return False
