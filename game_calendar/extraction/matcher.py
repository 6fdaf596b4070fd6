"""
Fuzzy title matching between an activity and a pool of detail records.

The activity list endpoints only carry a title and times; banners and bodies
live in a separate content endpoint whose titles differ in quoting, spacing
and suffixes. ``pick_best_candidate`` finds the closest detail record by a
deterministic score (lower wins):

    ===========================================  ==========================
    relationship of normalized keys              base score
    ===========================================  ==========================
    equal                                        0
    candidate contains activity                  10 + (len(cand) - len(act))
    activity contains candidate                  30 + (len(act) - len(cand))
    neither                                      not eligible
    ===========================================  ==========================

Penalties: +1000 when the candidate body is blank, +100 when it has no
banner. The first candidate with a strictly lower score wins, so ties go to
the earlier one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from game_calendar.extraction.html import normalize_title_key, strip_html

NO_CONTENT_PENALTY = 1000
NO_BANNER_PENALTY = 100


@dataclass(frozen=True)
class ContentCandidate:
    """A detail record reduced to a matchable key plus enrichment payload."""

    title_text: str
    key: str
    banner: Optional[str] = None
    content: Optional[str] = None

    @classmethod
    def from_title(
        cls,
        title: Optional[str],
        banner: Optional[str] = None,
        content: Optional[str] = None,
    ) -> "ContentCandidate":
        title_text = strip_html(title)
        return cls(
            title_text=title_text,
            key=normalize_title_key(title_text),
            banner=(banner or "").strip() or None,
            content=content,
        )


def score_candidate(activity_key: str, candidate: ContentCandidate) -> Optional[int]:
    """Score one candidate against a normalized activity key.

    Returns ``None`` when the candidate is not eligible.
    """
    if not activity_key or not candidate.key:
        return None

    if candidate.key == activity_key:
        score = 0
    elif activity_key in candidate.key:
        score = 10 + (len(candidate.key) - len(activity_key))
    elif candidate.key in activity_key:
        score = 30 + (len(activity_key) - len(candidate.key))
    else:
        return None

    if not (candidate.content or "").strip():
        score += NO_CONTENT_PENALTY
    if not candidate.banner:
        score += NO_BANNER_PENALTY
    return score


def pick_best_candidate(
    activity_title: Optional[str],
    candidates: Iterable[ContentCandidate],
) -> Optional[ContentCandidate]:
    """Return the best-matching candidate for ``activity_title``, or ``None``."""
    activity_key = normalize_title_key(activity_title)
    if not activity_key:
        return None

    best: Optional[ContentCandidate] = None
    best_score: Optional[int] = None
    for candidate in candidates:
        score = score_candidate(activity_key, candidate)
        if score is None:
            continue
        if best_score is None or score < best_score:
            best, best_score = candidate, score
    return best
