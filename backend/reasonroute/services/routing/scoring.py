"""
Confidence scoring and conversation-context re-scoring for route matches.

The confidence coefficients are empirically tuned; keep them as they are.
"""
from typing import Any, Dict, List, Optional, Sequence

from reasonroute.services.routing.keywords import KeywordIndex
from reasonroute.services.routing.models import ClassificationMatch, sort_matches

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0

# 3 conversational turns = 6 messages
CONTEXT_WINDOW_MESSAGES = 6
CONTEXT_KEYWORD_BONUS = 0.3


def calculate_confidence(match: ClassificationMatch, message_length: int) -> float:
    """
    Compute the final confidence for the best match.

    Components:
    - score, normalized against 2.0 (weight 0.5)
    - number of keyword hits, normalized against 2 (weight 0.3)
    - +0.1 for priority-1 routes
    - message length, normalized against 30 characters (weight 0.05)
    - +0.15 when recent conversation mentioned the route's keywords
    - +0.1 per unit of route weight above 1.0

    The result is clamped to [0.1, 1.0].
    """
    confidence = 0.0
    confidence += min(match.score / 2.0, 1.0) * 0.5
    confidence += min(len(match.matched_keywords) / 2.0, 1.0) * 0.3

    if match.priority == 1:
        confidence += 0.1

    confidence += min(message_length / 30.0, 1.0) * 0.05

    if match.context_enhanced:
        confidence += 0.15

    if match.weight > 1.0:
        confidence += (match.weight - 1.0) * 0.1

    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


def recent_context_text(context: Optional[Sequence[Dict[str, Any]]]) -> str:
    """Lower-cased text of the last three conversational turns."""
    if not context:
        return ""
    recent = list(context)[-CONTEXT_WINDOW_MESSAGES:]
    return " ".join(str(msg.get("content") or "") for msg in recent).lower()


def enhance_with_context(
    matches: List[ClassificationMatch],
    context: Optional[Sequence[Dict[str, Any]]],
    index: KeywordIndex,
) -> List[ClassificationMatch]:
    """
    Boost matches whose route keywords also appear in recent turns.

    A short follow-up ("and how about next week?") keeps the topic of the
    preceding turns: every route keyword found in the recent context adds
    0.3 to that route's score.
    """
    context_text = recent_context_text(context)
    if not context_text:
        return matches

    for match in matches:
        hits = sum(
            1 for keyword in index.route_keywords(match.route)
            if keyword.lower() in context_text
        )
        if hits > 0:
            match.score += hits * CONTEXT_KEYWORD_BONUS
            match.context_enhanced = True
            match.context_keywords = hits

    return sort_matches(matches)
