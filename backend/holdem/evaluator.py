"""Hand scoring for showdown.

Hands are ranked by the single highest card value among the hole and
community cards. Pairs, straights and flushes are not recognised; two
hands with the same top card tie.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from holdem.cards import Card


def score_hand(hole_cards: Sequence[Card], community_cards: Sequence[Card]) -> int:
    """Return the comparable score for a hand (higher is better).

    Expects two hole cards; callers never score an empty hand.
    """
    return max(int(c.rank) for c in [*hole_cards, *community_cards])


def best_players(scores: Mapping[int, int]) -> list[int]:
    """Return every player id holding the maximum score, in insertion order."""
    if not scores:
        return []
    best = max(scores.values())
    return [pid for pid, score in scores.items() if score == best]
