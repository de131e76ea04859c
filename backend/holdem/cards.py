"""Card representation and the seeded deck shuffle."""

from __future__ import annotations

from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, computed_field


class Suit(str, Enum):
    HEARTS = "HEARTS"
    DIAMONDS = "DIAMONDS"
    CLUBS = "CLUBS"
    SPADES = "SPADES"


class Rank(IntEnum):
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14


RANK_SYMBOLS = {
    Rank.TWO: "2",
    Rank.THREE: "3",
    Rank.FOUR: "4",
    Rank.FIVE: "5",
    Rank.SIX: "6",
    Rank.SEVEN: "7",
    Rank.EIGHT: "8",
    Rank.NINE: "9",
    Rank.TEN: "10",
    Rank.JACK: "J",
    Rank.QUEEN: "Q",
    Rank.KING: "K",
    Rank.ACE: "A",
}

DECK_SIZE = 52

# LCG parameters shared with the browser client so a seed reproduces a deal
LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280


class Card(BaseModel):
    model_config = ConfigDict(frozen=True)

    suit: Suit
    rank: Rank

    @computed_field  # type: ignore[prop-decorator]
    @property
    def key(self) -> str:
        return f"{RANK_SYMBOLS[self.rank]}{self.suit.value[0]}"

    def __repr__(self) -> str:
        return self.key

    @classmethod
    def from_str(cls, s: str) -> Card:
        """Parse 'AH', '10S', '2C' etc."""
        rank_part, suit_char = s[:-1].upper(), s[-1].upper()
        rank_map = {v: k for k, v in RANK_SYMBOLS.items()}
        suit = next(x for x in Suit if x.value[0] == suit_char)
        return cls(suit=suit, rank=rank_map[rank_part])


class SeededRNG:
    """Linear-congruential generator yielding floats in [0, 1)."""

    def __init__(self, seed: int) -> None:
        self.seed = seed

    def next(self) -> float:
        self.seed = (self.seed * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self.seed / LCG_MODULUS


def ordered_deck() -> list[Card]:
    """All 52 cards, suit-major, ranks ascending."""
    return [Card(suit=suit, rank=rank) for suit in Suit for rank in Rank]


def create_deck(seed: int) -> list[Card]:
    """Return the 52-card deck shuffled deterministically from ``seed``.

    Fisher-Yates from the last index down to 1, each position swapped with
    an earlier-or-equal one picked by the LCG.
    """
    rng = SeededRNG(seed)
    deck = ordered_deck()
    for i in range(len(deck) - 1, 0, -1):
        j = int(rng.next() * (i + 1))
        deck[i], deck[j] = deck[j], deck[i]
    return deck
