"""Pydantic models for the table state and the HTTP surface."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from holdem.cards import Card

INITIAL_CHIPS = 10000
SMALL_BLIND = 50
BIG_BLIND = 100
PLAYER_COUNT = 4

DEFAULT_NAMES = ("Bot User", "Bot Alpha", "Bot Beta", "Bot Gamma")


def default_name(seat: int) -> str:
    if 0 <= seat < len(DEFAULT_NAMES):
        return DEFAULT_NAMES[seat]
    return f"Bot {seat}"


class GameStage(str, Enum):
    IDLE = "IDLE"
    PREFLOP = "PREFLOP"
    FLOP = "FLOP"
    TURN = "TURN"
    RIVER = "RIVER"
    SHOWDOWN = "SHOWDOWN"


class ActionKind(str, Enum):
    CHECK = "check"
    CALL = "call"
    RAISE = "raise"
    FOLD = "fold"
    ALL_IN = "allin"


class CamelModel(BaseModel):
    """Base for everything that crosses the wire with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


# --- Engine state ---


class Player(FrozenModel):
    id: int
    name: str
    is_human: bool = False
    chips: int = Field(default=INITIAL_CHIPS, ge=0)
    bet: int = Field(default=0, ge=0)  # this betting stage only
    total_hand_bet: int = Field(default=0, ge=0)  # whole hand, all stages
    cards: tuple[Card, ...] = ()
    has_folded: bool = False
    is_dealer: bool = False
    is_active: bool = False
    last_action: Optional[ActionKind] = None
    action_text: Optional[str] = None


class GameState(FrozenModel):
    stage: GameStage = GameStage.IDLE
    pot: int = Field(default=0, ge=0)
    community_cards: tuple[Card, ...] = ()
    deck_seed: int = 0
    current_turn_index: int = -1  # -1 = nobody to act
    dealer_index: int = 0
    highest_bet: int = 0
    min_raise: int = BIG_BLIND
    winners: tuple[int, ...] = ()
    round_number: int = 0


class TableState(FrozenModel):
    """The table record persisted between calls."""

    id: str
    players: tuple[Player, ...]
    game_state: GameState

    @classmethod
    def initial(cls, table_id: str, deck_seed: int = 0) -> TableState:
        players = tuple(
            Player(id=i, name=default_name(i), is_dealer=(i == 0))
            for i in range(PLAYER_COUNT)
        )
        return cls(
            id=table_id,
            players=players,
            game_state=GameState(deck_seed=deck_seed),
        )

    def player(self, player_id: int) -> Optional[Player]:
        if 0 <= player_id < len(self.players):
            return self.players[player_id]
        return None

    def public_state(self) -> PublicState:
        return PublicState(game_state=self.game_state, players=self.players)


class PublicState(FrozenModel):
    """What clients see: ``{gameState, players}``."""

    game_state: GameState
    players: tuple[Player, ...]


class Rejection(FrozenModel):
    """Returned by the engine instead of a new state for an illegal action."""

    reason: str


# --- Request models ---


class ActionRequest(CamelModel):
    player_id: int
    action: ActionKind
    amount: int = Field(default=0, ge=0)


class JoinTableRequest(CamelModel):
    seat_index: int = Field(..., ge=0, lt=PLAYER_COUNT)
    player_name: str = Field(..., min_length=1, max_length=20)


class LeaveTableRequest(CamelModel):
    player_id: int


# --- Response models ---


class JoinTableResponse(CamelModel):
    success: bool
    player: Optional[Player] = None


class LeaveTableResponse(CamelModel):
    success: bool
