"""Core game engine for the single four-seat table.

Pure state transitions over ``TableState``: starting a hand (dealer
rotation, blinds, deal), applying one player action, and settling the pot
at showdown. Nothing here does I/O or holds state between calls; every
function returns a new snapshot and leaves its input untouched.
"""

from __future__ import annotations

import time
from typing import Iterable, Optional, Sequence, Union

from holdem.cards import Card, create_deck
from holdem.evaluator import best_players, score_hand
from holdem.models import (
    BIG_BLIND,
    INITIAL_CHIPS,
    SMALL_BLIND,
    ActionKind,
    GameStage,
    Player,
    Rejection,
    TableState,
)

HOLE_CARDS = 2
BOARD_SIZE = 5

# stage -> (next stage, community cards revealed on entering it)
_STAGE_ADVANCE: dict[GameStage, tuple[GameStage, int]] = {
    GameStage.PREFLOP: (GameStage.FLOP, 3),
    GameStage.FLOP: (GameStage.TURN, 1),
    GameStage.TURN: (GameStage.RIVER, 1),
    GameStage.RIVER: (GameStage.SHOWDOWN, 0),
}

_RAISES = (ActionKind.RAISE, ActionKind.ALL_IN)
_BETTING_STAGES = (GameStage.PREFLOP, GameStage.FLOP, GameStage.TURN, GameStage.RIVER)


def current_seed() -> int:
    return int(time.time() * 1000)


def _can_act(p: Player) -> bool:
    return not p.has_folded and p.chips > 0


def _next_eligible(players: Sequence[Player], start: int) -> int:
    """First seat from ``start`` (inclusive) that can still act.

    Scans at most one lap. When nobody qualifies the pointer ends where
    the scan stopped, which callers must tolerate.
    """
    n = len(players)
    idx = start % n
    attempts = 0
    while not _can_act(players[idx]) and attempts < n:
        idx = (idx + 1) % n
        attempts += 1
    return idx


def _still_in(players: Iterable[Player]) -> list[Player]:
    """Players who have not folded and still have chips or a live bet."""
    return [p for p in players if not p.has_folded and (p.chips > 0 or p.bet > 0)]


# ------------------------------------------------------------------
# Hand Lifecycle
# ------------------------------------------------------------------


def start_new_hand(state: TableState, seed: Optional[int] = None) -> TableState:
    """Rotate the button, post blinds and deal. Returns a PREFLOP snapshot."""
    prev = state.game_state
    n = len(state.players)

    dealer_idx = (prev.dealer_index + 1) % n
    sb_idx = (dealer_idx + 1) % n
    bb_idx = (dealer_idx + 2) % n

    if seed is None:
        seed = current_seed()
    deck = create_deck(seed)

    players: list[Player] = []
    pot = 0
    for i, p in enumerate(state.players):
        # Bots never bust out; humans keep whatever they have
        chips = INITIAL_CHIPS if p.chips == 0 and not p.is_human else p.chips

        bet = 0
        action_text = None
        if i == sb_idx:
            bet = min(chips, SMALL_BLIND)
            action_text = f"SB {bet}"
        elif i == bb_idx:
            bet = min(chips, BIG_BLIND)
            action_text = f"BB {bet}"
        pot += bet

        # Two round-robin passes: seat i gets deck[i] then deck[n + i]
        cards = tuple(deck[k * n + i] for k in range(HOLE_CARDS))

        players.append(
            p.model_copy(
                update={
                    "chips": chips - bet,
                    "bet": bet,
                    "total_hand_bet": bet,
                    "cards": cards,
                    "has_folded": False,
                    "is_dealer": i == dealer_idx,
                    "is_active": False,
                    "last_action": None,
                    "action_text": action_text,
                }
            )
        )

    game_state = prev.model_copy(
        update={
            "stage": GameStage.PREFLOP,
            "pot": pot,
            "community_cards": (),
            "deck_seed": seed,
            "current_turn_index": _next_eligible(players, bb_idx + 1),
            "dealer_index": dealer_idx,
            "highest_bet": BIG_BLIND,
            "min_raise": BIG_BLIND,
            "winners": (),
            "round_number": prev.round_number + 1,
        }
    )
    return state.model_copy(update={"players": tuple(players), "game_state": game_state})


# ------------------------------------------------------------------
# Action Processing
# ------------------------------------------------------------------


def _draw_community(state: TableState, count: int) -> tuple[Card, ...]:
    """Next ``count`` undealt cards, regenerated from the hand's seed."""
    gs = state.game_state
    if count == 0:
        return ()
    deck = create_deck(gs.deck_seed)
    offset = HOLE_CARDS * len(state.players) + len(gs.community_cards)
    return tuple(deck[offset:offset + count])


def apply_action(
    state: TableState,
    player_id: int,
    action: Union[ActionKind, str],
    amount: int = 0,
) -> Union[TableState, Rejection]:
    """Apply one player action.

    ``amount`` is the target total round bet for ``raise`` and ``allin``
    and is ignored otherwise. Illegal actions return a ``Rejection`` and
    leave ``state`` as it was.
    """
    try:
        action = ActionKind(action)
    except ValueError:
        return Rejection(reason=f"Unknown action: {action}")

    gs = state.game_state
    if gs.current_turn_index != player_id:
        return Rejection(reason="Not your turn")

    player = state.player(player_id)
    if player is None:
        return Rejection(reason="Player not found")
    if player.has_folded:
        return Rejection(reason="Player has folded")
    if gs.stage in (GameStage.IDLE, GameStage.SHOWDOWN):
        return Rejection(reason="No hand in progress")

    highest_bet = gs.highest_bet
    pot = gs.pot
    update: dict = {"last_action": action}

    if action == ActionKind.FOLD:
        update.update(has_folded=True, action_text="Fold")
    elif action == ActionKind.CHECK:
        if highest_bet > player.bet:
            return Rejection(reason="Cannot check, must call or fold")
        update["action_text"] = "Check"
    else:
        if action == ActionKind.CALL:
            paid = min(player.chips, highest_bet - player.bet)
        else:
            target = amount
            # An under-sized raise the player could cover becomes a call
            if target < highest_bet and player.chips + player.bet > target:
                target = highest_bet
            paid = min(player.chips, target - player.bet)

        chips = player.chips - paid
        bet = player.bet + paid
        pot += paid
        if action == ActionKind.CALL:
            text = f"Call {paid}"
        else:
            highest_bet = max(highest_bet, bet)
            text = f"All-In {bet}" if chips == 0 else f"Raise to {bet}"
        update.update(
            chips=chips,
            bet=bet,
            total_hand_bet=player.total_hand_bet + paid,
            action_text=text,
        )

    players = list(state.players)
    players[player_id] = player.model_copy(update=update)
    n = len(players)
    next_turn = _next_eligible(players, player_id + 1)

    in_hand = _still_in(players)
    if len(in_hand) == 1:
        settled = state.model_copy(
            update={
                "players": tuple(players),
                "game_state": gs.model_copy(
                    update={
                        "stage": GameStage.SHOWDOWN,
                        "pot": pot,
                        "highest_bet": highest_bet,
                        "current_turn_index": -1,
                    }
                ),
            }
        )
        return handle_showdown(settled, [in_hand[0].id])

    all_matched = all(p.bet == highest_bet or p.chips == 0 for p in in_hand)
    if all_matched and action not in _RAISES:
        next_stage, reveal = _STAGE_ADVANCE[gs.stage]
        community = gs.community_cards + _draw_community(state, reveal)
        players = [p.model_copy(update={"bet": 0}) for p in players]
        next_turn = _next_eligible(players, (gs.dealer_index + 1) % n)

        advanced = state.model_copy(
            update={
                "players": tuple(players),
                "game_state": gs.model_copy(
                    update={
                        "stage": next_stage,
                        "pot": pot,
                        "community_cards": community,
                        "highest_bet": 0,
                        "current_turn_index": (
                            -1 if next_stage == GameStage.SHOWDOWN else next_turn
                        ),
                    }
                ),
            }
        )
        if next_stage == GameStage.SHOWDOWN:
            return handle_showdown(advanced)
        return advanced

    return state.model_copy(
        update={
            "players": tuple(players),
            "game_state": gs.model_copy(
                update={
                    "pot": pot,
                    "highest_bet": highest_bet,
                    "current_turn_index": next_turn,
                }
            ),
        }
    )


def nobody_to_act(state: TableState) -> bool:
    """True when a hand is running but the seat on turn cannot act.

    Happens once every live player is all-in or folded: the turn scan
    finds no eligible seat and leaves the pointer on one that can't move.
    """
    gs = state.game_state
    if gs.stage not in _BETTING_STAGES:
        return False
    player = state.player(gs.current_turn_index)
    return player is None or not _can_act(player)


def run_out_board(state: TableState) -> TableState:
    """Deal the rest of the board with no more betting and settle the pot."""
    gs = state.game_state
    community = gs.community_cards + _draw_community(
        state, BOARD_SIZE - len(gs.community_cards)
    )
    players = tuple(p.model_copy(update={"bet": 0}) for p in state.players)
    showdown = state.model_copy(
        update={
            "players": players,
            "game_state": gs.model_copy(
                update={
                    "stage": GameStage.SHOWDOWN,
                    "community_cards": community,
                    "highest_bet": 0,
                    "current_turn_index": -1,
                }
            ),
        }
    )
    return handle_showdown(showdown)


# ------------------------------------------------------------------
# Showdown & Pot Award
# ------------------------------------------------------------------


def handle_showdown(
    state: TableState, forced_winners: Sequence[int] = ()
) -> TableState:
    """Pick the winner(s), split the pot and return to IDLE.

    ``forced_winners`` skips evaluation (everyone else folded). Each winner
    gets ``pot // len(winners)``; an odd chip left over is not paid out.
    """
    gs = state.game_state
    winners = list(forced_winners)

    if not winners:
        eligible = [
            p
            for p in state.players
            if not p.has_folded and (p.chips > 0 or p.total_hand_bet > 0)
        ]
        if not eligible:
            return state.model_copy(
                update={
                    "game_state": gs.model_copy(
                        update={
                            "stage": GameStage.IDLE,
                            "winners": (),
                            "current_turn_index": -1,
                        }
                    )
                }
            )
        if len(eligible) == 1:
            winners = [eligible[0].id]
        else:
            scores = {p.id: score_hand(p.cards, gs.community_cards) for p in eligible}
            winners = best_players(scores)

    share = gs.pot // len(winners)
    players = tuple(
        p.model_copy(update={"chips": p.chips + share}) if p.id in winners else p
        for p in state.players
    )
    return state.model_copy(
        update={
            "players": players,
            "game_state": gs.model_copy(
                update={
                    "stage": GameStage.IDLE,
                    "winners": tuple(winners),
                    "current_turn_index": -1,
                }
            ),
        }
    )
