"""Table registry — owns the single table record between requests.

Every read-modify-write of the record runs under one ``asyncio.Lock`` so
that at most one mutation is in flight; the engine itself does no locking.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

from holdem import engine, redis_client
from holdem.models import (
    ActionKind,
    GameStage,
    Player,
    Rejection,
    TableState,
    default_name,
)

logger = logging.getLogger(__name__)

TABLE_ID = os.getenv("TABLE_ID", "table-1")

_lock: Optional[asyncio.Lock] = None


def _get_lock() -> asyncio.Lock:
    global _lock
    if _lock is None:
        _lock = asyncio.Lock()
    return _lock


async def _load_or_create() -> TableState:
    table = await redis_client.load_table(TABLE_ID)
    if table is None:
        table = TableState.initial(TABLE_ID, deck_seed=engine.current_seed())
        await redis_client.store_table(table)
        logger.info("Created table %s", TABLE_ID)
    return table


def _settle_if_stuck(table: TableState) -> TableState:
    """Run the board out when the hand is live but no seat can act."""
    if not engine.nobody_to_act(table):
        return table
    logger.info(
        "Hand %d: no seat can act at %s, running out the board",
        table.game_state.round_number,
        table.game_state.stage.value,
    )
    return engine.run_out_board(table)


async def get_table() -> TableState:
    """Return the current table, creating it on first use."""
    async with _get_lock():
        return await _load_or_create()


async def join_seat(seat_index: int, name: str) -> Player:
    """Seat a human player at ``seat_index`` under ``name``."""
    async with _get_lock():
        table = await _load_or_create()
        player = table.player(seat_index)
        if player is None:
            raise ValueError("Invalid seatIndex")

        seated = player.model_copy(update={"name": name, "is_human": True})
        players = list(table.players)
        players[seat_index] = seated
        await redis_client.store_table(table.model_copy(update={"players": tuple(players)}))

    logger.info("Seat %d taken by %s", seat_index, name)
    return seated


async def leave_seat(player_id: int) -> bool:
    """Hand the seat back to a bot. Returns False for an unknown seat."""
    async with _get_lock():
        table = await _load_or_create()
        player = table.player(player_id)
        if player is None:
            return False

        players = list(table.players)
        players[player_id] = player.model_copy(
            update={"name": default_name(player_id), "is_human": False}
        )
        await redis_client.store_table(table.model_copy(update={"players": tuple(players)}))

    logger.info("Seat %d released", player_id)
    return True


async def deal_next_hand() -> TableState:
    """Start the next hand. Only allowed while the table is idle."""
    async with _get_lock():
        table = await _load_or_create()
        if table.game_state.stage != GameStage.IDLE:
            raise ValueError("Current hand is still in progress")

        table = _settle_if_stuck(engine.start_new_hand(table))
        await redis_client.store_table(table)

    gs = table.game_state
    logger.info(
        "Hand %d dealt: dealer=%d seed=%d", gs.round_number, gs.dealer_index, gs.deck_seed
    )
    return table


async def process_action(player_id: int, action: ActionKind, amount: int = 0) -> TableState:
    """Apply a player's action and persist the result.

    Raises ``ValueError`` with the engine's reason when the action is
    illegal; the stored table is not touched in that case.
    """
    async with _get_lock():
        table = await _load_or_create()
        result = engine.apply_action(table, player_id, action, amount)
        if isinstance(result, Rejection):
            logger.info(
                "Rejected %s from seat %d: %s", action.value, player_id, result.reason
            )
            raise ValueError(result.reason)

        result = _settle_if_stuck(result)
        await redis_client.store_table(result)

    if result.game_state.stage == GameStage.IDLE:
        logger.info(
            "Hand %d settled: winners=%s pot=%d",
            result.game_state.round_number,
            list(result.game_state.winners),
            result.game_state.pot,
        )
    return result
