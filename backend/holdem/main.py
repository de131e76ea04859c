"""FastAPI application — REST + WebSocket endpoints for the table."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from holdem import game_manager, redis_client
from holdem.heartbeat import heartbeat
from holdem.models import (
    ActionRequest,
    JoinTableRequest,
    JoinTableResponse,
    LeaveTableRequest,
    LeaveTableResponse,
    PublicState,
)
from holdem.ws_manager import manager, state_message

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    heartbeat.set_manager(manager)
    heartbeat.start()
    yield
    heartbeat.stop()
    await redis_client.close()


app = FastAPI(title="Hold'em Table API", lifespan=lifespan)

# ---------- Rate Limiting ----------

_rate_limit_enabled = os.getenv("RATE_LIMIT_ENABLED", "1") != "0"

limiter = Limiter(
    key_func=get_remote_address,
    enabled=_rate_limit_enabled,
)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def _rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Please slow down."},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- REST endpoints ----------


@app.get("/api/game-state", response_model=PublicState)
@limiter.limit("60/minute")
async def get_game_state(request: Request):
    table = await game_manager.get_table()
    return table.public_state()


@app.post("/api/action", response_model=PublicState)
@limiter.limit("60/minute")
async def game_action(request: Request, req: ActionRequest):
    """Apply a player action (check, call, raise, fold, allin)."""
    try:
        table = await game_manager.process_action(req.player_id, req.action, req.amount)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    state = table.public_state()
    await _broadcast(state)
    return state


@app.post("/api/join-table", response_model=JoinTableResponse)
@limiter.limit("10/minute")
async def join_table(request: Request, req: JoinTableRequest):
    try:
        player = await game_manager.join_seat(req.seat_index, req.player_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await _broadcast_current()
    return JoinTableResponse(success=True, player=player)


@app.post("/api/leave-table", response_model=LeaveTableResponse)
@limiter.limit("10/minute")
async def leave_table(request: Request, req: LeaveTableRequest):
    ok = await game_manager.leave_seat(req.player_id)
    if ok:
        await _broadcast_current()
    return LeaveTableResponse(success=ok)


@app.post("/api/round-end", response_model=PublicState)
@limiter.limit("30/minute")
async def round_end(request: Request):
    """Deal the next hand once the previous one has been settled."""
    try:
        table = await game_manager.deal_next_hand()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    state = table.public_state()
    await _broadcast(state)
    return state


# ---------- WebSocket ----------


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    conn = await manager.connect(ws)

    # Send current state immediately on connect
    try:
        table = await game_manager.get_table()
        await conn.send(state_message(table.public_state()))
    except Exception:
        logger.debug("Error sending initial state", exc_info=True)

    try:
        while True:
            # Observers only listen; whatever they send (text, binary,
            # pong replies) is drained until the socket closes
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(conn)


# ---------- Helpers ----------


async def _broadcast(state: PublicState) -> None:
    """Push a committed state to every observer."""
    try:
        await manager.broadcast_state(state)
    except Exception:
        logger.debug("Failed to broadcast table state", exc_info=True)


async def _broadcast_current() -> None:
    table = await game_manager.get_table()
    await _broadcast(table.public_state())
