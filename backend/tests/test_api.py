"""Tests for FastAPI REST endpoints with mocked game_manager."""

from __future__ import annotations

import contextlib
import os
from unittest.mock import AsyncMock, patch

# Disable rate limiting before importing the app module
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from holdem.engine import start_new_hand
from holdem.models import ActionKind, TableState
from holdem.ws_manager import manager


@contextlib.asynccontextmanager
async def _noop_lifespan(app):
    yield


# Patch lifespan BEFORE importing app
with patch("holdem.main.lifespan", _noop_lifespan):
    from holdem.main import app as fastapi_app


PATCH_GM = "holdem.main.game_manager"


def _idle_table() -> TableState:
    return TableState.initial("table-1", deck_seed=1)


def _dealt_table() -> TableState:
    return start_new_hand(_idle_table(), seed=7)


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test")


@pytest.fixture(autouse=True)
def _no_broadcast():
    with patch("holdem.main.manager.broadcast_state", new_callable=AsyncMock) as m:
        yield m


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestGameStateEndpoint:
    @pytest.fixture(autouse=True)
    def _mock(self):
        with patch(f"{PATCH_GM}.get_table", new_callable=AsyncMock) as m:
            self.get_table = m
            yield

    async def test_returns_public_state(self):
        self.get_table.return_value = _dealt_table()
        async with _client() as client:
            resp = await client.get("/api/game-state")
        assert resp.status_code == 200
        body = resp.json()
        assert set(body) == {"gameState", "players"}
        assert body["gameState"]["stage"] == "PREFLOP"
        assert body["gameState"]["pot"] == 150
        assert body["players"][3]["totalHandBet"] == 100

    async def test_post_not_allowed(self):
        async with _client() as client:
            resp = await client.post("/api/game-state")
        assert resp.status_code == 405


class TestActionEndpoint:
    @pytest.fixture(autouse=True)
    def _mock(self):
        with patch(f"{PATCH_GM}.process_action", new_callable=AsyncMock) as m:
            self.process_action = m
            yield

    async def test_action_success(self, _no_broadcast):
        self.process_action.return_value = _dealt_table()
        async with _client() as client:
            resp = await client.post(
                "/api/action", json={"playerId": 0, "action": "call"}
            )
        assert resp.status_code == 200
        self.process_action.assert_awaited_once_with(0, ActionKind.CALL, 0)
        _no_broadcast.assert_awaited_once()

    async def test_raise_amount_forwarded(self):
        self.process_action.return_value = _dealt_table()
        async with _client() as client:
            await client.post(
                "/api/action", json={"playerId": 0, "action": "raise", "amount": 400}
            )
        self.process_action.assert_awaited_once_with(0, ActionKind.RAISE, 400)

    async def test_illegal_action_400(self, _no_broadcast):
        self.process_action.side_effect = ValueError("Not your turn")
        async with _client() as client:
            resp = await client.post(
                "/api/action", json={"playerId": 2, "action": "fold"}
            )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Not your turn"
        _no_broadcast.assert_not_awaited()

    async def test_unknown_action_422(self):
        async with _client() as client:
            resp = await client.post(
                "/api/action", json={"playerId": 0, "action": "bet"}
            )
        assert resp.status_code == 422
        self.process_action.assert_not_awaited()

    async def test_missing_fields_422(self):
        async with _client() as client:
            resp = await client.post("/api/action", json={})
        assert resp.status_code == 422

    async def test_get_not_allowed(self):
        async with _client() as client:
            resp = await client.get("/api/action")
        assert resp.status_code == 405


class TestSeatEndpoints:
    @pytest.fixture(autouse=True)
    def _mock(self):
        with patch(f"{PATCH_GM}.join_seat", new_callable=AsyncMock) as m1, \
             patch(f"{PATCH_GM}.leave_seat", new_callable=AsyncMock) as m2, \
             patch(f"{PATCH_GM}.get_table", new_callable=AsyncMock) as m3:
            self.join_seat = m1
            self.leave_seat = m2
            self.get_table = m3
            m3.return_value = _idle_table()
            yield

    async def test_join_success(self):
        seated = _idle_table().players[1].model_copy(update={"name": "Ann", "is_human": True})
        self.join_seat.return_value = seated
        async with _client() as client:
            resp = await client.post(
                "/api/join-table", json={"seatIndex": 1, "playerName": "Ann"}
            )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["player"]["name"] == "Ann"
        assert body["player"]["isHuman"] is True
        self.join_seat.assert_awaited_once_with(1, "Ann")

    async def test_join_bad_seat_422(self):
        async with _client() as client:
            resp = await client.post(
                "/api/join-table", json={"seatIndex": 4, "playerName": "Ann"}
            )
        assert resp.status_code == 422
        self.join_seat.assert_not_awaited()

    async def test_join_wrong_types_422(self):
        async with _client() as client:
            resp = await client.post(
                "/api/join-table", json={"seatIndex": "one", "playerName": 5}
            )
        assert resp.status_code == 422

    async def test_leave(self):
        self.leave_seat.return_value = True
        async with _client() as client:
            resp = await client.post("/api/leave-table", json={"playerId": 1})
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

    async def test_leave_unknown(self):
        self.leave_seat.return_value = False
        async with _client() as client:
            resp = await client.post("/api/leave-table", json={"playerId": 8})
        assert resp.json() == {"success": False}


class TestRoundEndEndpoint:
    @pytest.fixture(autouse=True)
    def _mock(self):
        with patch(f"{PATCH_GM}.deal_next_hand", new_callable=AsyncMock) as m:
            self.deal_next_hand = m
            yield

    async def test_deals_next_hand(self, _no_broadcast):
        self.deal_next_hand.return_value = _dealt_table()
        async with _client() as client:
            resp = await client.post("/api/round-end")
        assert resp.status_code == 200
        assert resp.json()["gameState"]["roundNumber"] == 1
        _no_broadcast.assert_awaited_once()

    async def test_hand_in_progress_400(self):
        self.deal_next_hand.side_effect = ValueError("Current hand is still in progress")
        async with _client() as client:
            resp = await client.post("/api/round-end")
        assert resp.status_code == 400


class TestObserverSocket:
    @pytest.fixture(autouse=True)
    def _mock(self):
        with patch(f"{PATCH_GM}.get_table", new_callable=AsyncMock) as m:
            m.return_value = _dealt_table()
            yield

    def test_initial_state_on_connect(self):
        with TestClient(fastapi_app).websocket_connect("/ws") as ws:
            msg = ws.receive_json()
        assert msg["type"] == "game_state"
        assert msg["data"]["gameState"]["stage"] == "PREFLOP"

    def test_client_frames_are_ignored(self):
        with TestClient(fastapi_app).websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_bytes(b"\x00\x01")
            ws.send_text("not json")
            ws.send_text('{"type": "pong"}')
            assert manager.observer_count == 1
        assert manager.observer_count == 0
