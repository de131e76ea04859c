"""Tests for the wire format of the table state (camelCase JSON round-trip)."""

import json

import pytest
from pydantic import ValidationError

from holdem.engine import apply_action, start_new_hand
from holdem.models import (
    ActionKind,
    ActionRequest,
    GameStage,
    JoinTableRequest,
    PublicState,
    TableState,
)


def _dealt() -> TableState:
    return start_new_hand(TableState.initial("table-1"), seed=99)


class TestTableSerialization:
    def test_roundtrip_before_hand(self):
        t = TableState.initial("table-1")
        t2 = TableState.model_validate_json(t.model_dump_json(by_alias=True))
        assert t2 == t

    def test_roundtrip_during_hand(self):
        t = apply_action(_dealt(), 0, "raise", 300)
        t2 = TableState.model_validate_json(t.model_dump_json(by_alias=True))
        assert t2 == t
        assert t2.players[0].last_action == ActionKind.RAISE

    def test_camel_case_keys(self):
        data = json.loads(_dealt().model_dump_json(by_alias=True))
        gs = data["gameState"]
        assert set(gs) == {
            "stage",
            "pot",
            "communityCards",
            "deckSeed",
            "currentTurnIndex",
            "dealerIndex",
            "highestBet",
            "minRaise",
            "winners",
            "roundNumber",
        }
        player = data["players"][0]
        for key in ("isHuman", "totalHandBet", "hasFolded", "isDealer", "isActive", "lastAction"):
            assert key in player

    def test_stage_string(self):
        data = json.loads(_dealt().model_dump_json(by_alias=True))
        assert data["gameState"]["stage"] == "PREFLOP"

    def test_action_kind_strings(self):
        assert [a.value for a in ActionKind] == ["check", "call", "raise", "fold", "allin"]

    def test_stage_strings(self):
        assert [s.value for s in GameStage] == [
            "IDLE", "PREFLOP", "FLOP", "TURN", "RIVER", "SHOWDOWN",
        ]

    def test_cards_carry_key(self):
        data = json.loads(_dealt().model_dump_json(by_alias=True))
        card = data["players"][0]["cards"][0]
        assert set(card) == {"suit", "rank", "key"}

    def test_unknown_stage_rejected(self):
        data = json.loads(_dealt().model_dump_json(by_alias=True))
        data["gameState"]["stage"] = "PRE_FLOP"
        with pytest.raises(ValidationError):
            TableState.model_validate(data)

    def test_negative_chips_rejected(self):
        data = json.loads(_dealt().model_dump_json(by_alias=True))
        data["players"][1]["chips"] = -1
        with pytest.raises(ValidationError):
            TableState.model_validate(data)


class TestPublicState:
    def test_shape(self):
        data = _dealt().public_state().model_dump(mode="json", by_alias=True)
        assert set(data) == {"gameState", "players"}
        assert len(data["players"]) == 4

    def test_roundtrip(self):
        state = _dealt().public_state()
        assert PublicState.model_validate_json(state.model_dump_json(by_alias=True)) == state


class TestRequests:
    def test_action_request_camel_case(self):
        req = ActionRequest.model_validate({"playerId": 2, "action": "allin", "amount": 500})
        assert req.player_id == 2
        assert req.action == ActionKind.ALL_IN

    def test_action_request_unknown_kind(self):
        with pytest.raises(ValidationError):
            ActionRequest.model_validate({"playerId": 0, "action": "bet"})

    def test_action_request_negative_amount(self):
        with pytest.raises(ValidationError):
            ActionRequest.model_validate({"playerId": 0, "action": "raise", "amount": -5})

    @pytest.mark.parametrize("seat", [-1, 4])
    def test_join_request_seat_range(self, seat):
        with pytest.raises(ValidationError):
            JoinTableRequest.model_validate({"seatIndex": seat, "playerName": "Ann"})

    def test_join_request_empty_name(self):
        with pytest.raises(ValidationError):
            JoinTableRequest.model_validate({"seatIndex": 0, "playerName": ""})
