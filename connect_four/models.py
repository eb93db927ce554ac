"""Pydantic models for WebSocket message protocol."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ValidationError

from connect_four.board import Player
from connect_four.game import EngineState, GameMode


# ---------------------------------------------------------------------------
# Client → Server
# ---------------------------------------------------------------------------

class StartGameMsg(BaseModel):
    type: Literal["start_game"] = "start_game"
    mode: GameMode


class DropPieceMsg(BaseModel):
    type: Literal["drop_piece"] = "drop_piece"
    column: int


class DropCompleteMsg(BaseModel):
    type: Literal["drop_complete"] = "drop_complete"


class RestartMsg(BaseModel):
    type: Literal["restart"] = "restart"
    mode: GameMode | None = None


class SyncMsg(BaseModel):
    type: Literal["sync"] = "sync"


class LeaveGameMsg(BaseModel):
    type: Literal["leave_game"] = "leave_game"


ClientMessage = StartGameMsg | DropPieceMsg | DropCompleteMsg | RestartMsg | SyncMsg | LeaveGameMsg


# ---------------------------------------------------------------------------
# Server → Client
# ---------------------------------------------------------------------------

class SessionStartedMsg(BaseModel):
    type: Literal["session_started"] = "session_started"
    mode: GameMode
    columns: int
    rows: int


class AnimateDropMsg(BaseModel):
    type: Literal["animate_drop"] = "animate_drop"
    player: Player
    column: int
    row: int


class InputStateMsg(BaseModel):
    type: Literal["input_state"] = "input_state"
    enabled: bool


class GameOverMsg(BaseModel):
    type: Literal["game_over"] = "game_over"
    winner: Player | None
    reason: str  # "connect_four" | "draw"
    line: list[tuple[int, int]] | None = None


class StateSyncMsg(BaseModel):
    type: Literal["state_sync"] = "state_sync"
    board: list[list[str | None]]
    active_player: Player
    mode: GameMode
    state: EngineState
    move_count: int


class ErrorMsg(BaseModel):
    type: Literal["error"] = "error"
    message: str


def parse_client_message(data: dict) -> ClientMessage | None:
    """Parse a raw dict into a typed client message, or None if invalid."""
    msg_type = data.get("type")
    mapping: dict[str, type[BaseModel]] = {
        "start_game": StartGameMsg,
        "drop_piece": DropPieceMsg,
        "drop_complete": DropCompleteMsg,
        "restart": RestartMsg,
        "sync": SyncMsg,
        "leave_game": LeaveGameMsg,
    }
    model = mapping.get(msg_type)  # type: ignore[arg-type]
    if model is None:
        return None
    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValidationError:
        return None
