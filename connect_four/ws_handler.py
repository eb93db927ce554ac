"""WebSocket endpoint and message routing."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from connect_four.match import match_manager
from connect_four.models import (
    DropCompleteMsg,
    DropPieceMsg,
    ErrorMsg,
    LeaveGameMsg,
    RestartMsg,
    StartGameMsg,
    SyncMsg,
    parse_client_message,
)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    try:
        while True:
            data = await ws.receive_json()
            msg = parse_client_message(data)
            if msg is None:
                await ws.send_json(ErrorMsg(message="Unknown or invalid message").model_dump())
                continue

            if isinstance(msg, StartGameMsg):
                await match_manager.start_game(ws, msg.mode)

            elif isinstance(msg, DropPieceMsg):
                await match_manager.drop_piece(ws, msg.column)

            elif isinstance(msg, DropCompleteMsg):
                await match_manager.drop_complete(ws)

            elif isinstance(msg, RestartMsg):
                await match_manager.restart(ws, msg.mode)

            elif isinstance(msg, SyncMsg):
                await match_manager.sync(ws)

            elif isinstance(msg, LeaveGameMsg):
                await match_manager.handle_disconnect(ws)
    except WebSocketDisconnect:
        await match_manager.handle_disconnect(ws)
