"""Match management: one game engine per WebSocket connection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable

from fastapi import WebSocket

from connect_four.board import Player
from connect_four.config import BOARD_COLUMNS, BOARD_ROWS, COMPUTER_MOVE_DELAY
from connect_four.game import GameEngine, GameMode
from connect_four.models import (
    AnimateDropMsg,
    ErrorMsg,
    GameOverMsg,
    InputStateMsg,
    SessionStartedMsg,
    StateSyncMsg,
)

logger = logging.getLogger(__name__)


class WebSocketPresenter:
    """Engine presenter that turns engine calls into outgoing messages.

    Messages are queued in call order and written out by :meth:`Match.flush`.
    The ``on_complete`` callback of the latest drop is held until the client
    reports that its animation finished.
    """

    def __init__(self):
        self.outbox: list[dict] = []
        self.pending_drop: Callable[[], None] | None = None
        self.engine: GameEngine | None = None

    def request_drop_animation(
        self, player: Player, column: int, row: int, on_complete: Callable[[], None]
    ) -> None:
        self.pending_drop = on_complete
        self.outbox.append(AnimateDropMsg(player=player, column=column, row=row).model_dump())

    def set_input_enabled(self, enabled: bool) -> None:
        self.outbox.append(InputStateMsg(enabled=enabled).model_dump())

    def notify_game_over(self, winner: Player | None) -> None:
        line = self.engine.session.winning_line if self.engine else None
        reason = "draw" if winner is None else "connect_four"
        self.outbox.append(GameOverMsg(winner=winner, reason=reason, line=line).model_dump())

    def complete_drop(self) -> bool:
        on_complete, self.pending_drop = self.pending_drop, None
        if on_complete is None:
            return False
        on_complete()
        return True

    def drain(self) -> list[dict]:
        messages, self.outbox = self.outbox, []
        return messages


@dataclass
class Match:
    ws: WebSocket
    presenter: WebSocketPresenter
    engine: GameEngine = field(init=False, repr=False)
    tasks: set[asyncio.Task] = field(default_factory=set, repr=False)

    def schedule(self, delay: float, callback: Callable[[], None]) -> asyncio.Task:
        """Run ``callback`` after ``delay`` seconds, then flush its output."""

        async def run_later():
            await asyncio.sleep(delay)
            try:
                callback()
            except Exception:
                logger.exception("Deferred callback failed")
            await self.flush()

        task = asyncio.create_task(run_later())
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    async def send(self, msg_dict: dict):
        try:
            await self.ws.send_json(msg_dict)
        except Exception:
            logger.warning("Dropping %s message for closed connection", msg_dict.get("type"))

    async def flush(self):
        for msg in self.presenter.drain():
            await self.send(msg)

    def cancel_tasks(self):
        for task in list(self.tasks):
            if not task.done():
                task.cancel()
        self.tasks.clear()


class MatchManager:
    def __init__(
        self,
        columns: int = BOARD_COLUMNS,
        rows: int = BOARD_ROWS,
        computer_delay: float = COMPUTER_MOVE_DELAY,
    ):
        self.columns = columns
        self.rows = rows
        self.computer_delay = computer_delay
        self.matches: dict[WebSocket, Match] = {}

    async def start_game(self, ws: WebSocket, mode: GameMode) -> Match:
        match = self.get_match_for_ws(ws)
        if match is not None:
            match.cancel_tasks()

        presenter = WebSocketPresenter()
        match = Match(ws=ws, presenter=presenter)
        match.engine = GameEngine(
            presenter,
            mode,
            columns=self.columns,
            rows=self.rows,
            computer_delay=self.computer_delay,
            scheduler=match.schedule,
        )
        presenter.engine = match.engine
        self.matches[ws] = match

        await self._announce(match)
        return match

    async def drop_piece(self, ws: WebSocket, column: int):
        match = await self._require_match(ws)
        if match is None:
            return
        # Full columns and out-of-turn drops are ignored without a reply
        match.engine.on_column_activated(column)
        await match.flush()

    async def drop_complete(self, ws: WebSocket):
        match = await self._require_match(ws)
        if match is None:
            return
        if not match.presenter.complete_drop():
            logger.debug("drop_complete with no drop in flight")
        await match.flush()

    async def restart(self, ws: WebSocket, mode: GameMode | None = None):
        match = await self._require_match(ws)
        if match is None:
            return
        # A computer move may already be mid-flush; its messages belong to the old game
        match.cancel_tasks()
        match.presenter.pending_drop = None
        match.presenter.drain()
        await self._announce(match, mode)

    async def sync(self, ws: WebSocket):
        match = await self._require_match(ws)
        if match is None:
            return
        session = match.engine.session
        await match.send(
            StateSyncMsg(
                board=session.board.snapshot(),
                active_player=session.active_player,
                mode=session.mode,
                state=session.state,
                move_count=session.move_count,
            ).model_dump()
        )

    async def handle_disconnect(self, ws: WebSocket):
        match = self.matches.pop(ws, None)
        if match is None:
            return
        match.cancel_tasks()
        logger.info("Match closed after %d moves", match.engine.session.move_count)

    def get_match_for_ws(self, ws: WebSocket) -> Match | None:
        return self.matches.get(ws)

    async def _announce(self, match: Match, mode: GameMode | None = None):
        match.engine.restart_session(mode)
        await match.send(
            SessionStartedMsg(
                mode=match.engine.session.mode, columns=self.columns, rows=self.rows
            ).model_dump()
        )
        await match.flush()

    async def _require_match(self, ws: WebSocket) -> Match | None:
        match = self.get_match_for_ws(ws)
        if match is None:
            await ws.send_json(ErrorMsg(message="No game in progress").model_dump())
        return match


match_manager = MatchManager()
