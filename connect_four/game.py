"""Game logic: session state, turn flow, and the computer opponent."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from connect_four.board import Board, Player
from connect_four.config import BOARD_COLUMNS, BOARD_ROWS, COMPUTER_MOVE_DELAY
from connect_four.win import winning_line

logger = logging.getLogger(__name__)

COMPUTER = Player.TWO


class GameMode(str, Enum):
    SINGLE_PLAYER = "single_player"
    TWO_PLAYER = "two_player"


class EngineState(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    ANIMATING = "animating"
    AWAITING_COMPUTER = "awaiting_computer"
    RESOLVED = "resolved"


class GamePresenter(Protocol):
    def request_drop_animation(
        self, player: Player, column: int, row: int, on_complete: Callable[[], None]
    ) -> None: ...

    def set_input_enabled(self, enabled: bool) -> None: ...

    def notify_game_over(self, winner: Player | None) -> None: ...


class Cancellable(Protocol):
    def cancel(self) -> object: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def loop_scheduler(delay: float, callback: Callable[[], None]) -> Cancellable:
    return asyncio.get_running_loop().call_later(delay, callback)


@dataclass
class GameSession:
    board: Board
    mode: GameMode = GameMode.TWO_PLAYER
    active_player: Player = Player.ONE
    state: EngineState = EngineState.AWAITING_INPUT
    winner: Player | None = None
    winning_line: list[tuple[int, int]] | None = None
    move_count: int = 0

    @property
    def is_running(self) -> bool:
        return self.state is not EngineState.RESOLVED

    def reset(self, mode: GameMode) -> None:
        self.board.reset()
        self.mode = mode
        self.active_player = Player.ONE
        self.state = EngineState.AWAITING_INPUT
        self.winner = None
        self.winning_line = None
        self.move_count = 0


class GameEngine:
    """Drives a :class:`GameSession` through its turn cycle.

    Each placement suspends the game in ``ANIMATING`` until the presenter
    calls the ``on_complete`` callback it was handed. Only one drop is in
    flight at a time; input stays disabled board-wide until it resolves.
    Calls that arrive out of turn are ignored.
    """

    def __init__(
        self,
        presenter: GamePresenter,
        mode: GameMode = GameMode.TWO_PLAYER,
        *,
        columns: int = BOARD_COLUMNS,
        rows: int = BOARD_ROWS,
        computer_delay: float = COMPUTER_MOVE_DELAY,
        scheduler: Scheduler = loop_scheduler,
        rng: random.Random | None = None,
    ):
        self.presenter = presenter
        self.session = GameSession(board=Board(columns, rows), mode=mode)
        self.computer_delay = computer_delay
        self.scheduler = scheduler
        self.rng = rng or random.Random()
        self._input_enabled: bool | None = None
        # Bumped on restart so callbacks from an abandoned game are ignored
        self._generation = 0
        self._pending_move: Cancellable | None = None

    @property
    def board(self) -> Board:
        return self.session.board

    def restart_session(self, mode: GameMode | None = None) -> None:
        """Start over from an empty board with PlayerOne to move.

        Valid in any state. A pending computer move is cancelled and an
        in-flight drop animation is abandoned: its completion is ignored.
        """
        if self._pending_move is not None:
            self._pending_move.cancel()
            self._pending_move = None
        self._generation += 1
        self.session.reset(mode or self.session.mode)
        logger.info("Game started: mode=%s board=%dx%d",
                    self.session.mode.value, self.board.columns, self.board.rows)
        self._set_input(True)

    def on_column_activated(self, column: int) -> bool:
        """Handle a column click. Returns True if a piece was dropped."""
        if self.session.state is not EngineState.AWAITING_INPUT:
            logger.debug("Ignoring column %d in state %s", column, self.session.state.value)
            return False
        if not self.board.is_column_playable(column):
            logger.debug("Ignoring unplayable column %d", column)
            return False
        self._drop(column)
        return True

    def _set_input(self, enabled: bool) -> None:
        if self._input_enabled != enabled:
            self._input_enabled = enabled
            self.presenter.set_input_enabled(enabled)

    def _drop(self, column: int) -> None:
        session = self.session
        player = session.active_player
        self._set_input(False)
        row, column = self.board.place(column, player)
        session.move_count += 1
        session.state = EngineState.ANIMATING

        generation = self._generation
        done = False

        def on_complete() -> None:
            nonlocal done
            if done:
                logger.debug("Duplicate drop completion for (%d, %d)", row, column)
                return
            done = True
            self._finish_drop(generation, player, row, column)

        self.presenter.request_drop_animation(player, column, row, on_complete)

    def _finish_drop(self, generation: int, player: Player, row: int, column: int) -> None:
        session = self.session
        if generation != self._generation or session.state is not EngineState.ANIMATING:
            logger.debug("Discarding stale drop completion for (%d, %d)", row, column)
            return

        line = winning_line(self.board, row, column, player)
        if line is not None:
            session.winning_line = line
            self._resolve(player)
            return
        if self.board.is_full():
            self._resolve(None)
            return

        session.active_player = player.opponent
        if session.mode is GameMode.SINGLE_PLAYER and session.active_player is COMPUTER:
            session.state = EngineState.AWAITING_COMPUTER
            self._schedule_computer_move()
        else:
            session.state = EngineState.AWAITING_INPUT
            self._set_input(True)

    def _resolve(self, winner: Player | None) -> None:
        session = self.session
        session.state = EngineState.RESOLVED
        session.winner = winner
        self._set_input(False)
        if winner is None:
            logger.info("Game over: draw after %d moves", session.move_count)
        else:
            logger.info("Game over: player %s wins after %d moves", winner.value, session.move_count)
        self.presenter.notify_game_over(winner)

    def _schedule_computer_move(self) -> None:
        generation = self._generation

        def move() -> None:
            self._pending_move = None
            self._computer_move(generation)

        self._pending_move = self.scheduler(self.computer_delay, move)

    def _computer_move(self, generation: int) -> None:
        session = self.session
        if generation != self._generation or session.state is not EngineState.AWAITING_COMPUTER:
            logger.debug("Discarding stale computer move")
            return

        columns = sorted(self.board.empty_columns())
        if not columns:
            logger.warning("Computer has no playable column; skipping move")
            self._resolve(None)
            return

        column = self.rng.choice(columns)
        logger.debug("Computer drops in column %d", column)
        self._drop(column)
