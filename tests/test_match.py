"""Tests for match lifecycle: starting, dropping, computer turns, restart, leaving."""

import asyncio
import logging

import pytest
from unittest.mock import AsyncMock

from connect_four.game import EngineState, GameMode
from connect_four.match import MatchManager


def make_mock_ws():
    """Create a mock WebSocket that tracks sent messages."""
    ws = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


def sent(ws):
    return [call[0][0] for call in ws.send_json.call_args_list]


def sent_types(ws):
    return [m["type"] for m in sent(ws)]


async def drop_and_land(manager, ws, column):
    await manager.drop_piece(ws, column)
    await manager.drop_complete(ws)


class TestMatchStart:
    @pytest.mark.asyncio
    async def test_start_game(self):
        manager = MatchManager(columns=7, rows=6)
        ws = make_mock_ws()
        match = await manager.start_game(ws, GameMode.TWO_PLAYER)

        assert manager.get_match_for_ws(ws) is match
        assert match.engine.session.mode is GameMode.TWO_PLAYER
        msgs = sent(ws)
        assert msgs[0] == {"type": "session_started", "mode": "two_player", "columns": 7, "rows": 6}
        assert msgs[1] == {"type": "input_state", "enabled": True}

    @pytest.mark.asyncio
    async def test_drop_without_game(self):
        manager = MatchManager()
        ws = make_mock_ws()
        await manager.drop_piece(ws, 3)
        ws.send_json.assert_called_once()
        msg = ws.send_json.call_args[0][0]
        assert msg["type"] == "error"
        assert "no game" in msg["message"].lower()

    @pytest.mark.asyncio
    async def test_start_again_replaces_match(self):
        manager = MatchManager()
        ws = make_mock_ws()
        first = await manager.start_game(ws, GameMode.TWO_PLAYER)
        second = await manager.start_game(ws, GameMode.SINGLE_PLAYER)
        assert first is not second
        assert len(manager.matches) == 1
        assert manager.get_match_for_ws(ws).engine.session.mode is GameMode.SINGLE_PLAYER


class TestDropping:
    @pytest.mark.asyncio
    async def test_drop_requests_animation(self):
        manager = MatchManager()
        ws = make_mock_ws()
        await manager.start_game(ws, GameMode.TWO_PLAYER)
        ws.send_json.reset_mock()

        await manager.drop_piece(ws, 3)
        assert sent(ws) == [
            {"type": "input_state", "enabled": False},
            {"type": "animate_drop", "player": "one", "column": 3, "row": 5},
        ]

    @pytest.mark.asyncio
    async def test_drop_complete_reenables_input(self):
        manager = MatchManager()
        ws = make_mock_ws()
        match = await manager.start_game(ws, GameMode.TWO_PLAYER)
        await manager.drop_piece(ws, 3)
        ws.send_json.reset_mock()

        await manager.drop_complete(ws)
        assert sent(ws) == [{"type": "input_state", "enabled": True}]
        assert match.engine.session.state is EngineState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_second_drop_while_animating_is_silent(self):
        manager = MatchManager()
        ws = make_mock_ws()
        await manager.start_game(ws, GameMode.TWO_PLAYER)
        await manager.drop_piece(ws, 3)
        ws.send_json.reset_mock()

        await manager.drop_piece(ws, 4)
        ws.send_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_stray_drop_complete_is_silent(self):
        manager = MatchManager()
        ws = make_mock_ws()
        await manager.start_game(ws, GameMode.TWO_PLAYER)
        ws.send_json.reset_mock()

        await manager.drop_complete(ws)
        ws.send_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_win_sends_game_over(self):
        manager = MatchManager(columns=7, rows=6)
        ws = make_mock_ws()
        match = await manager.start_game(ws, GameMode.TWO_PLAYER)
        for _ in range(3):
            await drop_and_land(manager, ws, 0)
            await drop_and_land(manager, ws, 1)
        ws.send_json.reset_mock()
        await drop_and_land(manager, ws, 0)

        game_overs = [m for m in sent(ws) if m["type"] == "game_over"]
        assert len(game_overs) == 1
        assert game_overs[0]["winner"] == "one"
        assert game_overs[0]["reason"] == "connect_four"
        assert game_overs[0]["line"] == [(2, 0), (3, 0), (4, 0), (5, 0)]
        assert match.engine.session.is_running is False

    @pytest.mark.asyncio
    async def test_failed_send_does_not_raise(self):
        manager = MatchManager()
        ws = make_mock_ws()
        match = await manager.start_game(ws, GameMode.TWO_PLAYER)
        ws.send_json.side_effect = RuntimeError("socket closed")

        await manager.drop_piece(ws, 2)
        assert match.engine.session.state is EngineState.ANIMATING


class TestComputerTurn:
    @pytest.mark.asyncio
    async def test_computer_moves_after_delay(self):
        manager = MatchManager(computer_delay=0)
        ws = make_mock_ws()
        match = await manager.start_game(ws, GameMode.SINGLE_PLAYER)
        await drop_and_land(manager, ws, 3)
        ws.send_json.reset_mock()

        await asyncio.sleep(0.05)
        msgs = sent(ws)
        assert len(msgs) == 1
        assert msgs[0]["type"] == "animate_drop"
        assert msgs[0]["player"] == "two"
        assert match.engine.session.state is EngineState.ANIMATING

        await manager.drop_complete(ws)
        assert sent(ws)[-1] == {"type": "input_state", "enabled": True}

    @pytest.mark.asyncio
    async def test_restart_cancels_computer_move(self):
        manager = MatchManager(computer_delay=10)
        ws = make_mock_ws()
        match = await manager.start_game(ws, GameMode.SINGLE_PLAYER)
        await drop_and_land(manager, ws, 3)
        assert len(match.tasks) == 1

        await manager.restart(ws)
        await asyncio.sleep(0.01)
        assert match.tasks == set()
        assert match.engine.session.state is EngineState.AWAITING_INPUT
        assert match.engine.board.empty_columns() == set(range(7))

    @pytest.mark.asyncio
    async def test_restart_while_computer_move_is_being_sent(self):
        manager = MatchManager(computer_delay=0)
        ws = make_mock_ws()
        delivered = []

        async def slow_send(msg):
            if msg["type"] == "animate_drop" and msg["player"] == "two":
                await asyncio.sleep(0.05)
            delivered.append(msg)

        ws.send_json.side_effect = slow_send
        match = await manager.start_game(ws, GameMode.SINGLE_PLAYER)
        await drop_and_land(manager, ws, 3)
        await asyncio.sleep(0.01)

        await manager.restart(ws)
        await asyncio.sleep(0.1)

        assert [m["type"] for m in delivered[-2:]] == ["session_started", "input_state"]
        assert not any(m["type"] == "animate_drop" and m["player"] == "two" for m in delivered)
        assert match.tasks == set()
        assert match.engine.session.state is EngineState.AWAITING_INPUT
        assert match.engine.session.move_count == 0


class TestScheduling:
    @pytest.mark.asyncio
    async def test_failing_callback_is_logged(self, caplog):
        manager = MatchManager()
        ws = make_mock_ws()
        match = await manager.start_game(ws, GameMode.TWO_PLAYER)

        def explode():
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR, logger="connect_four.match"):
            task = match.schedule(0, explode)
            await task

        assert task.exception() is None
        assert "Deferred callback failed" in caplog.text

    @pytest.mark.asyncio
    async def test_failing_callback_still_flushes(self):
        manager = MatchManager()
        ws = make_mock_ws()
        match = await manager.start_game(ws, GameMode.TWO_PLAYER)
        ws.send_json.reset_mock()

        def queue_then_fail():
            match.presenter.set_input_enabled(False)
            raise RuntimeError("boom")

        await match.schedule(0, queue_then_fail)
        assert sent(ws) == [{"type": "input_state", "enabled": False}]


class TestRestartAndLeave:
    @pytest.mark.asyncio
    async def test_restart_with_new_mode(self):
        manager = MatchManager()
        ws = make_mock_ws()
        match = await manager.start_game(ws, GameMode.TWO_PLAYER)
        await manager.drop_piece(ws, 0)
        ws.send_json.reset_mock()

        await manager.restart(ws, GameMode.SINGLE_PLAYER)
        assert sent_types(ws) == ["session_started", "input_state"]
        assert sent(ws)[0]["mode"] == "single_player"
        assert match.presenter.pending_drop is None
        assert match.engine.session.move_count == 0

    @pytest.mark.asyncio
    async def test_sync(self):
        manager = MatchManager(columns=3, rows=2)
        ws = make_mock_ws()
        await manager.start_game(ws, GameMode.TWO_PLAYER)
        await drop_and_land(manager, ws, 1)
        ws.send_json.reset_mock()

        await manager.sync(ws)
        msg = ws.send_json.call_args[0][0]
        assert msg["type"] == "state_sync"
        assert msg["board"] == [[None, None, None], [None, "one", None]]
        assert msg["active_player"] == "two"
        assert msg["state"] == "awaiting_input"
        assert msg["move_count"] == 1

    @pytest.mark.asyncio
    async def test_disconnect_removes_match(self):
        manager = MatchManager(computer_delay=10)
        ws = make_mock_ws()
        match = await manager.start_game(ws, GameMode.SINGLE_PLAYER)
        await drop_and_land(manager, ws, 0)
        task = next(iter(match.tasks))

        await manager.handle_disconnect(ws)
        await asyncio.sleep(0.01)
        assert manager.get_match_for_ws(ws) is None
        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_disconnect_unknown_socket(self):
        manager = MatchManager()
        await manager.handle_disconnect(make_mock_ws())
        assert manager.matches == {}
