"""Tests for game_loop module."""

from __future__ import annotations

import pytest

import board_types
from board_types import Blocked, Direction, Moved, MoveOutcome
from game_loop import (
    Action,
    GameSession,
    Move,
    Quit,
    Redraw,
    ResetLevel,
    UiError,
    play,
)
from level_parser import LevelParseError, MissingPlayerCoordinates, parse_level
from sokoban import Board

# Player at (1,1), one crate at (2,1), target at (4,1).
LEVEL = """\
######
#...X#
######

1,1

2,1
"""


class ScriptedUi:
    """A Ui replaying a fixed list of actions and recording what it was asked to show."""

    def __init__(self, actions: list[Action]) -> None:
        self.actions = list(actions)
        self.displayed: list[tuple[tuple[int, int], MoveOutcome | None]] = []
        self.won_called = False
        self.cleaned_up = False

    def get_action(self, board: Board) -> Action:
        if not self.actions:
            return Quit()
        return self.actions.pop(0)

    def display(self, board: Board, outcome: MoveOutcome | None) -> None:
        self.displayed.append((board.player, outcome))

    def won(self) -> None:
        self.won_called = True

    def cleanup(self) -> None:
        self.cleaned_up = True


class BrokenUi(ScriptedUi):
    def display(self, board: Board, outcome: MoveOutcome | None) -> None:
        raise OSError("terminal went away")


class CleanupFailsUi(ScriptedUi):
    def cleanup(self) -> None:
        raise OSError("could not restore terminal")


class TestGameSession:
    """Tests for a session driven action by action."""

    def test_initial_state(self) -> None:
        session = GameSession(parse_level(LEVEL), ScriptedUi([]))
        assert session.facing is Direction.DOWN
        assert session.last_outcome is None
        assert session.moves == 0
        assert session.pushes == 0

    def test_move_updates_facing_and_counters(self) -> None:
        session = GameSession(parse_level(LEVEL), ScriptedUi([]))
        assert session.handle(Move(Direction.RIGHT))
        assert session.facing is Direction.RIGHT
        assert session.last_outcome == Moved(0)
        assert session.moves == 1
        assert session.pushes == 1

    def test_blocked_move_still_turns_the_player(self) -> None:
        session = GameSession(parse_level(LEVEL), ScriptedUi([]))
        assert session.handle(Move(Direction.UP))
        assert session.facing is Direction.UP
        assert session.last_outcome == Blocked()
        assert session.moves == 0

    def test_reset_restores_defaults(self) -> None:
        ui = ScriptedUi([])
        session = GameSession(parse_level(LEVEL), ui)
        session.handle(Move(Direction.RIGHT))
        assert session.handle(ResetLevel())
        assert session.board.player == (1, 1)
        assert session.facing is Direction.DOWN
        assert session.moves == 0
        assert ui.displayed[-1] == ((1, 1), None)

    def test_redraw_shows_last_outcome(self) -> None:
        ui = ScriptedUi([])
        session = GameSession(parse_level(LEVEL), ui)
        session.handle(Move(Direction.LEFT))
        session.handle(Redraw())
        assert ui.displayed[-1] == ((1, 1), Blocked())

    def test_quit_ends_session(self) -> None:
        session = GameSession(parse_level(LEVEL), ScriptedUi([]))
        assert not session.handle(Quit())

    def test_unknown_action(self) -> None:
        session = GameSession(parse_level(LEVEL), ScriptedUi([]))
        with pytest.raises(UiError, match="Unknown action"):
            session.handle("jump")  # type: ignore[arg-type]


class TestRun:
    """Tests for the full turn loop."""

    def test_win(self) -> None:
        ui = ScriptedUi([Move(Direction.RIGHT)] * 3)
        session = GameSession(parse_level(LEVEL), ui)
        assert session.run()
        assert ui.won_called
        assert ui.cleaned_up
        assert session.moves == 2
        assert session.pushes == 2
        # Initial display, then one per move; the third action is never read.
        assert ui.displayed == [
            ((1, 1), None),
            ((2, 1), Moved(0)),
            ((3, 1), Moved(0)),
        ]
        assert ui.actions == [Move(Direction.RIGHT)]

    def test_quit(self) -> None:
        ui = ScriptedUi([Move(Direction.RIGHT), ResetLevel(), Quit()])
        assert not GameSession(parse_level(LEVEL), ui).run()
        assert not ui.won_called
        assert ui.cleaned_up

    def test_ui_failure_is_wrapped_and_cleans_up(self) -> None:
        ui = BrokenUi([])
        with pytest.raises(UiError, match="terminal went away") as excinfo:
            GameSession(parse_level(LEVEL), ui).run()
        assert isinstance(excinfo.value.__cause__, OSError)
        assert ui.cleaned_up


class TestPlay:
    """Tests for playing straight from level text."""

    def test_play_level(self) -> None:
        ui = ScriptedUi([Move(Direction.RIGHT), Move(Direction.RIGHT)])
        assert play(ui, LEVEL)
        assert ui.won_called

    def test_parse_error_propagates(self) -> None:
        ui = ScriptedUi([])
        with pytest.raises(MissingPlayerCoordinates):
            play(ui, "#..#\n")
        assert ui.cleaned_up
        assert ui.displayed == []

    def test_cleanup_failure_after_parse_error(self) -> None:
        """A failing cleanup is wrapped and keeps the parse error in its chain."""
        ui = CleanupFailsUi([])
        with pytest.raises(UiError, match="Ui.cleanup failed") as excinfo:
            play(ui, "#..#\n")
        cause = excinfo.value.__cause__
        assert isinstance(cause, OSError)
        assert isinstance(cause.__context__, MissingPlayerCoordinates)

    def test_oversized_map_cleans_up(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(board_types, "MAX_COORD", 5)
        ui = ScriptedUi([])
        with pytest.raises(LevelParseError):
            play(ui, LEVEL)
        assert ui.cleaned_up
