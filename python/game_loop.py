"""
Turn loop connecting a Board to a user interface.
The interface is supplied by the caller: it produces actions and shows the board.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from board_types import Blocked, Direction, Moved, MoveOutcome
from level_parser import LevelParseError, parse_level
from sokoban import Board

__all__ = [
    "Action",
    "GameError",
    "GameSession",
    "Move",
    "Quit",
    "Redraw",
    "ResetLevel",
    "Ui",
    "UiError",
    "play",
]

logger = logging.getLogger(__name__)


# =============================================================================
# Actions
# =============================================================================


@dataclass(frozen=True)
class Move:
    """Move the player in a direction."""

    direction: Direction


@dataclass(frozen=True)
class ResetLevel:
    """Put the player and crates back to their starting positions."""

    pass


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Redraw:
    """Display the board again, e.g. after a terminal resize."""

    pass


Action = Move | ResetLevel | Quit | Redraw


class GameError(Exception):
    """Base class for failures while running a game."""


class UiError(GameError):
    """The user interface raised while being driven by the game loop."""


class Ui(Protocol):
    """What the game loop needs from a user interface."""

    def get_action(self, board: Board) -> Action:
        """Next user action. Usually blocks until input arrives."""
        ...

    def display(self, board: Board, outcome: MoveOutcome | None) -> None:
        """Show the board. outcome is the result of the last move, None if there was no move."""
        ...

    def won(self) -> None:
        ...

    def cleanup(self) -> None:
        ...


# =============================================================================
# Session
# =============================================================================


class GameSession:
    """A board being played through a Ui, plus the presentation state around it."""

    def __init__(self, board: Board, ui: Ui) -> None:
        self.board = board
        self.ui = ui
        self.facing = Direction.default()  # Sprite orientation, not part of the board
        self.last_outcome: MoveOutcome | None = None
        self.moves = 0
        self.pushes = 0
        self.has_won = False

    def _call_ui(self, name: str, *args: object) -> Any:
        try:
            return getattr(self.ui, name)(*args)
        except Exception as e:
            raise UiError(f"Ui.{name} failed: {e}") from e

    def attempt_move(self, direction: Direction) -> MoveOutcome:
        """Move the player and update the session counters."""
        outcome = self.board.move_player(direction)
        self.facing = direction
        self.last_outcome = outcome

        match outcome:
            case Blocked():
                pass
            case Moved(crate=None):
                self.moves += 1
            case Moved(crate=index):
                self.moves += 1
                self.pushes += 1
                logger.debug("crate %d pushed to %s", index, self.board.crates[index].position)
        return outcome

    def reset_level(self) -> None:
        self.board.reset()
        self.facing = Direction.default()
        self.last_outcome = None
        self.moves = 0
        self.pushes = 0

    def handle(self, action: Action) -> bool:
        """
        Apply one action and refresh the display.

        Returns:
            False once the session is over (quit or level won), True otherwise
        """
        match action:
            case Quit():
                logger.info("player quit after %d moves", self.moves)
                return False
            case ResetLevel():
                self.reset_level()
                self._call_ui("display", self.board, None)
            case Redraw():
                self._call_ui("display", self.board, self.last_outcome)
            case Move(direction=direction):
                outcome = self.attempt_move(direction)
                self._call_ui("display", self.board, outcome)
                # Only a push can complete the level.
                if isinstance(outcome, Moved) and outcome.crate is not None and self.board.has_won():
                    self.has_won = True
                    logger.info("level won in %d moves (%d pushes)", self.moves, self.pushes)
                    self._call_ui("won")
                    return False
            case _:
                raise UiError(f"Unknown action: {action!r}")
        return True

    def run(self) -> bool:
        """
        Play until the user quits or wins.

        Returns:
            True if the level was won
        """
        try:
            self._call_ui("display", self.board, None)
            while True:
                action = self._call_ui("get_action", self.board)
                if not self.handle(action):
                    break
        finally:
            self._call_ui("cleanup")
        return self.has_won


def play(ui: Ui, level: str) -> bool:
    """
    Parse a level and play it through ui.

    The interface is cleaned up whatever happens, including a parse failure.
    If that cleanup fails too, the UiError is raised with the parse error
    still reachable as the context of its cause.

    Raises:
        LevelParseError: if the level text is malformed
        UiError: if the interface fails
    """
    try:
        board = parse_level(level)
    except LevelParseError:
        logger.error("could not load level, closing the interface")
        try:
            ui.cleanup()
        except Exception as e:
            raise UiError(f"Ui.cleanup failed: {e}") from e
        raise
    return GameSession(board, ui).run()
