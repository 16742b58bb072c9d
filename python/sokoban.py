"""
Sokoban board state machine.
The board owns a static map, the player position and an ordered list of crates,
and implements the push rule, win detection and reset to the loaded layout.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable

from board_types import (
    MAX_COORD,
    Blocked,
    BoardElem,
    CellKind,
    Coord,
    Crate,
    CrateItem,
    Direction,
    InvalidDimensions,
    Map,
    MovableItem,
    Moved,
    MoveOutcome,
    PlayerItem,
)

__all__ = [
    "MAX_COORD",
    "Blocked",
    "Board",
    "BoardElem",
    "CellKind",
    "Coord",
    "Crate",
    "CrateItem",
    "Direction",
    "InvalidBoard",
    "InvalidDimensions",
    "Map",
    "MovableItem",
    "Moved",
    "MoveOutcome",
    "PlayerItem",
]

logger = logging.getLogger(__name__)


class InvalidBoard(ValueError):
    """Raised by Board.validate when the layout breaks a board invariant."""


class Board:
    """
    The map plus everything that moves on it.

    The layout given at construction is kept as the original snapshot and
    restored by reset(). The board is meant to be driven by a single owner:
    move_player() and reset() complete immediately and are not thread-safe.
    """

    def __init__(self, board_map: Map, player: Coord, crates: Iterable[Crate]) -> None:
        self._map = board_map
        self._player = player
        self._crates = list(crates)
        self._original_player = player
        self._original_crates = tuple(self._crates)

    def __repr__(self) -> str:
        return (
            f"Board(width={self.width}, height={self.height}, "
            f"player={self._player}, crates={[c.position for c in self._crates]})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return (
            self._map == other._map
            and self._player == other._player
            and self._crates == other._crates
            and self._original_player == other._original_player
            and self._original_crates == other._original_crates
        )

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def map(self) -> Map:
        return self._map

    @property
    def width(self) -> int:
        return self._map.width

    @property
    def height(self) -> int:
        return self._map.height

    @property
    def player(self) -> Coord:
        return self._player

    @property
    def crates(self) -> tuple[Crate, ...]:
        """Crates in index order."""
        return tuple(self._crates)

    @property
    def original_player(self) -> Coord:
        return self._original_player

    @property
    def original_crates(self) -> tuple[Crate, ...]:
        return self._original_crates

    def crate_at(self, x: int, y: int) -> int | None:
        """Index of the crate at (x, y), or None."""
        for index, crate in enumerate(self._crates):
            if crate.position == (x, y):
                return index
        return None

    def get(self, x: int, y: int) -> BoardElem:
        """Terrain at (x, y) together with the player or crate standing on it."""
        cell = self._map.get(x, y)
        if self._player == (x, y):
            return BoardElem(PlayerItem(), cell)
        index = self.crate_at(x, y)
        if index is not None:
            return BoardElem(CrateItem(index), cell)
        return BoardElem(None, cell)

    def has_won(self) -> bool:
        """True when every crate sits on a target."""
        return all(crate.is_placed(self._map) for crate in self._crates)

    # -------------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------------

    def move_player(self, direction: Direction) -> MoveOutcome:
        """
        Move the player one cell, pushing a crate if one is in the way.

        A crate can only be pushed onto a crossable cell that holds no other
        crate; when the push is impossible the whole move is refused. Steps
        past coordinate 0 are clamped rather than refused: the player stays
        on its own cell and the step counts as a plain move.

        Returns:
            Blocked() if nothing changed, Moved(None) for a plain step, or
            Moved(index) when the crate at that index was pushed.
        """
        new_player = direction.step(*self._player)
        pushed = self.crate_at(*new_player)
        if pushed is not None:
            crate = self._crates[pushed]
            new_crate = crate.moved(direction)
            # A clamped push leaves the crate in place, where crate_at finds it.
            if (
                not self._map.is_crossable(*new_crate.position)
                or self.crate_at(*new_crate.position) is not None
            ):
                logger.debug(
                    "move %s blocked: crate %d at %s cannot go to %s",
                    direction.value, pushed, crate.position, new_crate.position,
                )
                return Blocked()
            self._crates[pushed] = new_crate
        elif not self._map.is_crossable(*new_player):
            logger.debug(
                "move %s blocked: %s is %s",
                direction.value, new_player, self._map.get(*new_player).name,
            )
            return Blocked()

        self._player = new_player
        logger.debug("move %s: player now at %s, pushed=%s", direction.value, new_player, pushed)
        return Moved(pushed)

    def reset(self) -> None:
        """Put the player and crates back where the level started them."""
        self._player = self._original_player
        self._crates = list(self._original_crates)
        logger.info("board reset: player at %s, %d crates", self._player, len(self._crates))

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> None:
        """
        Check that the current layout satisfies the board invariants.

        Raises:
            InvalidBoard: naming the first problem found
        """
        px, py = self._player
        if not self._map.is_crossable(px, py):
            raise InvalidBoard(
                f"Player at {self._player} stands on {self._map.get(px, py).name}\n"
                f"  The player must start on FLOOR or TARGET"
            )

        for index, crate in enumerate(self._crates):
            if not self._map.is_crossable(crate.x, crate.y):
                raise InvalidBoard(
                    f"Crate {index} at {crate.position} stands on {self._map.get(crate.x, crate.y).name}\n"
                    f"  Crates must start on FLOOR or TARGET"
                )
            if crate.position == self._player:
                raise InvalidBoard(f"Crate {index} at {crate.position} is under the player")

        counts = Counter(crate.position for crate in self._crates)
        overlapping = sorted(pos for pos, n in counts.items() if n > 1)
        if overlapping:
            raise InvalidBoard(
                f"Several crates share a cell\n"
                f"  Positions: {', '.join(str(p) for p in overlapping)}"
            )

        targets = sum(1 for cell in self._map.cells if cell is CellKind.TARGET)
        if len(self._crates) > targets:
            raise InvalidBoard(
                f"Level has {len(self._crates)} crates but only {targets} targets\n"
                f"  The level can never be won"
            )
