"""
Shared type definitions for the Sokoban board.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

# Coordinates and map indices are unsigned 32-bit values.
MAX_COORD = 2**32 - 1

Coord = tuple[int, int]


class InvalidDimensions(ValueError):
    """Raised when a map cannot be allocated with the requested size."""


class CellKind(Enum):
    """Terrain of a single map cell. Values are the level-text symbols."""

    VOID = " "  # Inaccessible, nothing can cross it
    FLOOR = "."
    WALL = "#"
    TARGET = "X"  # Crate destination, crossable

    @property
    def symbol(self) -> str:
        return self.value

    @property
    def is_crossable(self) -> bool:
        return self in (CellKind.FLOOR, CellKind.TARGET)

    @classmethod
    def from_symbol(cls, symbol: str) -> CellKind:
        try:
            return cls(symbol)
        except ValueError:
            raise ValueError(
                f"Unknown cell symbol: {symbol!r}\n"
                f"  Valid symbols: {', '.join(repr(k.value) for k in cls)}"
            ) from None


class Direction(Enum):
    """Cardinal direction for a move."""

    UP = "up"  # Decreasing y
    DOWN = "down"  # Increasing y
    LEFT = "left"  # Decreasing x
    RIGHT = "right"  # Increasing x

    @classmethod
    def default(cls) -> Direction:
        """Direction used before any input was received."""
        return cls.DOWN

    @property
    def delta(self) -> Coord:
        match self:
            case Direction.UP:
                return (0, -1)
            case Direction.DOWN:
                return (0, 1)
            case Direction.LEFT:
                return (-1, 0)
            case Direction.RIGHT:
                return (1, 0)

    def step(self, x: int, y: int) -> Coord:
        """One step from (x, y), clamped to the coordinate range instead of wrapping."""
        dx, dy = self.delta
        return (
            min(max(x + dx, 0), MAX_COORD),
            min(max(y + dy, 0), MAX_COORD),
        )


# =============================================================================
# Map
# =============================================================================


def _check_dimensions(width: int, height: int) -> None:
    for name, value in (("width", width), ("height", height)):
        if value < 0 or value > MAX_COORD:
            raise InvalidDimensions(
                f"Invalid map {name}: {value}\n"
                f"  Expected a value between 0 and {MAX_COORD}"
            )
    if width * height > MAX_COORD:
        raise InvalidDimensions(
            f"Map of {width}x{height} has too many cells\n"
            f"  {width * height} cells do not fit the index range (max {MAX_COORD})"
        )


@dataclass(frozen=True)
class Map:
    """A fixed-size grid of cells, stored row-major."""

    width: int
    height: int
    cells: tuple[CellKind, ...]

    def __post_init__(self) -> None:
        _check_dimensions(self.width, self.height)
        if len(self.cells) != self.width * self.height:
            raise InvalidDimensions(
                f"Map of {self.width}x{self.height} needs {self.width * self.height} cells, "
                f"got {len(self.cells)}"
            )

    @classmethod
    def new(cls, width: int, height: int) -> Map:
        """Create a map filled with VOID."""
        _check_dimensions(width, height)
        return cls(width, height, (CellKind.VOID,) * (width * height))

    def index(self, x: int, y: int) -> int:
        return y * self.width + x

    def try_get(self, x: int, y: int) -> CellKind | None:
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.cells[self.index(x, y)]
        return None

    def get(self, x: int, y: int) -> CellKind:
        """Cell at column x, row y. Anything outside the map is VOID."""
        cell = self.try_get(x, y)
        return CellKind.VOID if cell is None else cell

    def is_crossable(self, x: int, y: int) -> bool:
        return self.get(x, y).is_crossable

    def rows(self) -> Iterator[tuple[CellKind, ...]]:
        for y in range(self.height):
            start = y * self.width
            yield self.cells[start:start + self.width]

    def __str__(self) -> str:
        return "\n".join("".join(cell.symbol for cell in row) for row in self.rows())


# =============================================================================
# Movable items
# =============================================================================


@dataclass(frozen=True)
class Crate:
    """A crate position. Crates are identified by their index on the board."""

    x: int
    y: int

    @property
    def position(self) -> Coord:
        return (self.x, self.y)

    def moved(self, direction: Direction) -> Crate:
        return Crate(*direction.step(self.x, self.y))

    def is_placed(self, board_map: Map) -> bool:
        """True when the crate rests on a target."""
        return board_map.get(self.x, self.y) is CellKind.TARGET


@dataclass(frozen=True)
class PlayerItem:
    """The player token."""

    pass


@dataclass(frozen=True)
class CrateItem:
    """The crate at a given index of the board's crate sequence."""

    index: int


MovableItem = PlayerItem | CrateItem


@dataclass(frozen=True)
class BoardElem:
    """What sits on a board cell: an optional movable item on top of the terrain."""

    item: MovableItem | None
    cell: CellKind


# =============================================================================
# Move outcome
# =============================================================================


@dataclass(frozen=True)
class Blocked:
    """The move was refused and nothing changed."""

    pass


@dataclass(frozen=True)
class Moved:
    """The player moved. `crate` is the index of the pushed crate, if any."""

    crate: int | None = None


MoveOutcome = Blocked | Moved
