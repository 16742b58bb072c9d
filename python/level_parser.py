"""
Level parsing utilities for Sokoban.

A level is plain text made of three blocks separated by a blank line:
1. The map, one line per row, using the CellKind symbols
2. The player's starting position, as "x,y"
3. One "x,y" line per crate, in crate index order
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from board_types import MAX_COORD, CellKind, Coord, Crate, InvalidDimensions, Map
from sokoban import Board

__all__ = [
    "DEFAULT_LEVEL_FILENAME",
    "LevelParseError",
    "MissingMap",
    "MissingPlayerCoordinates",
    "MissingCratesCoordinates",
    "CantParseMap",
    "InvalidMapSize",
    "CantParsePlayerCoordinates",
    "CantParseCrateCoordinates",
    "parse_map",
    "parse_coordinates",
    "parse_level",
    "format_map",
    "format_level",
    "load_level",
]

logger = logging.getLogger(__name__)

DEFAULT_LEVEL_FILENAME = "map.txt"

BLOCK_SEPARATOR = "\n\n"

_NUMBER = re.compile(r"[0-9]+")


# =============================================================================
# Errors
# =============================================================================


class LevelParseError(ValueError):
    """Base class for every failure to read a level."""


class MissingMap(LevelParseError):
    def __init__(self) -> None:
        super().__init__("Can't find map in level text")


class MissingPlayerCoordinates(LevelParseError):
    def __init__(self) -> None:
        super().__init__(
            "Can't find player coordinates in level text\n"
            "  Expected a block with a single 'x,y' line after the map"
        )


class MissingCratesCoordinates(LevelParseError):
    def __init__(self) -> None:
        super().__init__(
            "Can't find crate coordinates in level text\n"
            "  Expected a block of 'x,y' lines after the player coordinates"
        )


class CantParseMap(LevelParseError):
    """An unknown symbol in the map block."""

    def __init__(self, symbol: str, row: int, col: int, line: str) -> None:
        self.symbol = symbol
        self.row = row
        self.col = col
        self.line = line
        valid = ", ".join(f"{kind.symbol!r} ({kind.name})" for kind in CellKind)
        super().__init__(
            f"Can't parse map: invalid symbol {symbol!r}\n"
            f"  Row {row}: \"{line}\"\n"
            f"  Position: column {col}\n"
            f"  Valid symbols: {valid}"
        )


class InvalidMapSize(LevelParseError):
    """The map block is too large for the coordinate range."""

    def __init__(self, width: int, height: int, reason: str) -> None:
        self.width = width
        self.height = height
        super().__init__(f"Can't parse map: {width}x{height} map is too large\n  {reason}")


class CantParsePlayerCoordinates(LevelParseError):
    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__(
            f"Can't parse player coordinates: \"{line}\"\n"
            f"  Expected format: 'x,y' with non-negative integers"
        )


class CantParseCrateCoordinates(LevelParseError):
    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__(
            f"Can't parse crate coordinates: \"{line}\"\n"
            f"  Expected format: 'x,y' with non-negative integers"
        )


# =============================================================================
# Parsing
# =============================================================================


def _block_lines(block: str) -> list[str]:
    """Lines of a block without the empty lines at either end."""
    lines = block.split("\n")
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return lines


def parse_map(text: str) -> Map:
    """
    Parse a map block.

    The height is the number of lines, the width the length of the longest one.
    Shorter lines are padded with VOID to keep the map rectangular.

    Args:
        text: The map block, one line per row

    Returns:
        The parsed Map

    Raises:
        MissingMap: if the block has no lines
        CantParseMap: on the first unknown symbol
        InvalidMapSize: if the grid does not fit the coordinate range
    """
    lines = _block_lines(text.replace("\r\n", "\n"))
    if not lines:
        raise MissingMap()

    width = max(len(line) for line in lines)
    cells: list[CellKind] = []
    for row_idx, line in enumerate(lines):
        for col_idx, symbol in enumerate(line):
            try:
                cells.append(CellKind.from_symbol(symbol))
            except ValueError:
                raise CantParseMap(symbol, row_idx, col_idx, line) from None
        cells.extend([CellKind.VOID] * (width - len(line)))

    try:
        return Map(width, len(lines), tuple(cells))
    except InvalidDimensions as e:
        raise InvalidMapSize(width, len(lines), str(e).splitlines()[0]) from e


def parse_coordinates(line: str) -> Coord | None:
    """Parse an "x,y" pair of unsigned integers. Returns None if malformed."""
    parts = line.strip().split(",")
    if len(parts) != 2:
        return None
    if not all(_NUMBER.fullmatch(part) for part in parts):
        return None
    x, y = int(parts[0]), int(parts[1])
    if x > MAX_COORD or y > MAX_COORD:
        return None
    return (x, y)


def parse_level(text: str, validate: bool = False) -> Board:
    """
    Parse a complete level into a Board.

    The parser does not check that the player and crates stand on crossable
    cells or that crates don't overlap, unless validate is set.

    Args:
        text: Level text with map, player and crate blocks
        validate: Run Board.validate() on the parsed board

    Returns:
        Board whose original snapshot is the parsed layout

    Raises:
        LevelParseError: if a block is missing or malformed
        InvalidBoard: if validate is set and the layout is inconsistent
    """
    normalized = text.replace("\r\n", "\n")
    blocks = [block for block in normalized.split(BLOCK_SEPARATOR) if _block_lines(block)]

    if not blocks:
        raise MissingMap()
    board_map = parse_map(blocks[0])

    if len(blocks) < 2:
        raise MissingPlayerCoordinates()
    player_lines = _block_lines(blocks[1])
    raw_player = "\n".join(player_lines)
    player = parse_coordinates(raw_player) if len(player_lines) == 1 else None
    if player is None:
        raise CantParsePlayerCoordinates(raw_player)

    if len(blocks) < 3:
        raise MissingCratesCoordinates()
    crates: list[Crate] = []
    for line in _block_lines(blocks[2]):
        coords = parse_coordinates(line)
        if coords is None:
            raise CantParseCrateCoordinates(line.strip())
        crates.append(Crate(*coords))

    if len(blocks) > 3:
        logger.warning("ignoring %d extra block(s) after the crate coordinates", len(blocks) - 3)

    board = Board(board_map, player, crates)
    logger.info(
        "parsed level: %dx%d map, player at %s, %d crates",
        board.width, board.height, player, len(crates),
    )
    if validate:
        board.validate()
    return board


def load_level(path: str | Path = DEFAULT_LEVEL_FILENAME, validate: bool = False) -> Board:
    """Read a level file and parse it."""
    level_path = Path(path)
    logger.info("loading level from %s", level_path)
    return parse_level(level_path.read_text(encoding="utf-8"), validate=validate)


# =============================================================================
# Formatting
# =============================================================================


def format_map(board_map: Map) -> str:
    """Map block text. Trailing VOID cells are kept so the width survives a re-parse."""
    return str(board_map)


def format_level(board: Board) -> str:
    """Level text for the board's current player and crate positions."""
    player = "{},{}".format(*board.player)
    crates = "\n".join(f"{crate.x},{crate.y}" for crate in board.crates)
    return BLOCK_SEPARATOR.join([format_map(board.map), player, crates]) + "\n"
