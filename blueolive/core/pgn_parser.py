"""
Splitting of multi-game PGN text and extraction of header metadata.

The parser is deliberately lenient: it never rejects a record. Callers that
need to drop malformed games use ``is_valid_pgn``.
"""

import re
from dataclasses import dataclass

from blueolive.models.pydantic_models.analysis import GameMetadata

# A blank line (optionally holding whitespace, \r\n safe) followed by the next header block
GAME_SPLIT_RE = re.compile(r"\n\s*\n(?=\[)")

_ANY_HEADER_RE = re.compile(r'\[\w+\s+"[^"]*"\]')
# A first move number standing on its own, e.g. "1. e4" or "1.d4"
_FIRST_MOVE_RE = re.compile(r"(?:^|\s)1\.", re.MULTILINE)

UNKNOWN_PLAYER = "Unknown"
UNKNOWN_RESULT = "*"


@dataclass
class ParsedGame:
    pgn: str
    metadata: GameMetadata


def get_header(pgn: str, name: str) -> str | None:
    match = re.search(rf'\[{re.escape(name)}\s+"([^"]*)"\]', pgn, re.IGNORECASE)
    return match.group(1) if match else None


def parse_headers(pgn: str) -> GameMetadata:
    return GameMetadata(
        white=get_header(pgn, "White") or UNKNOWN_PLAYER,
        black=get_header(pgn, "Black") or UNKNOWN_PLAYER,
        result=get_header(pgn, "Result") or UNKNOWN_RESULT,
        event=get_header(pgn, "Event"),
        date=get_header(pgn, "Date"),
        eco=get_header(pgn, "ECO"),
        opening=get_header(pgn, "Opening"),
    )


def split_pgn(pgn_content: str) -> list[ParsedGame]:
    """Split a multi-game PGN file into individual games, in file order."""
    if not pgn_content or not pgn_content.strip():
        return []

    games: list[ParsedGame] = []
    for chunk in GAME_SPLIT_RE.split(pgn_content.strip()):
        trimmed = chunk.strip()
        if not trimmed:
            continue
        games.append(ParsedGame(pgn=trimmed, metadata=parse_headers(trimmed)))
    return games


def movetext(pgn: str) -> str:
    """The game text with every header tag removed."""
    return _ANY_HEADER_RE.sub("", pgn).strip()


def is_valid_pgn(pgn: str) -> bool:
    """A game needs at least one header tag and a first numbered move after the headers."""
    if not _ANY_HEADER_RE.search(pgn):
        return False
    return bool(_FIRST_MOVE_RE.search(movetext(pgn)))
