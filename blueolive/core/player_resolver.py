"""Work out which side a named player had in a game."""

from blueolive.models.enums import PlayerColor


def normalize_player_name(value: str | None) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def _names_match(candidate: str, player: str) -> bool:
    if not candidate or not player:
        return False
    return player in candidate or candidate in player


def resolve_player_color(
    white: str | None, black: str | None, player_name: str
) -> PlayerColor | None:
    """Return the side ``player_name`` played, or None when neither side matches.

    Matching is case-insensitive and accepts containment in either direction,
    so "carlsen" matches "Carlsen, Magnus" and "Magnus Carlsen (NOR)" matches
    "Magnus Carlsen". When both names match, white wins because it is checked
    first.
    """
    player = normalize_player_name(player_name)
    if _names_match(normalize_player_name(white), player):
        return PlayerColor.WHITE
    if _names_match(normalize_player_name(black), player):
        return PlayerColor.BLACK
    return None
