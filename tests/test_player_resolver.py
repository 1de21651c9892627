"""Tests for matching a player name to a side of the board."""

import pytest

from blueolive.core.player_resolver import resolve_player_color
from blueolive.models.enums import PlayerColor


@pytest.mark.parametrize(
    "white,black,player_name,expected",
    [
        ("Ann Smith", "Bob Jones", "Ann Smith", PlayerColor.WHITE),
        ("Carl Weber", "Smith, Ann", "smith, ann", PlayerColor.BLACK),
        ("Carlsen, Magnus", "Nakamura, Hikaru", "carlsen", PlayerColor.WHITE),
        ("Nakamura", "Carlsen", "Magnus Carlsen (NOR)", PlayerColor.BLACK),
        ("  ANN  ", "Bob", "ann", PlayerColor.WHITE),
        ("Dora Klein", "Erik Lund", "Ann", None),
    ],
    ids=[
        "exact-white",
        "case-insensitive-black",
        "player-inside-side-name",
        "side-name-inside-player",
        "trimmed",
        "no-match",
    ],
)
def test_resolve_player_color(white, black, player_name, expected):
    assert resolve_player_color(white, black, player_name) == expected


def test_white_wins_when_both_sides_match():
    assert resolve_player_color("Ann", "Annabel", "Ann") == PlayerColor.WHITE


def test_blank_names_never_match():
    assert resolve_player_color("", "Bob", "Ann") is None
    assert resolve_player_color("Ann", "Bob", "   ") is None
    assert resolve_player_color(None, None, "Ann") is None
