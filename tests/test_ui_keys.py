from __future__ import annotations

import pytest

from bullscope.broker.models import ListView
from bullscope.ui.keys import Key, parse_keys, view_for_key


def test_parses_arrow_sequences() -> None:
    assert parse_keys("\x1b[A\x1b[B\x1b[C\x1b[D") == [
        Key("up"),
        Key("down"),
        Key("right"),
        Key("left"),
    ]
    assert parse_keys("\x1bOA") == [Key("up")]


def test_parses_control_keys() -> None:
    assert parse_keys("\t\r\n\x7f\x08") == [
        Key("tab"),
        Key("enter"),
        Key("enter"),
        Key("backspace"),
        Key("backspace"),
    ]
    assert parse_keys("\x03") == [Key("c", ctrl=True)]


def test_lone_escape_is_escape_key() -> None:
    assert parse_keys("\x1b") == [Key("escape")]
    assert parse_keys("\x1bq") == [Key("escape"), Key("q")]


def test_unknown_csi_sequence_is_swallowed() -> None:
    # Page Up followed by a normal key
    assert parse_keys("\x1b[5~j") == [Key("j")]


def test_printable_characters_pass_through() -> None:
    keys = parse_keys("jk1g")
    assert [key.name for key in keys] == ["j", "k", "1", "g"]
    assert keys[2].is_digit is True
    assert keys[0].is_digit is False


@pytest.mark.parametrize(
    ("name", "view"),
    [
        ("1", ListView.LATEST),
        ("2", ListView.WAIT),
        ("3", ListView.ACTIVE),
        ("4", ListView.COMPLETED),
        ("5", ListView.FAILED),
        ("6", ListView.DELAYED),
        ("7", ListView.SCHEDULERS),
        ("8", None),
        ("x", None),
    ],
)
def test_view_for_key(name: str, view: ListView | None) -> None:
    assert view_for_key(name) is view
