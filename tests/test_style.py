"""Style codec: JSON text <-> tag list, and the Spanish label tables."""

import logging

import pytest

from boulder_catalog.errors import MalformedStyleData
from boulder_catalog.helpers.style import (
    STYLE_LABELS,
    STYLE_OPTIONS,
    decode_style,
    decode_style_or_empty,
    encode_style,
    height_label,
    style_label,
)


def test_decode_json_text():
    assert decode_style('["Dynamic","Technical"]') == ["Dynamic", "Technical"]


def test_decode_list_is_returned_as_is():
    tags = ["Pockets", "Dynamic"]
    assert decode_style(tags) == ["Pockets", "Dynamic"]


def test_decode_none_and_blank():
    assert decode_style(None) == []
    assert decode_style("") == []
    assert decode_style("   ") == []


@pytest.mark.parametrize("raw", ["[Dynamic", "not json", '{"a": 1}', "[1, 2]", '"Dynamic"'])
def test_decode_malformed_raises(raw):
    with pytest.raises(MalformedStyleData):
        decode_style(raw)


def test_decode_or_empty_logs_and_degrades(caplog):
    with caplog.at_level(logging.WARNING):
        assert decode_style_or_empty("[broken") == []
    assert "Malformed style data" in caplog.text


def test_encode_matches_stored_format():
    assert encode_style(["Dynamic", "Technical"]) == '["Dynamic","Technical"]'
    assert encode_style([]) == "[]"


@pytest.mark.parametrize("tags", [
    [],
    ["Dynamic"],
    ["Technical", "Dynamic", "Pockets"],
    ['"Highball", dangerous', "Reachy, best if tall"],
    ["Tree-filtered sun (am)", "Dinámico", "ñ \\ \"quoted\""],
])
def test_round_trip_preserves_order(tags):
    assert decode_style(encode_style(tags)) == tags


def test_label_table():
    assert len(STYLE_OPTIONS) == 24
    assert style_label("Dynamic") == "Dinámico"
    assert style_label("Flat approach") == "Aproximación plana"
    assert style_label('"Highball", dangerous') == '"Highball", peligroso'
    assert STYLE_LABELS["Slopey holds"] == "Agarres de Sloper"


def test_label_unknown_passes_through():
    assert style_label("UnknownTag") == "UnknownTag"


def test_height_label():
    assert height_label("lowball") == "Lowball"
    assert height_label("highball") == "Highball"
    assert height_label("giant") == "giant"
    assert height_label(None) == ""
    assert height_label("") == ""
