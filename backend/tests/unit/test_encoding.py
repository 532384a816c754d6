import pytest
from pydantic import ValidationError

from playground_store.services.encoding import ReadOnlyListSerializer, escape, unescape


@pytest.mark.parametrize(
    "name, stored",
    [
        ("plain", "plain"),
        ("two words", "two%20words"),
        ("  lead", "%20%20lead"),
        ("100%", "100%25"),
        ("a%20b", "a%2520b"),
        ("mixed %20 text", "mixed%20%2520%20text"),
    ],
)
def test_escape(name, stored):
    assert escape(name) == stored
    assert unescape(stored) == name


def test_escape_leaves_other_characters_alone():
    name = "Ünïcode/tabs\tand+plus?"
    assert escape(name) == name


def test_legacy_rows_without_percent_decode_to_spaces():
    assert unescape("Hello%20World") == "Hello World"


def test_read_only_list_round_trip():
    serializer = ReadOnlyListSerializer()

    raw = serializer.encode(["Main.kt", "with space.kt"])

    assert raw == '["Main.kt","with space.kt"]'
    assert serializer.decode(raw) == ["Main.kt", "with space.kt"]


@pytest.mark.parametrize("raw", [None, ""])
def test_read_only_list_empty_column(raw):
    assert ReadOnlyListSerializer().decode(raw) == []


@pytest.mark.parametrize("raw", ["{not json", '{"a": 1}', "[1, 2]"])
def test_read_only_list_rejects_malformed_column(raw):
    with pytest.raises(ValidationError):
        ReadOnlyListSerializer().decode(raw)
