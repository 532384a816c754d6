import string

import pytest

from playground_store.services.identifiers import ID_BITS, random_public_id, to_base32

ALPHABET = set(string.digits + "abcdefghijklmnopqrstuv")


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0"),
        (9, "9"),
        (10, "a"),
        (31, "v"),
        (32, "10"),
        (1024, "100"),
        (2**ID_BITS - 1, "v" * 26),
    ],
)
def test_to_base32(value, expected):
    assert to_base32(value) == expected


def test_to_base32_rejects_negative():
    with pytest.raises(ValueError):
        to_base32(-1)


def test_random_public_id_shape():
    for _ in range(200):
        token = random_public_id()
        assert 1 <= len(token) <= 26
        assert set(token) <= ALPHABET


def test_random_public_ids_differ():
    assert len({random_public_id() for _ in range(1000)}) == 1000
