import pytest

from lightexec.encoding import decode, decode_list, encode, int_to_bytes, keccak256


def test_keccak_empty():
    assert keccak256(b"").hex() == (
        "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    )


def test_keccak_of_empty_string_rlp_is_empty_trie_root():
    assert keccak256(encode(b"")).hex() == (
        "56e81f171bcc55a6ff8345e692c0f86e5b48e01b996cadc001622fb5e363b421"
    )


def test_encode_short_string():
    assert encode(b"dog") == b"\x83dog"


def test_encode_single_low_byte_is_itself():
    assert encode(b"\x05") == b"\x05"


def test_int_zero_is_empty():
    assert int_to_bytes(0) == b""
    assert encode(0) == encode(b"")


def test_int_to_bytes_roundtrip():
    for value in (1, 255, 256, 2**64 - 1, 2**255):
        assert int.from_bytes(int_to_bytes(value), "big") == value


def test_negative_int_rejected():
    with pytest.raises(ValueError):
        int_to_bytes(-1)


@pytest.mark.parametrize(
    "item",
    [b"", b"a" * 100, [b"x", [b"y", b""], []], [b"z" * 60] * 3],
)
def test_roundtrip(item):
    assert decode(encode(item)) == item


def test_decode_trailing_rejected():
    with pytest.raises(ValueError):
        decode(encode(b"abc") + b"\x00")


def test_decode_list_payloads():
    data = encode([b"ab", b"\x01", [b"c"]])
    assert decode_list(data) == [b"ab", b"\x01", encode([b"c"])]


def test_decode_list_rejects_string():
    with pytest.raises(ValueError):
        decode_list(encode(b"abc"))