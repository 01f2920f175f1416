from types import SimpleNamespace

from lightexec.encoding import decode, encode, keccak256
from lightexec.proof import (
    encode_account,
    get_nibble,
    is_empty_value,
    paths_match,
    shared_prefix_length,
    skip_length,
    verify_proof,
)


def test_shared_prefix_length():
    path = bytes([0x12, 0x13, 0x14, 0x6F, 0x6C, 0x64, 0x21])
    assert shared_prefix_length(path, 6, bytes([0x6F, 0x6C, 0x63, 0x21])) == 5
    assert shared_prefix_length(path, 5, bytes([0x14, 0x6F, 0x6C, 0x64, 0x11])) == 7


def test_get_nibble():
    assert get_nibble(b"\xab", 0) == 0xA
    assert get_nibble(b"\xab", 1) == 0xB


def test_skip_length():
    assert skip_length(b"") == 0
    assert skip_length(b"\x20") == 2
    assert skip_length(b"\x3a") == 1
    assert skip_length(b"\x5a") == 0


def _leaf(key: bytes, value: bytes):
    node = encode([b"\x20" + key, value])
    return node, keccak256(node)


def test_single_leaf_inclusion():
    key = keccak256(b"key")
    node, root = _leaf(key, b"value")
    assert verify_proof([node], root, key, b"value")
    assert paths_match(b"\x20" + key, 2, key, 0)


def test_single_leaf_wrong_value():
    key = keccak256(b"key")
    node, root = _leaf(key, b"value")
    assert not verify_proof([node], root, key, b"other")


def test_single_leaf_exclusion():
    node, root = _leaf(keccak256(b"key"), b"value")
    other = keccak256(b"other")
    assert verify_proof([node], root, other, b"\x80")


def test_bad_root():
    key = keccak256(b"key")
    node, _ = _leaf(key, b"value")
    assert not verify_proof([node], b"\x00" * 32, key, b"value")


def test_empty_proof_fails():
    assert not verify_proof([], b"\x00" * 32, b"\x00", b"\x80")


def test_is_empty_value():
    assert is_empty_value(b"\x80")
    assert not is_empty_value(b"\x01")


def test_encode_account_fields():
    proof = SimpleNamespace(nonce=1, balance=500, storage_hash=b"\x01" * 32, code_hash=b"\x02" * 32)
    fields = decode(encode_account(proof))
    assert fields == [b"\x01", (500).to_bytes(2, "big"), b"\x01" * 32, b"\x02" * 32]