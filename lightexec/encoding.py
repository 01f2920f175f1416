"""Keccak hashing and RLP encoding."""

from __future__ import annotations

from typing import Union

from Crypto.Hash import keccak

RlpItem = Union[bytes, list]


def keccak256(data: bytes) -> bytes:
    """Return the Keccak-256 digest of ``data``."""
    return keccak.new(digest_bits=256, data=bytes(data)).digest()


def int_to_bytes(value: int) -> bytes:
    """Minimal big-endian bytes of a non-negative integer; zero is empty."""
    if value < 0:
        raise ValueError("negative integers cannot be encoded")
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def _length_prefix(length: int, offset: int) -> bytes:
    if length < 56:
        return bytes([offset + length])
    raw = int_to_bytes(length)
    return bytes([offset + 55 + len(raw)]) + raw


def encode(item) -> bytes:
    """RLP-encode bytes, non-negative integers and (nested) lists of them."""
    if isinstance(item, bool):
        raise TypeError("booleans are not RLP items")
    if isinstance(item, int):
        item = int_to_bytes(item)
    if isinstance(item, (bytes, bytearray, memoryview)):
        item = bytes(item)
        if len(item) == 1 and item[0] < 0x80:
            return item
        return _length_prefix(len(item), 0x80) + item
    if isinstance(item, (list, tuple)):
        payload = b"".join(encode(x) for x in item)
        return _length_prefix(len(payload), 0xC0) + payload
    raise TypeError(f"cannot RLP-encode {type(item).__name__}")


def _read(data: bytes, pos: int) -> tuple[bool, int, int]:
    """Return (is_list, payload_start, payload_end) for the item at ``pos``."""
    if pos >= len(data):
        raise ValueError("unexpected end of RLP data")
    prefix = data[pos]
    if prefix < 0x80:
        return False, pos, pos + 1
    if prefix < 0xB8:
        start, length, is_list = pos + 1, prefix - 0x80, False
    elif prefix < 0xC0:
        n = prefix - 0xB7
        start = pos + 1 + n
        length = int.from_bytes(data[pos + 1 : start], "big")
        is_list = False
    elif prefix < 0xF8:
        start, length, is_list = pos + 1, prefix - 0xC0, True
    else:
        n = prefix - 0xF7
        start = pos + 1 + n
        length = int.from_bytes(data[pos + 1 : start], "big")
        is_list = True
    end = start + length
    if end > len(data):
        raise ValueError("RLP item runs past end of data")
    return is_list, start, end


def _items(data: bytes, start: int, end: int):
    pos = start
    while pos < end:
        is_list, s, e = _read(data, pos)
        if e > end:
            raise ValueError("RLP list item overruns its list")
        yield is_list, pos, s, e
        pos = e


def _decode_at(data: bytes, pos: int) -> tuple[RlpItem, int]:
    is_list, start, end = _read(data, pos)
    if not is_list:
        return data[start:end], end
    return [_decode_at(data, p)[0] for _, p, _, _ in _items(data, start, end)], end


def decode(data: bytes) -> RlpItem:
    """Decode one RLP item; the whole input must be consumed."""
    data = bytes(data)
    item, end = _decode_at(data, 0)
    if end != len(data):
        raise ValueError("trailing bytes after RLP item")
    return item


def decode_list(data: bytes) -> list[bytes]:
    """Decode an RLP list into its elements' payloads.

    String elements yield their payload; nested lists yield their raw encoding.
    """
    data = bytes(data)
    is_list, start, end = _read(data, 0)
    if not is_list:
        raise ValueError("RLP item is not a list")
    if end != len(data):
        raise ValueError("trailing bytes after RLP list")
    return [
        data[p:e] if sub else data[s:e] for sub, p, s, e in _items(data, start, end)
    ]