"""Root hash of an ordered Merkle-Patricia trie, as used for receipt and transaction roots."""

from __future__ import annotations

from itertools import groupby
from typing import Iterable

from .encoding import encode, keccak256


def _nibbles(data: bytes) -> list[int]:
    return [n for byte in data for n in (byte >> 4, byte & 0xF)]


def _hex_prefix(nibbles: list[int], leaf: bool) -> bytes:
    """Compact (hex-prefix) encoding of a nibble path."""
    flag = 2 if leaf else 0
    if len(nibbles) % 2:
        head = [(flag + 1) * 16 + nibbles[0]]
        rest = nibbles[1:]
    else:
        head = [flag * 16]
        rest = nibbles
    pairs = [hi * 16 + lo for hi, lo in zip(rest[0::2], rest[1::2])]
    return bytes(head + pairs)


def _reference(node):
    """Embed a node inline when its encoding is short, otherwise refer to it by hash."""
    encoded = encode(node)
    return node if len(encoded) < 32 else keccak256(encoded)


def _node(pairs: list[tuple[list[int], bytes]], depth: int):
    """Build the trie node covering ``pairs`` (sorted by key) below ``depth`` nibbles."""
    if not pairs:
        return b""
    if len(pairs) == 1:
        key, value = pairs[0]
        return [_hex_prefix(key[depth:], leaf=True), value]

    first, last = pairs[0][0], pairs[-1][0]
    limit = min(len(first), len(last)) - depth
    shared = 0
    while shared < limit and first[depth + shared] == last[depth + shared]:
        shared += 1
    if shared:
        return [
            _hex_prefix(first[depth : depth + shared], leaf=False),
            _reference(_node(pairs, depth + shared)),
        ]

    children: list = [b""] * 16
    value = b""
    deeper = []
    for key, item in pairs:
        if len(key) == depth:
            value = item
        else:
            deeper.append((key, item))
    for nibble, group in groupby(deeper, key=lambda pair: pair[0][depth]):
        children[nibble] = _reference(_node(list(group), depth + 1))
    return children + [value]


def ordered_trie_root(items: Iterable[bytes]) -> bytes:
    """Root of the trie mapping RLP(index) to each item, in order."""
    pairs = sorted((_nibbles(encode(index)), bytes(item)) for index, item in enumerate(items))
    return keccak256(encode(_node(pairs, 0)))