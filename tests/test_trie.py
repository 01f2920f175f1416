import pytest

from lightexec.trie import ordered_trie_root

EMPTY_TRIE_ROOT = bytes.fromhex(
    "56e81f171bcc55a6ff8345e692c0f86e5b48e01b996cadc001622fb5e363b421"
)


def test_empty_trie_root():
    assert ordered_trie_root([]) == EMPTY_TRIE_ROOT


def test_root_is_32_bytes_and_deterministic():
    items = [b"alpha", b"beta", b"gamma"]
    root = ordered_trie_root(items)
    assert len(root) == 32
    assert ordered_trie_root(list(items)) == root


def test_single_item_differs_from_empty():
    assert ordered_trie_root([b"x"]) != EMPTY_TRIE_ROOT
    assert len(ordered_trie_root([b"x"])) == 32


def test_order_matters():
    assert ordered_trie_root([b"a", b"b"]) != ordered_trie_root([b"b", b"a"])


def test_appending_changes_root():
    assert ordered_trie_root([b"x"]) != ordered_trie_root([b"x", b"y"])


def test_accepts_any_iterable():
    items = [b"one", b"two" * 40, b"three"]
    assert ordered_trie_root(iter(items)) == ordered_trie_root(items)
    assert ordered_trie_root(bytearray(i) for i in items) == ordered_trie_root(items)


@pytest.mark.parametrize("count", [2, 16, 17, 127, 128, 129, 300])
def test_many_items_sensitive_to_every_position(count):
    items = [i.to_bytes(4, "big") * 10 for i in range(count)]
    root = ordered_trie_root(items)
    assert len(root) == 32
    for position in {0, count // 2, count - 1}:
        changed = list(items)
        changed[position] = b"changed"
        assert ordered_trie_root(changed) != root


def test_small_and_large_values_give_distinct_roots():
    small = ordered_trie_root([b"\x01", b"\x02"])
    large = ordered_trie_root([b"\x01" * 64, b"\x02" * 64])
    assert small != large
    assert len(small) == len(large) == 32