"""Storage slot computation for Solidity mappings keyed by message and dWallet id."""

from __future__ import annotations

from .encoding import keccak256

_U64_MAX = 2**64 - 1


def calculate_mapping_slot_for_key(key: bytes, mapping_slot: int) -> bytes:
    """Return keccak256(key . uint256(mapping_slot)), the slot of ``key`` in a mapping."""
    key = bytes(key)
    if len(key) != 32:
        raise ValueError("mapping key must be 32 bytes")
    if not 0 <= mapping_slot <= _U64_MAX:
        raise ValueError("mapping slot must fit in 64 bits")
    return keccak256(key + mapping_slot.to_bytes(32, "big"))


def calculate_key(message: bytes, dwallet_id: bytes) -> bytes:
    """Return keccak256(message . dwallet_id)."""
    return keccak256(bytes(message) + bytes(dwallet_id))


def get_message_storage_slot(message: str, dwallet_id: bytes, data_slot: int) -> bytes:
    """Storage slot holding the entry for ``message`` and ``dwallet_id``."""
    key = calculate_key(message.encode("utf-8"), dwallet_id)
    return calculate_mapping_slot_for_key(key, data_slot)