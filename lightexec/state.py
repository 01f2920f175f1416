"""In-memory window of recent execution blocks, indexed by number, hash and transaction."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import AsyncIterable, Optional, Union

from .types import Block, BlockTag, BlockTagKind, Transaction

TagLike = Union[BlockTag, str, int]


@dataclass(frozen=True)
class TransactionLocation:
    """Where a transaction sits: block number and index within that block."""

    block: int
    index: int


class State:
    """Keeps the last ``history_length`` blocks plus the latest finalized block."""

    def __init__(self, history_length: int):
        self.history_length = history_length
        self._blocks: dict[int, Block] = {}
        self._finalized_block: Block | None = None
        self._hashes: dict[bytes, int] = {}
        self._txs: dict[bytes, TransactionLocation] = {}

    # updates

    def push_block(self, block: Block) -> None:
        """Add ``block``, dropping the oldest blocks beyond the history length."""
        self._hashes[bytes(block.hash)] = block.number
        for index, tx_hash in enumerate(block.transaction_hashes()):
            self._txs[tx_hash] = TransactionLocation(block.number, index)
        self._blocks[block.number] = block

        while len(self._blocks) > self.history_length:
            self._remove_block(min(self._blocks))

    def push_finalized_block(self, block: Block) -> None:
        """Record ``block`` as finalized, replacing a conflicting block at its height."""
        self._finalized_block = block
        old = self._blocks.get(block.number)
        if old is None:
            self.push_block(block)
        elif bytes(old.hash) != bytes(block.hash):
            self._remove_block(old.number)
            self.push_block(block)

    async def follow(
        self,
        blocks: AsyncIterable[Optional[Block]],
        finalized: AsyncIterable[Optional[Block]],
    ) -> None:
        """Consume both streams concurrently until each is exhausted."""

        async def consume_blocks() -> None:
            async for block in blocks:
                if block is not None:
                    self.push_block(block)

        async def consume_finalized() -> None:
            async for block in finalized:
                if block is not None:
                    self.push_finalized_block(block)

        await asyncio.gather(consume_blocks(), consume_finalized())

    def _remove_block(self, number: int) -> None:
        block = self._blocks.pop(number, None)
        if block is None:
            return
        self._hashes.pop(bytes(block.hash), None)
        for tx_hash in block.transaction_hashes():
            self._txs.pop(tx_hash, None)

    # full block fetch

    def get_block(self, tag: TagLike) -> Block | None:
        tag = BlockTag.parse(tag)
        if tag.kind is BlockTagKind.LATEST:
            return self._blocks[max(self._blocks)] if self._blocks else None
        if tag.kind is BlockTagKind.FINALIZED:
            return self._finalized_block
        return self._blocks.get(tag.number)

    def get_block_by_hash(self, block_hash: bytes) -> Block | None:
        number = self._hashes.get(bytes(block_hash))
        return None if number is None else self._blocks.get(number)

    # transaction fetch

    def get_transaction(self, tx_hash: bytes) -> Transaction | None:
        location = self._txs.get(bytes(tx_hash))
        if location is None:
            return None
        block = self._blocks.get(location.block)
        if block is None:
            return None
        return _full_transaction(block, location.index)

    def get_transaction_by_block_and_index(
        self, block_hash: bytes, index: int
    ) -> Transaction | None:
        block = self.get_block_by_hash(block_hash)
        if block is None:
            return None
        return _full_transaction(block, index)

    # block field fetch

    def get_state_root(self, tag: TagLike) -> bytes | None:
        block = self.get_block(tag)
        return None if block is None else block.state_root

    def get_receipts_root(self, tag: TagLike) -> bytes | None:
        block = self.get_block(tag)
        return None if block is None else block.receipts_root

    def get_base_fee(self, tag: TagLike) -> int | None:
        block = self.get_block(tag)
        return None if block is None else block.base_fee_per_gas

    def get_coinbase(self, tag: TagLike) -> bytes | None:
        block = self.get_block(tag)
        return None if block is None else block.miner

    # misc

    def latest_block_number(self) -> int | None:
        return max(self._blocks) if self._blocks else None

    def oldest_block_number(self) -> int | None:
        return min(self._blocks) if self._blocks else None


def _full_transaction(block: Block, index: int) -> Transaction | None:
    if not 0 <= index < len(block.transactions):
        return None
    tx = block.transactions[index]
    # Blocks held by the state carry full transactions; bare hashes have no body.
    return tx if isinstance(tx, Transaction) else None