"""Execution client that checks untrusted RPC answers against locally trusted blocks."""

from __future__ import annotations

import asyncio
import dataclasses
from typing import Sequence

from .encoding import encode, keccak256
from .errors import (
    BlockNotFound,
    CodeHashMismatch,
    ExecutionError,
    IncorrectRpcNetwork,
    InvalidAccountProof,
    InvalidStorageProof,
    MissingLog,
    NoReceiptForTransaction,
    ReceiptRootMismatch,
    TooManyLogsToProve,
)
from .proof import encode_account, verify_proof
from .rpc import ExecutionRpc
from .state import State
from .trie import ordered_trie_root
from .types import (
    Account,
    Block,
    BlockTag,
    Filter,
    Log,
    ProofResponse,
    Transaction,
    TransactionReceipt,
)

# Logs are proven one receipt set at a time, so keep the number small.
MAX_SUPPORTED_LOGS_NUMBER = 5

KECCAK_EMPTY = keccak256(b"")


def _hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def encode_receipt(receipt: TransactionReceipt) -> bytes:
    """Consensus encoding of a receipt, prefixed by its type for typed transactions."""
    if receipt.status is None:
        raise ValueError("receipt has no status")
    if receipt.transaction_type is None:
        raise ValueError("receipt has no transaction type")
    legacy = encode(
        [
            receipt.status,
            receipt.cumulative_gas_used,
            receipt.logs_bloom,
            [[log.address, list(log.topics), log.data] for log in receipt.logs],
        ]
    )
    if receipt.transaction_type == 0:
        return legacy
    return bytes([receipt.transaction_type & 0xFF]) + legacy


class ExecutionClient:
    """Serves execution data, verifying RPC responses against the blocks in ``state``."""

    def __init__(self, rpc: ExecutionRpc, state: State):
        self.rpc = rpc
        self.state = state

    async def check_rpc(self, chain_id: int) -> None:
        """Raise IncorrectRpcNetwork unless the RPC serves ``chain_id``."""
        if await self.rpc.chain_id() != chain_id:
            raise IncorrectRpcNetwork()

    async def get_proof(
        self, address: bytes, slots: Sequence[bytes], block_number: int
    ) -> ProofResponse:
        """Fetch a raw, unverified proof from the RPC."""
        return await self.rpc.get_proof(address, slots, block_number)

    def _require_block(self, tag) -> Block:
        block = self.state.get_block(tag)
        if block is None:
            raise BlockNotFound(BlockTag.parse(tag))
        return block

    async def get_account(
        self, address: bytes, slots: Sequence[bytes] | None = None, tag=None
    ) -> Account:
        """Fetch an account and the given storage slots, verifying every proof."""
        address = bytes(address)
        block = self._require_block(BlockTag.latest() if tag is None else tag)
        proof = await self.rpc.get_proof(address, list(slots or []), block.number)

        if not verify_proof(
            proof.account_proof,
            block.state_root,
            keccak256(address),
            encode_account(proof),
        ):
            raise InvalidAccountProof(address)

        slot_map: dict[int, int] = {}
        for storage_proof in proof.storage_proof:
            key_hash = keccak256(storage_proof.key.to_bytes(32, "big"))
            if not verify_proof(
                storage_proof.proof,
                proof.storage_hash,
                key_hash,
                encode(storage_proof.value),
            ):
                raise InvalidStorageProof(address, storage_proof.key)
            slot_map[storage_proof.key] = storage_proof.value

        if bytes(proof.code_hash) == KECCAK_EMPTY:
            code = b""
        else:
            code = await self.rpc.get_code(address, block.number)
            code_hash = keccak256(code)
            if code_hash != bytes(proof.code_hash):
                raise CodeHashMismatch(address, _hex(code_hash), _hex(proof.code_hash))

        return Account(
            balance=proof.balance,
            nonce=proof.nonce,
            code=code,
            code_hash=proof.code_hash,
            storage_hash=proof.storage_hash,
            slots=slot_map,
        )

    async def send_raw_transaction(self, data: bytes) -> bytes:
        return await self.rpc.send_raw_transaction(data)

    async def get_block(self, tag, full_tx: bool = False) -> Block:
        block = self._require_block(tag)
        return block if full_tx else block.without_full_transactions()

    async def get_block_by_hash(self, block_hash: bytes, full_tx: bool = False) -> Block:
        block = self.state.get_block_by_hash(block_hash)
        if block is None:
            raise BlockNotFound(_hex(block_hash))
        return block if full_tx else block.without_full_transactions()

    async def get_transaction_by_block_hash_and_index(
        self, block_hash: bytes, index: int
    ) -> Transaction | None:
        return self.state.get_transaction_by_block_and_index(block_hash, index)

    async def get_transaction_receipt(self, tx_hash: bytes) -> TransactionReceipt | None:
        """Fetch a receipt and prove it against the receipts root of its block."""
        receipt = await self.rpc.get_transaction_receipt(tx_hash)
        if receipt is None:
            return None
        if receipt.block_number is None:
            raise ExecutionError(f"receipt for tx {_hex(tx_hash)} has no block number")

        block = self.state.get_block(BlockTag.at(receipt.block_number))
        if block is None:
            return None

        async def fetch(block_tx_hash: bytes) -> TransactionReceipt:
            found = await self.rpc.get_transaction_receipt(block_tx_hash)
            if found is None:
                raise NoReceiptForTransaction(_hex(block_tx_hash))
            return found

        receipts = await asyncio.gather(*(fetch(h) for h in block.transaction_hashes()))
        expected_root = ordered_trie_root(encode_receipt(r) for r in receipts)

        if expected_root != bytes(block.receipts_root) or receipt not in receipts:
            raise ReceiptRootMismatch(_hex(tx_hash))
        return receipt

    async def get_transaction(self, tx_hash: bytes) -> Transaction | None:
        return self.state.get_transaction(tx_hash)

    def _bounded(self, log_filter: Filter) -> Filter:
        """Cap an open-ended filter at the latest block this client has seen."""
        if log_filter.to_block is not None or log_filter.block_hash is not None:
            return log_filter
        latest = self.state.latest_block_number()
        if latest is None:
            raise BlockNotFound(BlockTag.latest())
        tag = BlockTag.at(latest)
        from_block = tag if log_filter.from_block is None else log_filter.from_block
        return dataclasses.replace(log_filter, to_block=tag, from_block=from_block)

    @staticmethod
    def _check_log_count(logs: list[Log]) -> None:
        if len(logs) > MAX_SUPPORTED_LOGS_NUMBER:
            raise TooManyLogsToProve(len(logs), MAX_SUPPORTED_LOGS_NUMBER)

    async def get_logs(self, log_filter: Filter) -> list[Log]:
        logs = await self.rpc.get_logs(self._bounded(log_filter))
        self._check_log_count(logs)
        await self._verify_logs(logs)
        return logs

    async def get_filter_changes(self, filter_id: int) -> list[Log]:
        logs = await self.rpc.get_filter_changes(filter_id)
        self._check_log_count(logs)
        await self._verify_logs(logs)
        return logs

    async def uninstall_filter(self, filter_id: int) -> bool:
        return await self.rpc.uninstall_filter(filter_id)

    async def get_new_filter(self, log_filter: Filter) -> int:
        return await self.rpc.get_new_filter(self._bounded(log_filter))

    async def get_new_block_filter(self) -> int:
        return await self.rpc.get_new_block_filter()

    async def get_new_pending_transaction_filter(self) -> int:
        return await self.rpc.get_new_pending_transaction_filter()

    async def _verify_logs(self, logs: list[Log]) -> None:
        """Check each log appears in the proven receipt of its transaction."""
        for log in logs:
            if log.transaction_hash is None:
                raise ExecutionError("tx hash not found in log")
            receipt = await self.get_transaction_receipt(log.transaction_hash)
            if receipt is None:
                raise NoReceiptForTransaction(_hex(log.transaction_hash))
            encoded = log.rlp_encode()
            if all(entry.rlp_encode() != encoded for entry in receipt.logs):
                raise MissingLog(_hex(log.transaction_hash), log.log_index)