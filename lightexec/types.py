"""Data types for blocks, transactions, proofs, logs and filters."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import Any, Union

from .encoding import encode, keccak256

PARALLEL_QUERY_BATCH_SIZE = 20

ZERO_HASH = bytes(32)
ZERO_ADDRESS = bytes(20)


def _bytes(value: str | None) -> bytes:
    if value is None:
        return b""
    text = value[2:] if value.startswith(("0x", "0X")) else value
    if len(text) % 2:
        text = "0" + text
    return bytes.fromhex(text)


def _int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if value.startswith(("0x", "0X")):
        return int(value, 16) if len(value) > 2 else 0
    return int(value)


def _hex(value: bytes) -> str:
    return "0x" + bytes(value).hex()


class BlockTagKind(enum.Enum):
    LATEST = "latest"
    FINALIZED = "finalized"
    NUMBER = "number"


@dataclass(frozen=True)
class BlockTag:
    """Selects a block: the latest, the finalized one, or a number."""

    kind: BlockTagKind
    number: int | None = None

    @classmethod
    def latest(cls) -> "BlockTag":
        return cls(BlockTagKind.LATEST)

    @classmethod
    def finalized(cls) -> "BlockTag":
        return cls(BlockTagKind.FINALIZED)

    @classmethod
    def at(cls, number: int) -> "BlockTag":
        if number < 0:
            raise ValueError("block number must be non-negative")
        return cls(BlockTagKind.NUMBER, number)

    @classmethod
    def parse(cls, value: Union[str, int, "BlockTag"]) -> "BlockTag":
        if isinstance(value, BlockTag):
            return value
        if isinstance(value, int):
            return cls.at(value)
        text = value.strip().lower()
        if text == "latest":
            return cls.latest()
        if text == "finalized":
            return cls.finalized()
        try:
            return cls.at(int(text, 16) if text.startswith("0x") else int(text))
        except ValueError:
            raise ValueError(f"invalid block tag: {value!r}") from None

    def to_rpc(self) -> str:
        if self.kind is BlockTagKind.NUMBER:
            return hex(self.number)
        return self.kind.value

    def __str__(self) -> str:
        return str(self.number) if self.kind is BlockTagKind.NUMBER else self.kind.value


@dataclass(frozen=True)
class Transaction:
    """A signed transaction kept in its raw (typed-envelope) form."""

    raw: bytes
    hash: bytes

    @classmethod
    def from_raw(cls, raw: bytes) -> "Transaction":
        raw = bytes(raw)
        if not raw:
            raise ValueError("empty transaction")
        return cls(raw=raw, hash=keccak256(raw))


@dataclass
class Block:
    number: int = 0
    hash: bytes = ZERO_HASH
    parent_hash: bytes = ZERO_HASH
    state_root: bytes = ZERO_HASH
    receipts_root: bytes = ZERO_HASH
    miner: bytes = ZERO_ADDRESS
    timestamp: int = 0
    difficulty: int = 0
    base_fee_per_gas: int = 0
    transactions: list = field(default_factory=list)

    def transaction_hashes(self) -> list[bytes]:
        return [t.hash if isinstance(t, Transaction) else bytes(t) for t in self.transactions]

    def without_full_transactions(self) -> "Block":
        return dataclasses.replace(self, transactions=self.transaction_hashes())


@dataclass
class Account:
    balance: int = 0
    nonce: int = 0
    code_hash: bytes = ZERO_HASH
    code: bytes = b""
    storage_hash: bytes = ZERO_HASH
    slots: dict[int, int] = field(default_factory=dict)


@dataclass
class CallOpts:
    from_: bytes | None = None
    to: bytes | None = None
    gas: int | None = None
    gas_price: int | None = None
    value: int | None = None
    data: bytes | None = None

    def to_json(self) -> dict:
        out: dict[str, str] = {}
        if self.from_ is not None:
            out["from"] = _hex(self.from_)
        if self.to is not None:
            out["to"] = _hex(self.to)
        if self.gas is not None:
            out["gas"] = hex(self.gas)
        if self.gas_price is not None:
            out["gasPrice"] = hex(self.gas_price)
        if self.value is not None:
            out["value"] = hex(self.value)
        if self.data is not None:
            out["data"] = _hex(self.data)
        return out

    def __repr__(self) -> str:
        return (
            f"CallOpts(from={self.from_!r}, to={self.to!r}, value={self.value!r}, "
            f"data={(self.data or b'').hex()!r})"
        )


@dataclass
class AccessListItem:
    address: bytes
    storage_keys: list[bytes] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict) -> "AccessListItem":
        return cls(
            address=_bytes(data["address"]),
            storage_keys=[_bytes(k).rjust(32, b"\0") for k in data.get("storageKeys", [])],
        )


@dataclass
class StorageProof:
    key: int
    value: int
    proof: list[bytes]


@dataclass
class ProofResponse:
    address: bytes
    balance: int
    code_hash: bytes
    nonce: int
    storage_hash: bytes
    account_proof: list[bytes]
    storage_proof: list[StorageProof]

    @classmethod
    def from_json(cls, data: dict) -> "ProofResponse":
        return cls(
            address=_bytes(data["address"]),
            balance=_int(data["balance"]),
            code_hash=_bytes(data["codeHash"]),
            nonce=_int(data["nonce"]),
            storage_hash=_bytes(data["storageHash"]),
            account_proof=[_bytes(n) for n in data["accountProof"]],
            storage_proof=[
                StorageProof(
                    key=_int(p["key"]),
                    value=_int(p["value"]),
                    proof=[_bytes(n) for n in p["proof"]],
                )
                for p in data.get("storageProof", [])
            ],
        )


@dataclass
class Log:
    address: bytes
    topics: list[bytes]
    data: bytes
    block_hash: bytes | None = None
    block_number: int | None = None
    transaction_hash: bytes | None = None
    transaction_index: int | None = None
    log_index: int | None = None
    removed: bool | None = None

    @classmethod
    def from_json(cls, data: dict) -> "Log":
        def opt(key):
            return _bytes(data[key]) if data.get(key) is not None else None

        return cls(
            address=_bytes(data["address"]),
            topics=[_bytes(t) for t in data.get("topics", [])],
            data=_bytes(data.get("data", "0x")),
            block_hash=opt("blockHash"),
            block_number=_int(data.get("blockNumber")),
            transaction_hash=opt("transactionHash"),
            transaction_index=_int(data.get("transactionIndex")),
            log_index=_int(data.get("logIndex")),
            removed=data.get("removed"),
        )

    def rlp_encode(self) -> bytes:
        """Consensus encoding: [address, topics, data]."""
        return encode([self.address, list(self.topics), self.data])


@dataclass
class TransactionReceipt:
    transaction_hash: bytes
    block_number: int | None
    block_hash: bytes | None
    status: int | None
    cumulative_gas_used: int
    logs_bloom: bytes
    logs: list[Log]
    transaction_type: int | None
    transaction_index: int | None = None

    @classmethod
    def from_json(cls, data: dict) -> "TransactionReceipt":
        return cls(
            transaction_hash=_bytes(data["transactionHash"]),
            block_number=_int(data.get("blockNumber")),
            block_hash=_bytes(data["blockHash"]) if data.get("blockHash") else None,
            status=_int(data.get("status")),
            cumulative_gas_used=_int(data.get("cumulativeGasUsed", 0)),
            logs_bloom=_bytes(data.get("logsBloom", "0x")),
            logs=[Log.from_json(entry) for entry in data.get("logs", [])],
            transaction_type=_int(data.get("type", data.get("transactionType"))),
            transaction_index=_int(data.get("transactionIndex")),
        )


@dataclass
class Filter:
    from_block: BlockTag | None = None
    to_block: BlockTag | None = None
    block_hash: bytes | None = None
    address: list[bytes] = field(default_factory=list)
    topics: list = field(default_factory=list)

    def to_json(self) -> dict:
        out: dict[str, Any] = {}
        if self.block_hash is not None:
            out["blockHash"] = _hex(self.block_hash)
        else:
            if self.from_block is not None:
                out["fromBlock"] = self.from_block.to_rpc()
            if self.to_block is not None:
                out["toBlock"] = self.to_block.to_rpc()
        if self.address:
            out["address"] = [_hex(a) for a in self.address]
        if self.topics:
            out["topics"] = [
                None
                if t is None
                else [_hex(x) for x in t]
                if isinstance(t, list)
                else _hex(t)
                for t in self.topics
            ]
        return out