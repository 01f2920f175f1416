"""Execution-layer JSON-RPC backends: a live HTTP endpoint and recorded fixture files."""

from __future__ import annotations

import abc
import asyncio
import itertools
import json
from pathlib import Path
from typing import Any, Sequence

import httpx

from .encoding import encode
from .errors import RpcError
from .types import (
    AccessListItem,
    BlockTag,
    CallOpts,
    Filter,
    Log,
    ProofResponse,
    Transaction,
    TransactionReceipt,
)

_ZERO_ADDRESS = bytes(20)
_DEFAULT_ACCESS_LIST_GAS = 100_000_000


def _to_bytes(value: str | None) -> bytes:
    if value is None:
        return b""
    text = value[2:] if value.startswith(("0x", "0X")) else value
    if len(text) % 2:
        text = "0" + text
    return bytes.fromhex(text)


def _to_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if value.startswith(("0x", "0X")):
        return int(value, 16) if len(value) > 2 else 0
    return int(value)


def _hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def _word(slot: bytes | int) -> str:
    if isinstance(slot, int):
        return _hex(slot.to_bytes(32, "big"))
    return _hex(bytes(slot).rjust(32, b"\0"))


def _access_list(entries) -> list:
    return [
        [_to_bytes(e["address"]), [_to_bytes(k).rjust(32, b"\0") for k in e.get("storageKeys", [])]]
        for e in entries or []
    ]


def _transaction_from_json(data: dict) -> Transaction:
    """Rebuild the signed envelope of a transaction from its JSON-RPC form."""
    if data.get("raw"):
        return Transaction.from_raw(_to_bytes(data["raw"]))

    tx_type = _to_int(data.get("type")) or 0
    nonce = _to_int(data["nonce"])
    gas = _to_int(data.get("gas", data.get("gasLimit")))
    to = _to_bytes(data.get("to"))
    value = _to_int(data.get("value")) or 0
    payload = _to_bytes(data.get("input", data.get("data")))
    r = _to_int(data["r"])
    s = _to_int(data["s"])

    if tx_type == 0:
        fields = [nonce, _to_int(data["gasPrice"]), gas, to, value, payload,
                  _to_int(data["v"]), r, s]
        return Transaction.from_raw(encode(fields))

    chain_id = _to_int(data["chainId"])
    access = _access_list(data.get("accessList"))
    y_parity = _to_int(data.get("yParity", data.get("v")))

    if tx_type == 1:
        fields = [chain_id, nonce, _to_int(data["gasPrice"]), gas, to, value, payload,
                  access, y_parity, r, s]
    elif tx_type == 2:
        fields = [chain_id, nonce, _to_int(data["maxPriorityFeePerGas"]),
                  _to_int(data["maxFeePerGas"]), gas, to, value, payload, access,
                  y_parity, r, s]
    elif tx_type == 3:
        fields = [chain_id, nonce, _to_int(data["maxPriorityFeePerGas"]),
                  _to_int(data["maxFeePerGas"]), gas, to, value, payload, access,
                  _to_int(data["maxFeePerBlobGas"]),
                  [_to_bytes(h) for h in data.get("blobVersionedHashes", [])],
                  y_parity, r, s]
    else:
        raise ValueError(f"unsupported transaction type: {tx_type}")
    return Transaction.from_raw(bytes([tx_type]) + encode(fields))


def _fee_history_from_json(data: dict) -> dict:
    return {
        "oldest_block": _to_int(data.get("oldestBlock")),
        "base_fee_per_gas": [_to_int(v) for v in data.get("baseFeePerGas", [])],
        "gas_used_ratio": [float(v) for v in data.get("gasUsedRatio", [])],
        "reward": [[_to_int(v) for v in row] for row in data.get("reward") or []],
    }


class ExecutionRpc(abc.ABC):
    """Untrusted source of execution-layer data."""

    @abc.abstractmethod
    async def get_proof(self, address: bytes, slots: Sequence[bytes], block: int) -> ProofResponse:
        """Fetch an EIP-1186 account and storage proof at ``block``."""

    @abc.abstractmethod
    async def create_access_list(self, opts: CallOpts, block: BlockTag) -> list[AccessListItem]:
        """Ask the node which accounts and slots a call would touch."""

    @abc.abstractmethod
    async def get_code(self, address: bytes, block: int) -> bytes:
        """Fetch contract code at ``block``."""

    @abc.abstractmethod
    async def send_raw_transaction(self, data: bytes) -> bytes:
        """Broadcast a signed transaction and return its hash."""

    @abc.abstractmethod
    async def get_transaction_receipt(self, tx_hash: bytes) -> TransactionReceipt | None:
        """Fetch the receipt of a transaction, if any."""

    @abc.abstractmethod
    async def get_transaction(self, tx_hash: bytes) -> Transaction | None:
        """Fetch a transaction by hash, if any."""

    @abc.abstractmethod
    async def get_logs(self, log_filter: Filter) -> list[Log]:
        """Fetch logs matching a filter."""

    @abc.abstractmethod
    async def get_filter_changes(self, filter_id: int) -> list[Log]:
        """Fetch logs gathered by an installed filter since the last poll."""

    @abc.abstractmethod
    async def uninstall_filter(self, filter_id: int) -> bool:
        """Remove an installed filter."""

    @abc.abstractmethod
    async def get_new_filter(self, log_filter: Filter) -> int:
        """Install a log filter and return its id."""

    @abc.abstractmethod
    async def get_new_block_filter(self) -> int:
        """Install a new-block filter and return its id."""

    @abc.abstractmethod
    async def get_new_pending_transaction_filter(self) -> int:
        """Install a pending-transaction filter and return its id."""

    @abc.abstractmethod
    async def chain_id(self) -> int:
        """Return the chain id the node serves."""

    @abc.abstractmethod
    async def get_fee_history(
        self, block_count: int, last_block: int, reward_percentiles: Sequence[float]
    ) -> dict:
        """Fetch fee history ending at ``last_block``."""


class HttpRpc(ExecutionRpc):
    """JSON-RPC over HTTP, retrying when the endpoint signals rate limiting."""

    MAX_RETRIES = 100
    INITIAL_BACKOFF = 0.05
    MAX_BACKOFF = 1.0

    def __init__(self, url: str, client: httpx.AsyncClient | None = None):
        self.url = url
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient()
        self._ids = itertools.count(1)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpRpc":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @staticmethod
    def _rate_limited(error: Any) -> bool:
        if not isinstance(error, dict):
            return False
        if error.get("code") in (429, -32005):
            return True
        return "rate limit" in str(error.get("message", "")).lower()

    async def _call(self, label: str, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        delay = self.INITIAL_BACKOFF
        for attempt in range(self.MAX_RETRIES + 1):
            can_retry = attempt < self.MAX_RETRIES
            try:
                response = await self._client.post(self.url, json=payload)
            except httpx.HTTPError as exc:
                raise RpcError(label, exc) from exc

            if response.status_code == 429 and can_retry:
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.MAX_BACKOFF)
                continue

            try:
                response.raise_for_status()
                body = response.json()
            except (httpx.HTTPStatusError, ValueError) as exc:
                raise RpcError(label, exc) from exc
            if not isinstance(body, dict):
                raise RpcError(label, "malformed JSON-RPC response")

            error = body.get("error")
            if error:
                if self._rate_limited(error) and can_retry:
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, self.MAX_BACKOFF)
                    continue
                message = error.get("message", error) if isinstance(error, dict) else error
                raise RpcError(label, message)
            return body.get("result")
        raise RpcError(label, "retries exhausted")

    async def get_proof(self, address, slots, block):
        result = await self._call(
            "get_proof", "eth_getProof", [_hex(address), [_word(s) for s in slots], hex(block)]
        )
        return ProofResponse.from_json(result)

    async def create_access_list(self, opts, block):
        tx: dict[str, Any] = {
            "type": "0x2",
            "to": _hex(opts.to if opts.to is not None else _ZERO_ADDRESS),
            "gas": hex(opts.gas if opts.gas is not None else _DEFAULT_ACCESS_LIST_GAS),
            "maxFeePerGas": "0x0",
            "maxPriorityFeePerGas": "0x0",
            "accessList": [],
        }
        if opts.from_ is not None:
            tx["from"] = _hex(opts.from_)
        if opts.value is not None:
            tx["value"] = hex(opts.value)
        if opts.data is not None:
            tx["data"] = _hex(opts.data)
        result = await self._call(
            "create_access_list", "eth_createAccessList", [tx, BlockTag.parse(block).to_rpc()]
        )
        return [AccessListItem.from_json(item) for item in result.get("accessList", [])]

    async def get_code(self, address, block):
        result = await self._call("get_code", "eth_getCode", [_hex(address), hex(block)])
        return _to_bytes(result)

    async def send_raw_transaction(self, data):
        result = await self._call(
            "send_raw_transaction", "eth_sendRawTransaction", [_hex(data)]
        )
        return _to_bytes(result)

    async def get_transaction_receipt(self, tx_hash):
        result = await self._call(
            "get_transaction_receipt", "eth_getTransactionReceipt", [_hex(tx_hash)]
        )
        return None if result is None else TransactionReceipt.from_json(result)

    async def get_transaction(self, tx_hash):
        result = await self._call(
            "get_transaction", "eth_getTransactionByHash", [_hex(tx_hash)]
        )
        return None if result is None else _transaction_from_json(result)

    async def get_logs(self, log_filter):
        result = await self._call("get_logs", "eth_getLogs", [log_filter.to_json()])
        return [Log.from_json(entry) for entry in result]

    async def get_filter_changes(self, filter_id):
        result = await self._call(
            "get_filter_changes", "eth_getFilterChanges", [hex(filter_id)]
        )
        return [Log.from_json(entry) for entry in result]

    async def uninstall_filter(self, filter_id):
        result = await self._call("uninstall_filter", "eth_uninstallFilter", [hex(filter_id)])
        return bool(result)

    async def get_new_filter(self, log_filter):
        result = await self._call("get_new_filter", "eth_newFilter", [log_filter.to_json()])
        return _to_int(result)

    async def get_new_block_filter(self):
        result = await self._call("get_new_block_filter", "eth_newBlockFilter", [])
        return _to_int(result)

    async def get_new_pending_transaction_filter(self):
        result = await self._call(
            "get_new_pending_transactions", "eth_newPendingTransactionFilter", []
        )
        return _to_int(result)

    async def chain_id(self):
        result = await self._call("chain_id", "eth_chainId", [])
        return _to_int(result)

    async def get_fee_history(self, block_count, last_block, reward_percentiles):
        result = await self._call(
            "fee_history",
            "eth_feeHistory",
            [hex(block_count), hex(last_block), list(reward_percentiles)],
        )
        return _fee_history_from_json(result)


class MockRpc(ExecutionRpc):
    """Serves responses recorded as JSON files in a directory."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self, name: str) -> Any:
        return json.loads((self.path / name).read_text())

    @staticmethod
    def _unavailable(label: str) -> RpcError:
        return RpcError(label, "not available from recorded data")

    async def get_proof(self, address, slots, block):
        return ProofResponse.from_json(self._load("proof.json"))

    async def create_access_list(self, opts, block):
        raise self._unavailable("create_access_list")

    async def get_code(self, address, block):
        text = (self.path / "code.json").read_text().rstrip()
        return _to_bytes(text)

    async def send_raw_transaction(self, data):
        raise self._unavailable("send_raw_transaction")

    async def get_transaction_receipt(self, tx_hash):
        data = self._load("receipt.json")
        return None if data is None else TransactionReceipt.from_json(data)

    async def get_transaction(self, tx_hash):
        data = self._load("transaction.json")
        return None if data is None else _transaction_from_json(data)

    async def get_logs(self, log_filter):
        return [Log.from_json(entry) for entry in self._load("logs.json")]

    async def get_filter_changes(self, filter_id):
        return [Log.from_json(entry) for entry in self._load("logs.json")]

    async def uninstall_filter(self, filter_id):
        raise self._unavailable("uninstall_filter")

    async def get_new_filter(self, log_filter):
        raise self._unavailable("get_new_filter")

    async def get_new_block_filter(self):
        raise self._unavailable("get_new_block_filter")

    async def get_new_pending_transaction_filter(self):
        raise self._unavailable("get_new_pending_transactions")

    async def chain_id(self):
        raise self._unavailable("chain_id")

    async def get_fee_history(self, block_count, last_block, reward_percentiles):
        return _fee_history_from_json(self._load("fee_history.json"))