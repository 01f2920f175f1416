"""Errors raised while verifying execution-layer data."""

from __future__ import annotations


class ExecutionError(Exception):
    """Base class for execution verification failures."""


def _hex(value: bytes) -> str:
    return "0x" + bytes(value).hex()


class InvalidAccountProof(ExecutionError):
    def __init__(self, address: bytes):
        self.address = address
        super().__init__(f"invalid account proof for address: {_hex(address)}")


class InvalidStorageProof(ExecutionError):
    def __init__(self, address: bytes, slot: int):
        self.address = address
        self.slot = slot
        super().__init__(
            f"invalid storage proof for address: {_hex(address)}, slot: {slot}"
        )


class CodeHashMismatch(ExecutionError):
    def __init__(self, address: bytes, found: str, expected: str):
        self.address = address
        self.found = found
        self.expected = expected
        super().__init__(
            f"code hash mismatch for address: {_hex(address)}, "
            f"found: {found}, expected: {expected}"
        )


class ReceiptRootMismatch(ExecutionError):
    def __init__(self, tx: str):
        self.tx = tx
        super().__init__(f"receipt root mismatch for tx: {tx}")


class MissingTransaction(ExecutionError):
    def __init__(self, tx: str):
        self.tx = tx
        super().__init__(f"missing transaction for tx: {tx}")


class NoReceiptForTransaction(ExecutionError):
    def __init__(self, tx: str):
        self.tx = tx
        super().__init__(f"could not prove receipt for tx: {tx}")


class MissingLog(ExecutionError):
    def __init__(self, tx: str, index: int):
        self.tx = tx
        self.index = index
        super().__init__(f"missing log for transaction: {tx}, index: {index}")


class TooManyLogsToProve(ExecutionError):
    def __init__(self, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(
            f"too many logs to prove: {count}, current limit is: {limit}"
        )


class IncorrectRpcNetwork(ExecutionError):
    def __init__(self):
        super().__init__("execution rpc is for the incorrect network")


class InvalidBaseGasFee(ExecutionError):
    def __init__(self, ours: int, theirs: int, block: int):
        self.ours, self.theirs, self.block = ours, theirs, block
        super().__init__(
            f"Invalid base gas fee helios {ours} vs rpc endpoint {theirs} at block {block}"
        )


class InvalidGasUsedRatio(ExecutionError):
    def __init__(self, ours: float, theirs: float, block: int):
        self.ours, self.theirs, self.block = ours, theirs, block
        super().__init__(
            f"Invalid gas used ratio of helios {ours} vs rpc endpoint {theirs} at block {block}"
        )


class BlockNotFound(ExecutionError):
    def __init__(self, block):
        self.block = block
        super().__init__(f"Block {block} not found")


class EmptyExecutionPayload(ExecutionError):
    def __init__(self):
        super().__init__("Helios Execution Payload is empty")


class InvalidBlockRange(ExecutionError):
    def __init__(self, requested: int, oldest: int):
        self.requested, self.oldest = requested, oldest
        super().__init__(
            f"User query for block {requested} but helios oldest block is {oldest}"
        )


class EvmError(Exception):
    """Base class for failures of local EVM calls."""


class Revert(EvmError):
    def __init__(self, data: bytes | None = None):
        self.data = data
        shown = _hex(data) if data is not None else "None"
        super().__init__(f"execution reverted: {shown}")


class EvmGenericError(EvmError):
    def __init__(self, message: str):
        self.message = message
        super().__init__(f"evm error: {message!r}")


class RpcError(EvmError):
    def __init__(self, method: str, cause: object = None):
        self.method = method
        self.cause = cause
        super().__init__(f"rpc error: {method}: {cause}")


def decode_revert_reason(data: bytes) -> str | None:
    """Decode an ABI ``Error(string)`` payload, skipping the 4-byte selector."""
    data = bytes(data)
    if len(data) < 4:
        return None
    body = data[4:]
    if len(body) < 64:
        return None
    offset = int.from_bytes(body[:32], "big")
    if offset + 32 > len(body):
        return None
    length = int.from_bytes(body[offset : offset + 32], "big")
    start = offset + 32
    if start + length > len(body):
        return None
    try:
        return body[start : start + length].decode("utf-8")
    except UnicodeDecodeError:
        return None