# lightexec

`lightexec` gives verified access to Ethereum execution-layer data. An
untrusted JSON-RPC node supplies the data. Before the library returns
anything, it checks the data against blocks you have already put into its
state as trusted:

- Account balances, nonces, code and storage slots are checked against the
  block's state root, using Merkle-Patricia proofs from `eth_getProof`.
- Transaction receipts are checked by rebuilding the block's receipts trie
  from every receipt in the block and comparing the root.
- Each log is checked against the proven receipt of the transaction that
  emitted it.

## Installation

```
pip install lightexec
```

With the test dependencies:

```
pip install "lightexec[test]"
```

## Modules

- `lightexec.encoding`: `keccak256`, RLP `encode`, `decode` and
  `decode_list`, and `int_to_bytes`.
- `lightexec.proof`: `verify_proof(proof, root, path, value)` checks an
  inclusion or exclusion proof. `encode_account(proof)` returns the RLP form
  `[nonce, balance, storage_hash, code_hash]`. The helpers it uses are public
  too: `get_nibble`, `skip_length`, `shared_prefix_length`, `paths_match`
  and `is_empty_value`.
- `lightexec.trie`: `ordered_trie_root(items)` returns the root of the trie
  that maps `RLP(index)` to each item.
- `lightexec.slots`: `get_message_storage_slot(message, dwallet_id, data_slot)`
  returns the storage slot of a Solidity mapping entry whose key is
  `keccak256(message + dwallet_id)`. `calculate_key` and
  `calculate_mapping_slot_for_key` compute the two steps separately.
- `lightexec.types`: `BlockTag` (`latest()`, `finalized()`, `at(n)`,
  `parse(...)`), `Block`, `Transaction`, `Account`, `CallOpts`,
  `AccessListItem`, `ProofResponse`, `StorageProof`, `Log`,
  `TransactionReceipt` and `Filter`.
- `lightexec.state.State`: an in-memory window of trusted blocks. It keeps
  at most `history_length` blocks and indexes them by number, hash and
  transaction hash. It also keeps the latest finalized block.
  `State.follow(blocks, finalized)` reads two async iterables of blocks into
  the state.
- `lightexec.rpc`: `ExecutionRpc` is the abstract backend. `HttpRpc` talks
  JSON-RPC over HTTP with `httpx`, and retries with backoff when the node
  reports rate limiting. `MockRpc` answers from recorded JSON files in a
  directory: `proof.json`, `code.json`, `receipt.json`, `transaction.json`,
  `logs.json` and `fee_history.json`. It ignores the call's arguments. Its
  other methods raise `RpcError`.
- `lightexec.execution.ExecutionClient`: combines a `State` and an
  `ExecutionRpc` and verifies the answers. `encode_receipt` gives the
  consensus encoding of a receipt.
- `lightexec.errors`: the `ExecutionError` subclasses, such as
  `InvalidAccountProof`, `InvalidStorageProof`, `CodeHashMismatch`,
  `ReceiptRootMismatch`, `MissingLog`, `TooManyLogsToProve`, `BlockNotFound`
  and `IncorrectRpcNetwork`. It also has the `EvmError` family (`Revert`,
  `EvmGenericError`, `RpcError`) and `decode_revert_reason`.

## Example

```python
import asyncio

from lightexec.execution import ExecutionClient
from lightexec.rpc import HttpRpc
from lightexec.state import State
from lightexec.types import Block, BlockTag


async def main():
    state = State(history_length=64)
    # Push blocks whose headers you trust.
    state.push_block(Block(number=19_000_000, state_root=bytes.fromhex("aa" * 32)))

    async with HttpRpc("http://localhost:8545") as rpc:
        client = ExecutionClient(rpc, state)
        account = await client.get_account(
            bytes.fromhex("00000000219ab540356cbb839cbe05303d7705fa"),
            None,
            BlockTag.latest(),
        )
        print(account.balance)


asyncio.run(main())
```

The state root above is a placeholder, so a real node's proof will not
match it and the call raises `InvalidAccountProof`. Use the state root of a
header you trust.

## Logs and filters

`get_logs` and `get_filter_changes` prove every log they return. They accept
at most five logs per response, and raise `TooManyLogsToProve` when there
are more. A filter may have neither a `to_block` nor a `block_hash`. In that
case `get_logs` and `get_new_filter` end the query at the latest block in
the state, and start it there too when the filter has no `from_block`.

## What this package does not do

- It does not follow the consensus layer. You decide which blocks to trust
  and put them into `State`.
- It does not run contract calls or gas estimates locally. `CallOpts` is
  used only to request access lists from the node.
- It has no command-line tool and does not serve a local RPC endpoint.
- It does not persist anything. The state lives in memory only.