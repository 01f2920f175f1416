import pytest

from lightexec.encoding import decode
from lightexec.types import (
    AccessListItem,
    Block,
    BlockTag,
    CallOpts,
    Filter,
    Log,
    ProofResponse,
    Transaction,
    TransactionReceipt,
)

RAW_TX = bytes.fromhex(
    "02f8b20583623355849502f900849502f91082ea6094326c977e6efc84e512bb9c30f76e30c160ed06fb80b844a9059cbb0000000000000000000000007daccf9b3c1ae2fa5c55f1c978aeef700bc83be0000000000000000000000000000000000000000000000001158e460913d00000c080a0e1445466b058b6f883c0222f1b1f3e2ad9bee7b5f688813d86e3fa8f93aa868ca0786d6e7f3aefa8fe73857c65c32e4884d8ba38d0ecfb947fbffb82e8ee80c167"
)
TX_HASH = "2dac1b27ab58b493f902dda8b63979a112398d747f1761c0891777c0983e591f"


def test_transaction_hash():
    assert Transaction.from_raw(RAW_TX).hash.hex() == TX_HASH


def test_blocktag_parse_and_rpc():
    assert BlockTag.parse("latest") == BlockTag.latest()
    assert BlockTag.parse("finalized").to_rpc() == "finalized"
    assert BlockTag.parse("0x10") == BlockTag.at(16)
    assert BlockTag.at(16).to_rpc() == "0x10"


def test_blocktag_invalid():
    with pytest.raises(ValueError):
        BlockTag.parse("pending-ish")


def test_block_without_full_transactions():
    tx = Transaction.from_raw(RAW_TX)
    block = Block(number=3, transactions=[tx])
    slim = block.without_full_transactions()
    assert slim.transactions == [tx.hash]
    assert block.transactions == [tx]
    assert slim.transaction_hashes() == block.transaction_hashes()


def test_callopts_to_json_omits_missing():
    opts = CallOpts(to=b"\x11" * 20, data=b"\x18\x16\x0d\xdd")
    assert opts.to_json() == {"to": "0x" + "11" * 20, "data": "0x18160ddd"}


def test_access_list_item_pads_keys():
    item = AccessListItem.from_json({"address": "0x" + "22" * 20, "storageKeys": ["0x01"]})
    assert item.storage_keys == [b"\0" * 31 + b"\x01"]


def test_proof_response_from_json():
    proof = ProofResponse.from_json(
        {
            "address": "0x" + "33" * 20,
            "balance": "0x48c27395000",
            "codeHash": "0x" + "44" * 32,
            "nonce": "0x1",
            "storageHash": "0x" + "55" * 32,
            "accountProof": ["0xc0"],
            "storageProof": [{"key": "0x2", "value": "0x0", "proof": []}],
        }
    )
    assert proof.balance == int("48c27395000", 16)
    assert proof.account_proof == [b"\xc0"]
    assert proof.storage_proof[0].key == 2


def test_log_rlp_roundtrip():
    log = Log(address=b"\x66" * 20, topics=[b"\x77" * 32], data=b"hi")
    assert decode(log.rlp_encode()) == [log.address, log.topics, log.data]


def test_receipt_from_json():
    receipt = TransactionReceipt.from_json(
        {
            "transactionHash": "0x" + TX_HASH,
            "blockNumber": "0x72e9b5",
            "blockHash": "0x" + "88" * 32,
            "status": "0x1",
            "cumulativeGasUsed": "0x10",
            "logsBloom": "0x" + "00" * 256,
            "logs": [{"address": "0x" + "66" * 20, "topics": [], "data": "0x"}],
            "type": "0x2",
        }
    )
    assert receipt.transaction_hash.hex() == TX_HASH
    assert receipt.block_number == 7530933
    assert receipt.transaction_type == 2
    assert len(receipt.logs) == 1


def test_filter_to_json():
    f = Filter(from_block=BlockTag.at(5), to_block=BlockTag.latest())
    assert f.to_json() == {"fromBlock": "0x5", "toBlock": "latest"}