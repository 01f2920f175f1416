"""Verified Ethereum execution-layer access backed by Merkle-Patricia proofs."""

__version__ = "0.1.0"

__all__ = [
    "encoding",
    "errors",
    "execution",
    "proof",
    "rpc",
    "slots",
    "state",
    "trie",
    "types",
]