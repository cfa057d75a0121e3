"""
Ledger Module

Root anchoring and anchored-root lookup, with a bounded retry policy for
reads.
"""

from .base import AnchoredRootReader, RootAnchorer
from .memory import InMemoryLedger
from .retry import RetryPolicy, call_with_retry
from .rpc import (
    GET_BATCH_ROOT_SELECTOR,
    JsonRpcLedgerReader,
    batch_id_to_uint256,
    decode_bytes32_result,
    encode_get_batch_root,
)

__all__ = [
    "AnchoredRootReader",
    "RootAnchorer",
    "InMemoryLedger",
    "RetryPolicy",
    "call_with_retry",
    "GET_BATCH_ROOT_SELECTOR",
    "JsonRpcLedgerReader",
    "batch_id_to_uint256",
    "decode_bytes32_result",
    "encode_get_batch_root",
]
