"""
JSON-RPC Ledger Reader

Reads anchored roots from an EVM root-registry contract through eth_call.
The contract exposes:

    function getBatchRoot(uint256 batchId) external view returns (bytes32)

Unset batches return bytes32 zero, which is reported as "absent".
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Optional

from core.crypto.hashing import keccak256, normalize_hash
from core.http import HttpClient, HttpError
from core.merkle import EMPTY_TREE_ROOT
from core.schemas.errors import LedgerException, LedgerTransientException


logger = logging.getLogger(__name__)


GET_BATCH_ROOT_SIGNATURE = "getBatchRoot(uint256)"
GET_BATCH_ROOT_SELECTOR = keccak256(GET_BATCH_ROOT_SIGNATURE.encode("ascii"))[:4]

# HTTP statuses that indicate an overloaded or restarting node
TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

_UINT256_MAX = 2**256 - 1


def batch_id_to_uint256(batch_id: str) -> int:
    """
    Map a batch id onto the contract's uint256 key.

    Decimal ids are used as-is; any other id is keyed by
    uint256(keccak256(utf8(batch_id))).
    """
    text = str(batch_id).strip()
    if text.isdigit():
        value = int(text)
        if value <= _UINT256_MAX:
            return value
    return int.from_bytes(keccak256(text.encode("utf-8")), "big")


def encode_get_batch_root(batch_id: str) -> str:
    """ABI-encode a getBatchRoot call."""
    arg = batch_id_to_uint256(batch_id).to_bytes(32, "big")
    return "0x" + (GET_BATCH_ROOT_SELECTOR + arg).hex()


def decode_bytes32_result(result: Any) -> Optional[str]:
    """
    Decode an eth_call result holding a single bytes32.

    Returns:
        0x-prefixed root, or None for an empty or zero result

    Raises:
        LedgerException: If the result is not a 32-byte hex word
    """
    if result in (None, "", "0x"):
        return None
    try:
        root = normalize_hash(result)
    except ValueError as e:
        raise LedgerException(
            f"Unexpected getBatchRoot result: {result!r}",
            details={"result": str(result)},
        ) from e
    if root == EMPTY_TREE_ROOT:
        return None
    return root


class JsonRpcLedgerReader:
    """
    AnchoredRootReader backed by an Ethereum JSON-RPC endpoint.

    Usage:
        reader = JsonRpcLedgerReader(rpc_url, contract_address)
        root = reader.get_anchored_root("42")
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        *,
        http_client: Optional[HttpClient] = None,
        timeout: float = 10.0,
        block_tag: str = "latest",
    ) -> None:
        if not rpc_url:
            raise ValueError("rpc_url is required")
        if not contract_address:
            raise ValueError("contract_address is required")
        self.rpc_url = rpc_url
        self.contract_address = contract_address
        self.timeout = timeout
        self.block_tag = block_tag
        self.http = http_client or HttpClient(timeout=timeout)
        self._ids = itertools.count(1)

    @classmethod
    def from_config(cls, config: Any, *, http_client: Optional[HttpClient] = None) -> "JsonRpcLedgerReader":
        """Build a reader from a LedgerConfig."""
        return cls(
            config.rpc_url,
            config.contract_address,
            http_client=http_client,
            timeout=config.timeout,
        )

    def _rpc(self, method: str, params: list[Any], *, context: str) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            response = self.http.post_json(self.rpc_url, payload, timeout=self.timeout)
        except HttpError as e:
            raise LedgerTransientException(
                f"Ledger RPC transport error: {e}",
                details={"batch_id": context},
            ) from e

        if response.status_code in TRANSIENT_STATUS_CODES:
            raise LedgerTransientException(
                f"Ledger RPC returned HTTP {response.status_code}",
                details={"batch_id": context, "status_code": response.status_code},
            )
        if not response.ok:
            raise LedgerException(
                f"Ledger RPC returned HTTP {response.status_code}",
                details={"batch_id": context, "status_code": response.status_code},
            )

        try:
            body = response.json()
        except ValueError as e:
            raise LedgerException(
                "Ledger RPC returned a non-JSON body",
                details={"batch_id": context},
            ) from e

        if not isinstance(body, dict):
            raise LedgerException(
                "Ledger RPC returned an unexpected body",
                details={"batch_id": context},
            )
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise LedgerException(
                f"Ledger RPC error: {message}",
                details={"batch_id": context, "rpc_error": error},
            )
        return body.get("result")

    def get_anchored_root(self, batch_id: str) -> Optional[str]:
        call = {"to": self.contract_address, "data": encode_get_batch_root(batch_id)}
        result = self._rpc("eth_call", [call, self.block_tag], context=batch_id)
        root = decode_bytes32_result(result)
        logger.debug(f"Anchored root for batch {batch_id}: {root or 'absent'}")
        return root

    def close(self) -> None:
        self.http.close()
