"""USDC payment probe for EVM chains (Base, Scroll, any added L2).

Looks a transaction up by hash via JSON-RPC:
1. Fetch the receipt and require status 1
2. Fetch the transaction body
3. If it calls the USDC contract directly, decode ``transfer(to, amount)``
"""

import logging
from typing import Optional

from .decoder import decode_transfer_call, format_units
from .models import ChainDescriptor, ChainFamily, TransferRecord
from .rpc import DEFAULT_RPC_TIMEOUT, RpcCall, rpc_call

logger = logging.getLogger(__name__)


def _normalize_address(address: Optional[str]) -> str:
    """Lowercase an EVM address for comparison."""
    if not address:
        return ""
    return address.lower()


def _parse_status(receipt: dict) -> int:
    """Receipt status as an int (1 = success, 0 = reverted)."""
    status = receipt.get("status")
    if status is None:
        return 0
    if isinstance(status, int):
        return status
    return int(status, 16)


class EvmChainProbe:
    """Fetches and normalizes one transaction from one EVM chain."""

    def __init__(
        self,
        descriptor: ChainDescriptor,
        rpc: RpcCall = rpc_call,
        timeout: float = DEFAULT_RPC_TIMEOUT,
    ):
        if descriptor.family != ChainFamily.evm:
            raise ValueError(f"{descriptor.key} is not an EVM chain")
        self.descriptor = descriptor
        self._rpc = rpc
        self._timeout = timeout

    async def _call(self, method: str, params: list):
        return await self._rpc(self.descriptor.rpc_url, method, params, timeout=self._timeout)

    async def probe(self, reference: str) -> TransferRecord:
        """Look up ``reference`` on this chain.

        Raises:
            httpx.HTTPError, RPCError: when the node cannot be reached
        """
        chain = self.descriptor.key

        receipt = await self._call("eth_getTransactionReceipt", [reference])
        if not receipt:
            return TransferRecord(is_valid=False, error="Transaction not found")

        if _parse_status(receipt) != 1:
            return TransferRecord(is_valid=False, blockchain=chain, error="Transaction failed")

        tx = await self._call("eth_getTransactionByHash", [reference])
        if not tx:
            return TransferRecord(is_valid=False, error="Transaction details not found")

        to_address = tx.get("to")
        usdc_address = _normalize_address(self.descriptor.asset_address)

        if to_address and _normalize_address(to_address) == usdc_address:
            # Direct call on the USDC contract
            data = tx.get("input") or tx.get("data")
            transfer = decode_transfer_call(data)
            if transfer is not None:
                return TransferRecord(
                    is_valid=True,
                    blockchain=chain,
                    receiver_address=transfer.to_address,
                    is_payment_asset=True,
                    amount=format_units(transfer.amount_raw, self.descriptor.asset_decimals),
                )
            logger.debug("USDC call on %s is not a plain transfer", chain)

        # Valid transaction but not a direct USDC transfer
        return TransferRecord(
            is_valid=True,
            blockchain=chain,
            receiver_address=to_address or None,
            is_payment_asset=False,
        )
