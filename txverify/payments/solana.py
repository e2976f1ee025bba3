"""USDC payment probe for Solana.

Solana transfers are recovered from SPL token balance deltas rather than
from instruction data, so wallet-to-wallet transfers, transfers that create
the recipient's token account and program-mediated transfers all look the
same.
"""

import logging

from .decoder import extract_token_increases, format_solana_amount
from .models import SOLANA_CHAIN_KEY, ChainDescriptor, ChainFamily, TransferRecord
from .rpc import DEFAULT_RPC_TIMEOUT, RpcCall, rpc_call

logger = logging.getLogger(__name__)

# Broadest transaction version the probe understands
MAX_SUPPORTED_TRANSACTION_VERSION = 0


class SolanaChainProbe:
    """Fetches and normalizes one transaction from Solana."""

    def __init__(
        self,
        descriptor: ChainDescriptor,
        rpc: RpcCall = rpc_call,
        timeout: float = DEFAULT_RPC_TIMEOUT,
    ):
        if descriptor.family != ChainFamily.solana:
            raise ValueError(f"{descriptor.key} is not a Solana chain")
        self.descriptor = descriptor
        self._rpc = rpc
        self._timeout = timeout

    async def probe(self, reference: str) -> TransferRecord:
        """Look up a transaction signature on Solana.

        Raises:
            httpx.HTTPError, RPCError: when the node cannot be reached
        """
        transaction = await self._rpc(
            self.descriptor.rpc_url,
            "getTransaction",
            [
                reference,
                {
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": MAX_SUPPORTED_TRANSACTION_VERSION,
                },
            ],
            timeout=self._timeout,
        )

        if not transaction:
            return TransferRecord(is_valid=False, error="Transaction not found on Solana")

        meta = transaction.get("meta") or {}
        if meta.get("err"):
            return TransferRecord(
                is_valid=False,
                blockchain=SOLANA_CHAIN_KEY,
                error="Transaction failed on Solana",
            )

        increases = extract_token_increases(meta, self.descriptor.asset_address)
        if increases:
            transfer = increases[0]
            if len(increases) > 1:
                logger.debug(
                    "Solana tx has %d USDC recipients, using %s",
                    len(increases),
                    transfer.owner,
                )
            return TransferRecord(
                is_valid=True,
                blockchain=SOLANA_CHAIN_KEY,
                receiver_address=transfer.owner,
                is_payment_asset=True,
                amount=format_solana_amount(transfer.amount),
            )

        # Valid transaction but not USDC
        return TransferRecord(is_valid=True, blockchain=SOLANA_CHAIN_KEY, is_payment_asset=False)
