"""Cross-chain USDC payment verification (EVM chains and Solana)."""

from .classifier import classify, is_valid_reference
from .models import (
    SOLANA_CHAIN_KEY,
    ChainDescriptor,
    ChainFamily,
    PaymentVerificationError,
    RPCError,
    TransferRecord,
    UnknownChainError,
    VerificationVerdict,
)
from .policy import PolicyChecker, PolicyDecision, accept_transfer
from .registry import ChainProbe, ChainRegistry, build_registry
from .replay import InMemoryReplayGuard, ReplayGuard, SupabaseReplayGuard
from .service import PaymentService, RedemptionOutcome, RedemptionResult, get_price
from .verification import PaymentVerifier

__all__ = [
    "classify",
    "is_valid_reference",
    "SOLANA_CHAIN_KEY",
    "ChainDescriptor",
    "ChainFamily",
    "TransferRecord",
    "VerificationVerdict",
    "PaymentVerificationError",
    "RPCError",
    "UnknownChainError",
    "ChainProbe",
    "ChainRegistry",
    "build_registry",
    "PaymentVerifier",
    "PolicyChecker",
    "PolicyDecision",
    "accept_transfer",
    "ReplayGuard",
    "InMemoryReplayGuard",
    "SupabaseReplayGuard",
    "PaymentService",
    "RedemptionOutcome",
    "RedemptionResult",
    "get_price",
]
