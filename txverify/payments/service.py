"""Payment redemption: verification + policy + replay protection.

This is the seam callers use before doing paid work. A redemption is
accepted only when the reference resolves to a valid on-chain USDC
transfer, the transfer satisfies the payment policy, and this caller is
the first to claim the reference.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ..config import Settings, get_settings
from .models import VerificationVerdict
from .policy import PolicyChecker, PolicyDecision
from .registry import ChainRegistry, build_registry, verification_budget
from .replay import ReplayGuard
from .rpc import RpcCall, rpc_call
from .verification import PaymentVerifier

logger = logging.getLogger(__name__)


class RedemptionOutcome(str, Enum):
    """Possible results of redeeming a payment reference."""

    accepted = "accepted"
    already_used = "already_used"
    invalid_transaction = "invalid_transaction"
    policy_rejected = "policy_rejected"


@dataclass(frozen=True)
class RedemptionResult:
    outcome: RedemptionOutcome
    message: str
    verdict: VerificationVerdict | None = None
    decision: PolicyDecision | None = None

    @property
    def accepted(self) -> bool:
        return self.outcome == RedemptionOutcome.accepted

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "message": self.message,
            "verdict": self.verdict.to_dict() if self.verdict else None,
            "reasons": list(self.decision.reasons) if self.decision else [],
        }


def get_price(settings: Settings | None = None) -> Decimal:
    """Price of one redemption in USDC."""
    if settings is None:
        settings = get_settings()
    return settings.payment_price


class PaymentService:
    """Wires the verifier, the policy checker and the replay guard together."""

    def __init__(
        self,
        verifier: PaymentVerifier,
        policy: PolicyChecker,
        replay_guard: ReplayGuard,
    ):
        self.verifier = verifier
        self.policy = policy
        self.replay_guard = replay_guard

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        replay_guard: ReplayGuard,
        registry: ChainRegistry | None = None,
        rpc: RpcCall = rpc_call,
    ) -> PaymentService:
        if registry is None:
            registry = build_registry(settings, rpc=rpc)

        verifier = PaymentVerifier(
            registry,
            timeout=verification_budget(settings, registry),
            parallel=settings.parallel_probes,
        )
        return cls(verifier, PolicyChecker.from_settings(settings), replay_guard)

    @property
    def registry(self) -> ChainRegistry:
        return self.verifier.registry

    async def check(self, reference: str) -> tuple[VerificationVerdict, PolicyDecision]:
        """Verify and evaluate policy without consuming the reference."""
        verdict = await self.verifier.verify(reference)
        decision = self.policy.evaluate(verdict.record if verdict.is_valid else None)
        return verdict, decision

    async def redeem(self, reference: str) -> RedemptionResult:
        """Verify a payment reference and consume it if acceptable."""
        if await self.replay_guard.is_used(reference):
            return RedemptionResult(
                outcome=RedemptionOutcome.already_used,
                message="Transaction already used",
            )

        verdict, decision = await self.check(reference)

        if not verdict.is_valid:
            return RedemptionResult(
                outcome=RedemptionOutcome.invalid_transaction,
                message=verdict.error or "Invalid transaction",
                verdict=verdict,
            )

        if not decision.accepted:
            logger.info(
                "Payment %s on %s rejected: %s",
                reference,
                verdict.blockchain,
                "; ".join(decision.reasons),
            )
            return RedemptionResult(
                outcome=RedemptionOutcome.policy_rejected,
                message="Invalid transaction",
                verdict=verdict,
                decision=decision,
            )

        # Atomic check-and-set; a concurrent redemption may have won the race
        if not await self.replay_guard.claim(reference, verdict.blockchain):
            return RedemptionResult(
                outcome=RedemptionOutcome.already_used,
                message="Transaction already used",
                verdict=verdict,
                decision=decision,
            )

        logger.info(
            "Accepted payment %s on %s (amount=%s USDC)",
            reference,
            verdict.blockchain,
            verdict.amount,
        )
        return RedemptionResult(
            outcome=RedemptionOutcome.accepted,
            message="Payment accepted",
            verdict=verdict,
            decision=decision,
        )

    async def release(self, reference: str) -> None:
        """Give back an accepted reference whose paid work failed.

        The reference can be redeemed again afterwards.
        """
        await self.replay_guard.release(reference)
        logger.info("Released payment %s", reference)
