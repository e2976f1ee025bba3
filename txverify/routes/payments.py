"""Payment verification routes."""

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel, Field

from ..dependencies import Payments
from ..logging_config import get_logger
from ..payments import RedemptionOutcome, VerificationVerdict
from ..rate_limit import limiter, redeem_rate_limit, verify_rate_limit

logger = get_logger("txverify.routes.payments")

router = APIRouter(prefix="/api/payments", tags=["payments"])

# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class VerifyRequest(BaseModel):
    """Transaction reference submitted by a client."""
    transaction_hash: str = Field(
        ...,
        min_length=1,
        max_length=256,
        description="EVM tx hash (0x + 64 hex chars) or Solana signature (88 Base58 chars)",
    )
    chain: str | None = Field(None, description="Restrict lookup to one chain key")


class RedeemRequest(BaseModel):
    """Transaction reference to consume."""
    transaction_hash: str = Field(..., min_length=1, max_length=256)


class VerdictInfo(BaseModel):
    """Outcome of looking the reference up on-chain."""
    is_valid: bool
    blockchain: str | None = None
    receiver_address: str | None = None
    is_payment_asset: bool = False
    amount: str | None = None
    error: str | None = None


class VerifyResponse(BaseModel):
    """Verification verdict plus the payment policy decision."""
    verdict: VerdictInfo
    accepted: bool
    reasons: list[str] = []


class RedeemResponse(BaseModel):
    """Result of redeeming a payment reference."""
    outcome: str  # accepted | already_used | invalid_transaction | policy_rejected
    message: str
    verdict: VerdictInfo | None = None
    reasons: list[str] = []


class ChainInfo(BaseModel):
    """A supported chain."""
    key: str
    name: str
    family: str
    asset_address: str
    asset_decimals: int
    chain_id: int | None = None
    explorer_url: str | None = None


class ChainsResponse(BaseModel):
    """Supported chains and the price of one redemption."""
    chains: list[ChainInfo]
    price: str
    currency: str = "USDC"


REDEEM_STATUS_CODES = {
    RedemptionOutcome.accepted: status.HTTP_200_OK,
    RedemptionOutcome.invalid_transaction: status.HTTP_400_BAD_REQUEST,
    RedemptionOutcome.policy_rejected: status.HTTP_402_PAYMENT_REQUIRED,
    RedemptionOutcome.already_used: status.HTTP_409_CONFLICT,
}


def _verdict_info(verdict: VerificationVerdict | None) -> VerdictInfo | None:
    if verdict is None:
        return None
    return VerdictInfo(**verdict.to_dict())


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/chains", response_model=ChainsResponse)
async def list_chains(payments: Payments):
    """List supported chains: EVM chains in registration order, then Solana."""
    return ChainsResponse(
        chains=[ChainInfo(**d.to_dict()) for d in payments.registry.descriptors()],
        price=str(payments.policy.required_amount),
    )


@router.post("/verify", response_model=VerifyResponse)
@limiter.limit(verify_rate_limit)
async def verify_payment(request: Request, body: VerifyRequest, payments: Payments):
    """
    Look a transaction up on-chain and evaluate the payment policy.

    Read-only: the reference is not marked as used.
    """
    if body.chain:
        verdict = await payments.verifier.verify_on_chain(body.transaction_hash, body.chain)
    else:
        verdict = await payments.verifier.verify(body.transaction_hash)

    decision = payments.policy.evaluate(verdict.record if verdict.is_valid else None)
    return VerifyResponse(
        verdict=_verdict_info(verdict),
        accepted=decision.accepted,
        reasons=list(decision.reasons) if verdict.is_valid else [],
    )


@router.post("/redeem", response_model=RedeemResponse)
@limiter.limit(redeem_rate_limit)
async def redeem_payment(
    request: Request,
    response: Response,
    body: RedeemRequest,
    payments: Payments,
):
    """
    Verify a payment and consume its transaction reference.

    - 200: payment accepted, reference recorded
    - 400: malformed reference or no valid transaction found
    - 402: transaction found but insufficient or sent to the wrong address
    - 409: reference already used
    """
    result = await payments.redeem(body.transaction_hash)
    response.status_code = REDEEM_STATUS_CODES[result.outcome]

    if not result.accepted:
        logger.info("Redemption of %s: %s", body.transaction_hash, result.outcome.value)

    return RedeemResponse(
        outcome=result.outcome.value,
        message=result.message,
        verdict=_verdict_info(result.verdict),
        reasons=list(result.decision.reasons) if result.decision else [],
    )
