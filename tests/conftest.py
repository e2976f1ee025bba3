"""Pytest configuration and fixtures."""

import asyncio
import os

import pytest

# Receiving addresses used by the payment policy in tests
EVM_RECEIVER = "0x1111111111111111111111111111111111111111"
SOLANA_RECEIVER = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"

if not os.environ.get("RUN_INTEGRATION"):
    os.environ.setdefault("WALLET_ADDRESS", EVM_RECEIVER)
    os.environ.setdefault("SOLANA_ADDRESS", SOLANA_RECEIVER)
    # Never talk to a real replay store from unit tests
    os.environ.pop("SUPABASE_URL", None)
    os.environ.pop("SUPABASE_SECRET_KEY", None)
else:
    # Integration tests hit real RPC nodes configured in .env
    from pathlib import Path

    from dotenv import load_dotenv

    load_dotenv(Path(__file__).parent.parent / ".env", override=True)

from txverify.payments.models import (  # noqa: E402
    SOLANA_CHAIN_KEY,
    ChainDescriptor,
    ChainFamily,
    TransferRecord,
)

BASE_USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
SOLANA_USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


class FakeProbe:
    """Scripted chain probe that records its calls."""

    def __init__(
        self,
        key: str,
        result: TransferRecord | None = None,
        exc: Exception | None = None,
        delay: float = 0.0,
        family: ChainFamily = ChainFamily.evm,
    ):
        self.descriptor = ChainDescriptor(
            key=key,
            name=key.title(),
            family=family,
            rpc_url=f"https://{key}.rpc.test",
            asset_address=SOLANA_USDC_MINT if family == ChainFamily.solana else BASE_USDC,
            chain_id=None if family == ChainFamily.solana else 1,
        )
        self.result = result
        self.exc = exc
        self.delay = delay
        self.calls: list[str] = []
        self.cancelled = False

    async def probe(self, reference: str) -> TransferRecord:
        self.calls.append(reference)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.exc is not None:
            raise self.exc
        if self.result is None:
            return TransferRecord(is_valid=False, error="Transaction not found")
        return self.result


@pytest.fixture
def client():
    """Test client with rate limiting off and a fresh payment service."""
    from fastapi.testclient import TestClient

    from txverify.dependencies import reset_payment_service
    from txverify.main import app
    from txverify.rate_limit import limiter

    limiter.enabled = False
    reset_payment_service()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        reset_payment_service()
        limiter.enabled = True


@pytest.fixture
def fake_probe():
    """Factory for FakeProbe instances."""
    return FakeProbe


@pytest.fixture
def fake_solana_probe():
    """Factory for a FakeProbe registered under the Solana key."""

    def _make(**kwargs) -> FakeProbe:
        return FakeProbe(SOLANA_CHAIN_KEY, family=ChainFamily.solana, **kwargs)

    return _make


@pytest.fixture
def usdc_record():
    """Factory for a valid USDC TransferRecord."""

    def _make(
        blockchain: str = "base",
        amount: str = "3.0",
        receiver: str = EVM_RECEIVER,
    ) -> TransferRecord:
        return TransferRecord(
            is_valid=True,
            blockchain=blockchain,
            receiver_address=receiver,
            is_payment_asset=True,
            amount=amount,
        )

    return _make
