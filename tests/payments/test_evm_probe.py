"""Tests for the EVM chain probe."""

from unittest.mock import AsyncMock, call

import httpx
import pytest

from txverify.payments.evm import EvmChainProbe
from txverify.payments.models import ChainDescriptor, ChainFamily, RPCError

TX_HASH = "0x" + "ab" * 32
USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
RECIPIENT = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
RPC_URL = "https://mainnet.base.org"

BASE = ChainDescriptor(
    key="base",
    name="Base",
    family=ChainFamily.evm,
    rpc_url=RPC_URL,
    asset_address=USDC,
    asset_decimals=6,
    chain_id=8453,
)


def transfer_data(to: str, amount: int) -> str:
    return "0xa9059cbb" + "0" * 24 + to[2:].lower() + format(amount, "064x")


def make_probe(*responses, descriptor=BASE):
    rpc = AsyncMock(side_effect=list(responses))
    return EvmChainProbe(descriptor, rpc=rpc, timeout=5.0), rpc


class TestEvmChainProbe:
    @pytest.mark.asyncio
    async def test_usdc_transfer(self):
        probe, rpc = make_probe(
            {"status": "0x1"},
            {"to": USDC.lower(), "input": transfer_data(RECIPIENT, 3_000_000)},
        )

        record = await probe.probe(TX_HASH)

        assert record.is_valid is True
        assert record.blockchain == "base"
        assert record.is_payment_asset is True
        assert record.amount == "3.0"
        assert record.receiver_address == RECIPIENT
        assert record.error is None
        assert rpc.call_args_list == [
            call(RPC_URL, "eth_getTransactionReceipt", [TX_HASH], timeout=5.0),
            call(RPC_URL, "eth_getTransactionByHash", [TX_HASH], timeout=5.0),
        ]

    @pytest.mark.asyncio
    async def test_amount_uses_chain_decimals(self):
        descriptor = ChainDescriptor(
            key="bsc",
            name="BNB Chain",
            family=ChainFamily.evm,
            rpc_url="https://bsc.rpc.test",
            asset_address=USDC,
            asset_decimals=18,
            chain_id=56,
        )
        probe, _ = make_probe(
            {"status": "0x1"},
            {"to": USDC, "input": transfer_data(RECIPIENT, 25 * 10**17)},
            descriptor=descriptor,
        )

        record = await probe.probe(TX_HASH)

        assert record.blockchain == "bsc"
        assert record.amount == "2.5"

    @pytest.mark.asyncio
    async def test_not_found(self):
        probe, rpc = make_probe(None)

        record = await probe.probe(TX_HASH)

        assert record.is_valid is False
        assert record.blockchain is None
        assert record.error == "Transaction not found"
        assert rpc.await_count == 1

    @pytest.mark.asyncio
    async def test_reverted(self):
        probe, rpc = make_probe({"status": "0x0"})

        record = await probe.probe(TX_HASH)

        assert record.is_valid is False
        assert record.blockchain == "base"
        assert record.error == "Transaction failed"
        assert rpc.await_count == 1

    @pytest.mark.asyncio
    async def test_integer_status(self):
        probe, _ = make_probe({"status": 1}, {"to": RECIPIENT, "input": "0x"})

        record = await probe.probe(TX_HASH)

        assert record.is_valid is True

    @pytest.mark.asyncio
    async def test_details_not_found(self):
        probe, _ = make_probe({"status": "0x1"}, None)

        record = await probe.probe(TX_HASH)

        assert record.is_valid is False
        assert record.error == "Transaction details not found"

    @pytest.mark.asyncio
    async def test_native_transfer_is_not_payment_asset(self):
        probe, _ = make_probe({"status": "0x1"}, {"to": RECIPIENT, "input": "0x"})

        record = await probe.probe(TX_HASH)

        assert record.is_valid is True
        assert record.is_payment_asset is False
        assert record.receiver_address == RECIPIENT
        assert record.amount is None

    @pytest.mark.asyncio
    async def test_other_usdc_method_is_not_payment_asset(self):
        approve = "0x095ea7b3" + transfer_data(RECIPIENT, 1)[10:]
        probe, _ = make_probe({"status": "0x1"}, {"to": USDC, "input": approve})

        record = await probe.probe(TX_HASH)

        assert record.is_valid is True
        assert record.is_payment_asset is False
        assert record.receiver_address == USDC

    @pytest.mark.asyncio
    async def test_undecodable_transfer_degrades(self):
        probe, _ = make_probe(
            {"status": "0x1"},
            {"to": USDC, "input": transfer_data(RECIPIENT, 1)[:40]},
        )

        record = await probe.probe(TX_HASH)

        assert record.is_valid is True
        assert record.is_payment_asset is False

    @pytest.mark.asyncio
    async def test_transfer_on_another_token_is_not_payment_asset(self):
        other_token = "0x" + "22" * 20
        probe, _ = make_probe(
            {"status": "0x1"},
            {"to": other_token, "input": transfer_data(RECIPIENT, 3_000_000)},
        )

        record = await probe.probe(TX_HASH)

        assert record.is_payment_asset is False
        assert record.receiver_address == other_token

    @pytest.mark.asyncio
    async def test_contract_creation(self):
        probe, _ = make_probe({"status": "0x1"}, {"to": None, "input": "0x6080"})

        record = await probe.probe(TX_HASH)

        assert record.is_valid is True
        assert record.receiver_address is None
        assert record.is_payment_asset is False

    @pytest.mark.asyncio
    async def test_data_field_fallback(self):
        probe, _ = make_probe(
            {"status": "0x1"},
            {"to": USDC, "data": transfer_data(RECIPIENT, 500_000)},
        )

        record = await probe.probe(TX_HASH)

        assert record.is_payment_asset is True
        assert record.amount == "0.5"

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self):
        probe, _ = make_probe(httpx.ConnectError("connection refused"))

        with pytest.raises(httpx.ConnectError):
            await probe.probe(TX_HASH)

    @pytest.mark.asyncio
    async def test_rpc_error_propagates(self):
        probe, _ = make_probe(RPCError("header not found", code=-32000))

        with pytest.raises(RPCError):
            await probe.probe(TX_HASH)

    def test_rejects_solana_descriptor(self):
        descriptor = ChainDescriptor(
            key="solana",
            name="Solana",
            family=ChainFamily.solana,
            rpc_url="https://api.mainnet-beta.solana.com",
            asset_address="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        )
        with pytest.raises(ValueError):
            EvmChainProbe(descriptor)
