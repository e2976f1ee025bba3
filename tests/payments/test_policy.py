"""Tests for the payment acceptance policy."""

from decimal import Decimal

import pytest

from txverify.config import Settings
from txverify.payments.models import ChainFamily, TransferRecord, VerificationVerdict
from txverify.payments.policy import PolicyChecker, accept_transfer

WALLET = "0xabcdefabcdefabcdefabcdefabcdefabcdef1234"
OTHER_WALLET = "0x2222222222222222222222222222222222222222"
SOLANA_WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
OTHER_SOLANA_WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"

ADDRESSES = {ChainFamily.evm: WALLET, ChainFamily.solana: SOLANA_WALLET}


def usdc(amount="3.0", receiver=WALLET, blockchain="base"):
    return TransferRecord(
        is_valid=True,
        blockchain=blockchain,
        receiver_address=receiver,
        is_payment_asset=True,
        amount=amount,
    )


@pytest.fixture
def checker():
    return PolicyChecker(Decimal("3"), ADDRESSES)


class TestAmountRule:
    @pytest.mark.parametrize("amount", ["3.0", "3", "3.000000", "3.5", "100"])
    def test_enough(self, checker, amount):
        assert checker.accept(usdc(amount=amount)) is True

    @pytest.mark.parametrize("amount", ["2.999999", "0", "0.5"])
    def test_too_little(self, checker, amount):
        decision = checker.evaluate(usdc(amount=amount))

        assert decision.accepted is False
        assert decision.amount_ok is False
        assert decision.address_ok is True
        assert any("below required" in r for r in decision.reasons)

    def test_decimal_not_float_comparison(self):
        checker = PolicyChecker("0.3", ADDRESSES)
        assert checker.accept(usdc(amount="0.3")) is True


class TestAddressRule:
    def test_case_insensitive(self, checker):
        assert checker.accept(usdc(receiver="0x" + WALLET[2:].upper())) is True

    def test_wrong_receiver(self, checker):
        decision = checker.evaluate(usdc(receiver=OTHER_WALLET))

        assert decision.accepted is False
        assert decision.amount_ok is True
        assert decision.address_ok is False
        assert any("does not match" in r for r in decision.reasons)

    def test_solana_uses_solana_address(self, checker):
        assert checker.accept(
            usdc(amount="3.000000", receiver=SOLANA_WALLET, blockchain="solana")
        ) is True
        assert checker.accept(
            usdc(amount="3.000000", receiver=OTHER_SOLANA_WALLET, blockchain="solana")
        ) is False

    def test_evm_address_does_not_satisfy_solana(self):
        checker = PolicyChecker(3, {ChainFamily.evm: WALLET, ChainFamily.solana: None})
        decision = checker.evaluate(
            usdc(amount="3.000000", receiver=SOLANA_WALLET, blockchain="solana")
        )

        assert decision.accepted is False
        assert "no receiving address configured for solana" in decision.reasons

    def test_any_evm_chain_uses_wallet_address(self, checker):
        assert checker.accept(usdc(blockchain="polygon")) is True


class TestNonPayments:
    def test_none(self, checker):
        decision = checker.evaluate(None)

        assert decision.accepted is False
        assert "not a USDC transfer" in decision.reasons

    def test_not_usdc(self, checker):
        record = TransferRecord(is_valid=True, blockchain="base", receiver_address=WALLET)
        assert checker.accept(record) is False

    def test_both_rules_reported(self, checker):
        decision = checker.evaluate(usdc(amount="1", receiver=OTHER_WALLET))

        assert decision.accepted is False
        assert len(decision.reasons) == 2


class TestVerdictInput:
    def test_valid_verdict(self, checker):
        verdict = VerificationVerdict(is_valid=True, record=usdc())
        assert checker.accept(verdict) is True

    def test_invalid_verdict(self, checker):
        verdict = VerificationVerdict(is_valid=False, error="Transaction not found")
        assert checker.accept(verdict) is False


class TestConstruction:
    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            payment_price=Decimal("5"),
            wallet_address=WALLET,
            solana_address=SOLANA_WALLET,
        )
        checker = PolicyChecker.from_settings(settings)

        assert checker.required_amount == Decimal("5")
        assert checker.accept(usdc(amount="5.0")) is True
        assert checker.accept(usdc(amount="3.0")) is False

    def test_accept_transfer(self):
        assert accept_transfer(usdc(), 3, ADDRESSES) is True
        assert accept_transfer(usdc(), "3.01", ADDRESSES) is False
        assert accept_transfer(None, 3, ADDRESSES) is False
