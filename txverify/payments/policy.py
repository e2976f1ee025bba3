"""Business rules applied to a verified transfer."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional, Union

from ..config import Settings
from .models import ChainFamily, TransferRecord, VerificationVerdict, family_of, parse_amount


@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of the policy check, with the reason for each failed rule."""

    accepted: bool
    amount_ok: bool
    address_ok: bool
    reasons: tuple[str, ...] = field(default_factory=tuple)


class PolicyChecker:
    """Accepts a transfer only if it pays enough USDC to the right address.

    Both rules must hold:
    - the record is a USDC transfer of at least ``required_amount``
    - the receiver, case-folded, matches the receiving address configured
      for the record's chain family
    """

    def __init__(
        self,
        required_amount: Union[Decimal, str, int],
        required_addresses: Mapping[ChainFamily, Optional[str]],
    ):
        self.required_amount = Decimal(str(required_amount))
        self.required_addresses = dict(required_addresses)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PolicyChecker":
        return cls(
            required_amount=settings.payment_price,
            required_addresses={
                ChainFamily.evm: settings.wallet_address,
                ChainFamily.solana: settings.solana_address,
            },
        )

    def evaluate(self, record: Optional[TransferRecord]) -> PolicyDecision:
        reasons = []

        amount_ok = False
        if record is None or not record.is_payment_asset:
            reasons.append("not a USDC transfer")
        else:
            amount = parse_amount(record.amount)
            if amount is None:
                reasons.append("missing amount")
            elif amount < self.required_amount:
                reasons.append(f"amount {amount} below required {self.required_amount}")
            else:
                amount_ok = True

        address_ok = False
        family = family_of(record.blockchain) if record else None
        required = self.required_addresses.get(family) if family else None
        receiver = record.receiver_address if record else None
        if not receiver:
            reasons.append("missing receiver address")
        elif not required:
            reasons.append(f"no receiving address configured for {family.value if family else 'unknown chain'}")
        elif receiver.lower() != required.lower():
            reasons.append(f"receiver {receiver} does not match required address")
        else:
            address_ok = True

        return PolicyDecision(
            accepted=amount_ok and address_ok,
            amount_ok=amount_ok,
            address_ok=address_ok,
            reasons=tuple(reasons),
        )

    def accept(self, record: Union[TransferRecord, VerificationVerdict, None]) -> bool:
        """True when the transfer satisfies both rules. Never raises."""
        if isinstance(record, VerificationVerdict):
            record = record.record if record.is_valid else None
        return self.evaluate(record).accepted


def accept_transfer(
    record: Optional[TransferRecord],
    required_amount: Union[Decimal, str, int],
    required_addresses: Mapping[ChainFamily, Optional[str]],
) -> bool:
    """One-shot form of ``PolicyChecker(...).accept(record)``."""
    return PolicyChecker(required_amount, required_addresses).accept(record)
