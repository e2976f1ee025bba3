"""Data model for cross-chain payment verification.

All amounts are carried as strings in human units (already divided by the
asset's decimal precision) and compared as Decimal, never float.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

SOLANA_CHAIN_KEY = "solana"

EVM_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
SOLANA_ADDRESS_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


class ChainFamily(str, Enum):
    """Transaction model a chain belongs to."""

    evm = "evm"
    solana = "solana"


class PaymentVerificationError(Exception):
    """Raised when payment verification cannot talk to a chain."""
    pass


class RPCError(PaymentVerificationError):
    """JSON-RPC endpoint answered with an error payload."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class UnknownChainError(PaymentVerificationError):
    """Raised when a chain key is not registered."""

    def __init__(self, key: str):
        super().__init__(f"Unsupported chain: {key}")
        self.key = key


@dataclass(frozen=True)
class ChainDescriptor:
    """Static connection and asset parameters for one chain."""

    key: str
    name: str
    family: ChainFamily
    rpc_url: str
    asset_address: str  # USDC contract (EVM) or mint (Solana)
    asset_decimals: int = 6
    chain_id: Optional[int] = None  # EVM only
    explorer_url: Optional[str] = None

    def __post_init__(self):
        if not self.key:
            raise ValueError("Chain key must not be empty")
        if self.asset_decimals < 0:
            raise ValueError(f"Invalid decimals for {self.key}: {self.asset_decimals}")
        if self.family == ChainFamily.evm and self.chain_id is None:
            raise ValueError(f"EVM chain {self.key} requires a chain_id")

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "family": self.family.value,
            "asset_address": self.asset_address,
            "asset_decimals": self.asset_decimals,
            "chain_id": self.chain_id,
            "explorer_url": self.explorer_url,
        }


def family_of(chain_key: Optional[str]) -> Optional[ChainFamily]:
    """Chain family implied by a record's blockchain tag."""
    if not chain_key:
        return None
    if chain_key == SOLANA_CHAIN_KEY:
        return ChainFamily.solana
    return ChainFamily.evm


def is_well_formed_address(address: Optional[str], family: Optional[ChainFamily]) -> bool:
    """Check an address against its chain family's syntax."""
    if not address or family is None:
        return False
    if family == ChainFamily.solana:
        return bool(SOLANA_ADDRESS_PATTERN.match(address))
    return bool(EVM_ADDRESS_PATTERN.match(address))


def parse_amount(amount: Optional[str]) -> Optional[Decimal]:
    """Parse a human-unit amount string; None when absent or malformed."""
    if amount is None:
        return None
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


@dataclass(frozen=True)
class TransferRecord:
    """Normalized result of inspecting one transaction on one chain."""

    is_valid: bool
    blockchain: Optional[str] = None
    receiver_address: Optional[str] = None
    is_payment_asset: bool = False
    amount: Optional[str] = None  # Human-readable, e.g. "3.0"
    error: Optional[str] = None

    def __post_init__(self):
        if self.is_valid and not self.blockchain:
            raise ValueError("A valid transfer record must carry a blockchain tag")
        if self.is_payment_asset:
            amount = parse_amount(self.amount)
            if amount is None or amount < 0:
                raise ValueError(f"Invalid payment amount: {self.amount!r}")
            if not is_well_formed_address(self.receiver_address, family_of(self.blockchain)):
                raise ValueError(
                    f"Invalid receiver address for {self.blockchain}: {self.receiver_address!r}"
                )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "is_valid": self.is_valid,
            "blockchain": self.blockchain,
            "receiver_address": self.receiver_address,
            "is_payment_asset": self.is_payment_asset,
            "amount": self.amount,
            "error": self.error,
        }


@dataclass(frozen=True)
class VerificationVerdict:
    """Aggregate answer for one submitted reference."""

    is_valid: bool
    record: Optional[TransferRecord] = None
    error: Optional[str] = None
    unreachable_chains: tuple[str, ...] = field(default_factory=tuple)

    @property
    def blockchain(self) -> Optional[str]:
        return self.record.blockchain if self.record else None

    @property
    def receiver_address(self) -> Optional[str]:
        return self.record.receiver_address if self.record else None

    @property
    def is_payment_asset(self) -> bool:
        return bool(self.record and self.record.is_payment_asset)

    @property
    def amount(self) -> Optional[str]:
        return self.record.amount if self.record else None

    def to_dict(self) -> dict:
        """Flatten into the external verdict shape."""
        return {
            "is_valid": self.is_valid,
            "blockchain": self.blockchain,
            "receiver_address": self.receiver_address,
            "is_payment_asset": self.is_payment_asset,
            "amount": self.amount,
            "error": self.error,
        }
