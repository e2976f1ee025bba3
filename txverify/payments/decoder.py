"""Recover transfer facts from chain-specific transaction payloads.

EVM: ABI-decode a direct ``transfer(address,uint256)`` call on the token
contract.

Solana: diff SPL token balances (pre vs post) for the payment mint; any
owner whose balance grew received that amount.

Both decoders return ``None``/empty results instead of raising when the
payload does not have the expected shape.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, function_signature_to_4byte_selector, to_checksum_address

logger = logging.getLogger(__name__)

TRANSFER_SIGNATURE = "transfer(address,uint256)"
TRANSFER_SELECTOR = function_signature_to_4byte_selector(TRANSFER_SIGNATURE)  # 0xa9059cbb
TRANSFER_ARG_TYPES = ["address", "uint256"]

SOLANA_AMOUNT_QUANTUM = Decimal("0.000001")


@dataclass(frozen=True)
class DecodedTransfer:
    """Arguments of a decoded ERC20 transfer call."""

    to_address: str  # EIP-55 checksummed
    amount_raw: int


@dataclass(frozen=True)
class TokenIncrease:
    """A token account owner whose balance grew within one transaction."""

    owner: str
    amount: Decimal


def format_units(value: int, decimals: int) -> str:
    """Render raw token units as a fixed-point decimal string.

    Always keeps at least one fractional digit: 3000000 with 6 decimals
    gives "3.0", 1500000 gives "1.5".
    """
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10 ** decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0") if decimals else ""
    return f"{sign}{whole}.{frac_str or '0'}"


def decode_transfer_call(data: Optional[str]) -> Optional[DecodedTransfer]:
    """Decode call data as ``transfer(address,uint256)``.

    Returns None when the data is missing, carries a different selector,
    or cannot be ABI-decoded.
    """
    if not data:
        return None

    try:
        payload = decode_hex(data)
    except (ValueError, TypeError):
        logger.debug("Call data is not valid hex")
        return None

    if len(payload) < 4 or payload[:4] != TRANSFER_SELECTOR:
        return None

    try:
        to_address, amount_raw = abi_decode(TRANSFER_ARG_TYPES, payload[4:])
    except (DecodingError, ValueError, TypeError, OverflowError) as e:
        logger.debug("Failed to decode transfer call: %s", e)
        return None

    return DecodedTransfer(
        to_address=to_checksum_address(to_address),
        amount_raw=amount_raw,
    )


def _ui_amount(balance: dict) -> Decimal:
    """UI (human unit) amount of a token balance entry; 0 when absent."""
    token_amount = balance.get("uiTokenAmount") or {}

    amount_str = token_amount.get("uiAmountString")
    if amount_str:
        try:
            return Decimal(amount_str)
        except InvalidOperation:
            pass

    ui_amount = token_amount.get("uiAmount")
    if ui_amount is None:
        return Decimal("0")
    try:
        return Decimal(str(ui_amount))
    except InvalidOperation:
        return Decimal("0")


def extract_token_increases(meta: Optional[dict], mint: str) -> list[TokenIncrease]:
    """Find owners whose balance of ``mint`` increased, in post-balance order.

    An owner without a pre-balance entry (token account created in the
    same transaction) starts from zero.
    """
    if not meta:
        return []

    pre_balances = meta.get("preTokenBalances")
    post_balances = meta.get("postTokenBalances")
    if pre_balances is None or post_balances is None:
        return []

    pre_by_owner: dict[str, Decimal] = {}
    for balance in pre_balances:
        if balance.get("mint") == mint and balance.get("owner"):
            pre_by_owner[balance["owner"]] = _ui_amount(balance)

    increases = []
    for balance in post_balances:
        owner = balance.get("owner")
        if balance.get("mint") != mint or not owner:
            continue

        post_amount = _ui_amount(balance)
        pre_amount = pre_by_owner.get(owner, Decimal("0"))
        if post_amount > pre_amount:
            increases.append(TokenIncrease(owner=owner, amount=post_amount - pre_amount))

    return increases


def format_solana_amount(amount: Decimal) -> str:
    """Render a Solana UI amount with 6 fractional digits."""
    return str(amount.quantize(SOLANA_AMOUNT_QUANTUM))
