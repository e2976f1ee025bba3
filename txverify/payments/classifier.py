"""Offline classification of transaction references by chain family.

A reference that matches no family must never reach a chain probe.
"""

import re

from .models import ChainFamily

# EVM transaction hash: 0x + 64 hex chars
EVM_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")

# Solana transaction signature: 88 Base58 chars (no 0, O, I, l)
SOLANA_SIGNATURE_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{88}$")

_PATTERNS = {
    ChainFamily.evm: EVM_HASH_PATTERN,
    ChainFamily.solana: SOLANA_SIGNATURE_PATTERN,
}


def classify(reference) -> frozenset[ChainFamily]:
    """Return the chain families whose reference format matches."""
    if not isinstance(reference, str) or not reference:
        return frozenset()
    return frozenset(
        family for family, pattern in _PATTERNS.items() if pattern.fullmatch(reference)
    )


def is_valid_reference(reference, family: ChainFamily) -> bool:
    """Check a reference against a single chain family's format."""
    return family in classify(reference)
