"""
txverify CLI - check payment references from the command line.

Usage:
    txverify verify REFERENCE [--chain KEY] [--json]
    txverify chains [--json]
    txverify classify REFERENCE
"""

import argparse
import asyncio
import json
import sys

from .config import get_settings
from .logging_config import configure_logging, get_logger
from .payments import PaymentVerifier, PolicyChecker, build_registry, classify
from .payments.registry import verification_budget

logger = get_logger("txverify.cli")


def cmd_verify(args, settings) -> int:
    """Look a reference up on-chain and apply the payment policy."""
    registry = build_registry(settings)
    verifier = PaymentVerifier(
        registry,
        timeout=verification_budget(settings, registry),
        parallel=settings.parallel_probes,
    )

    if args.chain:
        verdict = asyncio.run(verifier.verify_on_chain(args.reference, args.chain))
    else:
        verdict = asyncio.run(verifier.verify(args.reference))

    decision = PolicyChecker.from_settings(settings).evaluate(
        verdict.record if verdict.is_valid else None
    )

    if args.json:
        output = verdict.to_dict()
        output["accepted"] = decision.accepted
        output["reasons"] = list(decision.reasons)
        print(json.dumps(output, indent=2))
    elif verdict.is_valid:
        print(f"✓ Found on {verdict.blockchain}")
        print(f"  Receiver: {verdict.receiver_address or '-'}")
        if verdict.is_payment_asset:
            print(f"  Amount:   {verdict.amount} USDC")
        else:
            print("  Not a USDC transfer")
        if decision.accepted:
            print("  Payment accepted")
        else:
            print(f"  Payment rejected: {'; '.join(decision.reasons)}")
    else:
        print(f"✗ {verdict.error}")

    return 0 if verdict.is_valid else 1


def cmd_chains(args, settings) -> int:
    """List supported chains."""
    registry = build_registry(settings)
    descriptors = registry.descriptors()

    if args.json:
        print(json.dumps([d.to_dict() for d in descriptors], indent=2))
        return 0

    for d in descriptors:
        chain_id = f" (chain id {d.chain_id})" if d.chain_id is not None else ""
        print(f"{d.key:<12} {d.name}{chain_id}")
        print(f"{'':<12} USDC {d.asset_address} ({d.asset_decimals} decimals)")
    return 0


def cmd_classify(args, settings) -> int:
    """Show which chain families a reference could belong to."""
    families = sorted(f.value for f in classify(args.reference))
    if not families:
        print("✗ Unsupported or malformed transaction reference")
        return 1
    print(", ".join(families))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="txverify",
        description="Verify USDC payments on EVM chains and Solana",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_verify = subparsers.add_parser("verify", help="Verify a transaction reference")
    p_verify.add_argument("reference", help="EVM tx hash or Solana signature")
    p_verify.add_argument("--chain", help="Only look on this chain")
    p_verify.add_argument("--json", action="store_true", help="Output as JSON")
    p_verify.set_defaults(func=cmd_verify)

    p_chains = subparsers.add_parser("chains", help="List supported chains")
    p_chains.add_argument("--json", action="store_true", help="Output as JSON")
    p_chains.set_defaults(func=cmd_chains)

    p_classify = subparsers.add_parser("classify", help="Classify a reference offline")
    p_classify.add_argument("reference")
    p_classify.set_defaults(func=cmd_classify)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging("DEBUG" if args.verbose else "WARNING")

    return args.func(args, settings)


if __name__ == "__main__":
    sys.exit(main())
