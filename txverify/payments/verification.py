"""Cross-chain payment verification.

Resolves an untrusted transaction reference to a verdict by:
1. Classifying the reference format offline (EVM hash vs Solana signature)
2. Probing every candidate chain (all EVM chains in registration order,
   then Solana) until one reports a valid transaction
3. Returning the first valid record, or an aggregate error

Per-chain faults (not found, unreachable node, undecodable payload) never
abort the search. An EVM-style hash cannot say which EVM chain it belongs
to, so the first registered chain that knows the hash wins; a collision
across chains is not detected.
"""

import asyncio
import dataclasses
import logging
from typing import Optional, Sequence

import httpx

from ..logging_config import log_probe_result
from .classifier import classify, is_valid_reference
from .models import PaymentVerificationError, TransferRecord, UnknownChainError, VerificationVerdict
from .registry import ChainProbe, ChainRegistry

logger = logging.getLogger(__name__)

MALFORMED_REFERENCE_ERROR = "Unsupported or malformed transaction reference"
NOT_FOUND_ERROR = "Transaction not found on any supported blockchain"
TIMEOUT_ERROR = "Verification timed out"

DEFAULT_VERIFICATION_TIMEOUT = 30.0

# (probe, record or None when the chain could not be reached)
_Attempt = tuple[ChainProbe, Optional[TransferRecord]]

# chain key -> record, filled in as each probe completes
_Finished = dict[str, Optional[TransferRecord]]


class PaymentVerifier:
    """Tries each candidate chain until one yields a valid transaction."""

    def __init__(
        self,
        registry: ChainRegistry,
        timeout: float = DEFAULT_VERIFICATION_TIMEOUT,
        parallel: bool = False,
    ):
        self.registry = registry
        self.timeout = timeout
        self.parallel = parallel

    async def verify(self, reference: str) -> VerificationVerdict:
        """Verify a reference against every chain its format allows."""
        families = classify(reference)
        if not families:
            logger.info("Rejected malformed reference %r", str(reference)[:100])
            return VerificationVerdict(is_valid=False, error=MALFORMED_REFERENCE_ERROR)

        probes = self.registry.probes_for(families)
        if not probes:
            return VerificationVerdict(is_valid=False, error=NOT_FOUND_ERROR)

        return await self._run_with_budget(reference, probes)

    async def verify_on_chain(self, reference: str, chain_key: str) -> VerificationVerdict:
        """Verify a reference against a single named chain."""
        try:
            probe = self.registry.get(chain_key)
        except UnknownChainError as e:
            return VerificationVerdict(is_valid=False, error=str(e))

        if not is_valid_reference(reference, probe.descriptor.family):
            return VerificationVerdict(is_valid=False, error=MALFORMED_REFERENCE_ERROR)

        return await self._run_with_budget(reference, (probe,))

    async def _run_with_budget(
        self,
        reference: str,
        probes: Sequence[ChainProbe],
    ) -> VerificationVerdict:
        finished: _Finished = {}
        runner = self._fan_out if self.parallel else self._sequential
        try:
            return await asyncio.wait_for(
                runner(reference, probes, finished), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Verification of %s exceeded %.1fs budget", reference[:10], self.timeout
            )
            return _timed_out(probes, finished)

    async def _attempt(
        self,
        probe: ChainProbe,
        reference: str,
        finished: _Finished,
    ) -> Optional[TransferRecord]:
        """Probe one chain, absorbing transport faults."""
        chain = probe.descriptor.key
        record = None
        try:
            record = await probe.probe(reference)
        except httpx.HTTPError as e:
            logger.warning("HTTP error verifying %s on %s: %s", reference, chain, e)
        except PaymentVerificationError as e:
            logger.warning("Verification error for %s on %s: %s", reference, chain, e)
        except Exception:
            logger.exception("Unexpected error verifying %s on %s", reference, chain)
        else:
            log_probe_result(logger, reference, chain, record.is_valid, record.error)

        finished[chain] = record
        return record

    async def _sequential(
        self,
        reference: str,
        probes: Sequence[ChainProbe],
        finished: _Finished,
    ) -> VerificationVerdict:
        attempts: list[_Attempt] = []
        for probe in probes:
            record = await self._attempt(probe, reference, finished)
            attempts.append((probe, record))
            if record is not None and record.is_valid:
                return _success(record, attempts)
        return _exhausted(attempts)

    async def _fan_out(
        self,
        reference: str,
        probes: Sequence[ChainProbe],
        finished: _Finished,
    ) -> VerificationVerdict:
        """Probe all chains concurrently; first valid in probing order wins."""
        tasks = [
            asyncio.create_task(self._attempt(probe, reference, finished)) for probe in probes
        ]
        attempts: list[_Attempt] = []
        try:
            for probe, task in zip(probes, tasks):
                record = await task
                attempts.append((probe, record))
                if record is not None and record.is_valid:
                    return _success(record, attempts)
            return _exhausted(attempts)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)


def _unreachable(attempts: Sequence[_Attempt]) -> tuple[str, ...]:
    return tuple(probe.descriptor.key for probe, record in attempts if record is None)


def _success(record: TransferRecord, attempts: Sequence[_Attempt]) -> VerificationVerdict:
    return VerificationVerdict(
        is_valid=True,
        record=record,
        unreachable_chains=_unreachable(attempts),
    )


def _exhausted(
    attempts: Sequence[_Attempt],
    not_found: str = NOT_FOUND_ERROR,
) -> VerificationVerdict:
    """Verdict when no chain produced a valid transaction."""
    unreachable = _unreachable(attempts)

    # A transaction that exists but failed on-chain identifies its chain
    for _, record in attempts:
        if record is not None and record.blockchain:
            return VerificationVerdict(
                is_valid=False,
                record=record,
                error=record.error,
                unreachable_chains=unreachable,
            )

    error = not_found
    if unreachable:
        error = f"{not_found} (unreachable: {', '.join(unreachable)})"
    return VerificationVerdict(is_valid=False, error=error, unreachable_chains=unreachable)


def _timed_out(probes: Sequence[ChainProbe], finished: _Finished) -> VerificationVerdict:
    """Verdict from the chains that answered before the budget ran out.

    Chains still in flight count as unreachable.
    """
    attempts = [(probe, finished.get(probe.descriptor.key)) for probe in probes]
    for _, record in attempts:
        if record is not None and record.is_valid:
            return _success(record, attempts)

    verdict = _exhausted(attempts, not_found=TIMEOUT_ERROR)
    if verdict.record is not None:
        verdict = dataclasses.replace(
            verdict, error=f"{verdict.error} ({TIMEOUT_ERROR.lower()})"
        )
    return verdict
