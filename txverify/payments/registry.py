"""Catalogue of supported chains and the probes that inspect them.

The registry is read-mostly. Writers build a new snapshot under a lock and
swap it in; readers grab the current snapshot without locking, so an
in-flight verification sees either the old chain set or the new one.
"""

import dataclasses
import logging
import threading
from typing import Iterable, Optional, Protocol, Union, runtime_checkable

from ..config import Settings
from .evm import EvmChainProbe
from .models import (
    SOLANA_CHAIN_KEY,
    ChainDescriptor,
    ChainFamily,
    TransferRecord,
    UnknownChainError,
)
from .rpc import DEFAULT_RPC_TIMEOUT, RpcCall, rpc_call
from .solana import SolanaChainProbe

logger = logging.getLogger(__name__)


@runtime_checkable
class ChainProbe(Protocol):
    """Inspects one chain for one transaction reference."""

    descriptor: ChainDescriptor

    async def probe(self, reference: str) -> TransferRecord:
        """Return a TransferRecord; absence is ``is_valid=False``, not an error."""
        ...


PROBE_TYPES = {
    ChainFamily.evm: EvmChainProbe,
    ChainFamily.solana: SolanaChainProbe,
}


@dataclasses.dataclass(frozen=True)
class _Snapshot:
    evm: dict  # key -> ChainProbe, registration order
    solana: Optional[ChainProbe]

    @property
    def ordered(self) -> tuple:
        probes = tuple(self.evm.values())
        if self.solana is not None:
            probes += (self.solana,)
        return probes


class ChainRegistry:
    """Mutable-at-runtime set of chain probes keyed by chain key.

    EVM chains keep their registration order; Solana always comes last.
    Re-registering a key replaces its probe in place (last write wins).
    """

    def __init__(
        self,
        descriptors: Iterable[ChainDescriptor] = (),
        rpc: RpcCall = rpc_call,
        rpc_timeout: float = DEFAULT_RPC_TIMEOUT,
    ):
        self._rpc = rpc
        self._rpc_timeout = rpc_timeout
        self._lock = threading.Lock()
        self._snapshot = _Snapshot(evm={}, solana=None)
        for descriptor in descriptors:
            self.register(descriptor)

    def _build_probe(self, descriptor: ChainDescriptor) -> ChainProbe:
        probe_type = PROBE_TYPES[descriptor.family]
        return probe_type(descriptor, rpc=self._rpc, timeout=self._rpc_timeout)

    def register(
        self,
        key_or_descriptor: Union[str, ChainDescriptor],
        descriptor: Optional[ChainDescriptor] = None,
    ) -> ChainProbe:
        """Add or replace a chain.

        Accepts either ``register(descriptor)`` or ``register(key, descriptor)``;
        in the latter form the descriptor is re-keyed to ``key``.
        """
        if isinstance(key_or_descriptor, ChainDescriptor):
            descriptor = key_or_descriptor
        else:
            if descriptor is None:
                raise ValueError("register(key, descriptor) requires a descriptor")
            if descriptor.key != key_or_descriptor:
                descriptor = dataclasses.replace(descriptor, key=key_or_descriptor)

        return self.register_probe(self._build_probe(descriptor))

    def register_probe(self, probe: ChainProbe) -> ChainProbe:
        """Add or replace a ready-made probe instance."""
        descriptor = probe.descriptor
        if descriptor.family == ChainFamily.solana and descriptor.key != SOLANA_CHAIN_KEY:
            raise ValueError(f"Solana chain must use the key {SOLANA_CHAIN_KEY!r}")
        if descriptor.family == ChainFamily.evm and descriptor.key == SOLANA_CHAIN_KEY:
            raise ValueError(f"Key {SOLANA_CHAIN_KEY!r} is reserved for Solana")

        with self._lock:
            current = self._snapshot
            if descriptor.family == ChainFamily.solana:
                self._snapshot = _Snapshot(evm=current.evm, solana=probe)
            else:
                evm = dict(current.evm)
                evm[descriptor.key] = probe
                self._snapshot = _Snapshot(evm=evm, solana=current.solana)

        logger.info("Registered chain %s (%s)", descriptor.key, descriptor.name)
        return probe

    def unregister(self, key: str) -> bool:
        """Remove a chain; returns False if it was not registered."""
        with self._lock:
            current = self._snapshot
            if key == SOLANA_CHAIN_KEY and current.solana is not None:
                self._snapshot = _Snapshot(evm=current.evm, solana=None)
                return True
            if key in current.evm:
                evm = dict(current.evm)
                del evm[key]
                self._snapshot = _Snapshot(evm=evm, solana=current.solana)
                return True
        return False

    def get(self, key: str) -> ChainProbe:
        """Return the probe for ``key``.

        Raises:
            UnknownChainError: if the key is not registered
        """
        snapshot = self._snapshot
        if key == SOLANA_CHAIN_KEY and snapshot.solana is not None:
            return snapshot.solana
        try:
            return snapshot.evm[key]
        except KeyError:
            raise UnknownChainError(key) from None

    def __contains__(self, key: str) -> bool:
        try:
            self.get(key)
        except UnknownChainError:
            return False
        return True

    def snapshot(self) -> tuple:
        """All probes in probing order: EVM chains, then Solana."""
        return self._snapshot.ordered

    def probes_for(self, families: Iterable[ChainFamily]) -> tuple:
        """Probes whose chain family is in ``families``, in probing order."""
        wanted = set(families)
        return tuple(p for p in self._snapshot.ordered if p.descriptor.family in wanted)

    def list_supported(self) -> list[str]:
        """Supported chain keys: EVM keys in registration order, then ``solana``."""
        return [p.descriptor.key for p in self._snapshot.ordered]

    def descriptors(self) -> list[ChainDescriptor]:
        return [p.descriptor for p in self._snapshot.ordered]


def default_descriptors(settings: Settings) -> list[ChainDescriptor]:
    """Chain descriptors configured through the environment."""
    descriptors = [
        ChainDescriptor(
            key="base",
            name="Base",
            family=ChainFamily.evm,
            rpc_url=settings.base_rpc_url,
            asset_address=settings.base_usdc_address,
            asset_decimals=settings.base_usdc_decimals,
            chain_id=settings.base_chain_id,
            explorer_url="https://basescan.org",
        ),
        ChainDescriptor(
            key="scroll",
            name="Scroll",
            family=ChainFamily.evm,
            rpc_url=settings.scroll_rpc_url,
            asset_address=settings.scroll_usdc_address,
            asset_decimals=settings.scroll_usdc_decimals,
            chain_id=settings.scroll_chain_id,
            explorer_url="https://scrollscan.com",
        ),
    ]

    for key, extra in settings.extra_evm_chains.items():
        descriptors.append(
            ChainDescriptor(
                key=key,
                name=extra.name,
                family=ChainFamily.evm,
                rpc_url=extra.rpc_url,
                asset_address=extra.asset_address,
                asset_decimals=extra.asset_decimals,
                chain_id=extra.chain_id,
                explorer_url=extra.explorer_url,
            )
        )

    descriptors.append(
        ChainDescriptor(
            key=SOLANA_CHAIN_KEY,
            name="Solana",
            family=ChainFamily.solana,
            rpc_url=settings.solana_rpc_url,
            asset_address=settings.solana_usdc_mint,
            asset_decimals=settings.solana_usdc_decimals,
            explorer_url="https://solscan.io",
        )
    )
    return descriptors


def build_registry(settings: Settings, rpc: RpcCall = rpc_call) -> ChainRegistry:
    """Create a registry populated with the configured chains."""
    return ChainRegistry(
        default_descriptors(settings),
        rpc=rpc,
        rpc_timeout=settings.rpc_timeout,
    )


# Worst-case JSON-RPC round trips per lookup: EVM reads the transaction and
# its receipt, Solana reads one parsed transaction.
RPC_CALLS_PER_LOOKUP = {ChainFamily.evm: 2, ChainFamily.solana: 1}


def worst_case_latency(registry: ChainRegistry, rpc_timeout: float) -> float:
    """Longest sequential search for one reference, every node answering slowly.

    A reference only visits the chains of one family, so this is the
    slowest family rather than the sum over all chains.
    """
    per_family: dict[ChainFamily, int] = {}
    for descriptor in registry.descriptors():
        per_family[descriptor.family] = (
            per_family.get(descriptor.family, 0) + RPC_CALLS_PER_LOOKUP[descriptor.family]
        )
    return max(per_family.values(), default=0) * rpc_timeout


def verification_budget(settings: Settings, registry: ChainRegistry) -> float:
    """Overall verification timeout: the configured one, else the worst case."""
    worst_case = worst_case_latency(registry, settings.rpc_timeout)
    if settings.verification_timeout is None:
        return worst_case or settings.rpc_timeout
    if not settings.parallel_probes and worst_case > settings.verification_timeout:
        logger.warning(
            "Sequential lookups can take up to %.1fs but verification_timeout "
            "is %.1fs; chains behind a slow node will be reported unreachable",
            worst_case,
            settings.verification_timeout,
        )
    return settings.verification_timeout
