"""txverify - verify USDC payments across EVM chains and Solana."""

__version__ = "0.1.0"
