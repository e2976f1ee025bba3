"""Logging helpers shared by the API, the CLI and the verification engine."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("txverify").setLevel(level.upper())


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the txverify namespace."""
    if not name.startswith("txverify"):
        name = f"txverify.{name}"
    return logging.getLogger(name)


def log_probe_result(
    logger: logging.Logger,
    reference: str,
    chain: str,
    success: bool,
    error: str | None = None,
) -> None:
    """Log the outcome of probing one chain for one reference."""
    short = reference[:10] + "..." if len(reference) > 13 else reference
    if success:
        logger.info("Reference %s found on %s", short, chain)
    else:
        logger.debug("Reference %s not valid on %s: %s", short, chain, error)
