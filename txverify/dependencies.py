"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends

from .config import Settings, get_settings
from .database import create_replay_guard
from .payments import PaymentService

_payment_service: PaymentService | None = None


def get_payment_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> PaymentService:
    """Process-wide payment service (registry and replay guard are shared)."""
    global _payment_service
    if _payment_service is None:
        _payment_service = PaymentService.from_settings(
            settings,
            replay_guard=create_replay_guard(settings),
        )
    return _payment_service


def reset_payment_service() -> None:
    """Drop the cached service so the next request rebuilds it."""
    global _payment_service
    _payment_service = None


# Type alias for dependency injection
Payments = Annotated[PaymentService, Depends(get_payment_service)]
