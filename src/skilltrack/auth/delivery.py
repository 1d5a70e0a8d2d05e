"""
Password reset link delivery.

The auth flow only hands a link to a ``ResetLinkDelivery``; how it reaches
the user is up to the provider. The default provider logs the link, which is
what development and tests want.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog
from fastapi import Request

from skilltrack.config import Settings

logger = structlog.get_logger()


class ResetLinkDelivery(ABC):
    """Abstract base class for reset link delivery providers."""

    @abstractmethod
    async def send_reset_link(self, to_email: str, full_name: str, reset_url: str) -> bool:
        """Deliver a reset link. Returns True on success."""
        ...


class LogResetDelivery(ResetLinkDelivery):
    """Write the link to the application log instead of sending it."""

    async def send_reset_link(self, to_email: str, full_name: str, reset_url: str) -> bool:
        logger.info("password_reset_link", to=to_email, full_name=full_name, reset_url=reset_url)
        return True


def build_reset_url(raw_token: str, settings: Settings) -> str:
    return f"{settings.frontend_reset_url}{raw_token}"


def get_reset_delivery(request: Request) -> ResetLinkDelivery:
    """Delivery provider attached to the app (FastAPI dependency)."""
    delivery: ResetLinkDelivery | None = getattr(request.app.state, "reset_delivery", None)
    return delivery or LogResetDelivery()
