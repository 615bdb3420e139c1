"""
Shared-secret admin gate for destructive maintenance actions.
"""

import hmac

import structlog

from ironlog.config import Settings, get_settings

logger = structlog.get_logger(__name__)


class AdminAuthError(Exception):
    """The admin secret is missing or does not match."""


class SimpleAdminAuth:
    """Single shared secret that unlocks admin actions."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self._secret = (
            settings.admin_secret.get_secret_value() if settings.admin_secret else ""
        )

        logger.debug("SimpleAdminAuth initialized", has_secret=bool(self._secret))

    @property
    def is_configured(self) -> bool:
        return bool(self._secret)

    def is_admin(self, provided: str | None) -> bool:
        """Constant-time comparison of ``provided`` with the configured secret."""
        if not self._secret or not provided:
            return False
        return hmac.compare_digest(
            provided.encode("utf-8"), self._secret.encode("utf-8")
        )

    def require_admin(self, provided: str | None, action: str) -> None:
        """Raise ``AdminAuthError`` unless ``provided`` unlocks ``action``."""
        if not self._secret:
            logger.warning("Admin action refused, no secret configured", action=action)
            raise AdminAuthError(
                "ADMIN_SECRET is not configured; admin actions are disabled"
            )

        if not self.is_admin(provided):
            logger.warning("Unauthorized admin action attempt", action=action)
            raise AdminAuthError("Admin secret rejected")

        logger.info("Admin action authorized", action=action)
