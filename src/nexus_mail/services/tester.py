"""Dry-run connection testing for candidate account configurations."""

from __future__ import annotations

import logging

from ..core.errors import NexusMailError
from ..core.models import ConnectionRequest, ConnectionTestResult
from ..providers import ProviderRegistry, provider_for

LOGGER = logging.getLogger(__name__)


class ConnectionTester:
    """Run a live handshake without persisting anything."""

    def __init__(self, providers: ProviderRegistry) -> None:
        self._providers = providers

    def test(self, request: ConnectionRequest) -> ConnectionTestResult:
        """Return ``ok=False`` with the cause instead of raising."""
        try:
            provider = provider_for(self._providers, request.protocol)
            message = provider.test_connection(request)
        except NexusMailError as exc:
            LOGGER.info(
                "Connection test for %s failed: %s", request.address, exc
            )
            return ConnectionTestResult(ok=False, message=str(exc) or "Connection failed")
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.exception("Unexpected error testing %s", request.address)
            return ConnectionTestResult(ok=False, message=str(exc) or "Connection failed")
        return ConnectionTestResult(ok=True, message=message)


__all__ = ["ConnectionTester"]
