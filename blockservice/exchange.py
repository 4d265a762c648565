"""
Holder for the block service's optional exchange.
"""

import logging
import threading
from typing import (
    Any,
)

logger = logging.getLogger(__name__)

FETCH = "get"
ANNOUNCE = "put"


def supports(exchange: Any, capability: str) -> bool:
    """Return True if ``exchange`` provides the ``capability`` operation."""
    return callable(getattr(exchange, capability, None))


class ExchangeSlot:
    """
    A single replaceable reference to an exchange.

    Readers take a snapshot with :meth:`get` and use it for the rest of
    their call, so a concurrent :meth:`set` or :meth:`clear` never changes
    the exchange under an operation already in progress. The lock only
    covers the reference swap, never a call into the exchange.
    """

    def __init__(self, exchange: Any = None) -> None:
        self._lock = threading.Lock()
        self._exchange = exchange

    def get(self) -> Any:
        with self._lock:
            return self._exchange

    def set(self, exchange: Any) -> Any:
        """Attach ``exchange`` and return the one it replaced, if any."""
        with self._lock:
            previous, self._exchange = self._exchange, exchange
        if previous is not None and previous is not exchange:
            logger.debug("replaced exchange %r with %r", previous, exchange)
        return previous

    def clear(self) -> Any:
        """Detach the current exchange and return it, if any."""
        with self._lock:
            previous, self._exchange = self._exchange, None
        return previous

    def is_set(self) -> bool:
        with self._lock:
            return self._exchange is not None
