"""
Driver fault reporting.

A driver fault is fatal for its session: the reporter tears the session
down first and only then notifies the error listeners, so that a listener
inspecting the client already sees it as unusable.
"""

import logging
import threading
from typing import List

from telelink.types import DriverFault, ErrorListener

from .session import DriverSession

logger = logging.getLogger(__name__)


class FaultReporter:
    """Receives driver faults for one session and publishes error messages."""

    def __init__(self, session: DriverSession, name: str = "Telescope"):
        self.name = name
        self._session = session
        self._listeners: List[ErrorListener] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: ErrorListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ErrorListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def handle(self, fault: DriverFault) -> None:
        """Tear down the session and emit the formatted fault."""
        message = fault.format(self.name)

        if not self._session.teardown():
            logger.debug(f"Ignoring fault after teardown: {fault.description}")
            return

        logger.error(message)

        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(message)
            except Exception as e:
                logger.exception(f"Error listener failed: {e}")

    __call__ = handle
