"""
Driver session: exclusive owner of a telescope driver handle.

The session resolves a driver identifier to a driver, exposes the queries
and actions the client needs, and releases the handle on teardown. The
usable flag (handle is not None) is the one piece of state shared between
the polling path and the fault path; every access re-checks it under the
session lock.

A failed driver call has already been reported to the fault handler by the
driver, so session methods turn DriverFaultError into a safe default
(False or None) and the calling step sequence aborts on its own.
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from telelink.exceptions import DriverFaultError, DriverNotFoundError
from telelink.types import (
    CapabilitySnapshot,
    Degrees,
    FaultHandler,
    Hours,
    TelescopeDriver,
)

logger = logging.getLogger(__name__)

DriverFactory = Callable[..., TelescopeDriver]

DEFAULT_SCHEME = "alpaca"

_driver_factories: Dict[str, DriverFactory] = {}


def register_driver_scheme(scheme: str, factory: DriverFactory) -> None:
    """Register a factory creating drivers for identifiers of a scheme."""
    _driver_factories[scheme.lower()] = factory


def _default_factories() -> None:
    if DEFAULT_SCHEME not in _driver_factories:
        from services.alpaca.alpaca_client import create_driver
        register_driver_scheme(DEFAULT_SCHEME, create_driver)


def resolve_driver(driver_id: str, **options: Any) -> TelescopeDriver:
    """
    Create a driver for an identifier.

    Identifiers without a scheme are handed to the Alpaca driver.

    Raises:
        DriverNotFoundError: Unknown scheme, malformed identifier, or the
            driver could not be created
    """
    _default_factories()
    scheme = driver_id.split("://", 1)[0].lower() if "://" in driver_id else DEFAULT_SCHEME
    factory = _driver_factories.get(scheme)
    if factory is None:
        raise DriverNotFoundError(f"No driver registered for '{scheme}'", driver_id=driver_id)

    try:
        return factory(driver_id, **options)
    except DriverNotFoundError:
        raise
    except Exception as e:
        raise DriverNotFoundError(f"Driver creation failed: {e}", driver_id=driver_id) from e


class DriverSession:
    """
    Wraps a telescope driver handle.

    Example:
        >>> session = DriverSession.create("alpaca://10.0.0.5:11111/0")
        >>> if session.is_usable() and session.try_connect():
        ...     ra, dec = session.get_reported_position()
    """

    def __init__(self, driver: Optional[TelescopeDriver], driver_id: str = ""):
        self.driver_id = driver_id
        self._driver = driver
        self._fault_handler: Optional[FaultHandler] = None
        self._lock = threading.RLock()

    @classmethod
    def create(cls, driver_id: str, **options: Any) -> "DriverSession":
        """
        Create a session for a driver identifier.

        A failed resolution is not raised: the session is returned without a
        handle and reports itself as not usable.
        """
        try:
            driver = resolve_driver(driver_id, **options)
        except DriverNotFoundError as e:
            logger.error(f"Cannot create telescope driver: {e}")
            driver = None
        return cls(driver, driver_id)

    # ------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------

    def set_fault_handler(self, handler: Optional[FaultHandler]) -> None:
        """Route driver faults to handler."""
        with self._lock:
            self._fault_handler = handler
            if self._driver is not None:
                self._driver.set_exception_handler(handler)

    def is_usable(self) -> bool:
        with self._lock:
            return self._driver is not None

    def teardown(self) -> bool:
        """
        Release the driver handle. Idempotent.

        Returns:
            True if a handle was released by this call
        """
        with self._lock:
            driver = self._driver
            if driver is None:
                return False
            self._driver = None

        driver.set_exception_handler(None)
        driver.close()
        logger.info(f"Telescope driver {self.driver_id} released")
        return True

    def _invoke(self, operation: Callable[[TelescopeDriver], Any], default: Any = None) -> Any:
        """Run operation on the driver if usable; faults yield default."""
        with self._lock:
            driver = self._driver
        if driver is None:
            return default
        try:
            return operation(driver)
        except DriverFaultError as e:
            logger.debug(f"Driver call aborted: {e}")
            return default

    # ------------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------------

    def is_connected(self) -> bool:
        return bool(self._invoke(lambda d: d.connected, False))

    def try_connect(self) -> bool:
        """
        Request a connection and report whether it took effect.

        The driver may accept the request and still fail to connect (wrong
        serial port, for example), so the Connected property is re-read.
        """
        def connect(driver: TelescopeDriver) -> bool:
            driver.connected = True
            return driver.connected

        connected = bool(self._invoke(connect, False))
        if connected:
            logger.info(f"Connected to telescope driver {self.driver_id}")
        else:
            logger.debug(f"Connection attempt to {self.driver_id} failed")
        return connected

    def disconnect(self) -> None:
        def disconnect(driver: TelescopeDriver) -> None:
            driver.connected = False

        self._invoke(disconnect)

    # ------------------------------------------------------------------------
    # State and capabilities
    # ------------------------------------------------------------------------

    def is_parked(self) -> bool:
        return bool(self._invoke(lambda d: d.at_park, False))

    def is_tracking(self) -> bool:
        return bool(self._invoke(lambda d: d.tracking, False))

    def can_slew(self) -> bool:
        return bool(self._invoke(lambda d: d.can_slew, False))

    def can_slew_async(self) -> bool:
        return bool(self._invoke(lambda d: d.can_slew_async, False))

    def can_set_tracking(self) -> bool:
        return bool(self._invoke(lambda d: d.can_set_tracking, False))

    def can_unpark(self) -> bool:
        return bool(self._invoke(lambda d: d.can_unpark, False))

    def get_capabilities(self) -> Optional[CapabilitySnapshot]:
        """Read all capability flags; None if the session is unusable or faults."""
        return self._invoke(lambda d: CapabilitySnapshot(
            can_slew=bool(d.can_slew),
            can_slew_async=bool(d.can_slew_async),
            can_set_tracking=bool(d.can_set_tracking),
            can_unpark=bool(d.can_unpark),
        ))

    def equatorial_system(self) -> Optional[int]:
        return self._invoke(lambda d: d.equatorial_system)

    def get_reported_position(self) -> Optional[Tuple[Hours, Degrees]]:
        """Current pointing as (ra_hours, dec_degrees) in the driver's frame."""
        return self._invoke(lambda d: (float(d.right_ascension), float(d.declination)))

    # ------------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------------

    def unpark(self) -> bool:
        """Issue Unpark; True if the call completed."""
        def unpark(driver: TelescopeDriver) -> bool:
            driver.unpark()
            return True

        return bool(self._invoke(unpark, False))

    def set_tracking(self, enabled: bool) -> bool:
        """Set tracking and return the state the driver reports afterwards."""
        def track(driver: TelescopeDriver) -> bool:
            driver.tracking = enabled
            return driver.tracking

        return bool(self._invoke(track, False))

    def slew_async(self, ra: Hours, dec: Degrees) -> bool:
        def slew(driver: TelescopeDriver) -> bool:
            driver.slew_to_coordinates_async(ra, dec)
            return True

        return bool(self._invoke(slew, False))

    def slew_sync(self, ra: Hours, dec: Degrees) -> bool:
        """Blocking slew; the caller stalls for the duration of the motion."""
        def slew(driver: TelescopeDriver) -> bool:
            driver.slew_to_coordinates(ra, dec)
            return True

        return bool(self._invoke(slew, False))
