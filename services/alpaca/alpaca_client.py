"""
ASCOM Alpaca telescope driver adapter for TELELINK.

This module wraps alpyca's Telescope in the fixed TelescopeDriver contract
used by the driver session. Every property read, property write and method
call runs on a single worker thread with a bounded timeout. A driver
exception, a transport error or a timeout is delivered to the registered
exception handler as a DriverFault and then raised as DriverFaultError so
the calling step can abort.

Requirements:
    - alpyca>=2.0.0

Driver identifiers:
    alpaca://host:port/device_number
    host:port/device_number
    host:port                      (device 0)

Example:
    >>> driver = AlpacaTelescopeDriver.from_identifier("alpaca://10.0.0.5:11111/0")
    >>> driver.set_exception_handler(print)
    >>> driver.connected = True
    >>> print(f"RA: {driver.right_ascension}, Dec: {driver.declination}")
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib.parse import urlsplit
import logging
import threading

from alpaca.telescope import Telescope

from telelink.exceptions import DriverFaultError, DriverNotFoundError, DriverTimeoutError
from telelink.types import Degrees, DriverFault, FaultHandler, Hours

logger = logging.getLogger(__name__)

DEFAULT_PORT = 11111
DEFAULT_CALL_TIMEOUT = 10.0
DEFAULT_SLEW_TIMEOUT = 600.0

# ASCOM "unspecified error"; used for transport failures and timeouts,
# which carry no driver error number of their own.
UNSPECIFIED_ERROR_CODE = 0x4FF


# ============================================================================
# Driver Identifiers
# ============================================================================

@dataclass(frozen=True)
class AlpacaEndpoint:
    """Location of a telescope device on an Alpaca server."""
    address: str
    port: int = DEFAULT_PORT
    device_number: int = 0

    @property
    def endpoint(self) -> str:
        """Get the base endpoint URL for this device."""
        return f"http://{self.address}:{self.port}"

    @property
    def server(self) -> str:
        """host:port form expected by alpyca."""
        return f"{self.address}:{self.port}"

    def __str__(self) -> str:
        return f"alpaca://{self.address}:{self.port}/{self.device_number}"


def parse_driver_id(driver_id: str) -> AlpacaEndpoint:
    """
    Parse an Alpaca driver identifier.

    Args:
        driver_id: Identifier in one of the forms listed in the module docs

    Returns:
        Parsed AlpacaEndpoint

    Raises:
        DriverNotFoundError: If the identifier is malformed
    """
    text = (driver_id or "").strip()
    if not text:
        raise DriverNotFoundError("Empty driver identifier", driver_id=driver_id)
    if "://" not in text:
        text = f"alpaca://{text}"

    try:
        parts = urlsplit(text)
        port = parts.port or DEFAULT_PORT
    except ValueError as e:
        raise DriverNotFoundError(f"Invalid driver identifier: {e}", driver_id=driver_id) from e

    if parts.scheme != "alpaca":
        raise DriverNotFoundError(
            f"Unsupported driver scheme '{parts.scheme}'", driver_id=driver_id
        )
    if not parts.hostname:
        raise DriverNotFoundError("Driver identifier has no host", driver_id=driver_id)

    path = parts.path.strip("/")
    if not path:
        device_number = 0
    elif path.isdigit():
        device_number = int(path)
    else:
        raise DriverNotFoundError(
            f"Invalid device number '{path}'", driver_id=driver_id
        )

    return AlpacaEndpoint(parts.hostname, port, device_number)


# ============================================================================
# Telescope Adapter
# ============================================================================

class AlpacaTelescopeDriver:
    """
    ASCOM Alpaca telescope driver for TELELINK.

    Exposes the ITelescope members the client needs (connection, park and
    tracking state, capability flags, position and slews) as Python
    properties and methods.
    """

    def __init__(
        self,
        endpoint: AlpacaEndpoint,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
        slew_timeout: float = DEFAULT_SLEW_TIMEOUT,
    ):
        """
        Initialize the driver adapter.

        Args:
            endpoint: Alpaca server and device number
            call_timeout: Limit for ordinary property and method calls (seconds)
            slew_timeout: Limit for the blocking SlewToCoordinates call (seconds)
        """
        self.endpoint = endpoint
        self.call_timeout = call_timeout
        self.slew_timeout = slew_timeout
        self._telescope = Telescope(endpoint.server, endpoint.device_number)
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=f"alpaca-{endpoint.device_number}",
        )
        self._handler: Optional[FaultHandler] = None
        self._lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_identifier(
        cls,
        driver_id: str,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
        slew_timeout: float = DEFAULT_SLEW_TIMEOUT,
    ) -> "AlpacaTelescopeDriver":
        """Create a driver from an identifier string."""
        return cls(parse_driver_id(driver_id), call_timeout, slew_timeout)

    def set_exception_handler(self, handler: Optional[FaultHandler]) -> None:
        """Register the callback receiving driver faults (None to remove)."""
        with self._lock:
            self._handler = handler

    def close(self) -> None:
        """Stop the worker thread; pending calls are dropped."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._handler = None
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.debug(f"Closed Alpaca driver {self.endpoint}")

    # ------------------------------------------------------------------------
    # Call plumbing
    # ------------------------------------------------------------------------

    def _call(self, operation: str, fn: Callable[[], Any], timeout: Optional[float] = None) -> Any:
        """Run a driver access on the worker thread with a timeout."""
        if self._closed:
            raise DriverFaultError(
                f"{operation} called on a closed driver", source=str(self.endpoint)
            )

        limit = timeout if timeout is not None else self.call_timeout
        try:
            future = self._executor.submit(fn)
        except RuntimeError as e:
            # Executor shut down between the check above and submit
            raise DriverFaultError(f"{operation} failed: {e}", source=str(self.endpoint)) from e

        try:
            return future.result(timeout=limit)
        except FutureTimeoutError as e:
            future.cancel()
            fault = DriverFault(
                code=UNSPECIFIED_ERROR_CODE,
                source=str(self.endpoint),
                description=f"{operation} timed out after {limit:.1f}s",
                help_text="Check that the Alpaca server is reachable and responsive",
            )
            self._report(fault)
            raise DriverTimeoutError(
                fault.description,
                code=fault.code,
                source=fault.source,
                timeout_seconds=limit,
            ) from e
        except Exception as e:
            fault = self._fault_from_exception(operation, e)
            self._report(fault)
            raise DriverFaultError(
                fault.description, code=fault.code, source=fault.source
            ) from e

    def _fault_from_exception(self, operation: str, exc: Exception) -> DriverFault:
        """Build a fault record from an alpyca or transport exception."""
        # alpyca ASCOM exceptions carry the ASCOM error number and message
        code = getattr(exc, "number", None)
        message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
        return DriverFault(
            code=code if isinstance(code, int) else UNSPECIFIED_ERROR_CODE,
            source=str(self.endpoint),
            description=f"{operation}: {message}",
            help_text=type(exc).__name__,
        )

    def _report(self, fault: DriverFault) -> None:
        logger.error(f"Alpaca driver fault ({fault.code:#x}): {fault.description}")
        with self._lock:
            handler = self._handler
        if handler is not None:
            handler(fault)

    def _get(self, name: str) -> Any:
        return self._call(f"get {name}", lambda: getattr(self._telescope, name))

    def _set(self, name: str, value: Any) -> None:
        self._call(f"set {name}", lambda: setattr(self._telescope, name, value))

    # ------------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return bool(self._get("Connected"))

    @connected.setter
    def connected(self, value: bool) -> None:
        self._set("Connected", bool(value))

    @property
    def at_park(self) -> bool:
        return bool(self._get("AtPark"))

    @property
    def tracking(self) -> bool:
        return bool(self._get("Tracking"))

    @tracking.setter
    def tracking(self, value: bool) -> None:
        self._set("Tracking", bool(value))

    @property
    def can_slew(self) -> bool:
        return bool(self._get("CanSlew"))

    @property
    def can_slew_async(self) -> bool:
        return bool(self._get("CanSlewAsync"))

    @property
    def can_set_tracking(self) -> bool:
        return bool(self._get("CanSetTracking"))

    @property
    def can_unpark(self) -> bool:
        return bool(self._get("CanUnpark"))

    @property
    def right_ascension(self) -> Hours:
        """Right Ascension in decimal hours (0-24)."""
        return float(self._get("RightAscension"))

    @property
    def declination(self) -> Degrees:
        """Declination in decimal degrees (-90 to +90)."""
        return float(self._get("Declination"))

    @property
    def equatorial_system(self) -> int:
        """ASCOM EquatorialCoordinateType as an integer."""
        value = self._get("EquatorialSystem")
        return int(getattr(value, "value", value))

    # ------------------------------------------------------------------------
    # Methods
    # ------------------------------------------------------------------------

    def unpark(self) -> None:
        self._call("Unpark", self._telescope.Unpark)
        logger.info("Telescope unpark requested")

    def slew_to_coordinates(self, ra: Hours, dec: Degrees) -> None:
        """Blocking slew; returns when the mount has arrived."""
        self._call(
            "SlewToCoordinates",
            lambda: self._telescope.SlewToCoordinates(ra, dec),
            timeout=self.slew_timeout,
        )

    def slew_to_coordinates_async(self, ra: Hours, dec: Degrees) -> None:
        self._call(
            "SlewToCoordinatesAsync",
            lambda: self._telescope.SlewToCoordinatesAsync(ra, dec),
        )


def create_driver(
    driver_id: str,
    call_timeout: float = DEFAULT_CALL_TIMEOUT,
    slew_timeout: float = DEFAULT_SLEW_TIMEOUT,
) -> AlpacaTelescopeDriver:
    """Driver factory registered for the ``alpaca`` scheme."""
    return AlpacaTelescopeDriver.from_identifier(driver_id, call_timeout, slew_timeout)
