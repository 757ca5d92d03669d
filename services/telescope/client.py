"""
TELELINK telescope client.

Keeps a time-compensated J2000 position for a driver-controlled telescope
and sends goto commands that respect the driver's capabilities.

The client is driven by an external tick: call perform_communication()
regularly (for example every 100 ms) and read get_canonical_position()
whenever a position is needed. Nothing here raises to the caller; driver
faults are published to the error listeners and make the client unusable
until it is recreated.

Example:
    >>> client = TelescopeClient.create(
    ...     "Mount", "alpaca://10.0.0.5:11111/0", EquinoxMode.STANDARD_EPOCH)
    >>> client.add_error_listener(print)
    >>> client.perform_communication()
    >>> client.goto_position(target_vector)
"""

import logging
import time
from typing import Any, Dict, Optional

from telelink.exceptions import NoDataAvailableError
from telelink.types import (
    Clock,
    EquinoxMode,
    ErrorListener,
    SkyReferenceFrame,
    Timestamp,
    Vector,
)

from .coordinates import CoordinateTransform
from .fault_reporter import FaultReporter
from .position_buffer import InterpolatedPosition
from .session import DriverSession

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 1.0  # seconds between position polls


class TelescopeClient:
    """
    Communication cycle, goto sequencer and position query for one telescope.

    Args:
        name: Display name used in log and error messages
        session: Driver session owned by this client
        equinox: Frame the driver works in, fixed for the client's lifetime;
            None detects it from the driver's EquatorialSystem
        frame: Sky reference frame for JNow drivers; defaults to
            SkyfieldFrameService when the driver turns out to need one
        refresh_interval: Minimum time between position polls (seconds)
        position_delay: How far behind "now" position queries look by
            default (seconds); defaults to refresh_interval
        clock: Time source returning POSIX seconds
    """

    def __init__(
        self,
        name: str,
        session: DriverSession,
        equinox: Optional[EquinoxMode],
        frame: Optional[SkyReferenceFrame] = None,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        position_delay: Optional[float] = None,
        clock: Clock = time.time,
        error_listener: Optional[ErrorListener] = None,
    ):
        if refresh_interval <= 0:
            raise ValueError("refresh_interval must be positive")

        self.name = name
        self.session = session
        self.refresh_interval = refresh_interval
        self.position_delay = refresh_interval if position_delay is None else position_delay
        self._clock = clock
        self._positions = InterpolatedPosition()

        self._faults = FaultReporter(session, name)
        if error_listener is not None:
            self._faults.add_listener(error_listener)
        session.set_fault_handler(self._faults)

        if equinox is None:
            if self._ensure_connected():
                equinox = detect_equinox(session, name)
            else:
                # Drivers refuse EquatorialSystem reads while disconnected
                logger.warning(
                    f"{name}: not connected, can't detect equatorial system; assuming J2000"
                )
                equinox = EquinoxMode.STANDARD_EPOCH
        if equinox is EquinoxMode.INSTANTANEOUS_EQUINOX and frame is None:
            from services.ephemeris import SkyfieldFrameService
            frame = SkyfieldFrameService()
        self._transform = CoordinateTransform(equinox, frame)

        self._next_poll: Timestamp = self._clock() + refresh_interval

    @classmethod
    def create(
        cls,
        name: str,
        driver_id: str,
        equinox: Optional[EquinoxMode],
        frame: Optional[SkyReferenceFrame] = None,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        position_delay: Optional[float] = None,
        clock: Clock = time.time,
        error_listener: Optional[ErrorListener] = None,
        **driver_options: Any,
    ) -> "TelescopeClient":
        """
        Build a client for a driver identifier.

        With equinox=None the mode is detected from the driver's
        EquatorialSystem once, during construction, provided the driver
        connects; otherwise J2000 is assumed. The initial connection
        attempt is not required to succeed; the communication cycle keeps
        retrying.
        """
        session = DriverSession.create(driver_id, **driver_options)
        client = cls(
            name,
            session,
            equinox,
            frame=frame,
            refresh_interval=refresh_interval,
            position_delay=position_delay,
            clock=clock,
            error_listener=error_listener,
        )

        if client.is_usable():
            if not client._ensure_connected():
                logger.warning(f"{name}: telescope not connected yet, will retry")
            capabilities = session.get_capabilities()
            if capabilities is not None and not capabilities.can_goto:
                # Digital setting circles and similar: position display only
                logger.warning(
                    f"{name} can't receive \"go to\" commands. "
                    "Its current position will be displayed only."
                )
        return client

    # ------------------------------------------------------------------------
    # Upward interface
    # ------------------------------------------------------------------------

    @property
    def equinox(self) -> EquinoxMode:
        return self._transform.equinox

    def add_error_listener(self, listener: ErrorListener) -> None:
        """Receive formatted driver error messages."""
        self._faults.add_listener(listener)

    def remove_error_listener(self, listener: ErrorListener) -> None:
        self._faults.remove_listener(listener)

    def is_usable(self) -> bool:
        return self.session.is_usable()

    def is_connected(self) -> bool:
        return self.session.is_connected()

    def get_canonical_position(self, at_time: Optional[Timestamp] = None) -> Optional[Vector]:
        """
        Estimated J2000 pointing direction.

        Args:
            at_time: Query time in POSIX seconds; defaults to now minus
                position_delay, which keeps queries inside the recorded range

        Returns:
            Unit vector, or None while no position has been received
        """
        if at_time is None:
            at_time = self._clock() - self.position_delay
        try:
            return self._positions.get(at_time)
        except NoDataAvailableError:
            return None

    def get_status(self) -> Dict[str, Any]:
        """Client state for display and diagnostics."""
        latest = self._positions.latest()
        return {
            "name": self.name,
            "driver_id": self.session.driver_id,
            "usable": self.is_usable(),
            "connected": self.is_connected(),
            "equinox": self.equinox.value,
            "samples": len(self._positions),
            "last_sample_time": latest.server_timestamp if latest else None,
        }

    def close(self) -> None:
        """Disconnect and release the driver."""
        self.session.disconnect()
        self.session.teardown()

    # ------------------------------------------------------------------------
    # Communication cycle
    # ------------------------------------------------------------------------

    def _ensure_connected(self) -> bool:
        if not self.session.is_usable():
            return False
        if self.session.is_connected():
            return True
        return self.session.try_connect()

    def perform_communication(self) -> None:
        """
        Run one communication cycle.

        Polls the driver position at most once per refresh interval and
        stores it in the canonical frame. Does nothing while the driver is
        unusable, disconnected or parked.
        """
        if not self._ensure_connected():
            return

        if self.session.is_parked():
            return

        now = self._clock()
        if now < self._next_poll:
            return

        server_time = self._clock()
        position = self.session.get_reported_position()
        if position is None:
            return
        ra_hours, dec_degrees = position

        vector = self._transform.to_canonical(ra_hours, dec_degrees, server_time)
        self._positions.add(vector, self._clock(), server_time)
        self._next_poll = now + self.refresh_interval

    # ------------------------------------------------------------------------
    # Goto sequencer
    # ------------------------------------------------------------------------

    def goto_position(self, target: Vector) -> None:
        """
        Point the telescope at a J2000 direction.

        Unparks and enables tracking when the driver allows it, then sends
        an asynchronous slew, or a blocking one when that is all the driver
        supports. Any failed step abandons the request silently.
        """
        if not self._ensure_connected():
            logger.debug(f"{self.name}: goto skipped, driver not available")
            return

        capabilities = self.session.get_capabilities()
        if capabilities is None:
            return
        if not capabilities.can_goto:
            logger.debug(f"{self.name}: goto skipped, driver cannot slew")
            return

        if self.session.is_parked():
            if not capabilities.can_unpark:
                logger.info(f"The {self.name} telescope is parked and can't be unparked")
                return
            if not self.session.unpark():
                return
            if self.session.is_parked():
                logger.info(f"{self.name}: still parked after unpark, goto abandoned")
                return

        if not self.session.is_tracking():
            if not capabilities.can_set_tracking:
                logger.info(f"{self.name}: tracking is off and can't be enabled")
                return
            if not self.session.set_tracking(True):
                logger.info(f"{self.name}: tracking did not start, goto abandoned")
                return

        ra_hours, dec_degrees = self._transform.to_driver(target, self._clock())

        if capabilities.can_slew_async:
            if self.session.slew_async(ra_hours, dec_degrees):
                logger.info(f"{self.name}: slewing to RA={ra_hours:.4f}h, Dec={dec_degrees:.4f}°")
        else:
            # Blocks until the mount arrives
            logger.info(
                f"{self.name}: blocking slew to RA={ra_hours:.4f}h, Dec={dec_degrees:.4f}°"
            )
            self.session.slew_sync(ra_hours, dec_degrees)


def detect_equinox(session: DriverSession, name: str = "Telescope") -> EquinoxMode:
    """Equinox mode from the driver's EquatorialSystem, J2000 if unknown."""
    system = session.equatorial_system()
    mode = EquinoxMode.from_equatorial_system(system)
    if mode is None:
        logger.warning(
            f"{name}: unsupported or unknown equatorial system {system}, assuming J2000"
        )
        return EquinoxMode.STANDARD_EPOCH
    logger.info(f"{name}: driver reports {mode.name.lower().replace('_', ' ')} coordinates")
    return mode
