"""
TELELINK Sky Reference Frame Service
Skyfield-based J2000 <-> JNow conversion

Drivers reporting in the instantaneous equinox (JNow, "true equator and
equinox of date") need their vectors rotated into the standard epoch
(J2000/GCRS) before they are stored, and back again before a slew
command is sent. The rotation for a given instant is skyfield's combined
frame bias, precession and nutation matrix, so the forward and inverse
conversions at the same instant are exact transposes of each other.
"""

import logging
from datetime import datetime, timezone
from typing import Tuple

import numpy as np
from skyfield.api import load

from services.telescope.coordinates import driver_to_vector, vector_to_driver
from telelink.types import Degrees, Hours, Timestamp, Vector

logger = logging.getLogger(__name__)


class SkyfieldFrameService:
    """
    Sky reference frame backed by skyfield.

    Implements the SkyReferenceFrame protocol. The timescale is loaded on
    first use from skyfield's bundled leap-second and Delta T tables, so no
    ephemeris download is needed.

    Example:
        >>> frame = SkyfieldFrameService()
        >>> jnow = frame.to_instantaneous_equinox(j2000_vector, time.time())
    """

    def __init__(self, timescale=None):
        """
        Initialize the frame service.

        Args:
            timescale: Optional preloaded skyfield Timescale
        """
        self._ts = timescale

    def initialize(self):
        """Load the skyfield timescale."""
        if self._ts is None:
            self._ts = load.timescale()
            logger.debug("Skyfield timescale loaded")

    def _get_time(self, when: Timestamp):
        """Get Skyfield time object for a POSIX timestamp."""
        self.initialize()
        return self._ts.from_datetime(datetime.fromtimestamp(when, tz=timezone.utc))

    def rotation_matrix(self, when: Timestamp) -> np.ndarray:
        """J2000 to JNow rotation matrix at the given instant."""
        return np.asarray(self._get_time(when).M)

    def to_instantaneous_equinox(self, vector: Vector, when: Timestamp) -> Vector:
        """Rotate a J2000 vector into the equator and equinox of date."""
        return self.rotation_matrix(when) @ np.asarray(vector, dtype=float)

    def to_standard_epoch(self, vector: Vector, when: Timestamp) -> Vector:
        """Rotate a JNow vector back into the J2000 frame."""
        return self.rotation_matrix(when).T @ np.asarray(vector, dtype=float)

    def j2000_to_jnow(
        self,
        ra_hours: Hours,
        dec_degrees: Degrees,
        when: Timestamp,
    ) -> Tuple[Hours, Degrees]:
        """
        Convert J2000 coordinates to JNow.

        Args:
            ra_hours: J2000 Right Ascension in hours
            dec_degrees: J2000 Declination in degrees
            when: Target time (POSIX seconds)

        Returns:
            Tuple of (ra_hours, dec_degrees) in JNow
        """
        vector = self.to_instantaneous_equinox(driver_to_vector(ra_hours, dec_degrees), when)
        return vector_to_driver(vector)

    def jnow_to_j2000(
        self,
        ra_hours: Hours,
        dec_degrees: Degrees,
        when: Timestamp,
    ) -> Tuple[Hours, Degrees]:
        """Convert JNow coordinates to J2000 (inverse of j2000_to_jnow)."""
        vector = self.to_standard_epoch(driver_to_vector(ra_hours, dec_degrees), when)
        return vector_to_driver(vector)
