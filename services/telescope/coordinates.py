"""
Coordinate transforms between driver coordinates and canonical vectors.

Drivers report and accept right ascension in hours and declination in
degrees. Internally every direction is a unit vector in the standard-epoch
(J2000) equatorial frame:

    x = cos(dec) * cos(ra)
    y = cos(dec) * sin(ra)
    z = sin(dec)

Frame conversion for drivers working in the instantaneous equinox (JNow)
is delegated to a SkyReferenceFrame supplied by the caller.
"""

import math
from typing import Tuple

import numpy as np

from telelink.types import (
    Degrees,
    EquinoxMode,
    Hours,
    Radians,
    SkyReferenceFrame,
    Timestamp,
    Vector,
)

HOURS_TO_RADIANS = math.pi / 12.0
RADIANS_TO_HOURS = 12.0 / math.pi
DEGREES_TO_RADIANS = math.pi / 180.0
RADIANS_TO_DEGREES = 180.0 / math.pi


def hours_to_radians(hours: Hours) -> Radians:
    return hours * HOURS_TO_RADIANS


def radians_to_hours(radians: Radians) -> Hours:
    return radians * RADIANS_TO_HOURS


def degrees_to_radians(degrees: Degrees) -> Radians:
    return degrees * DEGREES_TO_RADIANS


def radians_to_degrees(radians: Radians) -> Degrees:
    return radians * RADIANS_TO_DEGREES


def sphere_to_vector(ra: Radians, dec: Radians) -> Vector:
    """Convert right ascension / declination to a unit vector."""
    cos_dec = math.cos(dec)
    return np.array([
        cos_dec * math.cos(ra),
        cos_dec * math.sin(ra),
        math.sin(dec),
    ])


def vector_to_sphere(vector: Vector) -> Tuple[Radians, Radians]:
    """Convert a direction vector to (ra, dec) in radians.

    The vector does not need to be normalized. Right ascension is returned
    in [0, 2*pi).
    """
    x, y, z = (float(c) for c in vector)
    ra = math.atan2(y, x)
    if ra < 0.0:
        ra += 2.0 * math.pi
    dec = math.atan2(z, math.hypot(x, y))
    return ra, dec


def driver_to_vector(ra_hours: Hours, dec_degrees: Degrees) -> Vector:
    """Convert driver coordinates (hours, degrees) to a unit vector."""
    return sphere_to_vector(hours_to_radians(ra_hours), degrees_to_radians(dec_degrees))


def vector_to_driver(vector: Vector) -> Tuple[Hours, Degrees]:
    """Convert a vector to driver coordinates (hours, degrees)."""
    ra, dec = vector_to_sphere(vector)
    return radians_to_hours(ra), radians_to_degrees(dec)


class CoordinateTransform:
    """
    Converts between the driver's frame and the canonical J2000 frame.

    In STANDARD_EPOCH mode vectors pass through unchanged. In
    INSTANTANEOUS_EQUINOX mode every vector exchanged with the driver goes
    through the reference frame at the given time.
    """

    def __init__(self, equinox: EquinoxMode, frame: SkyReferenceFrame | None = None):
        if equinox is EquinoxMode.INSTANTANEOUS_EQUINOX and frame is None:
            raise ValueError("A sky reference frame is required for JNow drivers")
        self.equinox = equinox
        self._frame = frame

    def to_canonical(self, ra_hours: Hours, dec_degrees: Degrees, when: Timestamp) -> Vector:
        """Convert a driver-reported position to a canonical vector."""
        vector = driver_to_vector(ra_hours, dec_degrees)
        if self.equinox is EquinoxMode.INSTANTANEOUS_EQUINOX:
            vector = self._frame.to_standard_epoch(vector, when)
        return vector

    def to_driver(self, vector: Vector, when: Timestamp) -> Tuple[Hours, Degrees]:
        """Convert a canonical vector to driver coordinates."""
        if self.equinox is EquinoxMode.INSTANTANEOUS_EQUINOX:
            vector = self._frame.to_instantaneous_equinox(vector, when)
        return vector_to_driver(vector)
