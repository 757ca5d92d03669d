"""
TELELINK Telescope Client

Driver session, coordinate transforms, position buffer, fault reporting
and the client that ties them together.
"""

from .client import TelescopeClient, detect_equinox
from .coordinates import (
    CoordinateTransform,
    driver_to_vector,
    sphere_to_vector,
    vector_to_driver,
    vector_to_sphere,
)
from .fault_reporter import FaultReporter
from .position_buffer import InterpolatedPosition
from .session import DriverSession, register_driver_scheme, resolve_driver

__all__ = [
    "TelescopeClient",
    "detect_equinox",
    "CoordinateTransform",
    "driver_to_vector",
    "sphere_to_vector",
    "vector_to_driver",
    "vector_to_sphere",
    "FaultReporter",
    "InterpolatedPosition",
    "DriverSession",
    "register_driver_scheme",
    "resolve_driver",
]
