"""
TELELINK Shared Type Definitions

Provides type aliases, protocols, and data structures shared across the
TELELINK client: the driver contract, capability snapshots, equinox modes,
position samples and driver fault records.

Usage:
    from telelink.types import EquinoxMode, CapabilitySnapshot, TelescopeDriver
"""

from dataclasses import dataclass
from enum import Enum
from typing import (
    Callable,
    NamedTuple,
    Optional,
    Protocol,
    TypeAlias,
    runtime_checkable,
)

import numpy as np


# =============================================================================
# Basic Type Aliases
# =============================================================================

Degrees: TypeAlias = float
Hours: TypeAlias = float
Radians: TypeAlias = float

# POSIX seconds, as returned by the client clock
Timestamp: TypeAlias = float

# Unit 3-vector (x, y, z) in an equatorial frame
Vector: TypeAlias = np.ndarray

Clock: TypeAlias = Callable[[], Timestamp]


# =============================================================================
# Frames
# =============================================================================

class EquinoxMode(Enum):
    """Frame the driver reports and accepts coordinates in."""
    STANDARD_EPOCH = "j2000"
    INSTANTANEOUS_EQUINOX = "jnow"

    @classmethod
    def from_equatorial_system(cls, value: Optional[int]) -> Optional["EquinoxMode"]:
        """Map an ASCOM EquatorialCoordinateType value to a mode.

        Only topocentric (1, JNow) and J2000 (2) are supported; other
        values return None.
        """
        return {
            1: cls.INSTANTANEOUS_EQUINOX,
            2: cls.STANDARD_EPOCH,
        }.get(value)


# =============================================================================
# Driver Data
# =============================================================================

@dataclass(frozen=True)
class CapabilitySnapshot:
    """Capability flags read from the driver at one decision point."""
    can_slew: bool = False
    can_slew_async: bool = False
    can_set_tracking: bool = False
    can_unpark: bool = False

    @property
    def can_goto(self) -> bool:
        """True if the driver accepts any kind of slew command."""
        return self.can_slew or self.can_slew_async


@dataclass(frozen=True)
class DriverFault:
    """Exception notification delivered by a driver."""
    code: int
    source: str
    description: str
    help_text: str = ""

    def format(self, name: str) -> str:
        """Format as the human-readable message sent to error listeners."""
        message = (
            f"{name}: ASCOM driver error:\n"
            f"Code: {self.code}\n"
            f"Source: {self.source}\n"
            f"Description: {self.description}"
        )
        if self.help_text:
            message += f"\nHelp: {self.help_text}"
        return message


class PositionSample(NamedTuple):
    """A canonical-frame direction recorded by the communication cycle.

    Attributes:
        vector: Unit vector in the standard-epoch (J2000) frame
        server_timestamp: Time the position was valid at the driver
        client_timestamp: Time the client ingested the sample
    """
    vector: Vector
    server_timestamp: Timestamp
    client_timestamp: Timestamp


# =============================================================================
# Callback Types
# =============================================================================

FaultHandler: TypeAlias = Callable[[DriverFault], None]
ErrorListener: TypeAlias = Callable[[str], None]


# =============================================================================
# Protocols
# =============================================================================

@runtime_checkable
class SkyReferenceFrame(Protocol):
    """Conversion between instantaneous-equinox and standard-epoch frames."""

    def to_standard_epoch(self, vector: Vector, when: Timestamp) -> Vector:
        ...

    def to_instantaneous_equinox(self, vector: Vector, when: Timestamp) -> Vector:
        ...


@runtime_checkable
class TelescopeDriver(Protocol):
    """Contract the client requires from a telescope driver.

    Property names follow the ASCOM ITelescope members they map to:
    Connected, AtPark, Tracking, CanSlew, CanSlewAsync, CanSetTracking,
    CanUnpark, RightAscension (hours), Declination (degrees) and
    EquatorialSystem. Failures are not raised to the caller as driver
    exceptions: the driver delivers them to the registered exception handler
    and then raises DriverFaultError.
    """

    connected: bool
    tracking: bool

    @property
    def at_park(self) -> bool: ...

    @property
    def can_slew(self) -> bool: ...

    @property
    def can_slew_async(self) -> bool: ...

    @property
    def can_set_tracking(self) -> bool: ...

    @property
    def can_unpark(self) -> bool: ...

    @property
    def right_ascension(self) -> Hours: ...

    @property
    def declination(self) -> Degrees: ...

    @property
    def equatorial_system(self) -> int: ...

    def unpark(self) -> None: ...

    def slew_to_coordinates(self, ra: Hours, dec: Degrees) -> None: ...

    def slew_to_coordinates_async(self, ra: Hours, dec: Degrees) -> None: ...

    def set_exception_handler(self, handler: Optional[FaultHandler]) -> None: ...

    def close(self) -> None: ...
