"""
TELELINK - Telescope position and goto client

Keeps a live, time-compensated J2000 position for an ASCOM Alpaca telescope
and sends capability-aware goto commands.

Architecture:
    - telelink: configuration, logging, exceptions, shared types, CLI
    - services.alpaca: Alpaca driver adapter (alpyca)
    - services.ephemeris: J2000 <-> JNow frame conversion (Skyfield)
    - services.telescope: driver session, communication cycle, goto
      sequencer and position buffer
"""

__version__ = "0.1.0"

# Version tuple for programmatic comparison
VERSION_INFO = (0, 1, 0)

from telelink.exceptions import TelelinkError

from telelink.types import (
    CapabilitySnapshot,
    DriverFault,
    EquinoxMode,
    PositionSample,
)
