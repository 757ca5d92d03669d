"""
TELELINK Sky Reference Frame

Provides J2000 <-> JNow frame conversion using the Skyfield library.
"""

from .skyfield_service import SkyfieldFrameService

__all__ = [
    "SkyfieldFrameService",
]
