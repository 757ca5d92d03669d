"""
TELELINK test mocks.
"""

from .mock_driver import FakeClock, MockDriver

__all__ = ["FakeClock", "MockDriver"]
