"""
Pytest fixtures for TELELINK testing.

Fixtures are available to every test module under tests/.
"""

import pytest

from services.telescope.session import DriverSession
from tests.mocks import FakeClock, MockDriver


@pytest.fixture
def clock() -> FakeClock:
    """Manually advanced clock."""
    return FakeClock()


@pytest.fixture
def driver() -> MockDriver:
    """Connected, unparked, tracking mock driver with all capabilities."""
    return MockDriver()


@pytest.fixture
def session(driver: MockDriver) -> DriverSession:
    """Session wrapping the mock driver."""
    return DriverSession(driver, "mock://scope")
