"""
TELELINK Unit Tests - Communication Cycle

Unit tests for TelescopeClient.perform_communication(), position queries
and construction in services/telescope/client.py.

Run:
    pytest tests/unit/test_client_cycle.py -v
"""

import numpy as np
import pytest

from services.ephemeris import SkyfieldFrameService
from services.telescope import session as session_module
from services.telescope.client import TelescopeClient, detect_equinox
from services.telescope.coordinates import driver_to_vector, vector_to_driver
from services.telescope.session import DriverSession, register_driver_scheme
from telelink.types import EquinoxMode
from tests.mocks import MockDriver


class ShiftFrame:
    """Frame stand-in: JNow is J2000 shifted by +1h in RA."""

    def __init__(self):
        self.times = []

    def to_standard_epoch(self, vector, when):
        self.times.append(when)
        ra, dec = vector_to_driver(vector)
        return driver_to_vector((ra - 1.0) % 24.0, dec)

    def to_instantaneous_equinox(self, vector, when):
        self.times.append(when)
        ra, dec = vector_to_driver(vector)
        return driver_to_vector((ra + 1.0) % 24.0, dec)


@pytest.fixture
def client(session, clock):
    return TelescopeClient(
        "Mount",
        session,
        EquinoxMode.STANDARD_EPOCH,
        refresh_interval=1.0,
        clock=clock,
    )


def _tick(client, clock, seconds, step=0.0625):
    for _ in range(int(round(seconds / step))):
        clock.advance(step)
        client.perform_communication()


# =============================================================================
# Rate limiting
# =============================================================================

class TestPollRate:
    """At most one position read per refresh interval."""

    def test_no_poll_before_first_interval(self, client, clock, driver):
        client.perform_communication()
        _tick(client, clock, 0.9)

        assert driver.count("right_ascension") == 0
        assert client.get_canonical_position() is None

    def test_one_poll_per_interval(self, client, clock, driver):
        _tick(client, clock, 2.5)

        assert driver.count("right_ascension") == 2
        assert driver.count("declination") == 2

    def test_long_run_matches_interval(self, client, clock, driver):
        _tick(client, clock, 10.5, step=0.125)
        assert driver.count("right_ascension") == 10

    def test_ten_millisecond_ticks(self, client, clock, driver):
        """One poll per window; each poll lands at most one tick late."""
        poll_times = []
        for _ in range(6000):
            clock.advance(0.01)
            start = len(driver.calls)
            client.perform_communication()
            if any(call[0] == "right_ascension" for call in driver.calls[start:]):
                poll_times.append(clock())

        gaps = np.diff(poll_times)
        assert np.all(gaps >= 1.0 - 1e-5)
        assert np.all(gaps <= 1.01 + 1e-5)
        # Late ticks accumulate: 60 s holds 59 or 60 polls, never more
        assert 59 <= len(poll_times) <= 60

    def test_invalid_interval(self, session, clock):
        with pytest.raises(ValueError):
            TelescopeClient("Mount", session, EquinoxMode.STANDARD_EPOCH, refresh_interval=0)


# =============================================================================
# Gating
# =============================================================================

class TestGating:
    """Cycles that must not touch the position."""

    def test_parked_is_noop(self, client, clock, driver):
        driver._at_park = True
        _tick(client, clock, 3.0, step=0.5)

        assert driver.count("right_ascension") == 0
        assert client.get_status()["samples"] == 0

    def test_unusable_is_noop(self, client, clock, driver, session):
        session.teardown()
        driver.calls.clear()

        _tick(client, clock, 3.0, step=0.5)

        assert driver.calls == []

    def test_reconnects_when_disconnected(self, client, clock, driver):
        driver._connected = False
        clock.advance(1.0)

        client.perform_communication()

        assert driver.call_names()[:3] == ["connected", "set_connected", "connected"]
        assert driver.count("right_ascension") == 1

    def test_failed_reconnect_skips_cycle(self, client, clock, driver):
        driver._connected = False
        driver.connect_succeeds = False
        clock.advance(1.0)

        client.perform_communication()

        assert driver.count("right_ascension") == 0
        assert client.is_usable()


# =============================================================================
# Samples
# =============================================================================

class TestSamples:
    """Recorded positions and their timestamps."""

    def test_sample_recorded_in_canonical_frame(self, client, clock, driver):
        driver.ra, driver.dec = 6.0, 45.0
        clock.advance(1.0)
        client.perform_communication()

        position = client.get_canonical_position(clock())
        ra, dec = vector_to_driver(position)
        assert ra == pytest.approx(6.0)
        assert dec == pytest.approx(45.0)

        status = client.get_status()
        assert status["samples"] == 1
        assert status["last_sample_time"] == clock()

    def test_default_query_uses_position_delay(self, session, clock, driver):
        client = TelescopeClient(
            "Mount", session, EquinoxMode.STANDARD_EPOCH,
            refresh_interval=1.0, position_delay=1.0, clock=clock,
        )
        driver.ra = 0.0
        clock.advance(1.0)
        client.perform_communication()
        driver.ra = 1.0
        clock.advance(1.0)
        client.perform_communication()

        # Default query lands on the older sample
        ra, _ = vector_to_driver(client.get_canonical_position())
        assert ra == pytest.approx(0.0, abs=1e-9)

    def test_position_delay_defaults_to_refresh_interval(self, session, clock):
        client = TelescopeClient(
            "Mount", session, EquinoxMode.STANDARD_EPOCH, refresh_interval=2.0, clock=clock
        )
        assert client.position_delay == 2.0

    def test_jnow_driver_converted_at_server_time(self, session, clock, driver):
        frame = ShiftFrame()
        client = TelescopeClient(
            "Mount", session, EquinoxMode.INSTANTANEOUS_EQUINOX,
            frame=frame, clock=clock,
        )
        driver.ra, driver.dec = 5.0, 10.0
        clock.advance(1.0)
        client.perform_communication()

        assert frame.times == [clock()]
        ra, dec = vector_to_driver(client.get_canonical_position(clock()))
        assert ra == pytest.approx(4.0)
        assert dec == pytest.approx(10.0)

    def test_fault_during_poll(self, client, clock, driver):
        messages = []
        client.add_error_listener(messages.append)
        driver.inject_fault("right_ascension", description="Not connected")
        clock.advance(1.0)

        client.perform_communication()

        assert not client.is_usable()
        assert len(messages) == 1
        assert "Description: Not connected" in messages[0]
        assert client.get_status()["samples"] == 0


# =============================================================================
# Construction
# =============================================================================

class TestConstruction:
    """Equinox detection and factory behaviour."""

    @pytest.mark.parametrize(
        "system,expected",
        [
            (1, EquinoxMode.INSTANTANEOUS_EQUINOX),
            (2, EquinoxMode.STANDARD_EPOCH),
            (0, EquinoxMode.STANDARD_EPOCH),
            (3, EquinoxMode.STANDARD_EPOCH),
        ],
    )
    def test_detect_equinox(self, system, expected):
        session = DriverSession(MockDriver(equatorial_system=system), "mock://scope")
        assert detect_equinox(session) is expected

    def test_auto_equinox_connects_first(self, clock):
        driver = MockDriver(connected=False, equatorial_system=1)
        session = DriverSession(driver, "mock://scope")

        client = TelescopeClient("Mount", session, None, frame=ShiftFrame(), clock=clock)

        assert client.equinox is EquinoxMode.INSTANTANEOUS_EQUINOX
        assert driver.call_names().index("set_connected") < driver.call_names().index(
            "equatorial_system"
        )

    def test_auto_equinox_without_connection_is_not_fatal(self, clock):
        driver = MockDriver(connected=False, equatorial_system=1)
        driver.faults_when_disconnected = True
        driver.connect_succeeds = False
        session = DriverSession(driver, "mock://scope")
        messages = []

        client = TelescopeClient(
            "Mount", session, None, clock=clock, error_listener=messages.append
        )

        assert client.equinox is EquinoxMode.STANDARD_EPOCH
        assert driver.count("equatorial_system") == 0
        assert client.is_usable()
        assert messages == []

        # Connection comes up later: polling resumes on the same session
        driver.connect_succeeds = True
        clock.advance(1.0)
        client.perform_communication()

        assert client.is_usable()
        assert client.get_status()["samples"] == 1
        assert messages == []

    def test_auto_detected_jnow_gets_default_frame(self, clock):
        session = DriverSession(MockDriver(equatorial_system=1), "mock://scope")

        client = TelescopeClient("Mount", session, None, clock=clock)

        assert client.equinox is EquinoxMode.INSTANTANEOUS_EQUINOX
        assert isinstance(client._transform._frame, SkyfieldFrameService)

    def test_create_with_auto_jnow_driver(self, clock):
        driver = MockDriver(equatorial_system=1)
        register_driver_scheme("auto", lambda driver_id, **options: driver)
        try:
            client = TelescopeClient.create("Mount", "auto://scope", None, clock=clock)
        finally:
            session_module._driver_factories.pop("auto", None)

        assert client.is_usable()
        assert client.equinox is EquinoxMode.INSTANTANEOUS_EQUINOX

    def test_create_with_bad_identifier(self, clock):
        client = TelescopeClient.create(
            "Mount", "nosuchscheme://device", EquinoxMode.STANDARD_EPOCH, clock=clock
        )

        assert not client.is_usable()
        client.perform_communication()
        client.goto_position(driver_to_vector(1.0, 1.0))
        assert client.get_canonical_position() is None

    def test_close_disconnects_and_releases(self, client, driver):
        client.close()

        assert ("set_connected", False) in driver.calls
        assert driver.closed
        assert not client.is_usable()

    def test_status(self, client):
        status = client.get_status()

        assert status["name"] == "Mount"
        assert status["driver_id"] == "mock://scope"
        assert status["usable"] is True
        assert status["connected"] is True
        assert status["equinox"] == "j2000"
        assert status["last_sample_time"] is None

    def test_returned_position_is_unit_vector(self, client, clock, driver):
        driver.ra, driver.dec = 3.0, -20.0
        clock.advance(1.0)
        client.perform_communication()
        driver.ra, driver.dec = 3.1, -19.0
        clock.advance(1.0)
        client.perform_communication()

        position = client.get_canonical_position(clock() - 0.5)
        assert np.linalg.norm(position) == pytest.approx(1.0)
