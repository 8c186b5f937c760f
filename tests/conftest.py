import pytest

from tests.fakes import FakeChannel, SimulatedSensor


@pytest.fixture
def sensor():
    return SimulatedSensor()


@pytest.fixture
def silent_channel():
    return FakeChannel()
