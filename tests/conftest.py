import pytest

from fakes import FakeBackend, files_listing, weather_listing


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend([weather_listing(), files_listing()])
