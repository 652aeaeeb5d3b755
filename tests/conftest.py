import pytest

from tests.helpers.fake_scheduler import FakeScheduler


@pytest.fixture(scope="function")
def scheduler() -> FakeScheduler:
    return FakeScheduler()
