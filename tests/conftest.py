import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Selects the config overlay through PROTEAN_ENV and pins the carrier to the
    fake adapter so no test ever reaches a real carrier.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("CARRIER_ADAPTER", "fake")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to reset process-wide collaborators after every test"""
    yield

    from marketplace.carrier import reset_carrier
    from marketplace.tracking.reconciler import reconciler_metrics

    reset_carrier()
    reconciler_metrics.reset()
