import os
from pathlib import Path

import pytest

# Test directory -> marker applied to every test collected under it
DIRECTORY_MARKERS = {
    "domain": "domain",
    "application": "application",
    "bdd": "bdd",
    "integration": "integration",
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Protean config overlay (domain.toml section) the marketplace runs under",
    )


def pytest_sessionstart(session):
    """Select the config overlay, then initialize the marketplace domain once.

    The pushed context stays active for collection; per-test contexts come
    from the ``marketplace_bed`` fixture.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from marketplace.domain import marketplace

    marketplace.init()
    marketplace.domain_context().push()


def pytest_collection_modifyitems(config, items):
    for item in items:
        parts = Path(item.fspath).parts
        marker = next((DIRECTORY_MARKERS[part] for part in parts if part in DIRECTORY_MARKERS), None)
        if marker is None:
            continue
        item.add_marker(getattr(pytest.mark, marker))
        if marker == "integration" and not item.get_closest_marker("fast"):
            item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def marketplace_schema():
    """Create the tables of every registered aggregate for the session."""
    from marketplace.domain import marketplace
    from marketplace.utils.db import drop_db, setup_db

    setup_db(marketplace)
    yield
    drop_db(marketplace)


@pytest.fixture(autouse=True)
def reset_stores():
    """Empty every provider and the event store after each test."""
    yield

    from protean import current_domain

    for provider in current_domain.providers.values():
        provider._data_reset()
    current_domain.event_store.store._data_reset()
