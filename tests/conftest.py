import importlib
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

    Initialize both domains once. Each test directory pushes the context
    of the domain it exercises (see the per-context conftest files).
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from catalogue.domain import catalogue
    from ordering.domain import ordering

    # Import the stock ledger before init() so the module the tests import
    # is the one the domain registers (init() would load a separate copy)
    importlib.import_module("catalogue.stock.ledger")

    ordering.init()
    catalogue.init()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db():
    from catalogue.domain import catalogue
    from ordering.domain import ordering
    from shared.db import drop_db, setup_db

    for domain in (ordering, catalogue):
        setup_db(domain)

    yield

    for domain in (ordering, catalogue):
        drop_db(domain)


class _RecordingSubscriber:
    """In-process consumer of the ``orders`` stream that keeps what it receives."""

    messages: list[dict] = []

    def __call__(self, message: dict) -> None:
        self.messages.append(message)


@pytest.fixture()
def published():
    """Messages Ordering publishes to the ``orders`` stream, in publish order."""
    from ordering.domain import ordering
    from shared.events.ordering import ORDERS_STREAM

    broker = ordering.brokers["default"]
    _RecordingSubscriber.messages = []
    broker._subscribers[ORDERS_STREAM].add(_RecordingSubscriber)
    yield _RecordingSubscriber.messages
    broker._subscribers[ORDERS_STREAM].discard(_RecordingSubscriber)


@pytest.fixture()
def stock_ledger_linked():
    """Deliver Ordering's published events to the Catalogue stock ledger in this process."""
    from catalogue.domain import catalogue
    from catalogue.stock.ledger import OrderEventsSubscriber
    from ordering.domain import ordering
    from shared.events.ordering import ORDERS_STREAM
    from shared.messaging import link_in_process

    link_in_process(ordering, catalogue)
    yield
    ordering.brokers["default"]._subscribers[ORDERS_STREAM].discard(OrderEventsSubscriber)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Reset process-wide collaborators and wipe both domains after every test."""
    yield

    from catalogue.domain import catalogue
    from ordering.config import reset_settings
    from ordering.domain import ordering
    from ordering.gateway import reset_customer_directory, reset_product_catalog

    reset_settings()
    reset_product_catalog()
    reset_customer_directory()

    for domain in (ordering, catalogue):
        with domain.domain_context():
            for _, provider in domain.providers.items():
                provider._data_reset()
            domain.event_store.store._data_reset()
            for _, broker in domain.brokers.items():
                broker._data_reset()
