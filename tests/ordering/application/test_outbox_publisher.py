"""Outbox publishing: order changes commit even when their events cannot be delivered yet."""

import asyncio
from contextlib import contextmanager
from types import SimpleNamespace

import pytest
from ordering.order.workflow import ItemRequest
from ordering.outbox.publisher import OrderOutboxProcessor, hold_reason, pending_messages, publish_pending
from protean import current_domain
from shared.events.ordering import ORDERS_STREAM


class _FailingSubscriber:
    def __call__(self, message: dict) -> None:
        raise ConnectionError("consumer went away")


class _Collector:
    messages: list[dict] = []

    def __call__(self, message: dict) -> None:
        self.messages.append(message)


@contextmanager
def _subscribed(subscriber):
    broker = current_domain.brokers["default"]
    broker._subscribers[ORDERS_STREAM].add(subscriber)
    try:
        yield
    finally:
        broker._subscribers[ORDERS_STREAM].discard(subscriber)


@pytest.fixture()
def failing_subscriber():
    with _subscribed(_FailingSubscriber):
        yield


def _outbox_rows():
    repo = current_domain._get_outbox_repo("default")
    return repo._dao.query.order_by("created_at").all().items


def _place(workflow, customer_id="cust-001"):
    return workflow.create_order(customer_id=customer_id, items=[ItemRequest(product_id="prod-001", quantity=1)])


class TestHeldRows:
    def test_order_commits_without_a_subscriber(self, workflow):
        order = _place(workflow)
        assert workflow.get_order(order["id"])["status"] == "Pending"
        assert [row.status for row in _outbox_rows()] == ["pending"]

    def test_in_memory_broker_without_subscriber_is_held(self):
        assert hold_reason(current_domain.brokers["default"]) == "no_in_process_subscriber"

    def test_nothing_is_published_while_held(self, workflow):
        _place(workflow)
        assert publish_pending() == 0
        [row] = _outbox_rows()
        assert row.retry_count == 0
        assert current_domain.brokers["default"]._messages[ORDERS_STREAM] == []

    def test_unreachable_broker_holds_rows(self, workflow, published, monkeypatch):
        monkeypatch.setattr(current_domain.brokers["default"], "ping", lambda: False)
        _place(workflow)

        assert hold_reason(current_domain.brokers["default"]) == "broker_unreachable"
        assert published == []
        assert [row.status for row in _outbox_rows()] == ["pending"]

    def test_held_rows_are_published_once_a_subscriber_listens(self, workflow):
        order = _place(workflow)
        workflow.change_status(order["id"], "Confirmed")

        _Collector.messages = []
        with _subscribed(_Collector):
            assert publish_pending() == 2

        assert [m["routing_key"] for m in _Collector.messages] == ["orders.created", "orders.status.updated"]
        assert {row.status for row in _outbox_rows()} == {"published"}

    def test_message_id_is_the_event_id(self, workflow, published):
        _place(workflow)
        [row] = _outbox_rows()
        assert published[0]["id"] == row.message_id


class TestPendingMessages:
    def test_oldest_rows_come_first(self, workflow):
        first = _place(workflow, "cust-001")
        second = _place(workflow, "cust-002")
        third = _place(workflow, "cust-003")

        rows = pending_messages()
        assert [row.data["order_id"] for row in rows] == [first["id"], second["id"], third["id"]]

    def test_limit_applies_in_the_query(self, workflow):
        first = _place(workflow, "cust-001")
        second = _place(workflow, "cust-002")
        _place(workflow, "cust-003")

        rows = pending_messages(limit=2)
        assert [row.data["order_id"] for row in rows] == [first["id"], second["id"]]

    def test_publish_respects_limit(self, workflow):
        for customer_id in ("cust-001", "cust-002", "cust-003"):
            _place(workflow, customer_id)

        _Collector.messages = []
        with _subscribed(_Collector):
            assert publish_pending(limit=2) == 2

        assert len(_Collector.messages) == 2
        assert [row.status for row in _outbox_rows()] == ["published", "published", "pending"]


class TestPublishFailures:
    def test_first_failure_is_marked_and_later_rows_wait(self, workflow):
        _place(workflow, "cust-001")
        _place(workflow, "cust-002")

        with _subscribed(_FailingSubscriber):
            assert publish_pending() == 0

        first, second = _outbox_rows()
        assert (first.status, first.retry_count) == ("failed", 1)
        assert "consumer went away" in first.last_error["message"]
        assert (second.status, second.retry_count) == ("pending", 0)

    def test_failed_row_waits_for_its_backoff(self, workflow, failing_subscriber):
        _place(workflow)
        [row] = _outbox_rows()
        assert row.next_retry_at is not None
        assert pending_messages() == []

    def test_configured_attempts_bound_the_retries(self, workflow, failing_subscriber, monkeypatch):
        monkeypatch.setitem(current_domain.config["outbox"]["retry"], "max_attempts", 2)
        _place(workflow)

        repo = current_domain._get_outbox_repo("default")
        [row] = _outbox_rows()
        assert (row.status, row.retry_count) == ("failed", 1)

        row.next_retry_at = None
        repo.add(row)
        assert publish_pending() == 0

        [row] = _outbox_rows()
        assert (row.status, row.retry_count) == ("abandoned", 2)
        assert pending_messages() == []


class TestOrderOutboxProcessor:
    @pytest.fixture()
    def processor(self, ordering_domain):
        processor = OrderOutboxProcessor(SimpleNamespace(domain=ordering_domain, loop=None), "default", "default")
        asyncio.run(processor.initialize())
        return processor

    def test_batch_is_empty_while_held(self, processor, workflow):
        _place(workflow)
        assert asyncio.run(processor.get_next_batch_of_messages()) == []

    def test_batch_is_oldest_first_and_bounded(self, processor, workflow, monkeypatch):
        ids = [_place(workflow, customer_id)["id"] for customer_id in ("cust-001", "cust-002")]
        monkeypatch.setattr(processor, "messages_per_tick", 1)
        monkeypatch.setattr("ordering.outbox.publisher.hold_reason", lambda broker: None)

        [row] = asyncio.run(processor.get_next_batch_of_messages())
        assert row.data["order_id"] == ids[0]
        assert row.max_retries == processor.retry_config["max_attempts"]

    def test_publishes_to_the_orders_stream(self, processor, workflow, published):
        published.clear()
        _place(workflow)
        [row] = _outbox_rows()

        ok, error = asyncio.run(processor._publish_message(row))
        assert (ok, error) == (True, None)
        assert published[-1]["routing_key"] == "orders.created"
        assert published[-1]["id"] == row.message_id
