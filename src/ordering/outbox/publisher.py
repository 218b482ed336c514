"""Publish Ordering's outbox to the ``orders`` broker stream.

Protean writes one ``Outbox`` row per order event in the same
transaction as the order (``enable_outbox = true``). Rows are published
oldest first, either right after each workflow operation
(``publish_pending``) or by ``OrderOutboxProcessor`` inside the Protean
engine (``server.py --domain ordering``).

Rows are held, not published, when the broker cannot deliver them:

- the broker is unreachable (degraded start): rows stay Pending until it
  comes back;
- the broker is in-memory and no subscriber in this process listens on
  the stream: publishing would lose the message with the process.

A failed publish is marked with Protean's backoff, bounded by
``[outbox.retry]`` in domain.toml, and the pass stops there so later
events for the same order are not published ahead of it.
"""

import os
import socket

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.port.broker import BaseBroker
from protean.server.outbox_processor import OutboxProcessor
from protean.utils.globals import current_domain
from protean.utils.outbox import Outbox, OutboxStatus

from shared.events.ordering import ORDERS_STREAM, routing_key_for
from shared.messaging import delivers_in_process, is_durable

logger = structlog.get_logger(__name__)

DATABASE = "default"
BROKER = "default"


def retry_settings(domain=None) -> dict:
    retry = (domain or current_domain).config.get("outbox", {}).get("retry", {})
    return {
        "max_attempts": retry.get("max_attempts", 3),
        "base_delay_seconds": retry.get("base_delay_seconds", 60),
    }


def broker_message(row: Outbox) -> dict:
    """The broker payload for an outbox row."""
    message = {
        "id": row.message_id,
        "type": row.type,
        "routing_key": routing_key_for(row.type),
        "data": row.data,
        "metadata": row.metadata.to_dict() if row.metadata else {},
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }
    if row.correlation_id:
        message["correlation_id"] = row.correlation_id
    if row.trace_id:
        message["trace_id"] = row.trace_id
    return message


def hold_reason(broker: BaseBroker) -> str | None:
    """Why rows cannot be published to ``broker`` right now, if they cannot."""
    if not broker.ping():
        return "broker_unreachable"
    if not is_durable(broker) and not delivers_in_process(broker, ORDERS_STREAM):
        return "no_in_process_subscriber"
    return None


def pending_messages(limit: int = 100, max_attempts: int | None = None, domain=None) -> list[Outbox]:
    """Rows due for publishing, oldest first."""
    domain = domain or current_domain
    max_attempts = max_attempts or retry_settings(domain)["max_attempts"]
    repo = domain._get_outbox_repo(DATABASE)

    rows = (
        repo._dao.query.filter(status__in=[OutboxStatus.PENDING.value, OutboxStatus.FAILED.value])
        .order_by("created_at")
        .limit(limit)
        .all()
        .items
    )

    ready = []
    for row in rows:
        row.max_retries = max_attempts
        if row.is_ready_for_processing():
            ready.append(row)
    return ready


def worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


def publish_pending(limit: int = 100, broker: BaseBroker | None = None) -> int:
    """Publish up to ``limit`` due rows. Returns how many were published."""
    broker = broker or current_domain.brokers[BROKER]
    reason = hold_reason(broker)
    if reason:
        logger.warning("outbox_held", reason=reason, broker=broker.name)
        return 0

    repo = current_domain._get_outbox_repo(DATABASE)
    retry = retry_settings()
    worker = worker_id()

    published = 0
    for row in pending_messages(limit, retry["max_attempts"]):
        with UnitOfWork():
            claimed, result = row.start_processing(worker)
            if not claimed:
                logger.info("outbox_row_skipped", message_id=row.message_id, result=result.value)
                continue
            repo.add(row)

        try:
            broker.publish(ORDERS_STREAM, broker_message(row))
        except Exception as exc:
            row.mark_failed(exc, base_delay_seconds=retry["base_delay_seconds"], max_retries=retry["max_attempts"])
            repo.add(row)
            logger.warning(
                "outbox_publish_failed",
                message_id=row.message_id,
                type=row.type,
                status=row.status,
                retry_count=row.retry_count,
                error=str(exc),
            )
            break

        row.mark_published()
        repo.add(row)
        published += 1

    if published:
        logger.info("outbox_published", published=published, broker=broker.name)
    return published


class OrderOutboxProcessor(OutboxProcessor):
    """Engine outbox processor that publishes order events to the ``orders`` stream.

    Protean's processor publishes each row to its event store stream
    (``ordering::order-<id>``). Consumers bind to one stream for every
    order instead, with a routing key per event type.
    """

    async def get_next_batch_of_messages(self) -> list[Outbox]:
        reason = hold_reason(self.broker)
        if reason:
            logger.warning("outbox_held", reason=reason, broker=self.broker.name)
            return []
        return pending_messages(self.messages_per_tick, self.retry_config["max_attempts"], self.engine.domain)

    async def _publish_message(self, message: Outbox) -> tuple[bool, Exception | None]:
        try:
            self.broker.publish(ORDERS_STREAM, broker_message(message))
        except Exception as exc:
            logger.error("outbox_publish_failed", message_id=message.message_id, error=str(exc))
            return False, exc
        return True, None
