"""Redis Streams broker with pending-entry recovery and a dead-letter stream.

Extends Protean's ``RedisBroker`` for consumers that must survive
restarts:

- the consumer name is stable (``consumer_name`` in the broker config,
  else the host name), so a restarted worker finds its own pending
  entries again;
- every read first re-delivers this consumer's pending entries, then
  claims entries other consumers left idle for ``claim_idle_ms``, and
  only then reads new entries;
- a nacked entry stays pending and is re-delivered on the next read.
  After ``max_retries`` re-deliveries it is copied to ``<stream>:dlq``
  and acknowledged;
- when Redis is unreachable reads return nothing and the worker keeps
  running in degraded mode.

Configured with ``provider = "redis_streams"`` in domain.toml.
"""

import socket

import redis
import structlog
from protean.adapters.broker.redis import DATA_FIELD, NEW_MESSAGES_ID, RedisBroker

logger = structlog.get_logger(__name__)

PENDING_ID = "0"
DEFAULT_MAX_RETRIES = 3
DEFAULT_CLAIM_IDLE_MS = 60_000


def dead_letter_stream(stream: str) -> str:
    return f"{stream}:dlq"


class RedisStreamsBroker(RedisBroker):
    __broker__ = "redis_streams"

    def __init__(self, name, domain, conn_info) -> None:
        super().__init__(name, domain, conn_info)

        self._consumer_name = conn_info.get("consumer_name") or socket.gethostname()
        self._max_retries = int(conn_info.get("max_retries", DEFAULT_MAX_RETRIES))
        self._claim_idle_ms = int(conn_info.get("claim_idle_ms", DEFAULT_CLAIM_IDLE_MS))
        self._enable_dlq = True

    @property
    def consumer_name(self) -> str:
        return self._consumer_name

    def _read(self, stream: str, consumer_group: str, no_of_messages: int) -> list[tuple[str, dict]]:
        try:
            self._ensure_group(consumer_group, stream)

            messages: dict[str, dict] = {}
            for fetch in (self._own_pending, self._claim_idle, self._new_entries):
                wanted = no_of_messages - len(messages)
                if wanted <= 0:
                    break
                for identifier, message in fetch(stream, consumer_group, wanted):
                    messages.setdefault(identifier, message)
        except redis.ConnectionError as exc:
            logger.warning("broker_degraded", stream=stream, consumer_group=consumer_group, error=str(exc))
            return []

        return list(messages.items())[:no_of_messages]

    def _own_pending(self, stream, consumer_group, count):
        response = self.redis_instance.xreadgroup(consumer_group, self._consumer_name, {stream: PENDING_ID}, count=count)
        return self._entries(stream, consumer_group, response[0][1] if response else [])

    def _claim_idle(self, stream, consumer_group, count):
        response = self.redis_instance.xautoclaim(
            stream, consumer_group, self._consumer_name, min_idle_time=self._claim_idle_ms, start_id="0-0", count=count
        )
        claimed = response[1] if response and len(response) > 1 else []
        if claimed:
            logger.info("pending_entries_claimed", stream=stream, consumer_group=consumer_group, count=len(claimed))
        return self._entries(stream, consumer_group, claimed)

    def _new_entries(self, stream, consumer_group, count):
        response = self.redis_instance.xreadgroup(
            consumer_group, self._consumer_name, {stream: NEW_MESSAGES_ID}, count=count
        )
        return self._entries(stream, consumer_group, response[0][1] if response else [])

    def _entries(self, stream, consumer_group, raw):
        entries = []
        for message_id, fields in raw:
            identifier = self._decode_if_bytes(message_id)
            if not fields:
                # Trimmed from the stream while pending
                self.redis_instance.xack(stream, consumer_group, identifier)
                continue
            entries.append((identifier, self._deserialize_message(fields)))
        return entries

    def _ack(self, stream: str, identifier: str, consumer_group: str) -> bool:
        acknowledged = super()._ack(stream, identifier, consumer_group)
        self.redis_instance.hdel(self._retries_key(stream, consumer_group), identifier)
        return acknowledged

    def _nack(self, stream: str, identifier: str, consumer_group: str) -> bool:
        """Leave the entry pending for re-delivery, or dead-letter it once retries run out."""
        attempts = self.redis_instance.hincrby(self._retries_key(stream, consumer_group), identifier, 1)
        if attempts <= self._max_retries:
            logger.warning(
                "broker_message_requeued",
                stream=stream,
                consumer_group=consumer_group,
                message_id=identifier,
                attempts=attempts,
            )
            return True

        for _, fields in self.redis_instance.xrange(stream, min=identifier, max=identifier):
            self.redis_instance.xadd(
                dead_letter_stream(stream),
                {
                    DATA_FIELD: self._extract_data_field(fields),
                    "consumer_group": consumer_group,
                    "message_id": identifier,
                    "attempts": attempts,
                },
            )
        self.redis_instance.xack(stream, consumer_group, identifier)
        self.redis_instance.hdel(self._retries_key(stream, consumer_group), identifier)

        logger.error(
            "broker_message_dead_lettered",
            stream=stream,
            consumer_group=consumer_group,
            message_id=identifier,
            attempts=attempts,
        )
        return True

    def _retries_key(self, stream: str, consumer_group: str) -> str:
        return f"{stream}:{consumer_group}:retries"
