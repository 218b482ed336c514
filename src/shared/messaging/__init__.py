"""Broker helpers shared by the Ordering and Catalogue domains.

Importing this package registers the ``redis_streams`` broker provider
with Protean, so it must be imported before ``domain.init()``.

Brokers come from each domain's domain.toml:
- ``inline`` (default): in-memory, only reaches subscribers in this process
- ``redis_streams`` (production): durable Redis Streams shared by processes
"""

from protean.adapters.broker import BROKER_PROVIDERS, InlineBroker
from protean.domain import Domain
from protean.port.broker import BaseBroker
from protean.utils import Processing

BROKER_PROVIDERS.setdefault("redis_streams", "shared.messaging.redis_broker.RedisStreamsBroker")

CONNECTED = "connected"
DEGRADED = "degraded"


def is_durable(broker: BaseBroker) -> bool:
    """Whether messages published to ``broker`` outlive this process."""
    return not isinstance(broker, InlineBroker)


def delivers_in_process(broker: BaseBroker, stream: str) -> bool:
    """Whether a publish to ``stream`` reaches a subscriber before it returns."""
    return broker.domain.config["message_processing"] == Processing.SYNC.value and bool(broker._subscribers[stream])


def link_in_process(publisher: Domain, consumer: Domain, name: str = "default") -> None:
    """Let ``consumer``'s subscribers receive what ``publisher`` publishes in this process.

    Only needed for in-memory brokers: a durable broker already connects
    the two domains through the shared stream.
    """
    broker = publisher.brokers[name]
    if is_durable(broker):
        return
    for record in consumer.registry.subscribers.values():
        if record.cls.meta_.broker == name:
            broker.register(record.cls)


def relay_status(domain: Domain, name: str = "default") -> str:
    return CONNECTED if domain.brokers[name].ping() else DEGRADED
