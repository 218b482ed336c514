"""Protean Engine runner for Orderflow domains.

Starts Engine workers that process events asynchronously:
- ordering: OrderOutboxProcessor polls the outbox table and publishes
  order events to the ``orders`` stream
- catalogue: a BrokerSubscription reads the ``orders`` stream and feeds
  the stock ledger

Engine.run() blocks, so each domain runs in its own process. With
PROTEAN_ENV=production both use Redis Streams; if Redis is down at start
the engines stay up in degraded mode and catch up once it is back.

Usage:
    python src/server.py --domain ordering
    python src/server.py --domain catalogue
"""

import argparse

import structlog
from protean.server.engine import Engine

logger = structlog.get_logger("server")


def _get_domain(name):
    """Import and initialize a domain by name."""
    if name == "ordering":
        from ordering.domain import ordering

        ordering.init()
        return ordering
    elif name == "catalogue":
        from catalogue.domain import catalogue

        catalogue.init()
        return catalogue
    else:
        raise ValueError(f"Unknown domain: {name}")


def build_engine(name: str, test_mode: bool = False) -> Engine:
    from ordering.outbox.publisher import OrderOutboxProcessor
    from shared.messaging import relay_status

    domain = _get_domain(name)
    engine = Engine(domain, test_mode=test_mode)

    if name == "ordering":
        engine._outbox_processors = {
            processor_name: OrderOutboxProcessor(
                engine,
                processor.database_provider_name,
                processor.broker_provider_name,
                messages_per_tick=processor.messages_per_tick,
                tick_interval=processor.tick_interval,
            )
            for processor_name, processor in engine._outbox_processors.items()
        }

    logger.info(
        "engine_built",
        domain=name,
        broker=relay_status(domain),
        subscriptions=len(engine._subscriptions),
        broker_subscriptions=len(engine._broker_subscriptions),
        outbox_processors=len(engine._outbox_processors),
    )
    return engine


def main():
    from shared.logging import configure_logging

    parser = argparse.ArgumentParser(description="Orderflow Engine runner")
    parser.add_argument(
        "--domain",
        choices=["ordering", "catalogue"],
        required=True,
        help="Domain engine to run in this process",
    )
    args = parser.parse_args()

    configure_logging(log_file_prefix=f"engine_{args.domain}")
    build_engine(args.domain).run()


if __name__ == "__main__":
    main()
