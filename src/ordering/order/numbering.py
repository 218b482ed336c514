"""Order number allocation: ``ORD-{yyyyMMdd}-{digits}``."""

import random
from collections.abc import Callable
from datetime import UTC, date, datetime

from shared.errors import ConflictError

SUFFIX_DIGITS = 4
ATTEMPTS_PER_WIDTH = 5
MAX_ATTEMPTS = 20

_rng = random.SystemRandom()


def generate_order_number(
    is_taken: Callable[[str], bool],
    today: date | None = None,
    rng: random.Random | None = None,
) -> str:
    """Return an order number that ``is_taken`` reports as free.

    Starts with a 4-digit random suffix and widens it by two digits after
    every few collisions, so a busy day cannot exhaust the number space.
    """
    today = today or datetime.now(UTC).date()
    rng = rng or _rng
    prefix = f"ORD-{today:%Y%m%d}-"

    digits = SUFFIX_DIGITS
    for attempt in range(1, MAX_ATTEMPTS + 1):
        candidate = f"{prefix}{rng.randrange(10**digits):0{digits}d}"
        if not is_taken(candidate):
            return candidate
        if attempt % ATTEMPTS_PER_WIDTH == 0:
            digits += 2

    raise ConflictError(f"Could not allocate a unique order number for {today:%Y-%m-%d}")
