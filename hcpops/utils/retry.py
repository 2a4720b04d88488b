from __future__ import annotations

from typing import Iterator


def backoff_intervals(initial: float = 0.5, maximum: float = 2.0) -> Iterator[float]:
    """Yield capped exponential backoff delays without jitter.

    Starts at ``initial`` and doubles after every step until ``maximum`` is
    reached, which is then held indefinitely.
    """
    delay = min(initial, maximum)
    while True:
        yield delay
        if delay < maximum:
            delay = min(delay * 2, maximum)
