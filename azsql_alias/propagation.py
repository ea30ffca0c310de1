"""Waiting for a SQL DNS alias to point at its new server.

Azure gives no completion signal for alias propagation, so the wait polls
an explicit "alias resolves to the target server" check with exponential
backoff and stops early once it passes.  The fixed wait time is the upper
bound: a check that never passes waits exactly that long.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from typing import Callable, Optional, Tuple

from ._constants import POLL_BACKOFF_FACTOR, POLL_INITIAL_DELAY, POLL_MAX_DELAY
from .errors import PropagationCancelled

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Tuple[str, list, list]]


def alias_resolves_to(
    alias_record: str,
    server_fqdn: str,
    resolver: Resolver = socket.gethostbyname_ex,
) -> bool:
    """Return ``True`` if *server_fqdn* is in the CNAME chain of *alias_record*.

    Lookup failures count as "not yet".
    """
    try:
        canonical, aliases, _addrs = resolver(alias_record)
    except OSError as exc:
        logger.debug("Lookup of %s failed: %s", alias_record, exc)
        return False
    want = server_fqdn.rstrip(".").lower()
    chain = {n.rstrip(".").lower() for n in [canonical, *aliases]}
    return want in chain


def wait_for_alias(
    check: Optional[Callable[[], bool]],
    max_wait: float,
    *,
    initial_delay: float = POLL_INITIAL_DELAY,
    factor: float = POLL_BACKOFF_FACTOR,
    max_delay: float = POLL_MAX_DELAY,
    cancel: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Block until *check* passes or *max_wait* seconds have elapsed.

    Args:
        check:          Zero-argument callable; ``None`` sleeps the full
                        *max_wait* without polling.
        max_wait:       Upper bound in seconds.
        initial_delay:  First sleep between polls.
        factor:         Multiplier applied to the delay after each poll.
        max_delay:      Cap on a single sleep.
        cancel:         Event that aborts the wait when set.  Pauses then
                        block on ``cancel.wait`` instead of *sleep*.
        sleep, clock:   Injected for tests.  *sleep* is unused when
                        *cancel* is given.

    Returns:
        ``True`` if the check passed, ``False`` if the bound was reached.

    Raises:
        PropagationCancelled: *cancel* was set before the wait finished.
    """
    if max_wait <= 0:
        raise ValueError(f"max_wait must be positive, got {max_wait}")

    def _pause(seconds: float) -> None:
        if cancel is None:
            sleep(seconds)
        elif cancel.wait(seconds):
            raise PropagationCancelled("DNS propagation wait cancelled")

    if cancel is not None and cancel.is_set():
        raise PropagationCancelled("DNS propagation wait cancelled")

    if check is None:
        _pause(max_wait)
        return False

    deadline = clock() + max_wait
    delay = initial_delay
    attempt = 0
    while True:
        attempt += 1
        if check():
            logger.info("DNS alias propagated after %d check(s)", attempt)
            return True
        remaining = deadline - clock()
        if remaining <= 0:
            logger.warning(
                "DNS alias not confirmed after %.0fs; continuing as after a fixed wait",
                max_wait,
            )
            return False
        _pause(min(delay, remaining, max_delay))
        delay *= factor
