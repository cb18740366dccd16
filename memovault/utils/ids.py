"""Helpers for minting stable record identifiers."""

from __future__ import annotations

import threading
import time

_lock = threading.Lock()
_last_issued = 0


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_id() -> str:
    """
    Mint a new decimal id from the current epoch milliseconds.

    Ids are strictly increasing within the process, so two calls made in the
    same millisecond never collide.
    """
    global _last_issued
    with _lock:
        candidate = now_millis()
        if candidate <= _last_issued:
            candidate = _last_issued + 1
        _last_issued = candidate
    return str(candidate)
