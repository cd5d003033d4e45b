"""
Utility functions for the communication hub.
"""

from __future__ import annotations

import itertools
import random
import time

_counter = itertools.count(1)


def generate_uid(prefix: str = "uid_") -> str:
    """
    Generate a process-unique id.

    The id is the prefix followed by the current timestamp in milliseconds,
    a random number and a monotonic counter, e.g. ``mid_1718000000000_412_7``.

    Args:
        prefix: String the id is prefixed with

    Returns:
        Unique id string
    """
    millis = int(time.time() * 1000)
    return f"{prefix}{millis}_{random.randint(0, 999)}_{next(_counter)}"


__all__ = ["generate_uid"]
