"""
Time sources. Workflows take a clock so tests can pin "now".
"""

import time
from typing import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())
