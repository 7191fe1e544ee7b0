from __future__ import annotations

import time
from collections.abc import Callable

Clock = Callable[[], int]


def epoch_seconds() -> int:
    return int(time.time())
