from __future__ import annotations

import math


def truncate_to_second(epoch: float) -> int:
    return int(math.floor(epoch))


def latency_sec(now_epoch: float, written_value: int) -> float:
    return now_epoch - float(written_value)
