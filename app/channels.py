from __future__ import annotations

import threading
from queue import Full, Queue
from typing import Any

POLL_SEC = 0.2


class _Stop:
    def __repr__(self) -> str:
        return "STOP"


# sentinela para encerrar o updater pela fila de trigger
STOP = _Stop()


class Trigger:
    def __repr__(self) -> str:
        return "TRIGGER"


TRIGGER = Trigger()


def put_or_stop(q: Queue, item: Any, stop: threading.Event) -> bool:
    """
    put bloqueante que desiste quando `stop` é sinalizado.
    Retorna False se o item não foi entregue.
    """
    while not stop.is_set():
        try:
            q.put(item, timeout=POLL_SEC)
            return True
        except Full:
            continue
    return False
