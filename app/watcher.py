from __future__ import annotations

import threading
from queue import Queue
from typing import Iterable, Optional

from loguru import logger

from domain.errors import ValueParseError
from domain.models import InboxEvent, ObservationEvent, TaskEnded
from domain.parsing import parse_timestamp
from domain.ports import Clock

from .channels import put_or_stop

SOURCE = "watcher"


class WatcherTask:
    """
    Consome as linhas do canal de observação e publica ObservationEvent no inbox.

    - linha inválida: warning + descarta (normal antes do primeiro valor existir)
    - fim do stream: publica TaskEnded e termina (fatal para o probe)
    """

    def __init__(
        self,
        lines: Iterable[str],
        clock: Clock,
        inbox: "Queue[InboxEvent]",
        stop: Optional[threading.Event] = None,
    ):
        self.lines = lines
        self.clock = clock
        self.inbox = inbox
        self.stop = stop or threading.Event()

        self.total_lines = 0
        self.total_parsed = 0
        self.total_rejected = 0

        self._t = threading.Thread(target=self.run, name="watcher", daemon=True)

    def start(self) -> None:
        self._t.start()

    def join(self, timeout: Optional[float] = None) -> None:
        self._t.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self._t.is_alive()

    def handle_line(self, line: str) -> Optional[ObservationEvent]:
        self.total_lines += 1
        observed_at = self.clock.now_epoch()
        try:
            value = parse_timestamp(line)
        except ValueParseError as e:
            self.total_rejected += 1
            logger.warning("{}", e)
            return None

        self.total_parsed += 1
        return ObservationEvent(value=value, observed_at=observed_at)

    def run(self) -> None:
        reason = "end of stream"
        try:
            for line in self.lines:
                if self.stop.is_set():
                    reason = "stopped"
                    break
                ev = self.handle_line(line)
                if ev is None:
                    continue
                if not put_or_stop(self.inbox, ev, self.stop):
                    reason = "stopped"
                    break
        except Exception as e:
            # erro de leitura do transporte encerra o stream como EOF
            reason = f"read error: {e}"
            logger.error("observation stream failed: {}", e)
        finally:
            put_or_stop(self.inbox, TaskEnded(source=SOURCE, reason=reason), self.stop)
