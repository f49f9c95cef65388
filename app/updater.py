from __future__ import annotations

import threading
from queue import Empty, Full, Queue
from typing import Callable, Optional

from loguru import logger

from domain.errors import ResourceError
from domain.models import InboxEvent, TaskEnded, WriteEvent
from domain.ports import Clock, ResourceController
from domain.services import truncate_to_second

from .channels import POLL_SEC, STOP, put_or_stop

SOURCE = "updater"


class UpdaterTask:
    """
    A cada trigger grava `now` (truncado no segundo) no Secret e publica WriteEvent.

    A fila de trigger tem tamanho 1: o correlator só consegue enviar o próximo
    trigger depois que este foi consumido, e só envia depois de confirmar a
    escrita anterior no pod (uma escrita pendente por vez).
    """

    def __init__(
        self,
        controller: ResourceController,
        clock: Clock,
        inbox: "Queue[InboxEvent]",
        *,
        secret_name: str,
        secret_key: str,
        max_retries: int = 3,
        backoff_sec: float = 0.25,
        stop: Optional[threading.Event] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.controller = controller
        self.clock = clock
        self.inbox = inbox
        self.secret_name = secret_name
        self.secret_key = secret_key
        self.max_retries = max_retries
        self.backoff_sec = backoff_sec
        self.stop = stop or threading.Event()
        # espera interrompível pelo stop
        self._sleep = sleep or self.stop.wait

        self.triggers: "Queue[object]" = Queue(maxsize=1)

        self.total_writes = 0
        self.total_failed = 0

        self._t = threading.Thread(target=self.run, name="updater", daemon=True)

    def start(self) -> None:
        self._t.start()

    def join(self, timeout: Optional[float] = None) -> None:
        self._t.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self._t.is_alive()

    def shutdown(self) -> None:
        self.stop.set()
        try:
            self.triggers.put_nowait(STOP)
        except Full:
            # fila cheia: o stop event basta
            pass

    def _write(self, value: str) -> bool:
        attempt = 0
        while True:
            try:
                self.controller.create_or_replace_value(self.secret_name, self.secret_key, value)
                return True
            except ResourceError as e:
                attempt += 1
                if attempt > self.max_retries or self.stop.is_set():
                    logger.warning("secret update fail: {}", e)
                    return False
                delay = min(self.backoff_sec * (2 ** (attempt - 1)), 2.0)
                logger.warning(
                    "secret update fail (attempt {}/{}), retrying in {:.2f}s: {}",
                    attempt, self.max_retries + 1, delay, e,
                )
                self._sleep(delay)

    def update_once(self) -> Optional[WriteEvent]:
        value = truncate_to_second(self.clock.now_epoch())

        if not self._write(str(value)):
            self.total_failed += 1
            return None

        self.total_writes += 1
        logger.info("secret updated with {}", value)
        return WriteEvent(value=value, applied_at=self.clock.now_epoch())

    def run(self) -> None:
        reason = "stopped"
        try:
            while not self.stop.is_set():
                try:
                    item = self.triggers.get(timeout=POLL_SEC)
                except Empty:
                    continue
                if item is STOP:
                    break

                ev = self.update_once()
                if ev is None:
                    # sem WriteEvent o correlator não re-dispara: a medição para aqui
                    continue
                if not put_or_stop(self.inbox, ev, self.stop):
                    break
        except Exception as e:
            reason = f"error: {e}"
            logger.error("secret updater failed: {}", e)
        finally:
            put_or_stop(self.inbox, TaskEnded(source=SOURCE, reason=reason), self.stop)
