from __future__ import annotations

import threading
from queue import Empty, Queue
from typing import Iterable, List, Optional

from loguru import logger

from domain.errors import StreamClosedError
from domain.models import (
    CycleResult,
    InboxEvent,
    LatencyRecord,
    ObservationEvent,
    TaskEnded,
    WriteEvent,
)
from domain.ports import CycleSink, RecordSink

from .channels import POLL_SEC, TRIGGER, put_or_stop


class Correlator:
    """
    Loop principal. Único dono do estado "última escrita" / "último valor no pod".

    - WriteEvent: atualiza last_write_value (sem saída)
    - ObservationEvent: atualiza last_observed_value; se já houve escrita,
      emite LatencyRecord. Se bateu com a escrita, fecha o ciclo e dispara
      o próximo update.
    - TaskEnded: StreamClosedError (fatal)
    """

    def __init__(
        self,
        inbox: "Queue[InboxEvent]",
        triggers: "Queue[object]",
        sink: RecordSink,
        *,
        cycle_sinks: Iterable[CycleSink] = (),
        max_cycles: int = 0,
        stop: Optional[threading.Event] = None,
    ):
        self.inbox = inbox
        self.triggers = triggers
        self.sink = sink
        self.cycle_sinks: List[CycleSink] = list(cycle_sinks)
        self.max_cycles = max_cycles
        self.stop = stop or threading.Event()

        self.last_write_value: Optional[int] = None
        self.last_observed_value: Optional[int] = None

        # escrita ainda não confirmada no pod; o pod continua ecoando o mesmo
        # valor a cada leitura e isso não pode gerar um segundo trigger
        self._pending = False

        self.cycles = 0
        self.total_records = 0

    @property
    def done(self) -> bool:
        return self.max_cycles > 0 and self.cycles >= self.max_cycles

    def trigger(self) -> bool:
        return put_or_stop(self.triggers, TRIGGER, self.stop)

    def handle(self, ev: InboxEvent) -> Optional[LatencyRecord]:
        if isinstance(ev, WriteEvent):
            self.last_write_value = ev.value
            self._pending = True
            return None

        if isinstance(ev, TaskEnded):
            raise StreamClosedError(ev.source, ev.reason)

        if not isinstance(ev, ObservationEvent):
            raise TypeError(f"unexpected inbox event: {ev!r}")

        self.last_observed_value = ev.value
        if self.last_write_value is None:
            return None

        record = LatencyRecord(
            now=ev.observed_at,
            last_write_value=self.last_write_value,
            last_observed_value=self.last_observed_value,
        )
        self.total_records += 1
        self.sink.handle(record)

        if record.matched and self._pending:
            self._pending = False
            self._complete_cycle(record)

        return record

    def _complete_cycle(self, record: LatencyRecord) -> None:
        self.cycles += 1
        logger.info(
            "pod caught with last secret update ({}), took: {:.3f}s",
            record.last_write_value,
            record.latency_sec,
        )

        result = CycleResult(
            cycle=self.cycles,
            value=record.last_write_value,
            confirmed_at=record.now,
            latency_sec=record.latency_sec,
        )
        for s in self.cycle_sinks:
            s.publish(result)

        if not self.done:
            self.trigger()

    def run(self) -> int:
        """Roda até max_cycles, stop, ou canal fechado (StreamClosedError)."""
        while not self.stop.is_set() and not self.done:
            try:
                ev = self.inbox.get(timeout=POLL_SEC)
            except Empty:
                continue
            self.handle(ev)
        return self.cycles
