from __future__ import annotations

import csv
import sys
import threading
from typing import List, Optional, TextIO

from domain.models import CycleResult, LatencyRecord
from domain.ports import CycleSink, RecordSink

HEADER = ["now", "last_secret_update", "last_on_pod"]


class CsvRecordSink(RecordSink):
    """
    Saída principal: CSV em stdout (um registro por leitura do pod após a primeira escrita).
    """

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out if out is not None else sys.stdout
        self._w = csv.writer(self.out, lineterminator="\n")
        self._header_written = False
        self._lock = threading.Lock()

    def write_header(self) -> None:
        with self._lock:
            if self._header_written:
                return
            self._w.writerow(HEADER)
            self.out.flush()
            self._header_written = True

    def handle(self, record: LatencyRecord) -> None:
        if not self._header_written:
            self.write_header()
        with self._lock:
            self._w.writerow(record.as_row())
            self.out.flush()


class MemoryCycleSink(CycleSink):
    """Guarda os ciclos confirmados (resumo no fim da sessão)."""

    def __init__(self):
        self.results: List[CycleResult] = []

    def publish(self, result: CycleResult) -> None:
        self.results.append(result)

    def summary(self) -> str:
        if not self.results:
            return "no confirmed cycles"
        lats = [r.latency_sec for r in self.results]
        return (
            f"cycles={len(lats)} min={min(lats):.3f}s "
            f"mean={sum(lats) / len(lats):.3f}s max={max(lats):.3f}s"
        )
