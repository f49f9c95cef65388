from __future__ import annotations

from typing import Iterator, Protocol

from .models import CycleResult, LatencyRecord


class Clock(Protocol):
    def now_epoch(self) -> float: ...


# -----------------------------
# Colaboradores externos (cluster)
# -----------------------------

class ResourceController(Protocol):
    """Todas as operações levantam ResourceError em caso de falha."""

    def create_or_replace_value(self, name: str, key: str, value: str) -> None: ...

    def delete_object(self, kind: str, name: str) -> None: ...

    def create_consumer(self, pod_name: str, secret_name: str) -> None: ...

    def wait_ready(self, name: str) -> None: ...


class ObservationChannel(Protocol):
    def open_stream(self, pod_name: str, key: str) -> Iterator[str]:
        """Linhas cruas (~1/s) enquanto o processo do pod existir. Fim = pod encerrado."""
        ...

    def close(self) -> None: ...


# -----------------------------
# Saídas
# -----------------------------

class RecordSink(Protocol):
    def handle(self, record: LatencyRecord) -> None: ...


class CycleSink(Protocol):
    def publish(self, result: CycleResult) -> None: ...
