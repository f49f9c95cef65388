from __future__ import annotations
from dataclasses import dataclass
from typing import List, Union

from domain import services


@dataclass(frozen=True)
class WriteEvent:
    # valor gravado no Secret (epoch em segundos, truncado)
    value: int
    applied_at: float


@dataclass(frozen=True)
class ObservationEvent:
    value: int
    # momento da leitura da linha, não o valor lido
    observed_at: float


@dataclass(frozen=True)
class TaskEnded:
    """
    Sentinela postada por uma task quando o seu loop termina.
    Equivale a um canal fechado para o correlator.
    """
    source: str
    reason: str = ""


InboxEvent = Union[WriteEvent, ObservationEvent, TaskEnded]


@dataclass(frozen=True)
class LatencyRecord:
    now: float
    last_write_value: int
    last_observed_value: int

    @property
    def matched(self) -> bool:
        return self.last_observed_value == self.last_write_value

    @property
    def latency_sec(self) -> float:
        return services.latency_sec(self.now, self.last_write_value)

    def as_row(self) -> List[int]:
        return [int(self.now), self.last_write_value, self.last_observed_value]


@dataclass(frozen=True)
class CycleResult:
    cycle: int
    value: int
    confirmed_at: float
    latency_sec: float
