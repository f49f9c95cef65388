from __future__ import annotations

import queue
import threading
from typing import Iterator, List, Optional

import pytest
from loguru import logger

from domain.errors import ResourceError
from domain.models import CycleResult, LatencyRecord


@pytest.fixture(autouse=True)
def disable_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


@pytest.fixture
def captured_logs():
    captured: List[str] = []
    sink_id = logger.add(lambda msg: captured.append(str(msg)), level="DEBUG")
    yield captured
    logger.remove(sink_id)


class FakeClock:
    def __init__(self, start: float = 1000.0, step: float = 0.0):
        self.t = start
        self.step = step
        self._lock = threading.Lock()

    def now_epoch(self) -> float:
        with self._lock:
            t = self.t
            self.t += self.step
            return t

    def set(self, t: float) -> None:
        with self._lock:
            self.t = t


class FakeController:
    """Controller em memória; `fail_next` falhas antes de voltar a funcionar."""

    def __init__(self, fail_next: int = 0):
        self.values = {}
        self.calls: List[tuple] = []
        self.fail_next = fail_next
        self.fail_on: set = set()
        self.writes = queue.Queue()

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_on:
            raise ResourceError(f"{op} failed")

    def create_or_replace_value(self, name: str, key: str, value: str) -> None:
        self.calls.append(("write", name, key, value))
        self._maybe_fail("write")
        if self.fail_next > 0:
            self.fail_next -= 1
            raise ResourceError("apiserver unavailable")
        self.values[(name, key)] = value
        self.writes.put(value)

    def delete_object(self, kind: str, name: str) -> None:
        self.calls.append(("delete", kind, name))
        self._maybe_fail("delete")

    def create_consumer(self, pod_name: str, secret_name: str) -> None:
        self.calls.append(("consumer", pod_name, secret_name))
        self._maybe_fail("consumer")

    def wait_ready(self, name: str) -> None:
        self.calls.append(("wait", name))
        self._maybe_fail("wait")


_EOF = object()


class FakeChannel:
    """Linhas alimentadas pelo teste via feed(); end() ou close() encerram o stream."""

    def __init__(self):
        self._q: "queue.Queue[object]" = queue.Queue()
        self.opened: Optional[tuple] = None
        self.closed = False

    def feed(self, *lines: str) -> None:
        for line in lines:
            self._q.put(line)

    def end(self) -> None:
        self._q.put(_EOF)

    def open_stream(self, pod_name: str, key: str) -> Iterator[str]:
        self.opened = (pod_name, key)
        return self._iter()

    def _iter(self) -> Iterator[str]:
        while True:
            item = self._q.get()
            if item is _EOF:
                return
            yield item

    def close(self) -> None:
        self.closed = True
        self.end()


class ListSink:
    def __init__(self):
        self.records: List[LatencyRecord] = []

    def handle(self, record: LatencyRecord) -> None:
        self.records.append(record)


class ListCycleSink:
    def __init__(self):
        self.results: List[CycleResult] = []

    def publish(self, result: CycleResult) -> None:
        self.results.append(result)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def controller():
    return FakeController()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def sink():
    return ListSink()
