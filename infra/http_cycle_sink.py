from __future__ import annotations

import queue
import threading
import time
from dataclasses import asdict
from typing import Optional

import httpx
from loguru import logger

from domain.models import CycleResult
from domain.ports import CycleSink


class HttpCycleSink(CycleSink):
    """
    Publica cada ciclo confirmado (JSON) num endpoint HTTP.
    Fila + worker: nunca bloqueia o correlator quando drop_on_full=True.
    """

    def __init__(
        self,
        url: str,
        *,
        queue_max: int = 1000,
        timeout_sec: float = 2.0,
        max_retries: int = 3,
        drop_on_full: bool = True,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_sec
        self._max_retries = max_retries
        self._drop_on_full = drop_on_full

        self._q: queue.Queue[CycleResult | _Stop] = queue.Queue(maxsize=queue_max)
        self._thread: Optional[threading.Thread] = None
        self._client = client
        self._owns_client = client is None
        self._started = False

        self.total_published = 0
        self.total_dropped = 0
        self.total_failed = 0
        self.total_sent = 0

    def start(self) -> None:
        if self._started:
            return
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        self._thread = threading.Thread(target=self._worker, name="cycle-http", daemon=True)
        self._thread.start()
        self._started = True

    def stop(self) -> None:
        if not self._started:
            return
        self._q.put(_Stop())
        if self._thread is not None:
            self._thread.join(timeout=3)
        self._thread = None
        self._started = False
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def publish(self, result: CycleResult) -> None:
        if not self._started:
            raise RuntimeError("HttpCycleSink.publish called before start()")

        self.total_published += 1

        if self._drop_on_full:
            try:
                self._q.put_nowait(result)
            except queue.Full:
                self.total_dropped += 1
        else:
            self._q.put(result)

    def _post(self, payload: dict) -> None:
        assert self._client is not None

        attempt = 0
        while True:
            try:
                r = self._client.post(self._url, json=payload)
                r.raise_for_status()
                self.total_sent += 1
                return
            except Exception as e:
                attempt += 1
                if attempt > self._max_retries:
                    self.total_failed += 1
                    logger.warning("cycle post to {} failed: {}", self._url, e)
                    return
                time.sleep(min(0.25 * (2 ** (attempt - 1)), 2.0))

    def _worker(self) -> None:
        while True:
            item = self._q.get()
            try:
                if isinstance(item, _Stop):
                    return
                self._post(asdict(item))
            finally:
                self._q.task_done()


class _Stop:
    pass
