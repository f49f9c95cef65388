from __future__ import annotations

import threading
from dataclasses import dataclass
from queue import Queue
from typing import Iterable, List, Optional

from loguru import logger

from domain.errors import ResourceError, SetupError
from domain.models import InboxEvent
from domain.ports import (
    Clock,
    CycleSink,
    ObservationChannel,
    RecordSink,
    ResourceController,
)

from .correlator import Correlator
from .updater import UpdaterTask
from .watcher import WatcherTask


@dataclass
class ProbeSettings:
    secret_name: str = "my-secret"
    secret_key: str = "time"
    pod_name: str = "my-pod"
    initial_value: str = "initial-value"

    write_retries: int = 3
    retry_backoff_sec: float = 0.25
    inbox_size: int = 16
    max_cycles: int = 0


class LatencyProbe:
    """
    Sessão de medição para um par Secret/Pod.

    setup():  apaga e recria o Secret e o Pod, espera o Pod ficar Ready
    run():    watcher + updater em threads, correlator na thread atual
    shutdown(): stop event + fecha o canal de observação + join
    """

    def __init__(
        self,
        controller: ResourceController,
        channel: ObservationChannel,
        clock: Clock,
        sink: RecordSink,
        settings: ProbeSettings,
        *,
        cycle_sinks: Iterable[CycleSink] = (),
    ):
        self.controller = controller
        self.channel = channel
        self.clock = clock
        self.sink = sink
        self.settings = settings
        self.cycle_sinks: List[CycleSink] = list(cycle_sinks)

        self.stop = threading.Event()
        self.inbox: "Queue[InboxEvent]" = Queue(maxsize=settings.inbox_size)

        self.updater: Optional[UpdaterTask] = None
        self.watcher: Optional[WatcherTask] = None
        self.correlator: Optional[Correlator] = None

    def setup(self) -> None:
        s = self.settings
        try:
            logger.info("recreating secret {}", s.secret_name)
            self.controller.delete_object("secret", s.secret_name)
            self.controller.create_or_replace_value(s.secret_name, s.secret_key, s.initial_value)

            logger.info("recreating pod {} (secret {})", s.pod_name, s.secret_name)
            self.controller.create_consumer(s.pod_name, s.secret_name)
            self.controller.wait_ready(s.pod_name)
        except ResourceError as e:
            raise SetupError(f"setup failed: {e}") from e
        logger.info("pod {} ready", s.pod_name)

    def start(self) -> None:
        s = self.settings
        try:
            lines = self.channel.open_stream(s.pod_name, s.secret_key)
        except ResourceError as e:
            raise SetupError(f"failed to start pod watch: {e}") from e

        self.watcher = WatcherTask(lines, self.clock, self.inbox, stop=self.stop)
        self.updater = UpdaterTask(
            self.controller,
            self.clock,
            self.inbox,
            secret_name=s.secret_name,
            secret_key=s.secret_key,
            max_retries=s.write_retries,
            backoff_sec=s.retry_backoff_sec,
            stop=self.stop,
        )
        self.correlator = Correlator(
            self.inbox,
            self.updater.triggers,
            self.sink,
            cycle_sinks=self.cycle_sinks,
            max_cycles=s.max_cycles,
            stop=self.stop,
        )

        self.watcher.start()
        self.updater.start()
        # primeiro ciclo
        self.correlator.trigger()

    def run(self) -> int:
        """Bloqueia até max_cycles/stop. StreamClosedError sobe para o chamador."""
        if self.correlator is None:
            self.start()
        assert self.correlator is not None
        return self.correlator.run()

    def shutdown(self) -> None:
        self.stop.set()
        if self.updater is not None:
            self.updater.shutdown()
        try:
            self.channel.close()
        finally:
            for t in (self.updater, self.watcher):
                if t is not None:
                    t.join(timeout=5)
