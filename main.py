from __future__ import annotations

from typing import List

from loguru import logger

from config import AppConfig, load_config
from app.probe import LatencyProbe, ProbeSettings
from domain.errors import ProbeError
from domain.ports import CycleSink, RecordSink
from infra.clock import SystemClock
from infra.http_cycle_sink import HttpCycleSink
from infra.kubectl import Kubectl, KubectlResourceController
from infra.log import configure_logging
from infra.observation import KubectlExecChannel
from infra.sinks import CsvRecordSink, MemoryCycleSink


def build_probe(cfg: AppConfig, sink: RecordSink, cycle_sinks: List[CycleSink]) -> LatencyProbe:
    kubectl = Kubectl(cfg.kubectl, namespace=cfg.namespace, context=cfg.kube_context)

    controller = KubectlResourceController(
        kubectl,
        mount_path=cfg.mount_path,
        image=cfg.image,
        ready_timeout_sec=cfg.ready_timeout_sec,
    )
    channel = KubectlExecChannel(
        kubectl,
        mount_path=cfg.mount_path,
        interval_sec=cfg.poll_interval_sec,
    )

    settings = ProbeSettings(
        secret_name=cfg.secret_name,
        secret_key=cfg.secret_key,
        pod_name=cfg.pod_name,
        initial_value=cfg.initial_value,
        write_retries=cfg.write_retries,
        retry_backoff_sec=cfg.retry_backoff_sec,
        inbox_size=cfg.inbox_size,
        max_cycles=cfg.max_cycles,
    )
    return LatencyProbe(
        controller,
        channel,
        SystemClock(),
        sink,
        settings,
        cycle_sinks=cycle_sinks,
    )


def main():
    try:
        cfg = load_config()
    except ValueError as e:
        raise SystemExit(str(e))

    configure_logging(cfg.log_level)
    logger.info(
        "probing secret {}/{} mounted on pod {} at {} (poll every {}s)",
        cfg.secret_name, cfg.secret_key, cfg.pod_name, cfg.mount_path, cfg.poll_interval_sec,
    )

    # ---- sink HTTP (opcional) ----
    http_sink = None
    if cfg.cycle_http is not None:
        http_sink = HttpCycleSink(
            cfg.cycle_http.url,
            queue_max=cfg.cycle_http.queue_max,
            timeout_sec=cfg.cycle_http.timeout_sec,
            max_retries=cfg.cycle_http.max_retries,
            drop_on_full=cfg.cycle_http.drop_on_full,
        )
        http_sink.start()
        logger.info("[cycle_http] enabled=True url={}", cfg.cycle_http.url)

    summary = MemoryCycleSink()
    cycle_sinks: List[CycleSink] = [summary]
    if http_sink is not None:
        cycle_sinks.append(http_sink)

    sink = CsvRecordSink()
    probe = build_probe(cfg, sink, cycle_sinks)

    try:
        probe.setup()
        sink.write_header()
        probe.start()
        probe.run()
    except KeyboardInterrupt:
        logger.info("interrupted")
    except ProbeError as e:
        logger.error("{}", e)
        raise SystemExit(f"fatal: {e}")
    finally:
        try:
            probe.shutdown()
        finally:
            if http_sink is not None:
                http_sink.stop()
            logger.info("{}", summary.summary())


if __name__ == "__main__":
    main()
