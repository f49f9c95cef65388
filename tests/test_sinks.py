import io
import json
import threading

import httpx
import pytest

from domain.models import CycleResult, LatencyRecord
from infra.http_cycle_sink import HttpCycleSink
from infra.sinks import CsvRecordSink, MemoryCycleSink


def test_csv_sink_writes_header_once_then_rows():
    out = io.StringIO()
    s = CsvRecordSink(out)
    s.write_header()
    s.handle(LatencyRecord(now=1003.7, last_write_value=1000, last_observed_value=500))
    s.handle(LatencyRecord(now=1004.1, last_write_value=1000, last_observed_value=1000))

    assert out.getvalue() == (
        "now,last_secret_update,last_on_pod\n"
        "1003,1000,500\n"
        "1004,1000,1000\n"
    )


def test_csv_sink_adds_header_on_first_record():
    out = io.StringIO()
    s = CsvRecordSink(out)
    s.handle(LatencyRecord(now=5.0, last_write_value=1, last_observed_value=1))
    assert out.getvalue().splitlines()[0] == "now,last_secret_update,last_on_pod"


def test_memory_cycle_sink_summary():
    s = MemoryCycleSink()
    assert s.summary() == "no confirmed cycles"
    s.publish(CycleResult(cycle=1, value=10, confirmed_at=11.0, latency_sec=1.0))
    s.publish(CycleResult(cycle=2, value=20, confirmed_at=23.0, latency_sec=3.0))
    assert s.summary() == "cycles=2 min=1.000s mean=2.000s max=3.000s"


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_http_sink_posts_cycle_as_json():
    got = []
    done = threading.Event()

    def handler(request: httpx.Request) -> httpx.Response:
        got.append(json.loads(request.content))
        done.set()
        return httpx.Response(204)

    s = HttpCycleSink("http://collector/cycles", client=_client(handler))
    s.start()
    try:
        s.publish(CycleResult(cycle=1, value=1000, confirmed_at=1002.0, latency_sec=2.0))
        assert done.wait(timeout=2)
    finally:
        s.stop()

    assert got == [{"cycle": 1, "value": 1000, "confirmed_at": 1002.0, "latency_sec": 2.0}]
    assert s.total_sent == 1


def test_http_sink_gives_up_after_max_retries():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    s = HttpCycleSink("http://collector/cycles", max_retries=1, client=_client(handler))
    s.start()
    s.publish(CycleResult(cycle=1, value=1, confirmed_at=2.0, latency_sec=1.0))
    s.stop()

    assert len(calls) == 2
    assert s.total_failed == 1
    assert s.total_sent == 0


def test_http_sink_requires_start():
    s = HttpCycleSink("http://collector/cycles")
    with pytest.raises(RuntimeError):
        s.publish(CycleResult(cycle=1, value=1, confirmed_at=2.0, latency_sec=1.0))


def test_http_sink_worker_survives_client_errors():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise RuntimeError("Cannot send a request, as the client has been closed.")
        return httpx.Response(204)

    s = HttpCycleSink("http://collector/cycles", max_retries=0, client=_client(handler))
    s.start()
    s.publish(CycleResult(cycle=1, value=1, confirmed_at=2.0, latency_sec=1.0))
    s.publish(CycleResult(cycle=2, value=3, confirmed_at=4.0, latency_sec=1.0))
    s.stop()

    assert len(calls) == 2
    assert s.total_failed == 1
    assert s.total_sent == 1
