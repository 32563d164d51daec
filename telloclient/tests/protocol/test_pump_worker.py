from __future__ import annotations

import logging
import threading

from telloclient.protocol._internal.pump_worker import PumpWorker


def test_calls_pump_until_stopped():
    calls = []
    ran = threading.Event()

    def pump():
        calls.append(1)
        if len(calls) >= 3:
            ran.set()
        ran.wait(0.005)

    w = PumpWorker(pump, name="test")
    w.start()
    assert ran.wait(1.0)
    w.stop()
    w.join(1.0)

    assert not w.is_alive()
    assert w.stopping
    assert w.daemon
    assert w.name == "telloclient-test"


def test_exceptions_are_logged_and_loop_continues(caplog):
    calls = []
    recovered = threading.Event()

    def pump():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        recovered.set()
        recovered.wait(0.005)

    w = PumpWorker(pump, name="flaky", logger=logging.getLogger("test"), error_backoff_s=0.001)
    with caplog.at_level(logging.ERROR, logger="test"):
        w.start()
        assert recovered.wait(1.0)
        w.stop()
        w.join(1.0)

    assert "PUMP_WORKER_EXCEPTION" in caplog.text
    assert len(calls) >= 2
