"""Integration tests — a real collector and real emitters over the Unix socket channel."""

import sys
import threading
import time
from datetime import datetime

import pytest

from ipclog.collector import Collector, log_filename
from ipclog.config import CollectorConfig, EmitterConfig
from ipclog.emitter import Emitter


def _wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


def _today():
    return datetime.now().strftime("%Y-%m-%d")


def _start_collector(tmp_path, socket_dir, **overrides):
    defaults = {
        "directory": str(tmp_path / "logs"),
        "flush_interval": 3600.0,
        "console": False,
        "socket_dir": socket_dir,
    }
    defaults.update(overrides)
    return Collector(CollectorConfig(**defaults)).start()


def _read(tmp_path, scope):
    path = tmp_path / "logs" / log_filename(scope, _today())
    return path.read_text(encoding="utf-8") if path.exists() else ""


class TestEndToEnd:
    def test_lines_reach_files(self, tmp_path, socket_dir):
        collector = _start_collector(tmp_path, socket_dir)
        emitter = Emitter(EmitterConfig(system="api", cluster=1, socket_dir=socket_dir))
        try:
            emitter.info("started")
            emitter.warn({"disk": 91})
            emitter.error(ValueError("bad request"))
            assert _wait_for(lambda: collector.pending("api")["error"] != "")
            assert collector.save() == 2
        finally:
            emitter.close()
            collector.stop()

        system_file = _read(tmp_path, "api")
        error_file = _read(tmp_path, "error")
        assert "| INFO  | started" in system_file
        assert '"disk": 91' in system_file
        assert "| ERROR | bad request" in system_file
        assert "bad request" in error_file
        assert "started" not in error_file

    def test_multiple_producers_keep_their_order(self, tmp_path, socket_dir):
        collector = _start_collector(tmp_path, socket_dir)
        emitters = [
            Emitter(EmitterConfig(system="api", cluster=n, socket_dir=socket_dir))
            for n in range(3)
        ]
        try:
            for i in range(50):
                for emitter in emitters:
                    emitter.info(f"{emitter.cluster}:{i}")
            assert _wait_for(lambda: collector.pending("api")["data"].count("\n") == 150)
            collector.save()
        finally:
            for emitter in emitters:
                emitter.close()
            collector.stop()

        messages = [line.rsplit(" | ", 1)[1] for line in _read(tmp_path, "api").splitlines()]
        assert len(messages) == 150
        for n in range(3):
            own = [m for m in messages if m.startswith(f"{n}:")]
            assert own == [f"{n}:{i}" for i in range(50)]

    def test_listener_sees_live_lines(self, tmp_path, socket_dir):
        collector = _start_collector(tmp_path, socket_dir)
        seen = []
        collector.on("all", seen.append)
        emitter = Emitter(EmitterConfig(system="web", cluster=2, socket_dir=socket_dir))
        try:
            emitter.debug("probe")
            assert _wait_for(lambda: len(seen) == 1)
            assert seen[0].endswith("| [02] ----WEB | DEBUG | probe")
        finally:
            emitter.close()
            collector.stop()

    def test_timer_flushes_without_manual_save(self, tmp_path, socket_dir):
        collector = _start_collector(tmp_path, socket_dir, flush_interval=0.1)
        emitter = Emitter(EmitterConfig(system="cron", socket_dir=socket_dir))
        try:
            emitter.info("nightly job done")
            assert _wait_for(lambda: "nightly job done" in _read(tmp_path, "cron"))
        finally:
            emitter.close()
            collector.stop()


class TestFatalPath:
    @pytest.fixture(autouse=True)
    def _restore_hooks(self, monkeypatch):
        monkeypatch.setattr(sys, "excepthook", sys.excepthook)
        monkeypatch.setattr(threading, "excepthook", threading.excepthook)

    def test_thread_crash_recorded_as_fatal(self, tmp_path, socket_dir):
        collector = _start_collector(tmp_path, socket_dir)
        exits = []
        emitter = Emitter(
            EmitterConfig(system="worker", cluster=0, socket_dir=socket_dir),
            exit_func=lambda: exits.append(True),
        )
        emitter.install_fatal_hooks()

        def crash():
            raise RuntimeError("worker died")

        try:
            t = threading.Thread(target=crash)
            t.start()
            t.join()
            assert exits == [True]
            assert _wait_for(lambda: collector.pending("worker")["fatal"] != "")

            emitter.info("ignored after exit")
            collector.save()
        finally:
            emitter.close()
            collector.stop()

        system_file = _read(tmp_path, "worker")
        assert "| [0M] -WORKER | FATAL | " in system_file
        assert "RuntimeError: worker died" in system_file
        assert "RuntimeError: worker died" in _read(tmp_path, "error")
        assert "ignored after exit" not in system_file
