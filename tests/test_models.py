"""Tests for severities, envelopes and system buffers."""

import pytest

from ipclog.models import (
    LogEnvelope,
    Severity,
    SystemBuffer,
    parse_severity,
)


class TestSeverity:
    @pytest.mark.parametrize("severity,slot", [
        (Severity.DEBUG, "data"),
        (Severity.INFO, "data"),
        (Severity.WARN, "data"),
        (Severity.ERROR, "error"),
        (Severity.FATAL, "fatal"),
    ])
    def test_slots(self, severity, slot):
        assert severity.slot == slot

    def test_parse_case_insensitive(self):
        assert parse_severity(" WARN ") is Severity.WARN

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            parse_severity("trace")


class TestLogEnvelope:
    def test_cluster_rendered_as_string(self):
        env = LogEnvelope("info", "api", 3, "hello")
        assert env.cluster == "3"
        assert env.severity is Severity.INFO

    def test_empty_system_rejected(self):
        with pytest.raises(ValueError):
            LogEnvelope("info", "", "1", "hello")

    def test_non_string_message_rejected(self):
        with pytest.raises(ValueError):
            LogEnvelope("info", "api", "1", 42)

    def test_to_payload(self):
        env = LogEnvelope("error", "api", 2, "boom")
        assert env.to_payload() == ["api", "2", "boom"]


class TestSystemBuffer:
    def test_new_buffer_is_empty(self):
        buf = SystemBuffer()
        assert buf.is_empty()
        assert buf.drain() == {}

    def test_content_is_newline_terminated(self):
        buf = SystemBuffer()
        buf.append("data", "one")
        buf.append("data", "two")
        assert buf.content("data") == "one\ntwo\n"
        assert buf.content("error") == ""

    def test_drain_resets_only_filled_slots(self):
        buf = SystemBuffer()
        buf.append("data", "a")
        buf.append("fatal", "b")
        assert buf.drain() == {"data": "a\n", "fatal": "b\n"}
        assert buf.is_empty()

    def test_append_after_drain_starts_fresh(self):
        buf = SystemBuffer()
        buf.append("error", "first")
        buf.drain()
        buf.append("error", "second")
        assert buf.drain() == {"error": "second\n"}
