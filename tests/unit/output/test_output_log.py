# tests/unit/output/test_output_log.py

from unittest.mock import Mock

from transport_probe.output.output_log import OutputLog, render_verdicts
from transport_probe.probing.verdict import Verdict


class TestOutputLog:
    def test_append_and_clear(self, output):
        output.append("one")
        output.append("two")
        assert output.lines == ["one", "two"]
        assert len(output) == 2

        output.clear()
        assert output.lines == []

    def test_clear_notifies_clear_listeners(self, output):
        """WHY: a view that mirrors the log has to learn about a clear."""
        line_listener = Mock()
        clear_listener = Mock()
        output.subscribe(line_listener)
        output.subscribe_clear(clear_listener)
        output.append("one")

        output.clear()

        clear_listener.assert_called_once_with()
        line_listener.assert_called_once_with("one")

    def test_listener_sees_each_line(self, output):
        listener = Mock()
        output.subscribe(listener)

        output.append("hello")

        listener.assert_called_once_with("hello")

    def test_max_lines_keeps_newest(self):
        log = OutputLog(max_lines=2)
        for line in ("a", "b", "c"):
            log.append(line)

        assert log.lines == ["b", "c"]


class TestRenderVerdicts:
    def test_render(self):
        lines = render_verdicts(
            {
                "websocket": Verdict.FAILED,
                "xhr-streaming": Verdict.OPENED_WRONG_TEXT,
                "xhr-polling": Verdict.PENDING,
            }
        )

        assert lines == [
            "websocket      failed",
            "xhr-streaming  opened, wrong text",
            "xhr-polling    indeterminate",
        ]

    def test_render_empty(self):
        assert render_verdicts({}) == []
