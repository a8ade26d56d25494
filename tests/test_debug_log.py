"""
Tests for debug logging, the timing decorator and the progress reporter.
"""

import io
import json
from pathlib import Path

import pytest
from rich.console import Console

from outline_bridge.core import debug_log
from outline_bridge.core.debug_log import DebugLogger, get_debug_logger, is_debug_enabled
from outline_bridge.core.progress import ProgressReporter
from outline_bridge.core.timing import timer


def read_json(path: Path) -> dict:
    """Helper to read a JSON file."""
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture(autouse=True)
def no_debug_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("OB_DEBUG", raising=False)
    monkeypatch.setattr(debug_log, "_debug_logger", None)


class TestDebugLogger:
    """Test log file creation and content."""

    def test_disabled_by_default(self, tmp_path: Path):
        logger = DebugLogger(str(tmp_path))
        assert not logger.is_enabled()
        logger.log_stage("render_to_html", "protected", "x")
        assert not (tmp_path / ".outline_bridge").exists()

    def test_enabled_through_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("OB_DEBUG", "1")
        assert is_debug_enabled()
        logger = DebugLogger(str(tmp_path))
        assert logger.session_dir.is_dir()
        assert logger.session_dir.parent == tmp_path / ".outline_bridge" / "debug"

    @pytest.mark.parametrize(
        "value,expected", [("1", True), ("true", True), ("Yes", True), (" ON ", True), ("0", False), ("off", False)]
    )
    def test_debug_flag_values(self, monkeypatch: pytest.MonkeyPatch, value, expected):
        monkeypatch.setenv("OB_DEBUG", value)
        assert is_debug_enabled() is expected

    def test_stage_log_payload(self, tmp_path: Path):
        logger = DebugLogger(str(tmp_path), enabled=True)
        logger.log_stage("to_outline_format", "rendered", "- a\n- b")

        [log_file] = list(logger.session_dir.glob("*.json"))
        assert log_file.name.startswith("001_to_outline_format_rendered_")
        data = read_json(log_file)
        assert data["type"] == "stage"
        assert data["step"] == "rendered"
        assert data["text"] == "- a\n- b"
        assert data["line_count"] == 2
        assert data["session_id"] == logger.session_id

    def test_summary_stats(self, tmp_path: Path):
        logger = DebugLogger(str(tmp_path), enabled=True)
        logger.log_conversion_summary("render_to_html", "src", "<p>src</p>", {"LINK": 2, "CODEBLOCK": 1}, 4)

        data = read_json(next(logger.session_dir.glob("*.json")))
        assert data["stats"]["source_length"] == 3
        assert data["stats"]["result_length"] == 10
        assert data["stats"]["block_count"] == 4
        assert data["stats"]["protected_span_total"] == 3

    def test_sequence_orders_files(self, tmp_path: Path):
        logger = DebugLogger(str(tmp_path), enabled=True)
        for stage in ("protected", "rendered"):
            logger.log_stage("render_to_html", stage, "")
        names = sorted(path.name for path in logger.session_dir.glob("*.json"))
        assert names[0].startswith("001_render_to_html_protected")
        assert names[1].startswith("002_render_to_html_rendered")

    def test_global_logger_is_reused_per_root(self, tmp_path: Path):
        first = get_debug_logger(str(tmp_path))
        assert get_debug_logger(str(tmp_path)) is first
        assert get_debug_logger(str(tmp_path / "other")) is not first


class TestTimer:
    """Test the timing decorator."""

    def test_silent_without_debug(self, capsys):
        @timer
        def double(value):
            return value * 2

        assert double(2) == 4
        assert capsys.readouterr().err == ""

    def test_reports_to_stderr_with_debug(self, capsys, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("OB_DEBUG", "1")

        @timer
        def double(value):
            return value * 2

        assert double(3) == 6
        captured = capsys.readouterr()
        assert "[OB_DEBUG]" in captured.err
        assert "double" in captured.err
        assert captured.out == ""

    def test_word_flag_enables_timing(self, capsys, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("OB_DEBUG", "true")

        @timer
        def double(value):
            return value * 2

        assert double(4) == 8
        assert "double" in capsys.readouterr().err


class TestProgressReporter:
    """Test step tracking."""

    def test_steps_are_completed_in_order(self):
        buffer = io.StringIO()
        reporter = ProgressReporter()
        with reporter.initialize(Console(file=buffer), "Reading input"):
            reporter.step("Converting")
            reporter.complete_step()
        assert reporter.completed_steps == ["Reading input", "Converting"]
        assert "Converting" in buffer.getvalue()

    def test_step_without_initialize_is_ignored(self):
        reporter = ProgressReporter()
        reporter.step("anything")
        reporter.complete_step()
        assert reporter.completed_steps == []
