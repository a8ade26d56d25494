"""
Debug logging for conversion pipelines.

Records what every stage of a conversion produced (protected text, rendered
text before restore) plus a per-conversion summary, one JSON file each.
Logs are written to {project_root}/.outline_bridge/debug/session_<timestamp>/
and only when OB_DEBUG is on (1, true, yes) or the logger is explicitly enabled.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

DEBUG_ENV_VAR = "OB_DEBUG"


class DebugLogger:
    """
    Writes stage and summary logs for conversions.

    Logs are stored in {project_root}/.outline_bridge/debug/ with one
    subdirectory per session.
    """

    def __init__(self, project_root: str = ".", enabled: bool = None):
        """
        Initialize debug logger.

        Args:
            project_root: Project root directory for log storage
            enabled: Override debug enable flag, uses OB_DEBUG env var if None
        """
        self.project_root = project_root
        self.enabled = enabled if enabled is not None else is_debug_enabled()
        self.session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._sequence = 0

        if self.enabled:
            self._setup_log_directory()

    def _setup_log_directory(self) -> None:
        self.log_dir = Path(self.project_root) / ".outline_bridge" / "debug"
        self.session_dir = self.log_dir / f"session_{self.session_id}"
        self.session_dir.mkdir(parents=True, exist_ok=True)

    def is_enabled(self) -> bool:
        return self.enabled

    def log_stage(self, operation: str, stage: str, text: str) -> None:
        """
        Log the text produced by one pipeline stage.

        Args:
            operation: Conversion name (render_to_html, to_outline_format, ...)
            stage: Stage name (protected, rendered)
            text: Stage output
        """
        if not self.enabled:
            return

        self._write(
            f"{operation}_{stage}",
            {
                "step": stage,
                "type": "stage",
                "operation": operation,
                "text": text,
                "length": len(text),
                "line_count": text.count("\n") + 1 if text else 0,
            },
        )

    def log_conversion_summary(
        self, operation: str, source_text: str, result_text: str, span_counts: Dict[str, int], block_count: int
    ) -> None:
        """
        Log summary of one conversion.

        Args:
            operation: Conversion name
            source_text: Normalized input text
            result_text: Final output
            span_counts: Protected span counts by kind
            block_count: Number of top-level blocks parsed
        """
        if not self.enabled:
            return

        self._write(
            f"{operation}_summary",
            {
                "step": "summary",
                "type": "summary",
                "operation": operation,
                "source_text": source_text,
                "result_text": result_text,
                "stats": {
                    "source_length": len(source_text),
                    "result_length": len(result_text),
                    "block_count": block_count,
                    "protected_spans": span_counts,
                    "protected_span_total": sum(span_counts.values()),
                },
            },
        )

    def _write(self, name: str, payload: Dict[str, Any]) -> Path:
        timestamp = datetime.now().isoformat()
        self._sequence += 1
        log_data = {"timestamp": timestamp, "session_id": self.session_id, **payload}

        # Sequence prefix keeps stages in order when timestamps collide
        filename = f"{self._sequence:03d}_{name}_{timestamp.replace(':', '-').replace('.', '_')}.json"
        log_file = self.session_dir / filename

        with open(log_file, "w", encoding="utf-8") as f:
            json.dump(log_data, f, indent=2, ensure_ascii=False)
        return log_file


# Global debug logger instance
_debug_logger: Optional[DebugLogger] = None


def get_debug_logger(project_root: str = ".") -> DebugLogger:
    """
    Get or create global debug logger instance.

    Args:
        project_root: Project root directory

    Returns:
        DebugLogger instance
    """
    global _debug_logger
    if _debug_logger is None or _debug_logger.project_root != project_root:
        _debug_logger = DebugLogger(project_root)
    return _debug_logger


DEBUG_TRUE_VALUES = ("true", "1", "yes", "on")


def is_debug_enabled() -> bool:
    """True if OB_DEBUG is set to 1, true, yes or on (any case)."""
    return os.getenv(DEBUG_ENV_VAR, "0").strip().lower() in DEBUG_TRUE_VALUES
