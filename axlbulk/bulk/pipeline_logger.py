"""
Pipeline logger - Structured logging for AXL bulk runs

Provides consistent, structured logging of per-record results.
"""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional


class PipelineLogger:
    """Structured logger for AXL bulk operations."""

    def __init__(self, name: str, log_dir: Optional[Path] = None, stream=None):
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        # Clear existing handlers
        self.logger.handlers.clear()

        # Console handler (stderr, the response body goes to stdout)
        console_handler = logging.StreamHandler(stream or sys.stderr)
        console_handler.setLevel(logging.INFO)
        console_formatter = logging.Formatter('%(asctime)s %(message)s')
        console_handler.setFormatter(console_formatter)
        self.logger.addHandler(console_handler)

        # File handler if log_dir provided
        self.log_file: Optional[Path] = None
        if log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = log_dir / f"{name}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
            file_handler = logging.FileHandler(self.log_file, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def _format(self, message: str, data: Dict[str, Any]) -> str:
        if data:
            return f"{message} | {json.dumps(data, ensure_ascii=False, default=str)}"
        return message

    def info(self, message: str, **kwargs):
        """Log info message with optional structured data."""
        self.logger.info(self._format(message, kwargs))

    def error(self, message: str, **kwargs):
        """Log error message with optional structured data."""
        self.logger.error(self._format(message, kwargs))

    def log_result(self, prefix: str, result: str):
        """Per-record result line, e.g. 'Line: 2, Item: "PT_B" Result: success'."""
        line = f"{prefix} Result: {result}" if prefix else f"Result: {result}"
        self.logger.info(line)

    def close(self):
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)


def get_logger(name: str = "axl_bulk", log_dir: Optional[Path] = None, stream=None) -> PipelineLogger:
    """Create a pipeline logger; log_dir defaults to AXL_LOG_DIR when set."""
    if log_dir is None:
        env_dir = os.environ.get("AXL_LOG_DIR")
        log_dir = Path(env_dir) if env_dir else None
    return PipelineLogger(name, log_dir, stream=stream)
