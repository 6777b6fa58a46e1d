# Copyright 2025-2026 Dimensional Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Structured logging for kinoplan.

Every component takes a ``logger`` argument; when none is given it calls
:func:`setup_logger`. Records go to stdout as one compact line each and to a
rotating JSON-lines file under ``global_config.log_dir``.
"""

from collections.abc import Mapping
from datetime import datetime
import inspect
import logging
import logging.handlers
import os
from pathlib import Path
import sys
import tempfile
from typing import Any

import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder

from kinoplan.constants import KINOPLAN_LOG_DIR, KINOPLAN_PROJECT_ROOT
from kinoplan.core.global_config import global_config

_LOG_FILE_PATH: Path | None = None
_LOGGER_NAME_WIDTH = 30
# Keys the console line either renders itself or has no room for.
_CONSOLE_HIDDEN_KEYS = ("timestamp", "level", "logger", "event", "func_name", "lineno")


def _log_file_path() -> Path:
    log_dir = global_config.log_dir or KINOPLAN_LOG_DIR
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        log_dir = Path(tempfile.gettempdir()) / "kinoplan" / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return log_dir / f"kinoplan_{timestamp}_{os.getpid()}.jsonl"


def _configure_structlog() -> Path:
    global _LOG_FILE_PATH

    if _LOG_FILE_PATH:
        return _LOG_FILE_PATH
    _LOG_FILE_PATH = _log_file_path()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            CallsiteParameterAdder(
                parameters=[CallsiteParameter.FUNC_NAME, CallsiteParameter.LINENO]
            ),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return _LOG_FILE_PATH


def console_line(logger: Any, method_name: str, event_dict: Mapping[str, Any]) -> str:
    """``HH:MM:SS.mmm [lvl][logger name] event key=value ...`` with keys sorted."""
    try:
        stamp = datetime.fromisoformat(str(event_dict.get("timestamp", "")))
    except ValueError:
        stamp = datetime.now()
    time_str = stamp.strftime("%H:%M:%S") + f".{stamp.microsecond // 1000:03d}"
    level = str(event_dict.get("level", "???"))[:3].lower()
    name = str(event_dict.get("logger", ""))[-_LOGGER_NAME_WIDTH:]

    line = f"{time_str} [{level}][{name:<{_LOGGER_NAME_WIDTH}s}] {event_dict.get('event', '')}"
    fields = {
        k: v
        for k, v in event_dict.items()
        if k not in _CONSOLE_HIDDEN_KEYS and not k.startswith("_")
    }
    if fields:
        line += " " + " ".join(f"{k}={v}" for k, v in sorted(fields.items()))
    return line


def setup_logger(name: str | None = None, *, level: int | None = None) -> Any:
    """Set up a structured logger using structlog.

    Args:
        name: Logger name. Defaults to the caller's file path relative to the
            project root.
        level: The logging level. Defaults to ``global_config.log_level``.

    Returns:
        A configured structlog logger instance.
    """
    if name is None:
        name = inspect.stack()[1].filename
        try:
            name = str(Path(name).relative_to(KINOPLAN_PROJECT_ROOT))
        except ValueError:
            pass

    log_file_path = _configure_structlog()

    if level is None:
        level = logging.getLevelName(global_config.log_level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    stdlib_logger = logging.getLogger(name)
    if stdlib_logger.hasHandlers():
        stdlib_logger.handlers.clear()
    stdlib_logger.setLevel(level)
    stdlib_logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=console_line))
    stdlib_logger.addHandler(console_handler)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=structlog.processors.JSONRenderer())
    )
    stdlib_logger.addHandler(file_handler)

    return structlog.get_logger(name)
