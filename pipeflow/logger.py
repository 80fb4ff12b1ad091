# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

logger.py: Centralized Logging for the Pipeline Editor
--------------------------------------------------------
Provides per-component loggers backed by Python's standard ``logging``
library, with an optional callback bridge so log messages can be shown
as transient notifications in a UI panel.

Quick Start::

    from pipeflow.logger import get_logger
    log = get_logger("Serializer")

    log.info("Exported %d nodes", count)
    log.warning("Unknown node type: %s", type_name)
    log.error("Import failed: %s", exc)
    log.debug("Row %s updated", key)

All loggers are children of the root ``"PipeFlow"`` logger, so a
single handler attached at the root controls all output.

Log Levels (standard):
    DEBUG   : Per-change detail (field merges, skipped change records)
    INFO    : Normal operations (node dropped, paste, export, import)
    WARNING : Recoverable issues (rejected connection, unknown node type)
    ERROR   : Failures that skip an operation (import failed)
    CRITICAL: Unrecoverable (should almost never be used)
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, Dict, Optional

# ==============================================================================
# ROOT LOGGER NAME
# ==============================================================================

ROOT_LOGGER_NAME = "PipeFlow"

# ==============================================================================
# CUSTOM FORMATTER
# ==============================================================================

class EditorFormatter(logging.Formatter):
    """
    Compact ``[Component] message`` formatter, with an optional timestamp
    for file output.

    Console output::

        [Editor] INFO  Dropped dataModel node dataModel-1760860000000-42
        [Rules] WARN  Prerequisite nodes can only connect to pre-check nodes

    File output (with timestamp)::

        2026-10-19 14:30:05 [Serializer] INFO  Exported 12 nodes
    """

    CONSOLE_FMT = "[%(module_tag)s] %(levelname)-5s %(message)s"
    FILE_FMT    = "%(asctime)s [%(module_tag)s] %(levelname)-5s %(message)s"

    def __init__(self, use_timestamp: bool = False) -> None:
        fmt = self.FILE_FMT if use_timestamp else self.CONSOLE_FMT
        super().__init__(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        # Logger name is "PipeFlow.Serializer" → "Serializer"
        if not hasattr(record, "module_tag"):
            record.module_tag = record.name.rsplit(".", 1)[-1]
        return super().format(record)


# ==============================================================================
# NOTIFICATION BRIDGE
# ==============================================================================

class _NotificationHandler(logging.Handler):
    """
    Forwards records to subscribers as ``(level, tag, message)`` triples.

    Each subscriber has its own minimum level, so a notification panel can
    listen for warnings only while a debug console sees everything.
    """

    def __init__(self) -> None:
        super().__init__()
        self._subscribers: Dict[Callable, int] = {}

    def subscribe(self, fn: Callable, min_level: int = logging.NOTSET) -> None:
        self._subscribers[fn] = min_level

    def unsubscribe(self, fn: Callable) -> None:
        self._subscribers.pop(fn, None)

    @property
    def has_subscribers(self) -> bool:
        return bool(self._subscribers)

    def emit(self, record: logging.LogRecord) -> None:
        if not self._subscribers:
            return
        try:
            message = record.getMessage()
            tag = getattr(record, "module_tag", record.name.rsplit(".", 1)[-1])
        except Exception:
            self.handleError(record)
            return
        for fn, min_level in list(self._subscribers.items()):
            if record.levelno < min_level:
                continue
            try:
                fn(record.levelname, tag, message)
            except Exception:
                self.handleError(record)


_notification_handler: Optional[_NotificationHandler] = None


# ==============================================================================
# PUBLIC API
# ==============================================================================

def get_logger(module_tag: str) -> logging.Logger:
    """
    Named logger for one engine component.

    ``module_tag`` is a short identifier (``"Editor"``, ``"Sync"``,
    ``"Serializer"``) shown as ``[Editor]`` in console output.
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{module_tag}")


def setup_logging(
    level: int = logging.INFO,
    stream=None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the root PipeFlow logger. Without a call, Python's defaults
    apply (WARNING and above to stderr).

    Repeated calls change the level but never stack a second console
    handler. ``log_file`` adds a timestamped file handler.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)

    console_handlers = [
        h for h in root.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]
    if not console_handlers:
        console = logging.StreamHandler(stream or sys.stdout)
        console.setFormatter(EditorFormatter(use_timestamp=False))
        root.addHandler(console)
        console_handlers.append(console)
    for handler in console_handlers:
        handler.setLevel(level)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(EditorFormatter(use_timestamp=True))
        root.addHandler(file_handler)

    return root


def set_log_level(level: int) -> None:
    """Change the level of the root logger and its output handlers."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    for handler in root.handlers:
        if handler is not _notification_handler:
            handler.setLevel(level)


def add_log_callback(fn: Callable, min_level: int = logging.NOTSET) -> None:
    """
    Subscribe ``fn(level, tag, message)`` to engine log records at or above
    ``min_level``. Typical use is piping rejected connections and failed
    imports into a transient notification area.
    """
    global _notification_handler
    if _notification_handler is None:
        _notification_handler = _NotificationHandler()
        logging.getLogger(ROOT_LOGGER_NAME).addHandler(_notification_handler)
    _notification_handler.subscribe(fn, min_level)


def remove_log_callback(fn: Callable) -> None:
    """Unsubscribe a callback registered with ``add_log_callback``."""
    if _notification_handler is not None:
        _notification_handler.unsubscribe(fn)
