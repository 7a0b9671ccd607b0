# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for the engine and the CLI.

Engine modules log through ``logging.getLogger(__name__)`` only; this module
decides how those records are rendered.  Human-readable console output by
default, JSON lines with ``json_output=True`` (``tabrenamer --json``).

Leaf module, no tabrenamer imports. Safe to call early in startup.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

# Loggers that are noisy at DEBUG and only interesting when tracing a pass.
_CHATTY_LOGGERS = ("tabrenamer.host", "tabrenamer.scheduler")


def configure(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Configure structlog with stdlib bridge.

    Args:
        json_output: True for JSON lines, False for human-readable console output.
        level: Root logger level (default INFO).
        stream: Where log lines go (default stderr, so CLI results on stdout stay clean).
    """
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(root_level)

    # Host call tracing stays at INFO unless DEBUG was asked for explicitly.
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if root_level <= logging.DEBUG else logging.INFO)


def bind_pass(pass_id: str) -> None:
    """Attach *pass_id* to every log line emitted during the current recompute pass."""
    structlog.contextvars.bind_contextvars(pass_id=pass_id)


def unbind_pass() -> None:
    structlog.contextvars.unbind_contextvars("pass_id")
