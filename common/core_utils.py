#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Logging helpers shared by the extract CLI and pipeline.

Records are tagged with a per-level symbol and an optional run prefix such
as "[GTFS-EXTRACT]", so extraction logs can be told apart when several
tools write to the same file.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Union

from config.config_models import SYMBOLS_DEFAULT

module_logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
SIMPLE_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(symbol)s %(name)s - %(message)s"


class SymbolFormatter(logging.Formatter):
    """Formatter exposing `%(symbol)s`, looked up by lower-cased level name."""

    def __init__(
        self,
        fmt=None,
        datefmt=None,
        style="%",
        validate=True,
        symbols: Optional[Dict[str, str]] = None,
    ):
        super().__init__(fmt, datefmt, style, validate)
        self.symbols = {**SYMBOLS_DEFAULT, **(symbols or {})}

    def format(self, record):
        # Custom levels have no symbol.
        record.symbol = self.symbols.get(logging.getLevelName(record.levelno).lower(), "")
        return super().format(record)


def resolve_log_level(level: Union[int, str, None]) -> int:
    """
    Turn a level name such as "debug" or a numeric level into a logging level.

    Unknown names fall back to INFO.
    """
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    name = str(level).strip().upper()
    if name.isdigit():
        return int(name)
    resolved = logging.getLevelName(name)
    if isinstance(resolved, int):
        return resolved
    print(
        f"Warning: Unknown log level '{level}', using INFO.",
        file=sys.stderr,
    )
    return logging.INFO


def _format_string(log_format_str: Optional[str], log_prefix: Optional[str]) -> str:
    prefix = f"{log_prefix.strip()} " if log_prefix and log_prefix.strip() else ""
    fmt = log_format_str or SIMPLE_LOG_FORMAT
    if "{log_prefix}" in fmt:
        return fmt.format(log_prefix=prefix)
    return prefix + fmt


def setup_logging(
    log_level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    log_to_console: bool = True,
    log_format_str: Optional[str] = None,
    log_prefix: Optional[str] = None,
    symbols: Optional[Dict[str, str]] = None,
) -> None:
    """
    Replace the root logger's handlers with a file and/or stdout handler.

    With neither requested, stdout is used anyway and the level is capped at
    INFO. A "{log_prefix}" placeholder in `log_format_str` receives the
    prefix; otherwise the prefix is prepended.
    """
    handlers: List[logging.Handler] = []
    if log_file:
        try:
            log_file_path = Path(log_file)
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file_path, mode="a"))
        except Exception as e:
            print(
                f"Warning: Could not create file handler for log file {log_file}: {e}",
                file=sys.stderr,
            )

    if log_to_console or not handlers:
        if not log_to_console:
            log_level = min(log_level, logging.INFO)
        handlers.append(logging.StreamHandler(sys.stdout))

    final_format_str = _format_string(log_format_str, log_prefix)
    extra = {"symbols": symbols} if symbols else {}
    formatter = SymbolFormatter(fmt=final_format_str, datefmt=DATE_FORMAT, **extra)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    module_logger.debug(
        f"Logging configured. Level: {logging.getLevelName(log_level)}. Format: '{final_format_str}'"
    )
