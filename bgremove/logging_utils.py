"""Настройка журналирования для точки входа.

Библиотечные модули только создают свои логгеры через `logging.getLogger(__name__)`;
обработчики навешиваются здесь, один раз.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional

LOGGER_NAME = "bgremove"

_initialized = False


def setup_logging(verbose: bool = False, stream=None) -> logging.Logger:
    """
    Настраивает вывод логов пакета в консоль (по умолчанию stderr).

    Повторный вызов только меняет уровень.

    Returns:
        Корневой логгер пакета.
    """
    global _initialized

    logger = logging.getLogger(LOGGER_NAME)
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    if not _initialized:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(handler)
        logger.propagate = False
        _initialized = True

    for handler in logger.handlers:
        handler.setLevel(level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)
