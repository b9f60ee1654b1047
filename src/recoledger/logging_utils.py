"""Logging setup shared by the ingestion entry points.

A configured logger writes to the console and to ``<logs_dir>/<file_name>``.
If the file handler cannot be attached, logging continues on the console.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional


ROOT_LOGGER = "recoledger"
SYSTEM_FMT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"


def _ensure_logs_dir(config: dict) -> Path:
    paths = (config or {}).get("paths", {})
    logs_dir = Path(paths.get("logs_dir", "logs")).expanduser().resolve()
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def _safe_add_file_handler(logger: logging.Logger, path: Path, level: int) -> None:
    try:
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(SYSTEM_FMT, datefmt=DATE_FMT))
        logger.addHandler(fh)
    except OSError as exc:
        logger.warning("[WARNING] Failed to attach file handler %s (%s)", str(path), exc)


def get_logger(name: str = ROOT_LOGGER, config: Optional[dict] = None) -> logging.Logger:
    """Return a logger with console + file handlers.

    ``config`` follows ``AppConfig.as_logging_dict()``:
    ``{"paths": {"logs_dir": ...}, "logging": {"level": ..., "file_name": ...}}``.
    Handlers are reset on every call so repeated setup does not duplicate lines.
    """
    config = config or {}
    log_cfg = config.get("logging", {}) or {}
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(logging.Formatter(SYSTEM_FMT, datefmt=DATE_FMT))
    logger.addHandler(sh)

    try:
        logs_dir = _ensure_logs_dir(config)
    except OSError as exc:
        logger.warning("[WARNING] Logs directory unavailable (%s); console only", exc)
        return logger
    _safe_add_file_handler(logger, logs_dir / log_cfg.get("file_name", "ingestion_log.txt"), level)
    logger.debug("Logging initialised. Logs will be written to %s", logs_dir)
    return logger


def log_system_event(logger: logging.Logger, message: str) -> None:
    logger.info("[SYSTEM] %s", message)
