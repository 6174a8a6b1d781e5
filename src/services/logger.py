"""
Logger Service Module
Centralized logging for harness runs: colored console, rotating run log,
error-only log and optional JSON lines for machine consumption.
"""

import json
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import colorlog

# LogRecord attributes that are not "extra" fields
_RESERVED_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class LoggerService:
    """
    Configures the root logger once per process.

    Handlers:
    - console: colorlog, level from config ('console_level')
    - harness.log: rotating, everything at 'file_level' and above
    - errors.log: rotating, ERROR and above
    """

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = self._default_config()
        self.config.update(config or {})
        self.handlers: list[logging.Handler] = []

        self.log_dir = Path(self.config["log_dir"])
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            # Fall back to a local writable directory (CI/sandboxes)
            self.log_dir = Path("./logs")
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self._setup_root_logger()

    def _default_config(self) -> dict[str, Any]:
        """Default logging configuration"""
        return {
            "log_dir": "./logs",
            "console_level": "INFO",
            "file_level": "DEBUG",
            "max_bytes": 5 * 1024 * 1024,  # 5MB
            "backup_count": 3,
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "date_format": "%Y-%m-%d %H:%M:%S",
            "colored_output": True,
            "json_logs": False,
        }

    def _setup_root_logger(self):
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)  # Filter at handler level

        self._add(root_logger, self._create_console_handler())
        self._add(root_logger, self._create_file_handler("harness.log"))
        self._add(root_logger, self._create_file_handler("errors.log", level=logging.ERROR))

        # Event loop debug output drowns the run log
        logging.getLogger("asyncio").setLevel(logging.WARNING)

    def _add(self, logger: logging.Logger, handler: logging.Handler):
        logger.addHandler(handler)
        self.handlers.append(handler)

    def _create_console_handler(self) -> logging.Handler:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.config["console_level"].upper())

        if self.config.get("colored_output"):
            formatter: logging.Formatter = colorlog.ColoredFormatter(
                "%(log_color)s" + self.config["format"],
                datefmt=self.config["date_format"],
                log_colors={
                    "DEBUG": "cyan",
                    "INFO": "green",
                    "WARNING": "yellow",
                    "ERROR": "red",
                    "CRITICAL": "red,bg_white",
                },
            )
        else:
            formatter = logging.Formatter(self.config["format"], datefmt=self.config["date_format"])

        console_handler.setFormatter(formatter)
        return console_handler

    def _create_file_handler(self, filename: str, level: int | None = None) -> logging.Handler:
        try:
            handler: logging.Handler = RotatingFileHandler(
                self.log_dir / filename,
                maxBytes=self.config["max_bytes"],
                backupCount=self.config["backup_count"],
            )
        except OSError:
            # Don't fail hard if filesystem isn't writable
            handler = logging.StreamHandler(sys.stderr)

        handler.setLevel(level or self.config["file_level"].upper())

        if self.config.get("json_logs"):
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(
                logging.Formatter(self.config["format"], datefmt=self.config["date_format"])
            )
        return handler

    def set_level(self, level: str, logger_name: str | None = None):
        """Set logging level for a specific logger or the console"""
        if logger_name:
            logging.getLogger(logger_name).setLevel(level.upper())
        else:
            self.handlers[0].setLevel(level.upper())

    def cleanup(self):
        """Detach and close every handler this service installed"""
        root_logger = logging.getLogger()
        for handler in self.handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self.handlers.clear()


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


# Global logger service instance
_logger_service: LoggerService | None = None


def setup_logging(config: dict | None = None) -> logging.Logger:
    """
    Setup logging configuration and return root logger.

    Settings come from config.LOGGING / config.FILES, overridden by `config`.
    Calling it again is a no-op until cleanup_logging().
    """
    global _logger_service

    if _logger_service is None:
        from config import config as app_config

        logging_section = app_config.section("logging")
        log_config = {
            "log_dir": str(app_config.FILES["log_dir"]),
            "console_level": logging_section["level"],
            "max_bytes": logging_section["max_bytes"],
            "backup_count": logging_section["backup_count"],
            "format": logging_section["format"],
            "date_format": logging_section["date_format"],
            "json_logs": logging_section["json_logs"],
        }
        if config:
            log_config.update(config)

        _logger_service = LoggerService(log_config)

    return logging.getLogger()


def get_logger(name: str) -> logging.Logger:
    """Get a named logger, configuring logging on first use"""
    if _logger_service is None:
        setup_logging()
    return logging.getLogger(name)


def cleanup_logging():
    """Clean up logging resources"""
    global _logger_service

    if _logger_service:
        _logger_service.cleanup()
        _logger_service = None
